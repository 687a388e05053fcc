# brewcore/describe.py
"""
Read-only snapshot of a package: static spec metadata plus what is
installed in its rack. Never touches locks and never mutates the Package.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from brewcore.formula import Package
from brewcore.layout import Layout
from brewcore.pins import PinRegistry
from brewcore.tab import Tab


def _installed(package: Package, layout: Layout) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for keg in layout.kegs(package.name):
        tab = Tab.for_keg(keg)
        out.append({
            "version": keg.name,
            "used_options": list(tab.used_options),
            "built_as_bottle": tab.built_as_bottle,
            "poured_from_bottle": tab.poured_from_bottle,
        })
    return out


def describe(package: Package, layout: Optional[Layout] = None,
             pins: Optional[PinRegistry] = None) -> Dict[str, Any]:
    layout = layout or Layout()
    linked = layout.linked_keg(package.name)
    data: Dict[str, Any] = {
        "name": package.name,
        "homepage": package.homepage,
        "versions": {
            "stable": package.stable.resolved_version if package.stable else None,
            "bottle": package.is_bottled(),
            "devel": package.devel.resolved_version if package.devel else None,
            "head": package.head.resolved_version if package.head else None,
        },
        "revision": package.revision,
        "installed": _installed(package, layout),
        "linked_keg": linked.name if linked else None,
        "keg_only": package.is_keg_only(),
        "dependencies": [d.name for d in package.deps],
        "conflicts_with": list(package.conflicts),
        "caveats": package.caveats,
        "options": [{"option": o.flag, "description": o.description} for o in package.options],
    }
    if pins is not None:
        data["pinned"] = pins.is_pinned(package.name)
    return data


def describe_json(package: Package, layout: Optional[Layout] = None,
                  pins: Optional[PinRegistry] = None) -> str:
    return json.dumps(describe(package, layout, pins), indent=2, sort_keys=True)
