# brewcore/tab.py
"""Install receipt written into every keg (INSTALL_RECEIPT.json)."""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from brewcore.formula import Package
from brewcore.logging import get_logger
from brewcore.options import BuildOptions

logger = get_logger("tab")

FILENAME = "INSTALL_RECEIPT.json"


@dataclass
class Tab:
    used_options: List[str] = field(default_factory=list)
    unused_options: List[str] = field(default_factory=list)
    built_as_bottle: bool = False
    poured_from_bottle: bool = False
    time: Optional[int] = None
    source: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(cls, package: Package, build_options: BuildOptions, poured_from_bottle: bool = False) -> "Tab":
        return cls(
            used_options=build_options.used_options,
            unused_options=build_options.unused_options,
            built_as_bottle=False,
            poured_from_bottle=poured_from_bottle,
            time=int(time.time()),
            source={"spec": str(package.active_variant), "path": package.path},
        )

    @classmethod
    def for_keg(cls, keg: Path) -> "Tab":
        """Receipt of `keg`, or an empty Tab for kegs without a readable one."""
        path = Path(keg) / FILENAME
        if not path.is_file():
            return cls()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("ignoring unreadable receipt %s: %s", path, e)
            return cls()
        if not isinstance(data, dict):
            logger.warning("ignoring malformed receipt %s", path)
            return cls()
        known = {k: data[k] for k in cls.__dataclass_fields__ if k in data}
        return cls(**known)

    def write(self, keg: Path) -> Path:
        path = Path(keg) / FILENAME
        path.write_text(json.dumps(asdict(self), indent=2, sort_keys=True), encoding="utf-8")
        return path
