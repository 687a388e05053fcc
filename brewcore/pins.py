# brewcore/pins.py
"""
Persisted "do not upgrade" markers.

One JSON record per pinned name under the pins root, written to a temp file
and moved into place with os.replace so readers never see a partial record.
"""

from __future__ import annotations

import json
import os
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from brewcore.config import get_paths
from brewcore.errors import NotPinnableError
from brewcore.formula import Package
from brewcore.layout import Layout
from brewcore.logging import get_logger
from brewcore.version import PkgVersion

logger = get_logger("pins")


def _atomic_write_bytes(path: Path, data: bytes) -> None:
    tmp = path.with_name(f".{path.name}.{os.getpid()}.tmp")
    with open(tmp, "wb") as f:
        f.write(data)
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp, path)


class PinRegistry:
    def __init__(self, pins_root: Optional[str] = None, layout: Optional[Layout] = None):
        self.root = Path(pins_root or get_paths()["pins"])
        self.layout = layout

    def _record_path(self, name: str) -> Path:
        return self.root / f"{name}.json"

    def _read(self, name: str) -> Optional[Dict[str, Any]]:
        path = self._record_path(name)
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None

    # ----------------------
    # Public API
    # ----------------------
    def pin(self, name: str, identity: PkgVersion) -> None:
        """Record `identity` as pinned for `name`; re-pinning replaces the identity."""
        self.root.mkdir(parents=True, exist_ok=True)
        record = {
            "name": name,
            "version": str(identity.version),
            "revision": identity.revision,
            "pinned_at": int(time.time()),
        }
        _atomic_write_bytes(self._record_path(name), json.dumps(record, sort_keys=True).encode("utf-8"))
        logger.info("pinned %s at %s", name, identity)

    def unpin(self, name: str) -> None:
        try:
            self._record_path(name).unlink()
        except FileNotFoundError:
            return
        logger.info("unpinned %s", name)

    def is_pinned(self, name: str) -> bool:
        return self._record_path(name).is_file()

    def pinned_version(self, name: str) -> Optional[PkgVersion]:
        record = self._read(name)
        if record is None:
            return None
        return PkgVersion(record["version"], int(record.get("revision", 0)))

    def pinned_names(self) -> List[str]:
        if not self.root.is_dir():
            return []
        return sorted(p.stem for p in self.root.glob("*.json") if not p.name.startswith("."))

    # ----------------------
    # Package helpers
    # ----------------------
    def _layout(self) -> Layout:
        return self.layout or Layout()

    def pinnable(self, package: Package) -> bool:
        layout = self._layout()
        return layout.is_installed(package) and layout.installed_version(package) is not None

    def pin_package(self, package: Package) -> PkgVersion:
        """Pin the currently installed version of `package`."""
        if not self.pinnable(package):
            raise NotPinnableError(package.name)
        identity = self._layout().installed_version(package)
        self.pin(package.name, identity)
        return identity
