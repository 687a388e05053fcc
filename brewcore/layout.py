# brewcore/layout.py
"""
On-disk layout of installed packages.

    <cellar>/<name>/                 rack: every installed version of one name
    <cellar>/<name>/<version>[_<rev>] prefix: one keg
    <prefix>/opt/<name>              stable alias to the linked keg

All path helpers are pure; only installed_prefix/is_installed and the keg
listing helpers look at the filesystem.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Optional, Union

from brewcore.config import get_paths
from brewcore.formula import Package
from brewcore.specs import Variant
from brewcore.version import PkgVersion

Identity = Union[PkgVersion, str]


class Layout:
    def __init__(self, prefix_root: Optional[str] = None, cellar_root: Optional[str] = None):
        if prefix_root is None:
            paths = get_paths()
            self.prefix_root = Path(paths["prefix"])
            self.cellar = Path(cellar_root or paths["cellar"])
        else:
            self.prefix_root = Path(prefix_root)
            self.cellar = Path(cellar_root) if cellar_root else self.prefix_root / "Cellar"

    # ----------------------
    # Versioned paths
    # ----------------------
    def rack(self, name: str) -> Path:
        return self.cellar / name

    def prefix(self, name: str, identity: Identity) -> Path:
        return self.rack(name) / str(identity)

    def bin(self, name: str, identity: Identity) -> Path:
        return self.prefix(name, identity) / "bin"

    def sbin(self, name: str, identity: Identity) -> Path:
        return self.prefix(name, identity) / "sbin"

    def lib(self, name: str, identity: Identity) -> Path:
        return self.prefix(name, identity) / "lib"

    def libexec(self, name: str, identity: Identity) -> Path:
        return self.prefix(name, identity) / "libexec"

    def include(self, name: str, identity: Identity) -> Path:
        return self.prefix(name, identity) / "include"

    def share(self, name: str, identity: Identity) -> Path:
        return self.prefix(name, identity) / "share"

    def doc(self, name: str, identity: Identity) -> Path:
        return self.share(name, identity) / "doc" / name

    def info(self, name: str, identity: Identity) -> Path:
        return self.share(name, identity) / "info"

    def man(self, name: str, identity: Identity, section: Optional[int] = None) -> Path:
        base = self.share(name, identity) / "man"
        if section is None:
            return base
        if section not in range(1, 9):
            raise ValueError(f"man section must be 1..8, got {section}")
        return base / f"man{section}"

    def bash_completion(self, name: str, identity: Identity) -> Path:
        return self.prefix(name, identity) / "etc" / "bash_completion.d"

    def zsh_completion(self, name: str, identity: Identity) -> Path:
        return self.share(name, identity) / "zsh" / "site-functions"

    def bottle_prefix(self, name: str, identity: Identity) -> Path:
        return self.prefix(name, identity) / ".bottle"

    def frameworks(self, name: str, identity: Identity) -> Optional[Path]:
        if sys.platform != "darwin":
            return None
        return self.prefix(name, identity) / "Frameworks"

    def kext_prefix(self, name: str, identity: Identity) -> Optional[Path]:
        if sys.platform != "darwin":
            return None
        return self.prefix(name, identity) / "Library" / "Extensions"

    # shared, not per keg
    def etc(self) -> Path:
        return self.prefix_root / "etc"

    def var(self) -> Path:
        return self.prefix_root / "var"

    # ----------------------
    # Version-independent paths
    # ----------------------
    def opt_prefix(self, name: str) -> Path:
        return self.prefix_root / "opt" / name

    def opt_bin(self, name: str) -> Path:
        return self.opt_prefix(name) / "bin"

    def opt_include(self, name: str) -> Path:
        return self.opt_prefix(name) / "include"

    def opt_lib(self, name: str) -> Path:
        return self.opt_prefix(name) / "lib"

    def opt_libexec(self, name: str) -> Path:
        return self.opt_prefix(name) / "libexec"

    def opt_sbin(self, name: str) -> Path:
        return self.opt_prefix(name) / "sbin"

    def opt_share(self, name: str) -> Path:
        return self.opt_prefix(name) / "share"

    # ----------------------
    # Installed state
    # ----------------------
    def package_prefix(self, package: Package) -> Path:
        return self.prefix(package.name, package.pkg_version)

    def variant_prefix(self, package: Package, variant: Variant) -> Optional[Path]:
        spec = package.variants.get(variant)
        if spec is None:
            return None
        return self.prefix(package.name, PkgVersion(spec.resolved_version, package.revision))

    def installed_prefix(self, package: Package) -> Path:
        """Head's prefix if it exists, then devel's, else the stable (default) prefix."""
        for variant in (Variant.HEAD, Variant.DEVEL):
            p = self.variant_prefix(package, variant)
            if p is not None and p.is_dir():
                return p
        stable = self.variant_prefix(package, Variant.STABLE)
        return stable if stable is not None else self.package_prefix(package)

    def is_installed(self, package: Package) -> bool:
        d = self.installed_prefix(package)
        return d.is_dir() and any(d.iterdir())

    def installed_version(self, package: Package) -> Optional[PkgVersion]:
        d = self.installed_prefix(package)
        if not d.is_dir():
            return None
        return PkgVersion.parse(d.name)

    def kegs(self, name: str) -> List[Path]:
        rack = self.rack(name)
        if not rack.is_dir():
            return []
        return sorted((p for p in rack.iterdir() if p.is_dir() and not p.name.startswith(".")),
                      key=lambda p: PkgVersion.parse(p.name))

    def linked_keg(self, name: str) -> Optional[Path]:
        opt = self.opt_prefix(name)
        if not opt.is_symlink():
            return None
        return opt.resolve()

    def installed_names(self) -> List[str]:
        if not self.cellar.is_dir():
            return []
        return sorted(p.name for p in self.cellar.iterdir() if p.is_dir())
