# brewcore/formula.py
"""
Package: a named, versioned build description produced by a recipe loader.

The active variant is chosen and validated once, in the constructor. A
Package that fails validation is never returned, and construction has no
filesystem side effects.
"""

from __future__ import annotations

from copy import deepcopy
from dataclasses import replace
from typing import Dict, List, Mapping, Optional, Sequence

from brewcore.options import Option
from brewcore.specs import (
    Dependency,
    Patch,
    Requirement,
    Specification,
    Variant,
    declared_variants,
    select_active,
    validate_attributes,
)
from brewcore.version import PkgVersion, Version


class Package:
    def __init__(self, name: str, path: str, variants: Mapping[Variant, Specification],
                 requested: Optional[Variant] = None, *, revision: int = 0,
                 homepage: Optional[str] = None, caveats: Optional[str] = None,
                 conflicts: Sequence[str] = (), keg_only_reason: Optional[str] = None,
                 has_test: bool = False, has_post_install: bool = False,
                 install_steps: Sequence[Sequence[str]] = ()):
        self.name = name
        self.path = path
        self.revision = int(revision or 0)
        self.homepage = homepage
        self.caveats = caveats
        self.conflicts: List[str] = list(conflicts)
        self.keg_only_reason = keg_only_reason
        self.has_test = has_test
        self.has_post_install = has_post_install
        self.install_steps: List[List[str]] = [[str(a) for a in step] for step in install_steps]

        # each package owns private copies of its specs
        self._variants: Dict[Variant, Specification] = {
            v: replace(deepcopy(spec), variant=v) for v, spec in declared_variants(variants).items()
        }
        self._active_variant = select_active(name, self._variants, requested)
        validate_attributes(name, self.active_spec)
        self._pkg_version = PkgVersion(self.active_spec.resolved_version, self.revision)

    # ----------------------
    # Variants
    # ----------------------
    @property
    def active_variant(self) -> Variant:
        return self._active_variant

    @property
    def active_spec(self) -> Specification:
        return self._variants[self._active_variant]

    @property
    def variants(self) -> Dict[Variant, Specification]:
        return dict(self._variants)

    @property
    def stable(self) -> Optional[Specification]:
        return self._variants.get(Variant.STABLE)

    @property
    def devel(self) -> Optional[Specification]:
        return self._variants.get(Variant.DEVEL)

    @property
    def head(self) -> Optional[Specification]:
        return self._variants.get(Variant.HEAD)

    def is_stable(self) -> bool:
        return self._active_variant is Variant.STABLE

    def is_devel(self) -> bool:
        return self._active_variant is Variant.DEVEL

    def is_head(self) -> bool:
        return self._active_variant is Variant.HEAD

    def is_bottled(self) -> bool:
        return self.active_spec.bottle_available

    # ----------------------
    # Active spec shortcuts
    # ----------------------
    @property
    def url(self) -> str:
        return self.active_spec.url

    @property
    def version(self) -> Version:
        return self.active_spec.version_obj

    @property
    def pkg_version(self) -> PkgVersion:
        return self._pkg_version

    @property
    def deps(self) -> List[Dependency]:
        return list(self.active_spec.dependencies)

    @property
    def requirements(self) -> List[Requirement]:
        return list(self.active_spec.requirements)

    @property
    def options(self) -> List[Option]:
        return list(self.active_spec.options)

    @property
    def patchlist(self) -> List[Patch]:
        return list(self.active_spec.patches)

    def option_defined(self, name: str) -> bool:
        return self.active_spec.option_defined(name)

    def is_keg_only(self) -> bool:
        return bool(self.keg_only_reason)

    # ----------------------
    # Identity
    # ----------------------
    def __eq__(self, other):
        if not isinstance(other, Package):
            return NotImplemented
        return self.name == other.name and self.active_spec == other.active_spec

    def __hash__(self):
        return hash(self.name)

    def __lt__(self, other):
        if not isinstance(other, Package):
            return NotImplemented
        return self.name < other.name

    def __str__(self):
        return self.name

    def __repr__(self):
        return f"#<Package {self.name} ({self._active_variant}) {self.path}>"
