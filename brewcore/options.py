# brewcore/options.py
"""
Build options.

`Option` is a declared flag of a Specification. `BuildOptions` is the
explicit value handed to every operation that needs to know which options
are active (dependency filters, the build executor), instead of a shared
mutable slot on the package.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List


def _strip_flag(name: str) -> str:
    return name[2:] if name.startswith("--") else name


@dataclass(frozen=True, order=True)
class Option:
    name: str
    description: str = field(default="", compare=False)

    def __post_init__(self):
        object.__setattr__(self, "name", _strip_flag(self.name))

    @property
    def flag(self) -> str:
        return f"--{self.name}"

    def __str__(self):
        return self.flag


@dataclass(frozen=True)
class BuildOptions:
    """Flags requested for one operation plus the options the package declares."""

    args: FrozenSet[str] = frozenset()
    declared: FrozenSet[Option] = frozenset()
    verbose: bool = False

    @classmethod
    def create(cls, args: Iterable[str] = (), declared: Iterable[Option] = (), verbose: bool = False) -> "BuildOptions":
        return cls(frozenset(_strip_flag(a) for a in args), frozenset(declared), verbose)

    def include(self, name: str) -> bool:
        return _strip_flag(name) in self.args

    def with_(self, name: str) -> bool:
        """True when `name` is wanted: --with-name given, or a default not turned off."""
        name = _strip_flag(name)
        if self.include(f"with-{name}"):
            return True
        if self.include(f"without-{name}"):
            return False
        declared = {o.name for o in self.declared}
        # options declared as "without-x" are on unless asked otherwise
        return f"without-{name}" in declared or self.include(name)

    def without(self, name: str) -> bool:
        return not self.with_(name)

    @property
    def used_options(self) -> List[str]:
        declared = {o.name for o in self.declared}
        return sorted(f"--{a}" for a in self.args if a in declared)

    @property
    def unused_options(self) -> List[str]:
        return sorted(o.flag for o in self.declared if o.name not in self.args)
