# brewcore/specs.py
"""
Software specifications and active-variant selection.

A package declares up to three variants (stable, devel, head), each a
`Specification` with its own URL, version, dependencies, requirements,
options and patches. `select_active` picks the variant a Package builds and
`validate_attributes` rejects identity fields that are empty or contain
whitespace.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional

from brewcore.errors import NoSpecificationError, ValidationError
from brewcore.options import Option
from brewcore.version import HEAD, Version, detect_version

TAGS: FrozenSet[str] = frozenset({"build", "test", "optional", "recommended", "run"})

_WHITESPACE = re.compile(r"\s")


class Variant(str, Enum):
    STABLE = "stable"
    DEVEL = "devel"
    HEAD = "head"

    def __str__(self):
        return self.value


def _check_tags(tags: Iterable[str]) -> FrozenSet[str]:
    tags = frozenset(tags)
    unknown = tags - TAGS
    if unknown:
        raise ValueError(f"unknown dependency tags: {sorted(unknown)}")
    return tags


class _Tagged:
    tags: FrozenSet[str]

    def is_build(self) -> bool:
        return "build" in self.tags

    def is_test(self) -> bool:
        return "test" in self.tags

    def is_optional(self) -> bool:
        return "optional" in self.tags

    def is_recommended(self) -> bool:
        return "recommended" in self.tags

    def is_run(self) -> bool:
        return "run" in self.tags


@dataclass(frozen=True)
class Dependency(_Tagged):
    name: str
    tags: FrozenSet[str] = frozenset()
    options: FrozenSet[str] = frozenset()

    def __post_init__(self):
        object.__setattr__(self, "tags", _check_tags(self.tags))
        object.__setattr__(self, "options", frozenset(self.options))

    @property
    def key(self) -> str:
        return self.name

    def __str__(self):
        return self.name


def _always() -> bool:
    return True


@dataclass(frozen=True)
class Requirement(_Tagged):
    """A non-package precondition such as a platform, toolchain or arch."""

    kind: str
    name: str = ""
    tags: FrozenSet[str] = frozenset()
    satisfied_predicate: Callable[[], bool] = field(default=_always, compare=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "tags", _check_tags(self.tags))
        if not self.name:
            object.__setattr__(self, "name", self.kind)

    @property
    def key(self) -> str:
        return f"{self.kind}:{self.name}"

    def is_satisfied(self) -> bool:
        return bool(self.satisfied_predicate())

    def __str__(self):
        return self.name if self.name == self.kind else f"{self.kind}:{self.name}"


@dataclass(frozen=True)
class Patch:
    strip: str = "p1"
    url: Optional[str] = None
    data: Optional[str] = None

    def is_external(self) -> bool:
        return self.url is not None


@dataclass
class Specification:
    url: str = ""
    version: str = ""
    dependencies: List[Dependency] = field(default_factory=list)
    requirements: List[Requirement] = field(default_factory=list)
    options: List[Option] = field(default_factory=list)
    patches: List[Patch] = field(default_factory=list)
    bottle_available: bool = False
    mirrors: List[str] = field(default_factory=list)
    checksum: Optional[str] = None
    variant: Optional[Variant] = None

    def has_url(self) -> bool:
        return bool(self.url)

    @property
    def resolved_version(self) -> str:
        """The literal HEAD for head specs, else the declared or autodetected version."""
        if self.variant is Variant.HEAD:
            return HEAD
        if self.version:
            return str(self.version)
        return detect_version(self.url) or ""

    @property
    def version_obj(self) -> Version:
        return Version(self.resolved_version)

    def option_defined(self, name: str) -> bool:
        name = name[2:] if name.startswith("--") else name
        return any(o.name == name for o in self.options)


# ----------------------
# Selection and validation
# ----------------------
PRIORITY = (Variant.STABLE, Variant.DEVEL, Variant.HEAD)


def select_active(name: str, variants: Mapping[Variant, Specification],
                  requested: Optional[Variant] = None) -> Variant:
    """First of {requested, stable, devel, head} that has a non-empty URL."""
    order: List[Variant] = []
    if requested is not None:
        order.append(Variant(requested))
    order.extend(v for v in PRIORITY if v not in order)
    for v in order:
        spec = variants.get(v)
        if spec is not None and spec.has_url():
            return v
    raise NoSpecificationError(name)


def _blank(value: Optional[str]) -> bool:
    return value is None or value == "" or bool(_WHITESPACE.search(value))


def validate_attributes(name: Optional[str], spec: Specification) -> None:
    if _blank(name):
        raise ValidationError("name", name)
    if _blank(spec.url):
        raise ValidationError("url", spec.url)
    version = spec.resolved_version
    if _blank(version):
        raise ValidationError("version", version)


def declared_variants(variants: Mapping[Variant, Specification]) -> Dict[Variant, Specification]:
    """Keep only the variants that carry a URL, in stable/devel/head order."""
    return {v: variants[v] for v in PRIORITY if v in variants and variants[v].has_url()}
