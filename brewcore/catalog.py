# brewcore/catalog.py
"""
catalog.py - YAML recipe loader and catalog enumeration

A recipe is plain data; loading it never evaluates code:

    homepage: https://www.gnu.org/software/wget/
    revision: 1
    stable:
      url: https://ftp.gnu.org/gnu/wget/wget-1.16.tar.xz
      bottle: true
      depends_on:
        - openssl
        - {name: pkg-config, tags: [build]}
        - {name: libidn, tags: [optional]}
      requirements:
        - {kind: executable, name: make}
      options:
        - {name: with-libidn, description: Build with IDN support}
    head:
      url: git://git.savannah.gnu.org/wget.git
    install:
      - [./configure, "--prefix={prefix}"]
      - [make, install]

Top-level url/version/depends_on/... are shorthand for the stable variant.
"""

from __future__ import annotations

import os
import platform
import shutil
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional

import yaml

from brewcore.config import get_paths
from brewcore.errors import BrewError, FormulaUnavailableError, RecipeError
from brewcore.formula import Package
from brewcore.layout import Layout
from brewcore.logging import get_logger
from brewcore.options import Option
from brewcore.specs import Dependency, Patch, Requirement, Specification, Variant

logger = get_logger("catalog")

RECIPE_SUFFIXES = (".yaml", ".yml")
_SPEC_KEYS = ("url", "version", "sha256", "checksum", "mirrors", "bottle",
              "depends_on", "requirements", "options", "patches")


# -----------------------
# Requirement predicates
# -----------------------
def _platform_predicate(name: str) -> Callable[[], bool]:
    return lambda: sys.platform.startswith(name)


def _arch_predicate(name: str) -> Callable[[], bool]:
    return lambda: platform.machine() == name


def _executable_predicate(name: str) -> Callable[[], bool]:
    return lambda: shutil.which(name) is not None


REQUIREMENT_KINDS: Dict[str, Callable[[str], Callable[[], bool]]] = {
    "platform": _platform_predicate,
    "arch": _arch_predicate,
    "executable": _executable_predicate,
    "toolchain": _executable_predicate,
}


# -----------------------
# Parsing
# -----------------------
def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def _dependency(entry: Any) -> Dependency:
    if isinstance(entry, str):
        return Dependency(entry)
    return Dependency(entry["name"], frozenset(_as_list(entry.get("tags"))),
                      frozenset(_as_list(entry.get("options"))))


def _requirement(entry: Any) -> Requirement:
    if isinstance(entry, str):
        entry = {"kind": "executable", "name": entry}
    kind = entry["kind"]
    name = entry.get("name") or kind
    factory = REQUIREMENT_KINDS.get(kind)
    if factory is None:
        raise ValueError(f"unknown requirement kind: {kind}")
    return Requirement(kind, name, frozenset(_as_list(entry.get("tags"))), factory(name))


def _option(entry: Any) -> Option:
    if isinstance(entry, str):
        return Option(entry)
    return Option(entry["name"], entry.get("description", ""))


def _patch(entry: Any) -> Patch:
    if isinstance(entry, str):
        return Patch(url=entry)
    return Patch(strip=entry.get("strip", "p1"), url=entry.get("url"), data=entry.get("data"))


def _version(value: Any) -> str:
    if value is None:
        return ""
    # YAML reads an unquoted 1.10 as the float 1.1
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ValueError(f"version {value!r} must be a quoted string")
    return str(value)


def _mapping(value: Any, what: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{what} must be a mapping, got {type(value).__name__}")
    return value


def _specification(data: Dict[str, Any]) -> Specification:
    return Specification(
        url=str(data.get("url") or ""),
        version=_version(data.get("version")),
        dependencies=[_dependency(d) for d in _as_list(data.get("depends_on"))],
        requirements=[_requirement(r) for r in _as_list(data.get("requirements"))],
        options=[_option(o) for o in _as_list(data.get("options"))],
        patches=[_patch(p) for p in _as_list(data.get("patches"))],
        bottle_available=bool(data.get("bottle", False)),
        mirrors=[str(m) for m in _as_list(data.get("mirrors"))],
        checksum=data.get("sha256") or data.get("checksum"),
    )


def package_from_dict(name: str, path: str, data: Dict[str, Any],
                      requested: Optional[Variant] = None) -> Package:
    """Build a Package from parsed recipe data (definition errors propagate)."""
    variants: Dict[Variant, Specification] = {}
    try:
        stable_data = dict(_mapping(data.get("stable"), "stable"))
        for key in _SPEC_KEYS:
            if key in data and key not in stable_data:
                stable_data[key] = data[key]
        if stable_data:
            variants[Variant.STABLE] = _specification(stable_data)
        for variant in (Variant.DEVEL, Variant.HEAD):
            variant_data = _mapping(data.get(variant.value), variant.value)
            if variant_data:
                variants[variant] = _specification(variant_data)
        steps = [[str(a) for a in _as_list(step)] for step in _as_list(data.get("install"))]
        revision = int(data.get("revision") or 0)
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise RecipeError(name, path, str(e)) from e
    return Package(
        data.get("name", name), path, variants, requested,
        revision=revision,
        homepage=data.get("homepage"),
        caveats=data.get("caveats"),
        conflicts=[str(c) for c in _as_list(data.get("conflicts"))],
        keg_only_reason=data.get("keg_only"),
        has_test=bool(data.get("test", False)),
        has_post_install=bool(data.get("post_install", False)),
        install_steps=steps,
    )


# -----------------------
# Catalog
# -----------------------
class Catalog:
    def __init__(self, formula_dir: Optional[str] = None):
        self.root = Path(formula_dir or get_paths()["formula_dir"])

    def path(self, name: str) -> Optional[Path]:
        for stem in dict.fromkeys([name, name.lower()]):
            for suffix in RECIPE_SUFFIXES:
                p = self.root / f"{stem}{suffix}"
                if p.is_file():
                    return p
        return None

    def names(self) -> List[str]:
        if not self.root.is_dir():
            return []
        return sorted(p.stem for p in self.root.iterdir() if p.suffix in RECIPE_SUFFIXES and p.is_file())

    def load(self, name: str, requested: Optional[Variant] = None) -> Package:
        path = self.path(name)
        if path is None:
            raise FormulaUnavailableError(name)
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            raise RecipeError(name, str(path), str(e)) from e
        if not isinstance(data, dict):
            raise RecipeError(name, str(path), "recipe must be a mapping")
        return package_from_dict(path.stem, str(path), data, requested)

    def resolve(self, name: str) -> Package:
        """Resolver for dependency expansion."""
        return self.load(name)

    __getitem__ = resolve

    def each(self) -> Iterator[Package]:
        """Every loadable package; a broken recipe is logged and skipped."""
        for name in self.names():
            try:
                yield self.load(name)
            except BrewError as e:
                logger.error("Failed to import: %s: %s", name, e)
                continue

    def installed(self, layout: Optional[Layout] = None) -> List[Package]:
        layout = layout or Layout()
        out: List[Package] = []
        for name in layout.installed_names():
            try:
                out.append(self.load(name))
            except FormulaUnavailableError:
                logger.debug("installed package %s has no recipe", name)
        return out


def load_file(path: str, requested: Optional[Variant] = None) -> Package:
    """Load a recipe from an explicit path (name taken from the file stem)."""
    p = Path(path)
    return Catalog(str(p.parent)).load(os.path.splitext(p.name)[0], requested)
