"""Shared fixtures: every brewcore root lives under the test's tmp_path."""

from typing import Dict, Iterable, Optional

import pytest

from brewcore import config
from brewcore.errors import FormulaUnavailableError
from brewcore.formula import Package
from brewcore.layout import Layout
from brewcore.options import Option
from brewcore.specs import Dependency, Requirement, Specification, Variant


@pytest.fixture(autouse=True)
def brew_paths(tmp_path):
    prefix = tmp_path / "prefix"
    cfg = config.from_dict({
        "paths": {
            "prefix": str(prefix),
            "cellar": str(prefix / "Cellar"),
            "logs": str(tmp_path / "logs"),
            "locks": str(tmp_path / "locks"),
            "pins": str(tmp_path / "pins"),
            "cache": str(tmp_path / "cache"),
            "formula_dir": str(tmp_path / "Formula"),
        },
        "logging": {"color": False},
    })
    yield cfg.merged["paths"]
    config.from_dict({})


@pytest.fixture
def layout(brew_paths):
    return Layout(brew_paths["prefix"], brew_paths["cellar"])


def make_package(name: str, deps: Iterable = (), reqs: Iterable[Requirement] = (),
                 version: str = "1.0", options: Iterable[str] = (), revision: int = 0,
                 devel: Optional[str] = None, head: bool = False, **kwargs) -> Package:
    """Package with a stable spec; deps are names or Dependency objects."""
    dependencies = [d if isinstance(d, Dependency) else Dependency(d) for d in deps]
    variants = {
        Variant.STABLE: Specification(
            url=f"https://example.com/{name}-{version}.tar.gz",
            version=version,
            dependencies=dependencies,
            requirements=list(reqs),
            options=[Option(o) for o in options],
        )
    }
    if devel:
        variants[Variant.DEVEL] = Specification(url=f"https://example.com/{name}-{devel}.tar.gz",
                                                version=devel, dependencies=dependencies)
    if head:
        variants[Variant.HEAD] = Specification(url=f"https://example.com/{name}.git", dependencies=dependencies)
    return Package(name, f"/recipes/{name}.yaml", variants, revision=revision, **kwargs)


def resolver_for(*packages: Package):
    index: Dict[str, Package] = {p.name: p for p in packages}

    def resolve(name: str) -> Package:
        try:
            return index[name]
        except KeyError:
            raise FormulaUnavailableError(name)
    return resolve


def install_keg(layout: Layout, name: str, version: str, files: Iterable[str] = ("bin/tool",)):
    keg = layout.prefix(name, version)
    keg.mkdir(parents=True)
    for f in files:
        target = keg / f
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text("x")
    return keg
