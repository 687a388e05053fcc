# brewcore/__init__.py
"""brewcore - formula runtime engine: variant selection, dependency expansion,
package locks and pins, monitored build execution and keg layout."""

__version__ = "0.4.0"

from brewcore.errors import (  # noqa: E402
    BrewError,
    BuildError,
    FormulaUnavailableError,
    LockHeldError,
    NoSpecificationError,
    UnresolvedDependencyError,
    ValidationError,
)
from brewcore.formula import Package  # noqa: E402
from brewcore.specs import Dependency, Requirement, Specification, Variant  # noqa: E402
from brewcore.version import PkgVersion, Version  # noqa: E402

__all__ = [
    "__version__",
    "BrewError",
    "BuildError",
    "Dependency",
    "FormulaUnavailableError",
    "LockHeldError",
    "NoSpecificationError",
    "Package",
    "PkgVersion",
    "Requirement",
    "Specification",
    "UnresolvedDependencyError",
    "ValidationError",
    "Variant",
    "Version",
]
