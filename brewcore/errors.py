# brewcore/errors.py
"""
Exception hierarchy shared by every brewcore module.

All errors carry the context needed to render a precise message (field,
package name, command, log path) as attributes, so callers never have to
re-derive it from the message text.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class BrewError(Exception):
    """Base class for brewcore errors."""


class ConfigError(BrewError):
    pass


# ----------------------
# Definition errors
# ----------------------
class NoSpecificationError(BrewError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"{name}: formulae require at least a URL")


class ValidationError(BrewError):
    def __init__(self, field: str, value: Any):
        self.field = field
        self.value = value
        super().__init__(f"invalid attribute: {field} ({value!r})")


class RecipeError(BrewError):
    """A recipe file exists but cannot be turned into a Package."""

    def __init__(self, name: str, path: str, reason: str):
        self.name = name
        self.path = path
        self.reason = reason
        super().__init__(f"{name}: cannot load recipe {path}: {reason}")


# ----------------------
# Resolution errors
# ----------------------
class FormulaUnavailableError(BrewError, LookupError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No available formula for {name}")


class UnresolvedDependencyError(BrewError):
    def __init__(self, name: str, requested_by: str):
        self.name = name
        self.requested_by = requested_by
        super().__init__(f"{requested_by}: unresolved dependency {name}")


class UnsatisfiedDependencyError(BrewError):
    def __init__(self, name: str, missing: List[str]):
        self.name = name
        self.missing = list(missing)
        super().__init__(f"{name}: dependencies not installed: {', '.join(self.missing)}")


class UnsatisfiedRequirementError(BrewError):
    def __init__(self, name: str, requirements: List[str]):
        self.name = name
        self.requirements = list(requirements)
        super().__init__(f"{name}: unsatisfied requirements: {', '.join(self.requirements)}")


# ----------------------
# Concurrency errors
# ----------------------
class LockHeldError(BrewError):
    def __init__(self, name: str, holder: Optional[str] = None):
        self.name = name
        self.holder = holder
        msg = f"{name} is already being operated on by another process"
        if holder:
            msg += f" (pid {holder})"
        super().__init__(msg)


class LinkConflictError(BrewError):
    def __init__(self, name: str, path: str):
        self.name = name
        self.path = path
        super().__init__(f"{name}: cannot link, {path} exists and is not a symlink")


class NotPinnableError(BrewError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"{name} is not installed, cannot pin")


# ----------------------
# Build errors
# ----------------------
class BuildError(BrewError):
    def __init__(self, package: str, command: str, args: List[str], env: Dict[str, str], log_path: str,
                 exit_status: Optional[int] = None):
        self.package = package
        self.command = command
        self.arguments = list(args)
        self.env = dict(env)
        self.log_path = log_path
        self.exit_status = exit_status
        cmdline = " ".join([command] + [str(a) for a in self.arguments])
        super().__init__(f"{package}: failed executing: {cmdline} (see {log_path})")
