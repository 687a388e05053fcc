# brewcore/install.py
"""
install.py - install/uninstall driver

Pipeline for one package:
  plan (dependency expansion) -> dependency/requirement checks -> lock ->
  stage build dir -> run recipe steps through BuildExecutor -> write Tab ->
  link opt/<name> -> unlock

Rebuilding an installed version moves the old keg aside and puts it back
when a step fails.

Placeholders expanded in recipe steps: {prefix} {name} {version}
{opt_prefix} {cellar} {build_dir}.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from brewcore.buildsystem import BuildEnvironment, BuildExecutor
from brewcore.config import get_paths
from brewcore.dependencies import Filter, ResolvedNode, Resolver, default_filter, expand
from brewcore.errors import LinkConflictError, UnsatisfiedDependencyError, UnsatisfiedRequirementError
from brewcore.formula import Package
from brewcore.layout import Layout
from brewcore.lock import LockManager
from brewcore.logging import get_logger, ohai
from brewcore.options import BuildOptions
from brewcore.pins import PinRegistry
from brewcore.tab import Tab

logger = get_logger("install")


class FormulaInstaller:
    def __init__(self, package: Package, resolver: Resolver, *,
                 layout: Optional[Layout] = None, locks: Optional[LockManager] = None,
                 pins: Optional[PinRegistry] = None, build_options: Optional[BuildOptions] = None,
                 filter: Optional[Filter] = None, environment: Optional[BuildEnvironment] = None,
                 logs_root: Optional[str] = None, build_root: Optional[str] = None,
                 keep_build_dir: bool = False):
        self.package = package
        self.resolver = resolver
        self.layout = layout or Layout()
        self.locks = locks or LockManager()
        self.pins = pins
        self.build_options = build_options or BuildOptions.create(declared=package.options)
        self.filter = filter or default_filter(self.build_options)
        self.environment = environment
        self.logs_root = logs_root
        self.build_root = Path(build_root or Path(get_paths()["cache"]) / "build")
        self.keep_build_dir = keep_build_dir

    # ----------------------
    # Planning
    # ----------------------
    def plan(self) -> List[ResolvedNode]:
        return expand(self.package, self.resolver, self.filter, self.build_options)

    def check(self, plan: List[ResolvedNode]) -> None:
        unsatisfied = [str(n.item) for n in plan if n.is_requirement and not n.item.is_satisfied()]
        if unsatisfied:
            raise UnsatisfiedRequirementError(self.package.name, unsatisfied)
        missing = [n.name for n in plan if not n.is_requirement and not self.layout.is_installed(n.item)]
        if missing:
            raise UnsatisfiedDependencyError(self.package.name, missing)

    # ----------------------
    # Steps
    # ----------------------
    def _placeholders(self, prefix: Path, build_dir: Path) -> Dict[str, str]:
        pkg = self.package
        return {
            "{prefix}": str(prefix),
            "{name}": pkg.name,
            "{version}": str(pkg.version),
            "{opt_prefix}": str(self.layout.opt_prefix(pkg.name)),
            "{cellar}": str(self.layout.cellar),
            "{build_dir}": str(build_dir),
        }

    @staticmethod
    def _expand_step(step: List[str], values: Dict[str, str]) -> List[str]:
        out = []
        for arg in step:
            for key, val in values.items():
                arg = arg.replace(key, val)
            out.append(arg)
        return out

    @contextmanager
    def stage(self, source_dir: Optional[str] = None) -> Iterator[Path]:
        """Temporary build dir, seeded from source_dir when one was fetched."""
        self.build_root.mkdir(parents=True, exist_ok=True)
        tmp = Path(tempfile.mkdtemp(prefix=f"{self.package.name}-", dir=str(self.build_root)))
        try:
            if source_dir:
                shutil.copytree(source_dir, tmp, dirs_exist_ok=True)
            yield tmp
        finally:
            if self.keep_build_dir:
                logger.info("keeping build dir %s", tmp)
            else:
                shutil.rmtree(tmp, ignore_errors=True)

    def _check_link_target(self) -> Path:
        opt = self.layout.opt_prefix(self.package.name)
        if opt.exists() and not opt.is_symlink():
            raise LinkConflictError(self.package.name, str(opt))
        return opt

    def link(self, prefix: Path) -> Path:
        opt = self._check_link_target()
        opt.parent.mkdir(parents=True, exist_ok=True)
        if opt.is_symlink():
            opt.unlink()
        os.symlink(prefix, opt)
        return opt

    @contextmanager
    def _keg_transaction(self, prefix: Path) -> Iterator[Path]:
        """Move an existing keg aside while rebuilding it; restore it if the build fails."""
        backup = None
        if prefix.exists():
            backup = prefix.with_name(f".{prefix.name}.previous")
            if backup.exists():
                shutil.rmtree(backup)
            os.replace(prefix, backup)
        prefix.mkdir(parents=True, exist_ok=True)
        try:
            yield prefix
        except BaseException:
            shutil.rmtree(prefix, ignore_errors=True)
            if backup is not None:
                os.replace(backup, prefix)
                logger.info("restored previous keg %s", prefix)
            raise
        if backup is not None:
            shutil.rmtree(backup, ignore_errors=True)

    # ----------------------
    # Operations
    # ----------------------
    def install(self, source_dir: Optional[str] = None) -> Path:
        pkg = self.package
        plan = self.plan()
        self.check(plan)
        self._check_link_target()
        with self.locks.locked(pkg.name):
            prefix = self.layout.package_prefix(pkg)
            ohai(f"Installing {pkg.name} {pkg.pkg_version}")
            executor = BuildExecutor(pkg.name, self.logs_root, build_options=self.build_options,
                                     environment=self.environment)
            with self.stage(source_dir) as build_dir, executor.brew(build_dir), \
                    self._keg_transaction(prefix):
                values = self._placeholders(prefix, build_dir)
                for step in pkg.install_steps:
                    executor.run(*self._expand_step(step, values), cwd=str(build_dir))
            Tab.create(pkg, self.build_options).write(prefix)
            self.link(prefix)
            logger.info("installed %s into %s", pkg.name, prefix)
            return prefix

    def uninstall(self) -> List[Path]:
        pkg = self.package
        with self.locks.locked(pkg.name):
            removed = self.layout.kegs(pkg.name)
            for keg in removed:
                ohai(f"Uninstalling {keg}")
                shutil.rmtree(keg)
            rack = self.layout.rack(pkg.name)
            if rack.is_dir() and not any(rack.iterdir()):
                rack.rmdir()
            opt = self.layout.opt_prefix(pkg.name)
            if opt.is_symlink():
                opt.unlink()
            if self.pins is not None:
                self.pins.unpin(pkg.name)
            return removed
