"""Tests for the install/uninstall driver."""

from pathlib import Path

import pytest

from brewcore.errors import (
    BuildError,
    LinkConflictError,
    LockHeldError,
    UnsatisfiedDependencyError,
    UnsatisfiedRequirementError,
)
from brewcore.install import FormulaInstaller
from brewcore.lock import LockManager
from brewcore.options import BuildOptions
from brewcore.pins import PinRegistry
from brewcore.specs import Requirement
from brewcore.tab import Tab

from conftest import install_keg, make_package, resolver_for

WRITE_TOOL = ["sh", "-c", "mkdir -p {prefix}/bin && echo {name}-{version} > {prefix}/bin/tool"]


def installer(pkg, layout, *packages, **kwargs):
    return FormulaInstaller(pkg, resolver_for(*packages), layout=layout, **kwargs)


class TestInstall:
    def test_install_runs_steps_and_links(self, layout, brew_paths):
        pkg = make_package("foo", version="1.2", options=["with-x"], install_steps=[WRITE_TOOL])
        opts = BuildOptions.create(["--with-x"], pkg.options)
        prefix = installer(pkg, layout, build_options=opts).install()

        assert prefix == layout.prefix("foo", "1.2")
        assert (prefix / "bin" / "tool").read_text() == "foo-1.2\n"
        assert layout.is_installed(pkg)
        assert layout.linked_keg("foo") == prefix.resolve()
        tab = Tab.for_keg(prefix)
        assert tab.used_options == ["--with-x"]
        assert tab.source["spec"] == "stable"
        assert (Path(brew_paths["logs"]) / "foo" / "01.sh").is_file()

    def test_staging_copies_source_and_cleans_up(self, layout, tmp_path):
        src = tmp_path / "src"
        src.mkdir()
        (src / "data.txt").write_text("payload")
        build_root = tmp_path / "build"
        pkg = make_package("foo", install_steps=[["sh", "-c", "cp data.txt {prefix}/"]])
        prefix = installer(pkg, layout, build_root=str(build_root)).install(str(src))
        assert (prefix / "data.txt").read_text() == "payload"
        assert list(build_root.iterdir()) == []

    def test_missing_dependency(self, layout):
        bar = make_package("bar")
        pkg = make_package("foo", deps=["bar"], install_steps=[WRITE_TOOL])
        with pytest.raises(UnsatisfiedDependencyError) as exc:
            installer(pkg, layout, bar).install()
        assert exc.value.missing == ["bar"]
        assert not layout.rack("foo").exists()

        install_keg(layout, "bar", "1.0")
        installer(pkg, layout, bar).install()
        assert layout.is_installed(pkg)

    def test_unsatisfied_requirement(self, layout):
        never = Requirement("executable", "no-such-tool", satisfied_predicate=lambda: False)
        pkg = make_package("foo", reqs=[never], install_steps=[WRITE_TOOL])
        with pytest.raises(UnsatisfiedRequirementError) as exc:
            installer(pkg, layout).install()
        assert exc.value.requirements == ["executable:no-such-tool"]

    def test_lock_held(self, layout, brew_paths):
        locks = LockManager(brew_paths["locks"])
        pkg = make_package("foo", install_steps=[WRITE_TOOL])
        with locks.locked("foo"):
            with pytest.raises(LockHeldError):
                installer(pkg, layout, locks=locks).install()
        assert not layout.prefix("foo", "1.0").exists()

    def test_failed_step_removes_prefix(self, layout):
        pkg = make_package("foo", install_steps=[
            ["sh", "-c", "touch {prefix}/partial"],
            ["sh", "-c", "exit 2"],
        ])
        with pytest.raises(BuildError) as exc:
            installer(pkg, layout).install()
        assert exc.value.exit_status == 2
        assert not layout.prefix("foo", "1.0").exists()
        assert layout.linked_keg("foo") is None


class TestUninstall:
    def test_uninstall_removes_kegs_link_and_pin(self, layout, brew_paths):
        pkg = make_package("foo", install_steps=[WRITE_TOOL])
        pins = PinRegistry(brew_paths["pins"], layout)
        install_keg(layout, "foo", "0.9")
        installer(pkg, layout).install()
        pins.pin_package(pkg)

        removed = installer(pkg, layout, pins=pins).uninstall()
        assert [k.name for k in removed] == ["0.9", "1.0"]
        assert not layout.rack("foo").exists()
        assert not layout.opt_prefix("foo").is_symlink()
        assert not pins.is_pinned("foo")

    def test_uninstall_not_installed(self, layout):
        assert installer(make_package("foo"), layout).uninstall() == []


class TestReinstall:
    def test_failed_rebuild_keeps_previous_keg(self, layout):
        keg = install_keg(layout, "foo", "1.0")
        pkg = make_package("foo", install_steps=[
            ["sh", "-c", "touch {prefix}/partial"],
            ["sh", "-c", "exit 2"],
        ])
        with pytest.raises(BuildError):
            installer(pkg, layout).install()
        assert (keg / "bin" / "tool").read_text() == "x"
        assert not (keg / "partial").exists()
        assert [k.name for k in layout.kegs("foo")] == ["1.0"]

    def test_successful_rebuild_replaces_keg(self, layout):
        keg = install_keg(layout, "foo", "1.0", files=("bin/stale",))
        pkg = make_package("foo", install_steps=[WRITE_TOOL])
        installer(pkg, layout).install()
        assert (keg / "bin" / "tool").read_text() == "foo-1.0\n"
        assert not (keg / "bin" / "stale").exists()
        assert [p.name for p in layout.rack("foo").iterdir()] == ["1.0"]


class TestLink:
    def test_relink_replaces_symlink(self, layout):
        old = install_keg(layout, "foo", "0.9")
        opt = layout.opt_prefix("foo")
        opt.parent.mkdir(parents=True)
        opt.symlink_to(old)
        prefix = installer(make_package("foo", install_steps=[WRITE_TOOL]), layout).install()
        assert layout.linked_keg("foo") == prefix.resolve()

    def test_real_directory_at_opt_is_refused_before_building(self, layout):
        opt = layout.opt_prefix("foo")
        opt.mkdir(parents=True)
        (opt / "keep").write_text("mine")
        pkg = make_package("foo", install_steps=[WRITE_TOOL])
        with pytest.raises(LinkConflictError) as exc:
            installer(pkg, layout).install()
        assert exc.value.path == str(opt)
        assert (opt / "keep").read_text() == "mine"
        assert not layout.prefix("foo", "1.0").exists()
