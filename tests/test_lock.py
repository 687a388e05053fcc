"""Tests for per-package advisory locks."""

import subprocess
import sys

import pytest

from brewcore.errors import LockHeldError
from brewcore.lock import LockManager

_CHILD_TRY_LOCK = """
import fcntl, os, sys
fd = os.open(sys.argv[1], os.O_RDWR | os.O_CREAT)
try:
    fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
except OSError:
    print("held")
else:
    print("acquired")
"""


@pytest.fixture
def locks(tmp_path):
    return LockManager(str(tmp_path / "locks"))


class TestLockManager:
    def test_second_acquire_fails_until_release(self, locks):
        first = locks.acquire("wget")
        with pytest.raises(LockHeldError) as exc:
            locks.acquire("wget")
        assert exc.value.name == "wget"
        first.release()
        again = locks.acquire("wget")
        assert again.held
        again.release()

    def test_holder_hint_is_pid(self, locks):
        import os
        handle = locks.acquire("curl")
        try:
            with pytest.raises(LockHeldError) as exc:
                locks.acquire("curl")
            assert exc.value.holder == str(os.getpid())
        finally:
            handle.release()

    def test_different_names_are_independent(self, locks):
        a = locks.acquire("a")
        b = locks.acquire("b")
        assert a.held and b.held
        locks.release(a)
        locks.release(b)

    def test_release_is_idempotent(self, locks):
        handle = locks.acquire("x")
        handle.release()
        handle.release()
        locks.release(handle)
        locks.release(None)
        assert not handle.held

    def test_context_manager_releases_on_error(self, locks):
        with pytest.raises(RuntimeError):
            with locks.locked("x"):
                raise RuntimeError("boom")
        locks.acquire("x").release()

    def test_lock_file_path(self, locks, tmp_path):
        assert locks.path_for("wget") == tmp_path / "locks" / "wget.brewing"

    def test_other_process_sees_lock(self, locks):
        path = str(locks.path_for("git"))
        with locks.locked("git"):
            out = subprocess.run([sys.executable, "-c", _CHILD_TRY_LOCK, path],
                                 capture_output=True, text=True, check=True).stdout.strip()
            assert out == "held"
        out = subprocess.run([sys.executable, "-c", _CHILD_TRY_LOCK, path],
                             capture_output=True, text=True, check=True).stdout.strip()
        assert out == "acquired"

    def test_lock_released_when_holder_exits(self, locks):
        path = locks.path_for("node")
        path.parent.mkdir(parents=True, exist_ok=True)
        # child takes the lock and exits without unlocking
        code = _CHILD_TRY_LOCK + "\nos._exit(0)\n"
        subprocess.run([sys.executable, "-c", code, str(path)], check=True, capture_output=True)
        handle = locks.acquire("node")
        assert handle.held
        handle.release()
