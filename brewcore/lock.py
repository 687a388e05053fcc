# brewcore/lock.py
"""
Per-package advisory locks.

Every install/uninstall of a package name holds `<locks>/<name>.brewing`
under an exclusive, non-blocking flock(2). flock locks belong to the open
file, so two acquisitions in the same process conflict exactly like two
processes do, and the kernel drops the lock when the holder exits. The lock
file itself stays behind as an artifact; it never implies a holder.
"""

from __future__ import annotations

import errno
import fcntl
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from brewcore.config import get_paths
from brewcore.errors import LockHeldError
from brewcore.logging import get_logger

logger = get_logger("lock")


class LockHandle:
    def __init__(self, name: str, path: Path):
        self.name = name
        self.path = path
        self._fd: Optional[int] = None

    @property
    def held(self) -> bool:
        return self._fd is not None

    def _acquire(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(str(self.path), os.O_RDWR | os.O_CREAT, 0o644)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as e:
            holder = _read_holder(fd)
            os.close(fd)
            if e.errno in (errno.EWOULDBLOCK, errno.EAGAIN, errno.EACCES):
                raise LockHeldError(self.name, holder) from e
            raise
        os.ftruncate(fd, 0)
        os.write(fd, str(os.getpid()).encode("ascii"))
        os.fsync(fd)
        self._fd = fd
        logger.debug("locked %s (%s)", self.name, self.path)

    def release(self) -> None:
        """Drop the lock; a no-op for handles that are not held."""
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        try:
            os.ftruncate(fd, 0)
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)
        logger.debug("unlocked %s", self.name)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.release()

    def __repr__(self):
        return f"LockHandle({self.name!r}, held={self.held})"


def _read_holder(fd: int) -> Optional[str]:
    try:
        data = os.pread(fd, 64, 0)
    except OSError:
        return None
    return data.decode("ascii", "replace").strip() or None


class LockManager:
    def __init__(self, locks_root: Optional[str] = None):
        self.root = Path(locks_root or get_paths()["locks"])

    def path_for(self, name: str) -> Path:
        return self.root / f"{name}.brewing"

    def acquire(self, name: str) -> LockHandle:
        """Take the lock for `name` or raise LockHeldError immediately."""
        handle = LockHandle(name, self.path_for(name))
        handle._acquire()
        return handle

    def release(self, handle: Optional[LockHandle]) -> None:
        if handle is not None:
            handle.release()

    @contextmanager
    def locked(self, name: str) -> Iterator[LockHandle]:
        handle = self.acquire(name)
        try:
            yield handle
        finally:
            handle.release()
