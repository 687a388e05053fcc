# brewcore/buildsystem.py
# -*- coding: utf-8 -*-
"""
buildsystem.py - build command execution for brewcore

API:
  bx = BuildExecutor("wget", verbose=False)
  bx.run("./configure", "--prefix=/opt/x", "--disable-debug")
  bx.run("make", "install")

Behavior:
  - Every run() gets its own log, <logs>/<name>/NN.<command>, numbered by a
    per-executor counter so one build's logs replay in order.
  - stdout and stderr of the child are merged. Quiet mode sends them straight
    to the log; verbose mode drains the pipe in a reader thread that writes
    each line to the log and the console while the child runs.
  - Each command leads its own session; build.timeout kills the whole group,
    so helpers a command spawned (cc under make) die with it.
  - Two command-specific environment overrides are delegated to the
    BuildEnvironment collaborator (xcodebuild, python setup.py/shims).
  - A non-zero exit prints the log tail, appends environment and config dumps
    to the log and raises BuildError carrying command, args, env and log path.
"""

from __future__ import annotations

import os
import sys
import shutil
import signal
import platform
import subprocess
import threading
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import IO, Dict, Iterator, List, Optional

import brewcore
from brewcore import config
from brewcore.errors import BuildError
from brewcore.logging import get_logger, ohai
from brewcore.options import BuildOptions

logger = get_logger("buildsystem")

NOISY_CONFIGURE_FLAGS = ("--disable-dependency-tracking", "--disable-debug")
SETUPTOOLS_SHIM = "import setuptools"
PYTHON_COMMANDS = ("python", "python2", "python3")
PYTHON_BUILD_SCRIPTS = ("setup.py", "build.py")
COPIED_BUILD_LOGS = ("config.log", "CMakeCache.txt")
TIMEOUT_STATUS = 124


@dataclass
class BuildInvocation:
    command: str
    arguments: List[str]
    log_path: Path
    started_at: datetime
    exit_status: Optional[int] = None


# --- environment collaborator ---
class BuildEnvironment:
    """Owns the environment handed to build commands."""

    CC_VARS = (
        "CC", "CXX", "OBJC", "OBJCXX", "CPP", "LD",
        "CFLAGS", "CXXFLAGS", "OBJCFLAGS", "OBJCXXFLAGS", "CPPFLAGS", "LDFLAGS",
    )
    CCCFG = "BREWCORE_CCCFG"

    def __init__(self, base: Optional[Dict[str, str]] = None):
        self.base = dict(os.environ if base is None else base)

    def snapshot(self) -> Dict[str, str]:
        return dict(self.base)

    def remove_cc_etc(self, env: Dict[str, str]) -> Dict[str, str]:
        """Strip the compiler settings we injected; returns what was removed."""
        removed = {k: env.pop(k) for k in self.CC_VARS if k in env}
        logger.debug("removed compiler environment: %s", sorted(removed))
        return removed

    def refurbish_args(self, env: Dict[str, str]) -> None:
        """Turn on argument filtering in the compiler wrapper for this invocation."""
        flags = env.get(self.CCCFG, "")
        if "O" not in flags:
            env[self.CCCFG] = flags + "O"


# --- helpers ---
def pretty_command(cmd: str, args: List[str], verbose: bool = False) -> str:
    pretty = list(args)
    if cmd == "./configure" and not verbose:
        pretty = [a for a in pretty if a not in NOISY_CONFIGURE_FLAGS]
    pretty = [f"{SETUPTOOLS_SHIM}..." if a.startswith(SETUPTOOLS_SHIM) else a for a in pretty]
    return " ".join([cmd] + pretty).strip()


def std_cmake_args(prefix: Path) -> List[str]:
    return [
        f"-DCMAKE_INSTALL_PREFIX={prefix}",
        "-DCMAKE_BUILD_TYPE=None",
        "-DCMAKE_FIND_FRAMEWORK=LAST",
        "-DCMAKE_VERBOSE_MAKEFILE=ON",
        "-Wno-dev",
    ]


def tail(path: Path, lines: int) -> List[str]:
    if lines <= 0:
        return []
    with open(path, "r", encoding="utf-8", errors="replace") as fh:
        return [line.rstrip("\n") for line in deque(fh, maxlen=lines)]


def _kill_group(proc: subprocess.Popen) -> None:
    """SIGKILL the child and everything it spawned (it leads its own session)."""
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        return
    except PermissionError:
        proc.kill()


def dump_build_env(env: Dict[str, str], out: IO[str]) -> None:
    for key in sorted(env):
        out.write(f"{key}: {env[key]}\n")


def dump_verbose_config(out: IO[str]) -> None:
    paths = config.get_paths()
    out.write(f"BREWCORE_VERSION: {brewcore.__version__}\n")
    out.write(f"BREWCORE_PREFIX: {paths.get('prefix')}\n")
    out.write(f"BREWCORE_CELLAR: {paths.get('cellar')}\n")
    out.write(f"Python: {platform.python_version()} ({sys.executable})\n")
    out.write(f"Platform: {platform.platform()}\n")
    out.write(config.dump())


class BuildExecutor:
    def __init__(self, name: str, logs_root: Optional[str] = None, *,
                 build_options: Optional[BuildOptions] = None, verbose: Optional[bool] = None,
                 environment: Optional[BuildEnvironment] = None, cwd: Optional[str] = None,
                 timeout: Optional[int] = None, tail_lines: Optional[int] = None):
        build_cfg = config.get_build_config()
        self.name = name
        self.log_dir = Path(logs_root or config.get_paths()["logs"]) / name
        self.build_options = build_options or BuildOptions()
        if verbose is None:
            verbose = self.build_options.verbose or bool(build_cfg.get("verbose", False))
        self.verbose = verbose
        self.environment = environment or BuildEnvironment()
        self.cwd = cwd
        self.timeout = build_cfg.get("timeout", 0) if timeout is None else timeout
        self.tail_lines = build_cfg.get("tail_lines", 5) if tail_lines is None else tail_lines
        self._exec_count = 0
        self._count_lock = threading.Lock()

    def _next_log_path(self, cmd: str) -> Path:
        with self._count_lock:
            self._exec_count += 1
            count = self._exec_count
        base = os.path.basename(cmd).split(" ")[0]
        return self.log_dir / ("%02d.%s" % (count, base))

    def _apply_overrides(self, cmd: str, args: List[str], env: Dict[str, str]) -> None:
        if cmd.startswith("xcodebuild"):
            self.environment.remove_cc_etc(env)
        if os.path.basename(cmd) in PYTHON_COMMANDS:
            setup_py = bool(args) and args[0] in PYTHON_BUILD_SCRIPTS
            shim = any(a.startswith(SETUPTOOLS_SHIM) for a in args)
            if setup_py or shim:
                self.environment.refurbish_args(env)

    # --- child process ---
    def _drain(self, stream: IO[str], log: IO[str]) -> None:
        for line in iter(stream.readline, ""):
            log.write(line)
            sys.stdout.write(line)
            sys.stdout.flush()
        log.flush()

    def _spawn(self, cmd: str, args: List[str], env: Dict[str, str], log: IO[str], cwd: Optional[str]) -> int:
        try:
            proc = subprocess.Popen(
                [cmd] + args,
                cwd=cwd,
                env=env,
                stdin=subprocess.DEVNULL,
                start_new_session=True,
                stdout=subprocess.PIPE if self.verbose else log,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            )
        except OSError as e:
            logger.debug("cannot execute %s: %s", cmd, e)
            log.write(f"Failed to execute: {cmd}\n{e}\n")
            return 1

        timeout = self.timeout or None
        timed_out = False
        if self.verbose:
            reader = threading.Thread(target=self._drain, args=(proc.stdout, log), daemon=True)
            reader.start()
            reader.join(timeout)
            if reader.is_alive():
                timed_out = True
                _kill_group(proc)
                reader.join()
            proc.stdout.close()
            proc.wait()
        else:
            try:
                proc.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                timed_out = True
                _kill_group(proc)
                proc.wait()
        if timed_out:
            logger.warning("%s: %s timed out after %ss", self.name, cmd, timeout)
            log.write(f"\nKilled: {cmd} exceeded build timeout of {timeout}s\n")
            return TIMEOUT_STATUS
        return proc.returncode

    # --- public ---
    def run(self, cmd: str, *args, cwd: Optional[str] = None) -> BuildInvocation:
        """Run one build command; raise BuildError on a non-zero exit."""
        cmd = str(cmd)
        argv = [str(a) for a in args]
        ohai(pretty_command(cmd, argv, self.verbose))

        logfn = self._next_log_path(cmd)
        self.log_dir.mkdir(parents=True, exist_ok=True)

        env = self.environment.snapshot()
        env["BREWCORE_CC_LOG_PATH"] = str(logfn)
        self._apply_overrides(cmd, argv, env)

        started = datetime.now()
        with open(logfn, "w", encoding="utf-8") as log:
            log.write(f"{started}\n\n{cmd}\n")
            for a in argv:
                log.write(f"{a}\n")
            log.write("\n")

        invocation = BuildInvocation(cmd, argv, logfn, started)
        # append mode: the child shares the descriptor and writes past the header
        with open(logfn, "a", encoding="utf-8", errors="replace") as log:
            log.flush()
            invocation.exit_status = self._spawn(cmd, argv, env, log, cwd or self.cwd)
            sys.stdout.flush()
            logger.debug("%s: %s exited %s (log %s)", self.name, cmd, invocation.exit_status, logfn)

            if invocation.exit_status != 0:
                log.flush()
                if not self.verbose:
                    for line in tail(logfn, self.tail_lines):
                        sys.stdout.write(f"{line}\n")
                    sys.stdout.flush()
                log.write("\n")
                dump_verbose_config(log)
                log.write("\n")
                dump_build_env(env, log)
                raise BuildError(self.name, cmd, argv, env, str(logfn), invocation.exit_status)
        return invocation

    @contextmanager
    def brew(self, build_dir: Path) -> Iterator[Path]:
        """Yield build_dir; afterwards keep config.log / CMakeCache.txt beside the logs."""
        build_dir = Path(build_dir)
        try:
            yield build_dir
        finally:
            found = [build_dir / f for f in COPIED_BUILD_LOGS if (build_dir / f).is_file()]
            if found:
                self.log_dir.mkdir(parents=True, exist_ok=True)
                for f in found:
                    shutil.copy2(f, self.log_dir / f.name)
