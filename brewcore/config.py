# brewcore/config.py
# -*- coding: utf-8 -*-
"""
brewcore central configuration loader

Features:
- Read YAML/JSON config from multiple locations (explicit, env override, cwd, user, system)
- Merge with authoritative DEFAULTS, normalize paths and coerce types
- Validate structure and types, warn or raise ConfigError (fatal optional)
- Dotted access via Config.get() and helpers for the path roots and build settings
- Thread-safe load/reload with watcher callbacks
"""

from __future__ import annotations

import os
import json
import logging
import threading
from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import yaml

from brewcore.errors import ConfigError

# plain stdlib logger: brewcore.logging reads its own settings from here
logger = logging.getLogger("brewcore.config")

# ----------------------------
# DEFAULT configuration (authoritative base)
# ----------------------------
DEFAULTS: Dict[str, Any] = {
    "paths": {
        "prefix": "~/.brewcore",
        "cellar": None,        # defaults to <prefix>/Cellar
        "logs": "~/.brewcore/logs",
        "locks": "~/.brewcore/cache/Locks",
        "pins": "~/.brewcore/pinned",
        "cache": "~/.brewcore/cache",
        "formula_dir": "~/.brewcore/Formula",
    },
    "build": {
        "verbose": False,
        "timeout": 0,          # seconds, 0 disables
        "tail_lines": 5,
    },
    "logging": {
        "level": "INFO",
        "file": None,
        "file_level": "DEBUG",
        "max_size": "10M",
        "backups": 5,
        "color": True,
        "jsonl": {"enabled": False, "path": "~/.brewcore/logs/transparency.jsonl"},
        "module_levels": {},
    },
}

_PATH_KEYS: List[Tuple[str, str]] = [
    ("paths", "prefix"),
    ("paths", "cellar"),
    ("paths", "logs"),
    ("paths", "locks"),
    ("paths", "pins"),
    ("paths", "cache"),
    ("paths", "formula_dir"),
    ("logging", "file"),
]


@dataclass
class Config:
    raw: Dict[str, Any] = field(default_factory=dict)     # values loaded from file (if any)
    merged: Dict[str, Any] = field(default_factory=dict)  # merged with DEFAULTS
    path: Optional[Path] = None

    def get(self, path: str, default: Any = None) -> Any:
        """Dot-separated getter for merged config."""
        parts = path.split(".") if path else []
        cur: Any = self.merged
        for p in parts:
            if isinstance(cur, dict) and p in cur:
                cur = cur[p]
            else:
                return default
        return cur

    def as_dict(self) -> Dict[str, Any]:
        return deepcopy(self.merged)


# ----------------------------
# Module state
# ----------------------------
_CONFIG: Optional[Config] = None
_CONFIG_LOCK = threading.RLock()
_WATCH_CALLBACKS: List[Callable[[Config], None]] = []


# ----------------------------
# Utilities
# ----------------------------
def _human_size_to_bytes(val: Any) -> Optional[int]:
    if val is None:
        return None
    if isinstance(val, int):
        return val
    s = str(val).strip().upper()
    units = {"KB": 1024, "K": 1024, "MB": 1024**2, "M": 1024**2, "GB": 1024**3, "G": 1024**3}
    try:
        for suffix, mul in units.items():
            if s.endswith(suffix):
                return int(float(s[: -len(suffix)].strip()) * mul)
        return int(float(s))
    except ValueError:
        logger.warning("config: cannot parse human size '%s'", val)
        return None


def _expand_path(val: Optional[str]) -> Optional[str]:
    if val is None:
        return None
    return os.path.abspath(os.path.expanduser(os.path.expandvars(str(val))))


def _deep_merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    res = deepcopy(a)
    for k, v in b.items():
        if k in res and isinstance(res[k], dict) and isinstance(v, dict):
            res[k] = _deep_merge(res[k], v)
        else:
            res[k] = deepcopy(v)
    return res


def _find_candidates(explicit: Optional[str] = None) -> List[Path]:
    candidates: List[Path] = []
    if explicit:
        candidates.append(Path(explicit))
    env = os.environ.get("BREWCORE_CONFIG")
    if env:
        candidates.append(Path(env))
    candidates.extend([
        Path.cwd() / "brewcore.yaml",
        Path.cwd() / "brewcore.json",
        Path.home() / ".config" / "brewcore" / "config.yaml",
        Path("/etc") / "brewcore" / "config.yaml",
    ])
    return candidates


def _load_file(path: Path) -> Dict[str, Any]:
    try:
        txt = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"config: failed reading {path}: {e}") from e
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(txt)
        else:
            data = yaml.safe_load(txt)
    except (ValueError, yaml.YAMLError) as e:
        raise ConfigError(f"config: cannot parse {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config: top level of {path} must be a mapping")
    return data


def _normalize_and_coerce(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize path fields, convert human sizes and coerce basic types."""
    out = deepcopy(cfg)
    for section, key in _PATH_KEYS:
        ref = out.get(section)
        if isinstance(ref, dict) and isinstance(ref.get(key), str):
            ref[key] = _expand_path(ref[key])

    paths = out.setdefault("paths", {})
    if not paths.get("cellar") and paths.get("prefix"):
        paths["cellar"] = os.path.join(paths["prefix"], "Cellar")

    jsonl = out.get("logging", {}).get("jsonl")
    if isinstance(jsonl, dict) and isinstance(jsonl.get("path"), str):
        jsonl["path"] = _expand_path(jsonl["path"])

    log_cfg = out.get("logging")
    if isinstance(log_cfg, dict) and "max_size" in log_cfg:
        ms = _human_size_to_bytes(log_cfg["max_size"])
        if ms is not None:
            log_cfg["max_size_bytes"] = ms

    build = out.get("build")
    if isinstance(build, dict):
        try:
            build["timeout"] = int(build.get("timeout") or 0)
            build["tail_lines"] = int(build.get("tail_lines", 5))
        except (TypeError, ValueError):
            logger.debug("config: failed to coerce build fields", exc_info=True)
        build["verbose"] = bool(build.get("verbose", False))
    return out


def _validate_structure(cfg: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """Return (ok, issues_list)."""
    issues: List[str] = []
    for k in cfg.keys():
        if k not in DEFAULTS:
            issues.append(f"Unknown top-level config key: {k}")
    for k, v in (cfg.get("paths") or {}).items():
        if v is not None and not isinstance(v, str):
            issues.append(f"paths.{k} must be a string")
    build = cfg.get("build") or {}
    timeout = build.get("timeout")
    if not isinstance(timeout, int) or timeout < 0:
        issues.append("build.timeout must be integer >= 0")
    tail = build.get("tail_lines")
    if not isinstance(tail, int) or tail < 0:
        issues.append("build.tail_lines must be integer >= 0")
    return (len(issues) == 0, issues)


# ----------------------------
# Loading / reloading
# ----------------------------
def _find_path(explicit: Optional[str] = None) -> Optional[Path]:
    for p in _find_candidates(explicit):
        if p.exists():
            return p
    return None


def load(explicit_path: Optional[str] = None, fatal: bool = False) -> Config:
    """
    Load and merge config. If fatal=True structural validation failures raise
    ConfigError, otherwise they are logged as warnings.
    """
    global _CONFIG
    with _CONFIG_LOCK:
        if explicit_path and not Path(explicit_path).exists():
            raise ConfigError(f"config: {explicit_path} does not exist")
        cfg_path = _find_path(explicit_path)
        raw: Dict[str, Any] = _load_file(cfg_path) if cfg_path else {}
        merged = _normalize_and_coerce(_deep_merge(DEFAULTS, raw))
        ok, issues = _validate_structure(merged)
        if not ok:
            msg = f"config: validation issues: {issues}"
            if fatal:
                raise ConfigError(msg)
            logger.warning(msg)
        _CONFIG = Config(raw=raw, merged=merged, path=cfg_path)
        logger.debug("config: loaded merged config (from=%s)", str(cfg_path) if cfg_path else "<defaults>")
        return _CONFIG


def get_config() -> Config:
    global _CONFIG
    with _CONFIG_LOCK:
        if _CONFIG is None:
            _CONFIG = load()
        return _CONFIG


def reload(explicit_path: Optional[str] = None) -> Config:
    cfg = load(explicit_path)
    _notify_watchers(cfg)
    return cfg


def from_dict(data: Dict[str, Any]) -> Config:
    """Install a config built from an in-memory mapping (merged onto DEFAULTS)."""
    global _CONFIG
    with _CONFIG_LOCK:
        merged = _normalize_and_coerce(_deep_merge(DEFAULTS, data))
        _CONFIG = Config(raw=deepcopy(data), merged=merged)
    _notify_watchers(_CONFIG)
    return _CONFIG


# ----------------------------
# Watcher API
# ----------------------------
def register_watch_callback(cb: Callable[[Config], None]) -> None:
    with _CONFIG_LOCK:
        if cb not in _WATCH_CALLBACKS:
            _WATCH_CALLBACKS.append(cb)


def unregister_watch_callback(cb: Callable[[Config], None]) -> None:
    with _CONFIG_LOCK:
        if cb in _WATCH_CALLBACKS:
            _WATCH_CALLBACKS.remove(cb)


def _notify_watchers(cfg: Config) -> None:
    with _CONFIG_LOCK:
        cbs = list(_WATCH_CALLBACKS)
    for cb in cbs:
        try:
            cb(cfg)
        except Exception:
            logger.exception("config: watcher callback error")


# ----------------------------
# Convenience helpers for modules
# ----------------------------
def get_paths() -> Dict[str, str]:
    return deepcopy(get_config().merged.get("paths", {}))


def get_build_config() -> Dict[str, Any]:
    return deepcopy(get_config().merged.get("build", {}))


def dump(cfg: Optional[Config] = None) -> str:
    """Render the merged config as YAML (used in build failure logs)."""
    cfg = cfg or get_config()
    return yaml.safe_dump(cfg.as_dict(), default_flow_style=False, sort_keys=True)
