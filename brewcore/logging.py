# brewcore/logging.py
# -*- coding: utf-8 -*-
"""
brewcore logging

Features:
 - Integration with brewcore.config (re-applied when the config is reloaded)
 - Console color formatter
 - Rotating file handler
 - JSONL transparency log
 - Module-level configurable log levels (module_levels)
 - Console helpers used by the build engine: ohai (step headline), opoo, onoe
"""

from __future__ import annotations

import sys
import json
import time
import logging
import logging.handlers
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from brewcore.config import get_config, register_watch_callback

_logger = logging.getLogger("brewcore.logging")


# ----------------------
# Color formatter
# ----------------------
class ColorFormatter(logging.Formatter):
    COLORS = {
        logging.DEBUG: "\033[37m",    # light gray
        logging.INFO: "\033[36m",     # cyan
        logging.WARNING: "\033[33m",  # yellow
        logging.ERROR: "\033[31m",    # red
        logging.CRITICAL: "\033[41;37m",  # white on red
    }
    RESET = "\033[0m"

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None, color: bool = True):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.color = color

    def format(self, record):
        msg = super().format(record)
        if self.color:
            color = self.COLORS.get(record.levelno, "")
            return f"{color}{msg}{self.RESET}"
        return msg


# ----------------------
# JSONL formatter for transparency log
# ----------------------
class JSONLineFormatter(logging.Formatter):
    def format(self, record):
        obj = {
            "timestamp": time.time(),
            "level": record.levelname,
            "module": getattr(record, "brew_module", record.name),
            "message": record.getMessage(),
        }
        if record.exc_info:
            obj["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(obj, ensure_ascii=False)


# ----------------------
# Handler filters
# ----------------------
class ModuleFieldFilter(logging.Filter):
    """Give records from plain stdlib loggers a brew_module so formats never fail."""

    def filter(self, record):
        if not hasattr(record, "brew_module"):
            record.brew_module = record.name.rsplit(".", 1)[-1]
        return True


class ModuleLevelFilter(logging.Filter):
    def __init__(self, module_levels: Dict[str, str]):
        super().__init__()
        self.module_levels = {m: getattr(logging, str(lvl).upper(), logging.INFO)
                              for m, lvl in (module_levels or {}).items()}

    def filter(self, record):
        mod = getattr(record, "brew_module", None)
        if mod and mod in self.module_levels:
            return record.levelno >= self.module_levels[mod]
        return True


# ----------------------
# BrewLogger (singleton)
# ----------------------
class BrewLogger:
    _instance = None
    _singleton_lock = threading.Lock()

    def __new__(cls):
        with cls._singleton_lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._inited = False
        return cls._instance

    def __init__(self):
        if self._inited:
            return
        self._lock = threading.RLock()
        self._root = logging.getLogger("brewcore")
        self._handlers: List[logging.Handler] = []
        self._metrics: Dict[str, int] = {lvl: 0 for lvl in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")}
        self._apply_config(get_config().merged.get("logging", {}))
        register_watch_callback(lambda cfg: self._apply_config(cfg.merged.get("logging", {})))
        self._inited = True

    def _count_levels_filter(self, record):
        name = record.levelname
        if name in self._metrics:
            self._metrics[name] += 1
        return True

    # ----------------------
    # Configuration (apply/hot-reload)
    # ----------------------
    def _apply_config(self, cfg: Dict[str, Any]):
        with self._lock:
            for h in self._handlers:
                self._root.removeHandler(h)
                h.close()
            self._handlers.clear()

            filters: List[logging.Filter] = [ModuleFieldFilter(), ModuleLevelFilter(cfg.get("module_levels") or {})]
            fmt = cfg.get("format") or "[%(asctime)s] [%(levelname)s] [%(brew_module)s] %(message)s"
            datefmt = cfg.get("datefmt", "%H:%M:%S")

            # console handler
            console_cfg = cfg.get("console") or {"enabled": True}
            if console_cfg.get("enabled", True):
                ch = logging.StreamHandler(sys.stderr)
                ch.setLevel(getattr(logging, str(cfg.get("level", "INFO")).upper(), logging.INFO))
                ch.setFormatter(ColorFormatter(fmt, datefmt=datefmt, color=bool(cfg.get("color", True))))
                self._handlers.append(ch)

            # rotating file handler
            if cfg.get("file"):
                file_path = Path(cfg["file"]).expanduser()
                file_path.parent.mkdir(parents=True, exist_ok=True)
                fh = logging.handlers.RotatingFileHandler(
                    str(file_path),
                    maxBytes=int(cfg.get("max_size_bytes") or 10 * 1024 * 1024),
                    backupCount=int(cfg.get("backups", 5)),
                    encoding="utf-8",
                )
                fh.setLevel(getattr(logging, str(cfg.get("file_level", "DEBUG")).upper(), logging.DEBUG))
                fh.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(brew_module)s] %(message)s"))
                self._handlers.append(fh)

            # jsonl transparency log
            jsonl_cfg = cfg.get("jsonl") or {}
            if jsonl_cfg.get("enabled"):
                path = Path(jsonl_cfg.get("path") or "transparency.jsonl").expanduser()
                path.parent.mkdir(parents=True, exist_ok=True)
                jh = logging.FileHandler(str(path), encoding="utf-8")
                jh.setLevel(getattr(logging, str(jsonl_cfg.get("level", "INFO")).upper(), logging.INFO))
                jh.setFormatter(JSONLineFormatter())
                self._handlers.append(jh)

            for h in self._handlers:
                for f in filters:
                    h.addFilter(f)
                h.addFilter(self._count_levels_filter)
                self._root.addHandler(h)
            self._root.setLevel(logging.DEBUG)  # handlers filter
            _logger.debug("logging: configuration applied")

    # ----------------------
    # Public API
    # ----------------------
    def get_logger(self, module_name: str) -> logging.LoggerAdapter:
        """Return a LoggerAdapter that injects 'brew_module' into records."""
        base = logging.getLogger(f"brewcore.{module_name}")
        return logging.LoggerAdapter(base, {"brew_module": module_name})

    def get_metrics(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._metrics)


_GLOBAL_LOGGER = BrewLogger()


def get_logger(module: str) -> logging.LoggerAdapter:
    return _GLOBAL_LOGGER.get_logger(module)


def get_metrics() -> Dict[str, int]:
    return _GLOBAL_LOGGER.get_metrics()


# ----------------------
# Console helpers
# ----------------------
def _tty(stream) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def ohai(title: str, *lines: str) -> None:
    """Print a headline ("==> title") followed by optional detail lines."""
    out = sys.stdout
    if _tty(out):
        out.write(f"\033[34m==>\033[0m \033[1m{title}\033[0m\n")
    else:
        out.write(f"==> {title}\n")
    for line in lines:
        out.write(f"{line}\n")
    out.flush()


def opoo(warning: str) -> None:
    sys.stderr.write(f"Warning: {warning}\n")


def onoe(error: str) -> None:
    sys.stderr.write(f"Error: {error}\n")
