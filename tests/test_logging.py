"""Tests for the logging setup and console helpers."""

import json
import logging

from brewcore import config
from brewcore.logging import get_logger, get_metrics, ohai, onoe, opoo


def test_adapter_carries_module():
    log = get_logger("install")
    assert log.logger.name == "brewcore.install"
    assert log.extra == {"brew_module": "install"}


def test_file_and_jsonl_handlers(tmp_path):
    log_file = tmp_path / "brew.log"
    jsonl = tmp_path / "brew.jsonl"
    config.from_dict({"logging": {"file": str(log_file), "color": False,
                                  "jsonl": {"enabled": True, "path": str(jsonl)}}})
    before = get_metrics()["WARNING"]
    get_logger("pins").warning("pinned %s", "foo")
    logging.getLogger("brewcore.config").warning("plain record")
    for h in logging.getLogger("brewcore").handlers:
        h.flush()

    text = log_file.read_text()
    assert "[pins] pinned foo" in text
    assert "[config] plain record" in text
    first = json.loads(jsonl.read_text().splitlines()[0])
    assert first["module"] == "pins" and first["message"] == "pinned foo"
    assert get_metrics()["WARNING"] > before


def test_module_levels(tmp_path):
    log_file = tmp_path / "brew.log"
    config.from_dict({"logging": {"file": str(log_file), "module_levels": {"lock": "ERROR"}}})
    get_logger("lock").warning("hidden")
    get_logger("layout").warning("shown")
    for h in logging.getLogger("brewcore").handlers:
        h.flush()
    text = log_file.read_text()
    assert "hidden" not in text and "shown" in text


def test_console_helpers(capsys):
    ohai("Installing foo", "detail")
    opoo("careful")
    onoe("broken")
    out, err = capsys.readouterr()
    assert out == "==> Installing foo\ndetail\n"
    assert "Warning: careful" in err and "Error: broken" in err
