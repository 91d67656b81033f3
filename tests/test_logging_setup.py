# tests/test_logging_setup.py

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from focuslist.logging_setup import _ConsoleNoiseFilter, setup_logging


@pytest.fixture(autouse=True)
def restore_root_handlers():
    root = logging.getLogger()
    saved = list(root.handlers)
    level = root.level
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    for h in saved:
        root.addHandler(h)
    root.setLevel(level)


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


def test_noise_filter() -> None:
    f = _ConsoleNoiseFilter()
    assert f.filter(_record("focuslist.engine.actions", logging.DEBUG))
    assert not f.filter(_record("urllib3", logging.WARNING))
    assert f.filter(_record("urllib3", logging.ERROR))
    assert not f.filter(_record("py.warnings", logging.WARNING))


def test_file_handler_receives_debug(tmp_path: Path) -> None:
    setup_logging(log_dir=tmp_path / "logs")
    logging.getLogger("focuslist.test").debug("hello file")

    for h in logging.getLogger().handlers:
        h.flush()
    assert "hello file" in (tmp_path / "logs" / "focuslist.log").read_text(encoding="utf-8")


def test_unusable_log_dir_falls_back_to_console(tmp_path: Path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")

    setup_logging(log_dir=blocker / "logs")
    handlers = logging.getLogger().handlers
    assert len(handlers) == 1
    assert not isinstance(handlers[0], logging.FileHandler)
