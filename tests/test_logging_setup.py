# tests/test_logging_setup.py

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from task_sync.logging_setup import _ConsoleNoiseFilter, _resolve_level, setup_logging


@pytest.fixture()
def bare_root():
    """Detach pytest's handlers from the root logger for the duration of a test."""
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    for h in saved_handlers:
        root.removeHandler(h)
    yield root
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    for h in saved_handlers:
        root.addHandler(h)
    root.setLevel(saved_level)
    logging.captureWarnings(False)


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


def test_console_filter() -> None:
    f = _ConsoleNoiseFilter()

    assert f.filter(_record("task_sync.sync.sync_service", logging.DEBUG))
    assert not f.filter(_record("task_sync.sync.sync_scheduler", logging.INFO))
    assert f.filter(_record("task_sync.sync.sync_scheduler", logging.WARNING))
    assert not f.filter(_record("httpx", logging.WARNING))
    assert f.filter(_record("httpx", logging.ERROR))
    assert not f.filter(_record("py.warnings", logging.WARNING))


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(logging.WARNING, logging.WARNING), ("debug", logging.DEBUG), (" Error ", logging.ERROR), ("loud", logging.INFO)],
)
def test_resolve_level(raw, expected) -> None:
    assert _resolve_level(raw) == expected


def test_setup_logging_writes_file_and_replaces_handlers(bare_root, tmp_path: Path) -> None:
    log_file = setup_logging(log_dir=tmp_path / "logs", console_level="WARNING")
    setup_logging(log_dir=tmp_path / "logs", console_level="WARNING")

    assert log_file == tmp_path / "logs" / "task_sync.log"
    assert len(bare_root.handlers) == 2
    assert logging.getLogger("httpx").level == logging.WARNING

    logging.getLogger("task_sync.tests").debug("detail for the file")
    for h in bare_root.handlers:
        h.flush()

    assert "detail for the file" in log_file.read_text(encoding="utf-8")
