# src/task_sync/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "task_sync.log"

# Loggers that write while the user is typing; the console only shows their problems.
BACKGROUND_LOGGERS = ("task_sync.sync.sync_scheduler",)

# Per-request INFO lines from the HTTP stack; kept out of both handlers.
CHATTY_THIRD_PARTY = ("httpx", "httpcore")

_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _resolve_level(level: int | str, default: int = logging.INFO) -> int:
    """Accept 10 / "DEBUG" / "debug"; unknown names fall back to `default`."""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    return resolved if isinstance(resolved, int) else default


class _ConsoleNoiseFilter(logging.Filter):
    """
    Console filter for the interactive REPL.

    task_sync records pass, except background loggers below WARNING.
    Everything else (third-party, py.warnings) needs ERROR.
    """

    def __init__(self, background: tuple[str, ...] = BACKGROUND_LOGGERS) -> None:
        super().__init__()
        self._background = background

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if not name.startswith("task_sync."):
            return record.levelno >= logging.ERROR
        if name.startswith(self._background):
            return record.levelno >= logging.WARNING
        return True


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATEFMT))
    handler.addFilter(_ConsoleNoiseFilter())
    return handler


def _file_handler(path: Path, level: int) -> logging.Handler:
    handler = logging.FileHandler(str(path), encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATEFMT))
    return handler


def setup_logging(
    *,
    log_dir: str | Path = ".local/task_sync",
    console_level: int | str = logging.INFO,
    file_level: int | str = logging.DEBUG,
) -> Path:
    """
    Install a filtered stderr handler and a full file log on the root logger.

    Call once at startup, before the first log line. Re-running replaces the
    handlers instead of stacking them. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()

    root.addHandler(_console_handler(_resolve_level(console_level)))
    root.addHandler(_file_handler(log_file, _resolve_level(file_level, logging.DEBUG)))

    logging.captureWarnings(True)
    for name in CHATTY_THIRD_PARTY:
        logging.getLogger(name).setLevel(logging.WARNING)

    return log_file
