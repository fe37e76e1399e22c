# src/task_sync/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- the periodic sync loop in a background thread (when an interval is configured),
- the console REPL in the main thread (optional).
"""

from __future__ import annotations

import asyncio
import logging
import signal
import threading

from ..config import get_settings
from ..core.state import AppState
from ..logging_setup import setup_logging
from ..sync.sync_scheduler import run_sync_loop
from .bootstrap import create_initial_state
from .console import run_console_loop

logger = logging.getLogger(__name__)


class SyncLoopRunner:
    """Runs run_sync_loop() on its own event loop in a daemon thread."""

    def __init__(self, state: AppState, interval_seconds: float) -> None:
        self._state = state
        self._interval = interval_seconds
        self._loop = asyncio.new_event_loop()
        self._task: asyncio.Task[None] | None = None
        self._thread = threading.Thread(target=self._run, name="sync-loop", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._task = self._loop.create_task(
            run_sync_loop(self._state.sync, interval_seconds=self._interval)
        )
        try:
            self._loop.run_until_complete(self._task)
        except asyncio.CancelledError:
            logger.debug("Sync loop cancelled.")
        finally:
            self._loop.close()

    def stop(self) -> None:
        if self._task is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._task.cancel)

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout=timeout)


def _shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        state.db.close()
    except Exception:
        logger.debug("Database close failed.", exc_info=True)


def main() -> None:
    settings = get_settings()

    log_file = setup_logging(log_dir=settings.data_dir, console_level=settings.log_level)

    logger.info("Starting %s (remote=%s, log=%s)...", settings.app_name, settings.api_base_url, log_file)

    state = create_initial_state(settings=settings)

    runner: SyncLoopRunner | None = None
    if settings.sync_interval_seconds > 0:
        runner = SyncLoopRunner(state, settings.sync_interval_seconds)
        runner.start()
        logger.info("Background sync every %.0fs.", settings.sync_interval_seconds)

    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        signal.signal(signal.SIGTERM, _handle_signal)
        if not settings.console_enabled:
            signal.signal(signal.SIGINT, _handle_signal)
    except (ValueError, OSError, AttributeError):
        # Some platforms may not support SIGTERM, etc.
        pass

    try:
        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        elif runner is not None:
            logger.info("Console disabled. Running background sync only. Press Ctrl+C to stop.")
            stop_main.wait()
        else:
            logger.warning("Console disabled and no sync interval configured; nothing to do.")
    finally:
        if runner is not None:
            runner.stop()
            runner.join(timeout=10.0)

        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
