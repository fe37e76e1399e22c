# src/task_sync/sync/sync_scheduler.py

from __future__ import annotations

"""
Periodic sync trigger.

The engine itself never schedules anything; this loop is the "external timer"
that calls SyncService.sync() every interval. Runs are sequential by construction.
"""

import asyncio
import logging

from .sync_models import SyncResult
from .sync_service import OFFLINE_ERROR, SyncService

logger = logging.getLogger(__name__)


def _is_offline(result: SyncResult) -> bool:
    return not result.success and any(e.error == OFFLINE_ERROR for e in result.errors)


async def run_sync_loop(
        service: SyncService,
        *,
        interval_seconds: float = 30.0,
) -> None:
    """
    Every interval_seconds:
    - call service.sync()
    - log the outcome (offline runs at DEBUG, failures at WARNING)

    Unexpected exceptions are logged and the loop keeps going.
    To stop the loop, cancel the coroutine/task.
    """
    sleep_s = max(0.5, float(interval_seconds))

    while True:
        try:
            result = await service.sync()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Periodic sync failed")
        else:
            if _is_offline(result):
                logger.debug("Periodic sync: offline")
            elif not result.success:
                logger.warning(
                    "Periodic sync: synced=%d failed=%d", result.synced_items, result.failed_items
                )
            elif result.synced_items:
                logger.info("Periodic sync: synced=%d", result.synced_items)

        await asyncio.sleep(sleep_s)
