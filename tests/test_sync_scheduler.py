# tests/test_sync_scheduler.py

from __future__ import annotations

import asyncio
import logging

import pytest

from task_sync.sync.sync_models import SyncError, SyncResult
from task_sync.sync.sync_scheduler import run_sync_loop
from task_sync.sync.sync_service import OFFLINE_ERROR


class FakeSyncService:
    """
    Stand-in for SyncService used for loop tests.

    Plays back scripted results (or exceptions) and counts calls, so tests are
    purely about the loop: cadence, logging and surviving failures.
    """

    def __init__(self, script: list[SyncResult | Exception]) -> None:
        self.script = list(script)
        self.calls = 0

    async def sync(self) -> SyncResult:
        self.calls += 1
        if not self.script:
            return SyncResult()
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


async def _run_briefly(service: FakeSyncService, seconds: float) -> None:
    runner = asyncio.create_task(run_sync_loop(service, interval_seconds=0.5))
    await asyncio.sleep(seconds)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner


@pytest.mark.asyncio
async def test_loop_runs_immediately_and_then_every_interval() -> None:
    service = FakeSyncService([])

    await _run_briefly(service, 0.7)

    assert service.calls == 2


@pytest.mark.asyncio
async def test_loop_survives_unexpected_errors(caplog) -> None:
    service = FakeSyncService([RuntimeError("db locked")])

    with caplog.at_level(logging.ERROR, logger="task_sync.sync.sync_scheduler"):
        await _run_briefly(service, 0.7)

    assert service.calls == 2
    assert any("Periodic sync failed" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_loop_logs_failures_but_not_offline(caplog) -> None:
    offline = SyncResult()
    offline.add_failure(SyncError(task_id="", operation="sync", error=OFFLINE_ERROR))
    offline.failed_items = 0

    failed = SyncResult(synced_items=1)
    failed.add_failure(SyncError(task_id="t-1", operation="update", error="rejected by server"))

    service = FakeSyncService([offline, failed])

    with caplog.at_level(logging.WARNING, logger="task_sync.sync.sync_scheduler"):
        await _run_briefly(service, 0.7)

    warnings = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
    assert warnings == ["Periodic sync: synced=1 failed=1"]
