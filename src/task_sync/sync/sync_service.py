# src/task_sync/sync/sync_service.py

from __future__ import annotations

"""
Sync orchestrator.

One run walks IDLE -> CHECKING_CONNECTIVITY -> (OFFLINE | DRAINING) -> IDLE:
- probe /health; when offline, return at once without touching the queue,
- snapshot the dispatchable queue (oldest first) and cut it into batches,
- send batches one after another, never concurrently,
- per item: success/conflict -> mark synced + prune, error -> retry bookkeeping,
- a failed batch (transport) counts as a failure of each of its entries and
  does not stop the following batches.

The run is at-least-once and best-effort: items already confirmed stay confirmed
when a later batch fails.
"""

import logging
import sqlite3
import threading
import time
from collections import deque
from collections.abc import Sequence
from typing import Any

from ..core.errors import RemoteItemError, TransportError
from ..core.ports import RemoteAuthority
from ..storage.database import Database
from ..tasks.task_models import SyncStatus, Task, ts_from_wire
from ..tasks.task_store import TaskStore
from .sync_models import (
    ApplyResult,
    ItemStatus,
    ProcessedItem,
    QueueEntry,
    SyncError,
    SyncPhase,
    SyncResult,
    SyncStatusReport,
)
from .sync_queue import SyncQueue

logger = logging.getLogger(__name__)

OFFLINE_ERROR = "Offline"
BUSY_ERROR = "Sync already in progress"
NO_RESULT_ERROR = "No result from remote"


class SyncService:
    def __init__(
        self,
        db: Database,
        store: TaskStore,
        queue: SyncQueue,
        remote: RemoteAuthority,
        *,
        batch_size: int = 50,
        max_retries: int = 3,
    ) -> None:
        self._db = db
        self._store = store
        self._queue = queue
        self._remote = remote
        self._batch_size = max(1, int(batch_size))
        self._max_retries = max(1, int(max_retries))
        self._phase = SyncPhase.IDLE
        # Thread lock, not asyncio.Lock: the CLI and the background loop run separate event loops.
        self._run_lock = threading.Lock()

    @property
    def phase(self) -> SyncPhase:
        return self._phase

    @property
    def max_retries(self) -> int:
        return self._max_retries

    # ---- connectivity ----

    async def check_connectivity(self) -> bool:
        try:
            await self._remote.health()
        except TransportError as exc:
            logger.info("Remote authority unreachable: %s", exc)
            return False
        except Exception:
            logger.exception("Connectivity probe failed unexpectedly")
            return False
        return True

    # ---- run ----

    async def sync(self) -> SyncResult:
        if not self._run_lock.acquire(blocking=False):
            logger.warning("sync() called while another run is in flight; skipping")
            return SyncResult(
                success=False,
                errors=[SyncError(task_id="", operation="sync", error=BUSY_ERROR)],
            )
        try:
            return await self._run()
        finally:
            self._phase = SyncPhase.IDLE
            self._run_lock.release()

    async def _run(self) -> SyncResult:
        self._phase = SyncPhase.CHECKING_CONNECTIVITY
        if not await self.check_connectivity():
            self._phase = SyncPhase.OFFLINE
            return SyncResult(
                success=False,
                errors=[SyncError(task_id="", operation="sync", error=OFFLINE_ERROR)],
            )

        self._phase = SyncPhase.DRAINING
        result = SyncResult()

        self._hold_back_exhausted()
        entries = self._queue.list_dispatchable(max_retries=self._max_retries)
        if not entries:
            logger.debug("Sync: queue empty")
            return result

        batches = [entries[i : i + self._batch_size] for i in range(0, len(entries), self._batch_size)]
        logger.info("Sync: %d entries in %d batch(es)", len(entries), len(batches))

        for n, batch in enumerate(batches, start=1):
            logger.debug("Sync: dispatching batch %d/%d size=%d", n, len(batches), len(batch))
            await self._process_batch(batch, result)

        logger.info(
            "Sync finished success=%s synced=%d failed=%d",
            result.success,
            result.synced_items,
            result.failed_items,
        )
        return result

    def _hold_back_exhausted(self) -> list[str]:
        """
        Keep tasks with an exhausted entry in `error`.

        None of their entries are dispatched until reset_failed(); a local edit made
        since the last run may have set them back to pending.
        """
        with self._db.transaction() as conn:
            task_ids = self._queue.exhausted_task_ids(conn, max_retries=self._max_retries)
            for tid in task_ids:
                self._store.set_sync_status(conn, tid, SyncStatus.ERROR)
        if task_ids:
            logger.info("Sync: holding back %d task(s) with exhausted entries", len(task_ids))
        return task_ids

    async def _process_batch(self, batch: Sequence[QueueEntry], result: SyncResult) -> None:
        try:
            items = await self._remote.post_batch(batch)
        except TransportError as exc:
            logger.warning("Batch of %d failed: %s", len(batch), exc)
            for entry in batch:
                self._fail_entry(entry, exc, result)
            return

        # Entries of the same task are answered in queue order.
        open_entries: dict[str, deque[QueueEntry]] = {}
        cutoff: dict[str, int] = {}
        for entry in batch:
            open_entries.setdefault(entry.task_id, deque()).append(entry)
            cutoff[entry.task_id] = max(cutoff.get(entry.task_id, 0), entry.seq)

        # One confirmation per task; the last success/conflict item carries the newest state.
        confirmations: dict[str, ProcessedItem] = {}
        for item in items:
            waiting = open_entries.get(item.client_id)
            if waiting is None:
                logger.warning("Remote answered for unknown client_id=%s", item.client_id)
                continue

            if item.status in (ItemStatus.SUCCESS, ItemStatus.CONFLICT):
                if item.client_id in confirmations:
                    logger.debug("Repeated %s item for task=%s", item.status.value, item.client_id)
                if item.status == ItemStatus.CONFLICT:
                    logger.info(
                        "Conflict resolved by remote for task=%s resolved=%s",
                        item.client_id,
                        item.resolved_data,
                    )
                confirmations[item.client_id] = item
                continue

            if item.client_id in confirmations or not waiting:
                logger.warning("Extra error item for task=%s ignored: %s", item.client_id, item.error)
                continue
            entry = waiting.popleft()
            self._fail_entry(entry, RemoteItemError(item.client_id, item.error or "unknown"), result)

        for client_id, item in confirmations.items():
            open_entries[client_id].clear()
            self._confirm_item(item, cutoff[client_id], result)

        for waiting in open_entries.values():
            while waiting:
                entry = waiting.popleft()
                self._fail_entry(entry, RemoteItemError(entry.task_id, NO_RESULT_ERROR), result)

    # ---- success / conflict ----

    def _confirm_item(self, item: ProcessedItem, up_to_seq: int, result: SyncResult) -> None:
        try:
            applied = self._apply_confirmed(item, up_to_seq)
        except sqlite3.Error as exc:
            logger.exception("Failed to record sync confirmation for task=%s", item.client_id)
            result.add_failure(
                SyncError(task_id=item.client_id, operation="sync", error=f"Local apply failed: {exc}")
            )
            return

        if not applied.task_found:
            logger.warning(
                "Remote confirmed task=%s which does not exist locally (pruned=%d)",
                item.client_id,
                applied.pruned,
            )
        elif applied.remaining:
            logger.info(
                "Task %s confirmed but has %d newer local change(s); stays pending",
                item.client_id,
                applied.remaining,
            )
        result.synced_items += 1

    def _apply_confirmed(self, item: ProcessedItem, up_to_seq: int) -> ApplyResult:
        """Status update and prune commit together."""
        now = time.time()
        with self._db.transaction() as conn:
            pruned = self._queue.prune_task(conn, item.client_id, up_to_seq=up_to_seq)
            task = self._store.get_task(item.client_id, conn)
            if task is None:
                return ApplyResult(task_found=False, pruned=pruned, remaining=0)

            remaining = self._queue.entries_for_task(item.client_id, conn)
            server_id = item.server_id
            if server_id is None and item.resolved_data:
                raw = item.resolved_data.get("server_id")
                server_id = str(raw) if raw is not None else None

            if remaining:
                # A newer local edit wins until it is synced itself.
                exhausted = any(e.retry_count >= self._max_retries for e in remaining)
                status = SyncStatus.ERROR if exhausted else SyncStatus.PENDING
                fields = None
            else:
                status = SyncStatus.SYNCED
                fields = self._resolved_fields(task, item.resolved_data)

            self._store.apply_remote_state(
                conn,
                task.id,
                status=status,
                server_id=server_id,
                synced_at=now,
                fields=fields,
            )
            return ApplyResult(task_found=True, pruned=pruned, remaining=len(remaining))

    @staticmethod
    def _resolved_fields(task: Task, resolved: dict[str, Any] | None) -> dict[str, Any]:
        if not resolved:
            return {}

        fields: dict[str, Any] = {}

        title = resolved.get("title")
        if isinstance(title, str) and title.strip():
            fields["title"] = title.strip()

        if "description" in resolved:
            desc = resolved["description"]
            fields["description"] = None if desc is None else str(desc)

        if "completed" in resolved:
            fields["completed"] = bool(resolved["completed"])

        # Soft delete is one-way.
        if resolved.get("is_deleted") is True:
            fields["is_deleted"] = True

        updated_at = ts_from_wire(resolved.get("updated_at"))
        if updated_at is not None:
            fields["updated_at"] = max(updated_at, task.created_at)

        return fields

    # ---- failures ----

    def _fail_entry(self, entry: QueueEntry, error: Exception, result: SyncResult) -> None:
        message = str(error) or error.__class__.__name__
        try:
            self.handle_retry(entry, error)
        except sqlite3.Error:
            logger.exception("Retry bookkeeping failed for entry=%s task=%s", entry.id, entry.task_id)
            message = f"{message} (retry bookkeeping failed)"
        result.add_failure(SyncError(task_id=entry.task_id, operation=entry.operation.value, error=message))

    def handle_retry(self, entry: QueueEntry, error: Exception) -> int:
        """
        Count one failed attempt for `entry`.

        At max_retries the task goes to `error` and the entry stays queued (it is no
        longer dispatched until reset_failed()). Returns the new retry_count.
        """
        message = str(error) or error.__class__.__name__
        with self._db.transaction() as conn:
            retry_count = self._queue.record_failure(conn, entry.id, message)
            if retry_count >= self._max_retries:
                self._store.set_sync_status(conn, entry.task_id, SyncStatus.ERROR)

        if retry_count >= self._max_retries:
            logger.error("Permanent failure for task=%s after %d attempts: %s", entry.task_id, retry_count, message)
        elif retry_count > 0:
            logger.warning(
                "Will retry (%d/%d) task=%s: %s",
                retry_count,
                self._max_retries,
                entry.task_id,
                message,
            )
        return retry_count

    def reset_failed(self, task_id: str | None = None) -> int:
        """
        Give exhausted entries a fresh set of attempts (all tasks, or one task).
        Returns the number of tasks moved back to pending.
        """
        with self._db.transaction() as conn:
            task_ids = self._queue.reset_exhausted(conn, max_retries=self._max_retries, task_id=task_id)
            for tid in task_ids:
                self._store.set_sync_status(conn, tid, SyncStatus.PENDING)
        if task_ids:
            logger.info("Reset %d failed task(s) to pending", len(task_ids))
        return len(task_ids)

    # ---- status ----

    async def get_status(self) -> SyncStatusReport:
        return SyncStatusReport(
            pending_sync_items=self._queue.count(),
            failed_sync_items=self._queue.count_exhausted(max_retries=self._max_retries),
            last_synced_at=self._store.last_synced_at(),
            online=await self.check_connectivity(),
        )
