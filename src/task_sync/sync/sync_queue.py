# src/task_sync/sync/sync_queue.py

from __future__ import annotations

import json
import logging
import sqlite3
import time
import uuid

from ..storage.database import Database
from ..tasks.task_models import TaskSnapshot
from .sync_models import Operation, QueueEntry

logger = logging.getLogger(__name__)


class SyncQueue:
    """
    Durable operation queue: the `sync_queue` table.

    Ordering is (created_at, seq) ascending: oldest first, insertion order on ties.
    Entries are only removed by prune_task() after the remote authority confirmed them.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> QueueEntry:
        return QueueEntry(
            id=str(row["id"]),
            seq=int(row["seq"]),
            task_id=str(row["task_id"]),
            operation=Operation(row["operation"]),
            payload=TaskSnapshot.from_dict(json.loads(row["data"])),
            created_at=float(row["created_at"]),
            retry_count=int(row["retry_count"] or 0),
            error_message=row["error_message"],
        )

    # ---- writes (caller owns the transaction) ----

    def enqueue(
        self,
        conn: sqlite3.Connection,
        *,
        task_id: str,
        operation: Operation,
        payload: TaskSnapshot,
        now_ts: float | None = None,
    ) -> QueueEntry:
        entry_id = str(uuid.uuid4())
        created_at = time.time() if now_ts is None else float(now_ts)
        data = json.dumps(payload.to_dict(), ensure_ascii=False)

        cur = conn.execute(
            """
            INSERT INTO sync_queue(id, task_id, operation, data, created_at, retry_count)
            VALUES (?, ?, ?, ?, ?, 0)
            """,
            (entry_id, task_id, operation.value, data, created_at),
        )
        seq = cur.lastrowid
        if seq is None:
            raise RuntimeError("SQLite did not return lastrowid for sync_queue insert")
        logger.debug("Queued %s for task=%s entry=%s", operation.value, task_id, entry_id)
        return QueueEntry(
            id=entry_id,
            seq=int(seq),
            task_id=task_id,
            operation=operation,
            payload=payload,
            created_at=created_at,
        )

    def record_failure(self, conn: sqlite3.Connection, entry_id: str, error_message: str) -> int:
        """Increment retry_count and store the last error. Returns the new retry_count."""
        conn.execute(
            "UPDATE sync_queue SET retry_count = retry_count + 1, error_message = ? WHERE id = ?",
            (error_message, entry_id),
        )
        row = conn.execute("SELECT retry_count FROM sync_queue WHERE id = ?", (entry_id,)).fetchone()
        if row is None:
            # Pruned concurrently; nothing left to count against.
            return 0
        return int(row["retry_count"])

    def prune_task(self, conn: sqlite3.Connection, task_id: str, *, up_to_seq: int | None = None) -> int:
        """
        Delete the task's entries (all of them, or only those with seq <= up_to_seq).
        Returns the number of rows removed.
        """
        if up_to_seq is None:
            cur = conn.execute("DELETE FROM sync_queue WHERE task_id = ?", (task_id,))
        else:
            cur = conn.execute(
                "DELETE FROM sync_queue WHERE task_id = ? AND seq <= ?",
                (task_id, int(up_to_seq)),
            )
        return cur.rowcount

    def reset_exhausted(
        self, conn: sqlite3.Connection, *, max_retries: int, task_id: str | None = None
    ) -> list[str]:
        """Zero retry_count on exhausted entries. Returns the affected task ids."""
        task_ids = self.exhausted_task_ids(conn, max_retries=max_retries)
        if task_id is not None:
            task_ids = [tid for tid in task_ids if tid == task_id]
        for tid in task_ids:
            conn.execute(
                "UPDATE sync_queue SET retry_count = 0 WHERE task_id = ? AND retry_count >= ?",
                (tid, int(max_retries)),
            )
        return task_ids

    # ---- reads ----

    def list_entries(self, conn: sqlite3.Connection | None = None) -> list[QueueEntry]:
        """Every entry, oldest first."""
        sql = "SELECT * FROM sync_queue ORDER BY created_at ASC, seq ASC"
        if conn is not None:
            return [self._row_to_entry(r) for r in conn.execute(sql).fetchall()]
        with self._db.reader() as own:
            return [self._row_to_entry(r) for r in own.execute(sql).fetchall()]

    def list_dispatchable(self, *, max_retries: int) -> list[QueueEntry]:
        """
        Entries to send, oldest first.

        A task with an exhausted entry is held back as a whole: its newer entries
        must not reach the remote ahead of the one that never got through.
        """
        with self._db.reader() as conn:
            rows = conn.execute(
                """
                SELECT *
                FROM sync_queue
                WHERE task_id NOT IN (
                    SELECT task_id FROM sync_queue WHERE retry_count >= ?
                )
                ORDER BY created_at ASC, seq ASC
                """,
                (int(max_retries),),
            ).fetchall()
            return [self._row_to_entry(r) for r in rows]

    def exhausted_task_ids(self, conn: sqlite3.Connection, *, max_retries: int) -> list[str]:
        rows = conn.execute(
            "SELECT DISTINCT task_id FROM sync_queue WHERE retry_count >= ?",
            (int(max_retries),),
        ).fetchall()
        return [str(r["task_id"]) for r in rows]

    def entries_for_task(self, task_id: str, conn: sqlite3.Connection | None = None) -> list[QueueEntry]:
        sql = "SELECT * FROM sync_queue WHERE task_id = ? ORDER BY created_at ASC, seq ASC"
        if conn is not None:
            return [self._row_to_entry(r) for r in conn.execute(sql, (task_id,)).fetchall()]
        with self._db.reader() as own:
            return [self._row_to_entry(r) for r in own.execute(sql, (task_id,)).fetchall()]

    def count_for_task(self, conn: sqlite3.Connection, task_id: str) -> int:
        (n,) = conn.execute("SELECT COUNT(*) FROM sync_queue WHERE task_id = ?", (task_id,)).fetchone()
        return int(n)

    def count(self) -> int:
        with self._db.reader() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM sync_queue").fetchone()
            return int(n)

    def count_exhausted(self, *, max_retries: int) -> int:
        with self._db.reader() as conn:
            (n,) = conn.execute(
                "SELECT COUNT(*) FROM sync_queue WHERE retry_count >= ?",
                (int(max_retries),),
            ).fetchone()
            return int(n)
