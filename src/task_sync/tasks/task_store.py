# src/task_sync/tasks/task_store.py

from __future__ import annotations

import logging
import sqlite3
from typing import Any

from ..storage.database import Database
from .task_models import SyncStatus, Task

logger = logging.getLogger(__name__)


class TaskStore:
    """
    Record store: the `tasks` table.

    Writes take an explicit connection obtained from Database.transaction(), so the
    caller decides what else commits together with the task row (normally a queue
    entry). Reads accept an optional connection and open their own otherwise.

    Tasks are never physically deleted; `is_deleted` is a soft-delete flag.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        try:
            total = self.count_tasks()
        except sqlite3.Error:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", db.path, total)

    # ---- low-level helpers ----

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=str(row["id"]),
            title=str(row["title"] or ""),
            description=row["description"],
            completed=bool(row["completed"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
            is_deleted=bool(row["is_deleted"]),
            sync_status=SyncStatus.from_db(row["sync_status"]),
            server_id=row["server_id"],
            last_synced_at=float(row["last_synced_at"]) if row["last_synced_at"] is not None else None,
        )

    def _select(self, sql: str, params: tuple[Any, ...], conn: sqlite3.Connection | None) -> list[Task]:
        if conn is not None:
            return [self._row_to_task(r) for r in conn.execute(sql, params).fetchall()]
        with self._db.reader() as own:
            return [self._row_to_task(r) for r in own.execute(sql, params).fetchall()]

    # ---- reads ----

    def count_tasks(self) -> int:
        with self._db.reader() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)

    def get_task(self, task_id: str, conn: sqlite3.Connection | None = None) -> Task | None:
        """Return the task row, including soft-deleted ones."""
        rows = self._select("SELECT * FROM tasks WHERE id = ?", (task_id,), conn)
        return rows[0] if rows else None

    def list_tasks(self) -> list[Task]:
        """Live (non-deleted) tasks, most recently updated first."""
        return self._select(
            "SELECT * FROM tasks WHERE is_deleted = 0 ORDER BY updated_at DESC",
            (),
            None,
        )

    def list_tasks_needing_sync(self) -> list[Task]:
        """Tasks in pending or error state, oldest update first (deleted ones included)."""
        return self._select(
            """
            SELECT *
            FROM tasks
            WHERE sync_status IN ('pending', 'error')
            ORDER BY updated_at ASC
            """,
            (),
            None,
        )

    def find_task_ids(self, prefix: str, limit: int = 2) -> list[str]:
        """Ids starting with `prefix` (console shorthand for long uuids)."""
        with self._db.reader() as conn:
            rows = conn.execute(
                "SELECT id FROM tasks WHERE substr(id, 1, ?) = ? ORDER BY created_at ASC LIMIT ?",
                (len(prefix), prefix, int(limit)),
            ).fetchall()
            return [str(r["id"]) for r in rows]

    def last_synced_at(self) -> float | None:
        with self._db.reader() as conn:
            (ts,) = conn.execute("SELECT MAX(last_synced_at) FROM tasks").fetchone()
            return float(ts) if ts is not None else None

    # ---- writes (caller owns the transaction) ----

    def insert_task(self, conn: sqlite3.Connection, task: Task) -> None:
        conn.execute(
            """
            INSERT INTO tasks(
                id, title, description, completed,
                created_at, updated_at, is_deleted,
                sync_status, server_id, last_synced_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                task.id,
                task.title,
                task.description,
                int(task.completed),
                float(task.created_at),
                float(task.updated_at),
                int(task.is_deleted),
                task.sync_status.value,
                task.server_id,
                task.last_synced_at,
            ),
        )
        logger.debug("Task inserted id=%s", task.id)

    def save_local_change(self, conn: sqlite3.Connection, task: Task) -> None:
        """Persist user-editable fields plus is_deleted/updated_at/sync_status."""
        conn.execute(
            """
            UPDATE tasks
            SET title = ?,
                description = ?,
                completed = ?,
                updated_at = ?,
                is_deleted = ?,
                sync_status = ?
            WHERE id = ?
            """,
            (
                task.title,
                task.description,
                int(task.completed),
                float(task.updated_at),
                int(task.is_deleted),
                task.sync_status.value,
                task.id,
            ),
        )

    def set_sync_status(self, conn: sqlite3.Connection, task_id: str, status: SyncStatus) -> int:
        cur = conn.execute("UPDATE tasks SET sync_status = ? WHERE id = ?", (status.value, task_id))
        return cur.rowcount

    def apply_remote_state(
        self,
        conn: sqlite3.Connection,
        task_id: str,
        *,
        status: SyncStatus,
        server_id: str | None,
        synced_at: float,
        fields: dict[str, Any] | None = None,
    ) -> int:
        """
        Record a confirmed sync: status, server_id, last_synced_at and optionally the
        field values the remote authority resolved to.

        `fields` may hold title/description/completed/updated_at/is_deleted.
        Returns the number of task rows touched (0 if the task does not exist).
        """
        assignments = ["sync_status = ?", "server_id = COALESCE(?, server_id)", "last_synced_at = ?"]
        params: list[Any] = [status.value, server_id, float(synced_at)]

        for name in ("title", "description", "completed", "updated_at", "is_deleted"):
            if fields is None or name not in fields:
                continue
            value = fields[name]
            if name in ("completed", "is_deleted"):
                value = int(bool(value))
            assignments.append(f"{name} = ?")
            params.append(value)

        params.append(task_id)
        cur = conn.execute(f"UPDATE tasks SET {', '.join(assignments)} WHERE id = ?", params)
        return cur.rowcount
