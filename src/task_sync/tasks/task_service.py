# src/task_sync/tasks/task_service.py

"""
Task mutator.

Every successful create/update/delete writes the task row and exactly one queue
entry inside a single Database.transaction(); if either write fails, neither is
committed.
"""

from __future__ import annotations

import logging
import sqlite3
import time
import uuid
from typing import Any

from ..core.errors import Gone, NotFound, ValidationError
from ..storage.database import Database
from ..sync.sync_models import Operation
from ..sync.sync_queue import SyncQueue
from .task_models import SyncStatus, Task
from .task_store import TaskStore

logger = logging.getLogger(__name__)

UNSET: Any = object()


def _clean_title(raw: Any) -> str:
    title = "" if raw is None else str(raw).strip()
    if not title:
        raise ValidationError("Title is required")
    return title


class TaskService:
    def __init__(self, db: Database, store: TaskStore, queue: SyncQueue) -> None:
        self._db = db
        self._store = store
        self._queue = queue

    @staticmethod
    def _next_updated_at(task: Task) -> float:
        # Wall clock may step backwards; updated_at must not.
        return max(time.time(), task.updated_at)

    def _load_mutable(self, conn: sqlite3.Connection, task_id: str) -> Task:
        task = self._store.get_task(task_id, conn)
        if task is None:
            raise NotFound(task_id)
        if task.is_deleted:
            raise Gone(task_id)
        return task

    def create_task(
        self,
        title: str,
        description: str | None = None,
        completed: bool = False,
    ) -> Task:
        clean = _clean_title(title)
        now = time.time()
        task = Task(
            id=str(uuid.uuid4()),
            title=clean,
            description=description,
            completed=bool(completed),
            created_at=now,
            updated_at=now,
            is_deleted=False,
            sync_status=SyncStatus.PENDING,
        )

        with self._db.transaction() as conn:
            self._store.insert_task(conn, task)
            self._queue.enqueue(
                conn,
                task_id=task.id,
                operation=Operation.CREATE,
                payload=task.snapshot(),
                now_ts=task.updated_at,
            )

        logger.info("Task created id=%s", task.id)
        return task

    def update_task(
        self,
        task_id: str,
        *,
        title: Any = UNSET,
        description: Any = UNSET,
        completed: Any = UNSET,
    ) -> Task:
        """
        Apply only the fields that were passed; UNSET means "leave unchanged".
        Passing description=None clears the description.
        """
        clean_title = None if title is UNSET else _clean_title(title)

        with self._db.transaction() as conn:
            task = self._load_mutable(conn, task_id)

            if clean_title is not None:
                task.title = clean_title
            if description is not UNSET:
                task.description = description
            if completed is not UNSET:
                task.completed = bool(completed)

            task.updated_at = self._next_updated_at(task)
            task.sync_status = SyncStatus.PENDING

            self._store.save_local_change(conn, task)
            self._queue.enqueue(
                conn,
                task_id=task.id,
                operation=Operation.UPDATE,
                payload=task.snapshot(),
                now_ts=task.updated_at,
            )

        logger.info("Task updated id=%s", task_id)
        return task

    def delete_task(self, task_id: str) -> Task:
        """Soft delete: the row stays, further mutations raise Gone."""
        with self._db.transaction() as conn:
            task = self._load_mutable(conn, task_id)

            task.is_deleted = True
            task.updated_at = self._next_updated_at(task)
            task.sync_status = SyncStatus.PENDING

            self._store.save_local_change(conn, task)
            self._queue.enqueue(
                conn,
                task_id=task.id,
                operation=Operation.DELETE,
                payload=task.snapshot(),
                now_ts=task.updated_at,
            )

        logger.info("Task deleted id=%s", task_id)
        return task

    # ---- queries ----

    def get_task(self, task_id: str) -> Task | None:
        """Live task by id; soft-deleted tasks read as missing."""
        task = self._store.get_task(task_id)
        if task is None or task.is_deleted:
            return None
        return task

    def list_tasks(self) -> list[Task]:
        return self._store.list_tasks()

    def list_tasks_needing_sync(self) -> list[Task]:
        return self._store.list_tasks_needing_sync()
