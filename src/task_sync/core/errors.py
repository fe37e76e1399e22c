# src/task_sync/core/errors.py

"""
Error taxonomy.

- ValidationError / NotFound / Gone: raised synchronously by TaskService, never retried.
- TransportError: network/timeout/protocol failure talking to the remote authority.
- RemoteItemError: the remote authority reported a per-item failure.

TransportError and RemoteItemError never escape SyncService.sync(); they are fed into
per-entry retry bookkeeping.
"""

from __future__ import annotations


class TaskSyncError(Exception):
    """Base class for all task_sync errors."""


class ValidationError(TaskSyncError, ValueError):
    pass


class NotFound(TaskSyncError, LookupError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class Gone(TaskSyncError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task is deleted: {task_id}")
        self.task_id = task_id


class TransportError(TaskSyncError):
    pass


class RemoteItemError(TaskSyncError):
    def __init__(self, task_id: str, message: str) -> None:
        super().__init__(message)
        self.task_id = task_id
