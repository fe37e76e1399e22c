# src/task_sync/sync/sync_models.py

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from ..tasks.task_models import TaskSnapshot, ts_to_iso


class Operation(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class ItemStatus(StrEnum):
    """Per-item outcome reported by the remote authority."""

    SUCCESS = "success"
    CONFLICT = "conflict"
    ERROR = "error"


class SyncPhase(StrEnum):
    IDLE = "idle"
    CHECKING_CONNECTIVITY = "checking_connectivity"
    OFFLINE = "offline"
    DRAINING = "draining"


@dataclass(frozen=True, slots=True)
class QueueEntry:
    id: str
    seq: int
    task_id: str
    operation: Operation
    payload: TaskSnapshot
    created_at: float
    retry_count: int = 0
    error_message: str | None = None

    def to_wire(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "operation": self.operation.value,
            "data": self.payload.to_wire(),
            "created_at": ts_to_iso(self.created_at),
            "retry_count": self.retry_count,
            "error_message": self.error_message,
        }


@dataclass(frozen=True, slots=True)
class ProcessedItem:
    client_id: str
    server_id: str | None
    status: ItemStatus
    resolved_data: dict[str, Any] | None = None
    error: str | None = None

    @classmethod
    def from_wire(cls, raw: Any) -> ProcessedItem:
        """
        Parse one entry of `processed_items`.

        Raises ValueError when the item cannot be matched back (not an object or no
        client_id). An unknown status is kept as ERROR so the entry goes through
        retry bookkeeping instead of being silently dropped.
        """
        if not isinstance(raw, dict):
            raise ValueError(f"processed item is not an object: {raw!r}")
        client_id = raw.get("client_id")
        if not isinstance(client_id, str) or not client_id:
            raise ValueError(f"processed item has no client_id: {raw!r}")

        server_id = raw.get("server_id")
        resolved = raw.get("resolved_data")
        error = raw.get("error")

        try:
            status = ItemStatus(str(raw.get("status")))
        except ValueError:
            status = ItemStatus.ERROR
            error = f"Unknown item status: {raw.get('status')!r}"

        return cls(
            client_id=client_id,
            server_id=str(server_id) if server_id is not None else None,
            status=status,
            resolved_data=resolved if isinstance(resolved, dict) else None,
            error=str(error) if error is not None else None,
        )


@dataclass(frozen=True, slots=True)
class SyncError:
    task_id: str
    operation: str
    error: str
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "operation": self.operation,
            "error": self.error,
            "timestamp": ts_to_iso(self.timestamp),
        }


@dataclass(slots=True)
class SyncResult:
    success: bool = True
    synced_items: int = 0
    failed_items: int = 0
    errors: list[SyncError] = field(default_factory=list)

    def add_failure(self, error: SyncError) -> None:
        self.success = False
        self.failed_items += 1
        self.errors.append(error)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "synced_items": self.synced_items,
            "failed_items": self.failed_items,
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass(frozen=True, slots=True)
class ApplyResult:
    """
    Outcome of recording a confirmed item locally.

    task_found=False means the remote echoed an id we have no row for.
    remaining > 0 means newer local entries survived the prune (task stays pending).
    """

    task_found: bool
    pruned: int
    remaining: int


@dataclass(frozen=True, slots=True)
class SyncStatusReport:
    pending_sync_items: int
    failed_sync_items: int
    last_synced_at: float | None
    online: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "pending_sync_items": self.pending_sync_items,
            "failed_sync_items": self.failed_sync_items,
            "last_synced_at": ts_to_iso(self.last_synced_at) if self.last_synced_at is not None else None,
            "online": self.online,
        }
