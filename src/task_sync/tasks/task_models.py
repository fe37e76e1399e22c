# src/task_sync/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

SNAPSHOT_VERSION = 1


class SyncStatus(StrEnum):
    """
    Per-task sync state.

    - pending: at least one queue entry is waiting for the remote authority
    - synced: remote accepted the latest local state, no queue entries left
    - error: an entry hit the retry ceiling; needs /retry or manual inspection
    """

    PENDING = "pending"
    SYNCED = "synced"
    ERROR = "error"

    @classmethod
    def from_db(cls, raw: str | None) -> SyncStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


def ts_to_iso(ts: float) -> str:
    return datetime.fromtimestamp(float(ts), tz=timezone.utc).isoformat()


def ts_from_wire(value: Any) -> float | None:
    """
    Parse a timestamp received from the remote authority.

    Accepts epoch seconds (int/float) or ISO-8601 strings (a trailing "Z" is allowed).
    Naive ISO strings are read as UTC. Returns None for anything unparseable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.timestamp()
    return None


@dataclass(slots=True)
class Task:
    id: str
    title: str
    description: str | None
    completed: bool
    created_at: float
    updated_at: float
    is_deleted: bool
    sync_status: SyncStatus
    server_id: str | None = None
    last_synced_at: float | None = None

    def snapshot(self) -> TaskSnapshot:
        return TaskSnapshot(
            id=self.id,
            title=self.title,
            description=self.description,
            completed=self.completed,
            created_at=self.created_at,
            updated_at=self.updated_at,
            is_deleted=self.is_deleted,
        )


@dataclass(frozen=True, slots=True)
class TaskSnapshot:
    """
    Self-contained copy of a task's fields taken at enqueue time.

    Stored as JSON in the queue with an explicit "v" field; replay never needs to
    re-read the tasks table.
    """

    id: str
    title: str
    description: str | None
    completed: bool
    created_at: float
    updated_at: float
    is_deleted: bool
    version: int = SNAPSHOT_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {
            "v": self.version,
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "completed": self.completed,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "is_deleted": self.is_deleted,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskSnapshot:
        version = data.get("v")
        if version != SNAPSHOT_VERSION:
            raise ValueError(f"Unsupported snapshot version: {version!r}")
        try:
            return cls(
                id=str(data["id"]),
                title=str(data["title"]),
                description=data.get("description"),
                completed=bool(data["completed"]),
                created_at=float(data["created_at"]),
                updated_at=float(data["updated_at"]),
                is_deleted=bool(data["is_deleted"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Malformed task snapshot: {exc}") from exc

    def to_wire(self) -> dict[str, Any]:
        """Wire form: same fields, timestamps as ISO-8601 UTC."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "completed": self.completed,
            "created_at": ts_to_iso(self.created_at),
            "updated_at": ts_to_iso(self.updated_at),
            "is_deleted": self.is_deleted,
        }
