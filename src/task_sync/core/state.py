# src/task_sync/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from ..storage.database import Database
from ..sync.sync_queue import SyncQueue
from ..sync.sync_service import SyncService
from ..tasks.task_service import TaskService
from ..tasks.task_store import TaskStore


@dataclass
class AppState:
    # Settings object (Settings or a test stand-in with the same attributes).
    settings: Any

    db: Database
    store: TaskStore
    queue: SyncQueue
    tasks: TaskService
    sync: SyncService

    # Serializes console commands against each other.
    lock: threading.Lock = field(default_factory=threading.Lock)
