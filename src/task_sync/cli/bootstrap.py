# src/task_sync/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires Database/TaskStore/SyncQueue/TaskService/SyncService into AppState.
"""

from __future__ import annotations

import logging

import httpx

from ..config import get_settings
from ..core.ports import RemoteAuthority
from ..core.state import AppState
from ..storage.database import Database
from ..sync.remote import RemoteClient
from ..sync.sync_queue import SyncQueue
from ..sync.sync_service import SyncService
from ..tasks.task_service import TaskService
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(
    *,
    settings=None,
    remote: RemoteAuthority | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings(). `remote` replaces the HTTP client
    entirely; `transport` keeps RemoteClient but swaps its httpx transport.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    db = Database(settings.db_path)
    store = TaskStore(db)
    queue = SyncQueue(db)

    if remote is None:
        remote = RemoteClient(
            settings.api_base_url,
            health_timeout_seconds=settings.health_timeout_seconds,
            batch_timeout_seconds=settings.batch_timeout_seconds,
            transport=transport,
        )

    sync = SyncService(
        db,
        store,
        queue,
        remote,
        batch_size=settings.batch_size,
        max_retries=settings.max_retries,
    )

    logger.debug("State wired: db=%s remote=%s", settings.db_path, settings.api_base_url)
    return AppState(
        settings=settings,
        db=db,
        store=store,
        queue=queue,
        tasks=TaskService(db, store, queue),
        sync=sync,
    )
