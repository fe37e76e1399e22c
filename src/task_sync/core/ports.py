# src/task_sync/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the sync engine.

SyncService depends on a Protocol instead of the concrete httpx client, so tests
and alternative transports can stand in for the remote authority.
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..sync.sync_models import ProcessedItem, QueueEntry


class RemoteAuthority(Protocol):
    """Server-side batch acceptor. Both calls raise TransportError on failure."""

    async def health(self) -> None: ...

    async def post_batch(self, entries: Sequence[QueueEntry]) -> list[ProcessedItem]: ...
