# src/task_sync/sync/conflict.py

"""
Last-write-wins by updated_at.

The client never re-resolves conflicts: it applies the remote authority's
resolved_data verbatim. This rule is what the authority (and our test doubles)
must use to pick that data.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..tasks.task_models import TaskSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ConflictResolution:
    winner: TaskSnapshot
    remote_wins: bool


def remote_wins(local_updated_at: float, remote_updated_at: float) -> bool:
    # Ties go to the remote.
    return remote_updated_at >= local_updated_at


def resolve_conflict(local: TaskSnapshot, remote: TaskSnapshot) -> ConflictResolution:
    wins = remote_wins(local.updated_at, remote.updated_at)
    winner = remote if wins else local
    logger.info(
        "Conflict task=%s local.updated_at=%s remote.updated_at=%s -> %s",
        local.id,
        local.updated_at,
        remote.updated_at,
        "remote" if wins else "local",
    )
    return ConflictResolution(winner=winner, remote_wins=wins)
