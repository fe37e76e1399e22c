# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from task_sync.cli.bootstrap import create_initial_state
from task_sync.core.state import AppState

from .fakes import FakeRemoteAuthority


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with create_initial_state().

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="task-sync-test",
        log_level="DEBUG",
        console_enabled=False,
        data_dir=tmp_path,
        db_path=tmp_path / "tasks.sqlite3",
        api_base_url="http://remote.test/api",
        health_timeout_seconds=5.0,
        batch_timeout_seconds=20.0,
        batch_size=50,
        max_retries=3,
        sync_interval_seconds=0.0,
    )


@pytest.fixture()
def remote() -> FakeRemoteAuthority:
    return FakeRemoteAuthority()


@pytest.fixture()
def state(settings: SimpleNamespace, remote: FakeRemoteAuthority) -> AppState:
    """
    AppState wired with the fake remote authority.

    NOTE: the SQLite stores are real; their transactional behavior is part of
    what we want to test.
    """
    return create_initial_state(settings=settings, transport=remote.transport())
