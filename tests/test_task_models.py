# tests/test_task_models.py

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from task_sync.tasks.task_models import SyncStatus, TaskSnapshot, ts_from_wire, ts_to_iso

SNAP = TaskSnapshot(
    id="t-1",
    title="Buy milk",
    description="2 liters",
    completed=True,
    created_at=1_700_000_000.0,
    updated_at=1_700_000_050.5,
    is_deleted=False,
)


def test_snapshot_dict_carries_version() -> None:
    data = SNAP.to_dict()
    assert data["v"] == 1
    assert TaskSnapshot.from_dict(data) == SNAP


@pytest.mark.parametrize("version", [None, 0, 2])
def test_snapshot_rejects_unknown_version(version) -> None:
    data = SNAP.to_dict()
    data["v"] = version
    with pytest.raises(ValueError):
        TaskSnapshot.from_dict(data)


def test_snapshot_rejects_missing_fields() -> None:
    data = SNAP.to_dict()
    del data["title"]
    with pytest.raises(ValueError):
        TaskSnapshot.from_dict(data)


def test_wire_form_uses_iso_timestamps() -> None:
    wire = SNAP.to_wire()
    assert wire["updated_at"] == ts_to_iso(SNAP.updated_at)
    assert wire["updated_at"].endswith("+00:00")
    assert "v" not in wire
    assert ts_from_wire(wire["updated_at"]) == pytest.approx(SNAP.updated_at)


def test_ts_from_wire_variants() -> None:
    expected = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc).timestamp()

    assert ts_from_wire("2024-01-02T03:04:05Z") == expected
    assert ts_from_wire("2024-01-02T03:04:05.000+00:00") == expected
    assert ts_from_wire("2024-01-02T03:04:05") == expected
    assert ts_from_wire(expected) == expected
    assert ts_from_wire(12) == 12.0

    for garbage in (None, "", "yesterday", True, {"t": 1}):
        assert ts_from_wire(garbage) is None


def test_sync_status_from_db() -> None:
    assert SyncStatus.from_db("synced") is SyncStatus.SYNCED
    assert SyncStatus.from_db(None) is SyncStatus.PENDING
    assert SyncStatus.from_db("bogus") is SyncStatus.PENDING
