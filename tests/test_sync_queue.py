# tests/test_sync_queue.py

from __future__ import annotations

import json

import pytest

from task_sync.sync.sync_models import Operation
from task_sync.tasks.task_models import TaskSnapshot


def _snap(task_id: str, ts: float) -> TaskSnapshot:
    return TaskSnapshot(
        id=task_id,
        title=f"task {task_id}",
        description=None,
        completed=False,
        created_at=ts,
        updated_at=ts,
        is_deleted=False,
    )


def _enqueue(state, task_id: str, op: Operation, ts: float):
    with state.db.transaction() as conn:
        return state.queue.enqueue(conn, task_id=task_id, operation=op, payload=_snap(task_id, ts), now_ts=ts)


def test_order_is_created_at_then_insertion(state) -> None:
    late = _enqueue(state, "b", Operation.CREATE, 200.0)
    tie_1 = _enqueue(state, "a", Operation.CREATE, 100.0)
    tie_2 = _enqueue(state, "c", Operation.CREATE, 100.0)

    ids = [e.id for e in state.queue.list_entries()]
    assert ids == [tie_1.id, tie_2.id, late.id]
    assert tie_1.seq < tie_2.seq


def test_payload_survives_storage(state) -> None:
    entry = _enqueue(state, "a", Operation.UPDATE, 100.0)
    (stored,) = state.queue.entries_for_task("a")
    assert stored == entry

    with state.db.reader() as conn:
        (raw,) = conn.execute("SELECT data FROM sync_queue WHERE id = ?", (entry.id,)).fetchone()
    assert json.loads(raw)["v"] == 1


def test_prune_up_to_seq_keeps_newer_entries(state) -> None:
    first = _enqueue(state, "a", Operation.CREATE, 100.0)
    second = _enqueue(state, "a", Operation.UPDATE, 101.0)
    _enqueue(state, "b", Operation.CREATE, 102.0)

    with state.db.transaction() as conn:
        assert state.queue.prune_task(conn, "a", up_to_seq=first.seq) == 1
        assert state.queue.count_for_task(conn, "a") == 1

    assert [e.id for e in state.queue.entries_for_task("a")] == [second.id]

    with state.db.transaction() as conn:
        assert state.queue.prune_task(conn, "a") == 1
    assert state.queue.count() == 1


def test_failures_exhaust_and_reset(state) -> None:
    entry = _enqueue(state, "a", Operation.CREATE, 100.0)
    other = _enqueue(state, "b", Operation.CREATE, 101.0)

    with state.db.transaction() as conn:
        counts = [state.queue.record_failure(conn, entry.id, f"attempt {i}") for i in range(3)]
    assert counts == [1, 2, 3]

    (stored,) = state.queue.entries_for_task("a")
    assert stored.error_message == "attempt 2"
    newer = _enqueue(state, "a", Operation.DELETE, 102.0)
    # The exhausted create holds back every entry of its task.
    assert [e.id for e in state.queue.list_dispatchable(max_retries=3)] == [other.id]
    assert state.queue.count_exhausted(max_retries=3) == 1

    with state.db.transaction() as conn:
        assert state.queue.reset_exhausted(conn, max_retries=3, task_id="b") == []
        assert state.queue.reset_exhausted(conn, max_retries=3) == ["a"]

    assert state.queue.count_exhausted(max_retries=3) == 0
    assert [e.id for e in state.queue.list_dispatchable(max_retries=3)] == [entry.id, other.id, newer.id]


def test_failed_transaction_leaves_queue_untouched(state) -> None:
    with pytest.raises(RuntimeError):
        with state.db.transaction() as conn:
            state.queue.enqueue(conn, task_id="a", operation=Operation.CREATE, payload=_snap("a", 1.0))
            raise RuntimeError("boom")
    assert state.queue.count() == 0
