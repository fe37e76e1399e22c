# tests/test_commands.py

from __future__ import annotations

from task_sync.cli.commands import CommandRegistry, registry
from task_sync.tasks.task_models import SyncStatus


def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}

    def h2(state, args):
        called["h2"] += 1
        return "h2"

    def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a")
    reg.register("b", h3, "b", aliases=["bee"])

    notes: list[str] = []
    assert reg.handle(state, "/a x") == "h2"
    assert reg.handle(state, "/BEE y", emit=notes.append) == "h3"
    assert called == {"h2": 1, "h3": 1}
    assert notes == ["note"]


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Empty command" in (reg.handle(state, "/") or "")
    assert "Unknown command" in (reg.handle(state, "/nope") or "")


def test_add_list_and_edit(state) -> None:
    reply = registry.handle(state, "/add Buy milk")
    assert reply is not None and "Buy milk" in reply

    task = state.tasks.list_tasks()[0]
    prefix = task.id[:8]

    listing = registry.handle(state, "/list") or ""
    assert prefix in listing
    assert "pending" in listing

    registry.handle(state, f"/edit {prefix} Buy oat milk")
    registry.handle(state, f"/done {prefix}")
    registry.handle(state, f"/desc {prefix} two cartons")

    stored = state.tasks.get_task(task.id)
    assert stored.title == "Buy oat milk"
    assert stored.completed is True
    assert stored.description == "two cartons"


def test_mutator_errors_become_replies(state) -> None:
    assert registry.handle(state, "/add") == "Invalid input: Title is required"
    assert (registry.handle(state, "/edit deadbeef New") or "").startswith("No such task")

    registry.handle(state, "/add Old idea")
    task_id = state.tasks.list_tasks()[0].id
    registry.handle(state, f"/rm {task_id}")

    reply = registry.handle(state, f"/edit {task_id} Revived") or ""
    assert "deleted" in reply
    assert state.tasks.list_tasks() == []


def test_sync_and_status_commands(state, remote) -> None:
    registry.handle(state, "/add One")
    registry.handle(state, "/add Two")

    status = registry.handle(state, "/status") or ""
    assert "Online: yes" in status
    assert "Queued operations: 2" in status

    emitted: list[str] = []
    reply = registry.handle(state, "/sync", emit=emitted.append) or ""
    assert reply.startswith("Sync OK: synced=2 failed=0")
    assert emitted
    assert all(t.sync_status == SyncStatus.SYNCED for t in state.tasks.list_tasks())

    status = registry.handle(state, "/status") or ""
    assert "Queued operations: 0" in status


def test_sync_offline_and_retry(state, remote) -> None:
    registry.handle(state, "/add Offline task")
    remote.online = False

    reply = registry.handle(state, "/sync") or ""
    assert reply.startswith("Sync FAILED")
    assert "Offline" in reply

    assert registry.handle(state, "/retry") == "Nothing to retry."
