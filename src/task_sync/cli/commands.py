# src/task_sync/cli/commands.py

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Callable
from datetime import datetime
from typing import cast

from ..core.errors import Gone, NotFound, TaskSyncError, ValidationError
from ..core.state import AppState
from ..tasks.task_models import SyncStatus, Task

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, /sync, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Mutator errors (validation, unknown id, deleted task) become reply text.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)

            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except ValidationError as exc:
            return f"Invalid input: {exc}"
        except NotFound as exc:
            return f"No such task: {exc.task_id}"
        except Gone as exc:
            return f"Task {exc.task_id} is deleted and can no longer be changed."
        except TaskSyncError as exc:
            logger.exception("Command /%s failed", name)
            return f"Command failed: {exc}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _ts_local(ts: float | None) -> str:
    if ts is None:
        return "never"
    return datetime.fromtimestamp(ts).astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _resolve_id(state: AppState, raw: str) -> str:
    """Accept a full id or a unique prefix of one."""
    matches = state.store.find_task_ids(raw)
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        raise ValidationError(f"Ambiguous id prefix: {raw}")
    raise NotFound(raw)


def _format_task(task: Task) -> str:
    mark = "x" if task.completed else " "
    line = f"[{mark}] {task.id[:8]}  {task.title}  ({task.sync_status.value})"
    if task.description:
        line += f"\n      {task.description}"
    return line


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_add(state: AppState, args: list[str]) -> str:
    task = state.tasks.create_task(" ".join(args))
    return f"Created {task.id[:8]}: {task.title}"


def cmd_list(state: AppState, args: list[str]) -> str:
    tasks = state.tasks.list_tasks()
    if not tasks:
        return "No tasks."
    return "\n".join(_format_task(t) for t in tasks)


def cmd_show(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /show <id>"
    task = state.tasks.get_task(_resolve_id(state, args[0]))
    if task is None:
        return f"Task {args[0]} is deleted."
    return (
        f"{_format_task(task)}\n"
        f"  id: {task.id}\n"
        f"  server_id: {task.server_id or '-'}\n"
        f"  updated: {_ts_local(task.updated_at)}\n"
        f"  last synced: {_ts_local(task.last_synced_at)}"
    )


def cmd_edit(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /edit <id> <new title>"
    task = state.tasks.update_task(_resolve_id(state, args[0]), title=" ".join(args[1:]))
    return f"Updated {task.id[:8]}: {task.title}"


def cmd_desc(state: AppState, args: list[str]) -> str:
    """
    /desc <id> <text>  -> set description
    /desc <id>         -> clear description
    """
    if not args:
        return "Usage: /desc <id> [text]"
    text = " ".join(args[1:]).strip() or None
    task = state.tasks.update_task(_resolve_id(state, args[0]), description=text)
    return f"Description {'set' if text else 'cleared'} for {task.id[:8]}."


def _set_completed(state: AppState, args: list[str], completed: bool) -> str:
    if not args:
        return f"Usage: /{'done' if completed else 'undone'} <id>"
    task = state.tasks.update_task(_resolve_id(state, args[0]), completed=completed)
    return f"{task.id[:8]} marked {'done' if completed else 'not done'}."


def cmd_done(state: AppState, args: list[str]) -> str:
    return _set_completed(state, args, True)


def cmd_undone(state: AppState, args: list[str]) -> str:
    return _set_completed(state, args, False)


def cmd_rm(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /rm <id>"
    task = state.tasks.delete_task(_resolve_id(state, args[0]))
    return f"Deleted {task.id[:8]}."


def cmd_sync(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if emit:
        with contextlib.suppress(Exception):
            emit("[SYNC] Contacting remote...")

    result = asyncio.run(state.sync.sync())

    lines = [
        f"Sync {'OK' if result.success else 'FAILED'}: "
        f"synced={result.synced_items} failed={result.failed_items}"
    ]
    for err in result.errors[:10]:
        who = err.task_id[:8] if err.task_id else "-"
        lines.append(f"  {who} {err.operation}: {err.error}")
    if len(result.errors) > 10:
        lines.append(f"  ... and {len(result.errors) - 10} more")
    return "\n".join(lines)


def cmd_status(state: AppState, args: list[str]) -> str:
    report = asyncio.run(state.sync.get_status())
    needing = state.tasks.list_tasks_needing_sync()
    errored = sum(1 for t in needing if t.sync_status == SyncStatus.ERROR)
    return (
        "Sync status:\n"
        f"  Online: {'yes' if report.online else 'no'}\n"
        f"  Queued operations: {report.pending_sync_items}\n"
        f"  Tasks needing sync: {len(needing)} ({errored} in error)\n"
        f"  Last synced: {_ts_local(report.last_synced_at)}"
    )


def cmd_retry(state: AppState, args: list[str]) -> str:
    """
    /retry       -> reset every task stuck in error
    /retry <id>  -> reset one task
    """
    task_id = _resolve_id(state, args[0]) if args else None
    n = state.sync.reset_failed(task_id)
    if n == 0:
        return "Nothing to retry."
    return f"{n} task(s) will be retried on the next /sync."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("add", cmd_add, help_text="Create a task: /add <title>.", aliases=["new"])
registry.register("list", cmd_list, help_text="List tasks.", aliases=["ls"])
registry.register("show", cmd_show, help_text="Show one task: /show <id>.")
registry.register("edit", cmd_edit, help_text="Rename a task: /edit <id> <title>.")
registry.register("desc", cmd_desc, help_text="Set/clear description: /desc <id> [text].")
registry.register("done", cmd_done, help_text="Mark completed: /done <id>.")
registry.register("undone", cmd_undone, help_text="Mark not completed: /undone <id>.")
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <id>.", aliases=["del"])
registry.register("sync", cmd_sync, help_text="Push queued changes to the remote now.")
registry.register("status", cmd_status, help_text="Show sync status (online/queue/last sync).")
registry.register("retry", cmd_retry, help_text="Retry failed tasks: /retry [id].")
