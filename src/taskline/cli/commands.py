# src/taskline/cli/commands.py

from __future__ import annotations

import inspect
import logging
import shlex
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any, cast

from ..core.state import AppState
from ..tasks.task_api import quick_draft, submit_new_task, submit_task_edit
from ..tasks.task_grouping import CalendarUnit
from ..tasks.task_models import (
    ALL,
    SmartList,
    SortKey,
    SortOrder,
    SortSpec,
    SubTask,
    Task,
    TaskPriority,
    TaskStatus,
    TaskValidationError,
)

CommandEmitter = Callable[[str], None]
CommandResult = str | Awaitable[str]
CommandHandler2 = Callable[[AppState, list[str]], CommandResult]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], CommandResult]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /add, ...)."""

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

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        Arguments are split shell-style, so "quoted titles" stay in one piece.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError:
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
        except Exception:
            nparams = 3

        try:
            if nparams >= 3:
                result = cast(CommandHandler3, handler)(state, args, emit)
            else:
                result = cast(CommandHandler2, handler)(state, args)
            if inspect.isawaitable(result):
                return await result
            return result
        except TaskValidationError as e:
            return f"Rejected: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def format_task(task: Task) -> str:
    subs = ""
    if task.sub_tasks:
        done = sum(1 for s in task.sub_tasks if s.completed)
        subs = f" [{done}/{len(task.sub_tasks)} sub-tasks]"
    return (
        f"{task.id}  {task.status.value:<11} {task.priority.value:<6} "
        f"{task.start_date} -> {task.due_date}  {task.title}{subs}"
    )


def _split_flags(args: list[str]) -> tuple[list[str], dict[str, str]]:
    """Separate --key=value / --flag arguments from positional ones."""
    positional: list[str] = []
    flags: dict[str, str] = {}
    for arg in args:
        if arg.startswith("--"):
            key, _, value = arg[2:].partition("=")
            flags[key.lower()] = value
        else:
            positional.append(arg)
    return positional, flags


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    store = state.store
    view = store.view
    flt = view.filter
    return (
        "Status:\n"
        f"  Mode: {store.mode}\n"
        f"  Tasks: {len(store.tasks)} (visible: {len(store.visible_tasks())})\n"
        f"  View: {view.active_view.value}\n"
        f"  Filter: status={flt.status} priority={flt.priority} search={flt.search!r}\n"
        f"  Sort: {view.sort.by.value} {view.sort.order.value}"
    )


async def cmd_add(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /add <start> <minutes> <title...> [--priority=HIGH] [--force]
    """
    positional, flags = _split_flags(args)
    if len(positional) < 3:
        return "Usage: /add <YYYY-MM-DDTHH:mm> <minutes> <title> [--priority=LOW|MEDIUM|HIGH|URGENT] [--force]"

    start, minutes_raw, *title_parts = positional
    try:
        minutes = int(minutes_raw)
    except ValueError:
        return f"Duration must be a number of minutes, got {minutes_raw!r}."

    try:
        priority = TaskPriority(flags.get("priority", "MEDIUM").upper())
    except ValueError:
        return f"Unknown priority: {flags.get('priority')!r}."

    draft = quick_draft(" ".join(title_parts), start=start, duration_minutes=minutes, priority=priority)
    result = await submit_new_task(state.store, draft, force="force" in flags)

    if result.conflict is not None and not result.saved:
        return f"Conflict: {result.conflict.message}\nUse --force to save anyway."
    if result.task is None:
        return "Could not create the task (remote error, see log)."
    note = f"\n(saved despite conflict: {result.conflict.message})" if result.conflict else ""
    return f"Added: {format_task(result.task)}{note}"


_EDIT_KEYS = {
    "title": "title",
    "description": "description",
    "priority": "priority",
    "start": "start_date",
    "due": "due_date",
    "tags": "tags",
}


async def cmd_edit(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /edit <id> field=value ... [--force]
    Fields: title, description, priority, start, due, tags (comma-separated).
    """
    positional, flags = _split_flags(args)
    if len(positional) < 2:
        return "Usage: /edit <id> title=... start=... due=... priority=... tags=a,b [--force]"

    task_id, *pairs = positional
    changes: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        field = _EDIT_KEYS.get(key.lower())
        if not sep or field is None:
            return f"Unknown field: {key!r}. Editable: {', '.join(_EDIT_KEYS)}."
        if field == "tags":
            changes[field] = [t.strip() for t in value.split(",") if t.strip()]
        else:
            changes[field] = value

    if state.store.get_task(task_id) is None:
        return f"No task with id {task_id}."

    result = await submit_task_edit(state.store, task_id, changes, force="force" in flags)
    if result.conflict is not None and not result.saved:
        return f"Conflict: {result.conflict.message}\nUse --force to save anyway."
    if result.task is None:
        return f"Task {task_id} is gone."
    return f"Updated: {format_task(result.task)}"


async def _toggle(state: AppState, args: list[str], completed: bool) -> str:
    if not args:
        return "Usage: /done <id> or /undo <id>"
    task = await state.store.toggle_completed(args[0], completed)
    if task is None:
        return f"No task with id {args[0]}."
    return f"{task.status.value}: {task.title}"


async def cmd_done(state: AppState, args: list[str]) -> str:
    return await _toggle(state, args, True)


async def cmd_undo(state: AppState, args: list[str]) -> str:
    return await _toggle(state, args, False)


async def cmd_rm(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /rm <id>"
    removed = await state.store.delete_task(args[0])
    return f"Deleted {args[0]}." if removed else f"No task with id {args[0]}."


async def cmd_sub(state: AppState, args: list[str]) -> str:
    """
    /sub add <id> <title...>
    /sub toggle <id> <n>      (n is 1-based)
    """
    if len(args) < 3 or args[0].lower() not in ("add", "toggle"):
        return "Usage: /sub add <id> <title> | /sub toggle <id> <n>"

    action, task_id, *rest = args
    task = state.store.get_task(task_id)
    if task is None:
        return f"No task with id {task_id}."

    subs = list(task.sub_tasks)
    if action.lower() == "add":
        subs.append(
            SubTask(id="", title=" ".join(rest), start_time=task.start_date, end_time=task.due_date)
        )
    else:
        try:
            idx = int(rest[0]) - 1
        except ValueError:
            return f"Sub-task number must be an integer, got {rest[0]!r}."
        if not 0 <= idx < len(subs):
            return f"Task {task_id} has no sub-task #{rest[0]}."
        subs[idx] = replace(subs[idx], completed=not subs[idx].completed)

    updated = await state.store.update_task(task_id, {"sub_tasks": subs})
    if updated is None:
        return f"Task {task_id} is gone."
    return f"Updated: {format_task(updated)}"


def cmd_list(state: AppState, args: list[str]) -> str:
    groups = state.store.timeline()
    sections = groups.non_empty()
    if not sections:
        return "No tasks."
    lines: list[str] = []
    for name, tasks in sections:
        lines.append(f"{name} ({len(tasks)})")
        lines.extend(f"  {format_task(t)}" for t in tasks)
    return "\n".join(lines)


def cmd_stats(state: AppState, args: list[str]) -> str:
    unit_raw = (args[0] if args else "month").lower()
    try:
        unit = CalendarUnit(unit_raw)
    except ValueError:
        return "Usage: /stats day|week|month"
    buckets = state.store.calendar_buckets(unit)
    if not buckets:
        return "No open tasks with a due date."
    lines = [f"Open tasks by {unit.value}:"]
    for b in buckets:
        lines.append(f"  {b.label}: {len(b.tasks)}")
    return "\n".join(lines)


def cmd_trend(state: AppState, args: list[str]) -> str:
    summary = state.store.completion_summary()
    lines = [
        f"Completed: this week {summary.this_week}, this month {summary.this_month}, "
        f"total {summary.total}",
    ]
    for window in state.store.completion_trend():
        lines.append(f"  {window.label:>5} {'#' * window.count} {window.count}")
    return "\n".join(lines)


def cmd_filter(state: AppState, args: list[str]) -> str:
    """
    /filter status=TODO priority=HIGH search=report
    /filter clear
    """
    if args and args[0].lower() == "clear":
        state.store.set_filter(status=ALL, priority=ALL, search="")
        return "Filter cleared."

    changes: dict[str, Any] = {}
    for pair in args:
        key, sep, value = pair.partition("=")
        key = key.lower()
        if not sep:
            return "Usage: /filter status=... priority=... search=... | /filter clear"
        if key == "status":
            upper = value.upper()
            if upper != ALL and upper not in TaskStatus.__members__:
                return f"Unknown status: {value!r}."
            changes["status"] = upper if upper == ALL else TaskStatus(upper)
        elif key == "priority":
            upper = value.upper()
            if upper != ALL and upper not in TaskPriority.__members__:
                return f"Unknown priority: {value!r}."
            changes["priority"] = upper if upper == ALL else TaskPriority(upper)
        elif key == "search":
            changes["search"] = value
        else:
            return f"Unknown filter key: {key!r}."

    flt = state.store.set_filter(**changes)
    return f"Filter: status={flt.status} priority={flt.priority} search={flt.search!r}"


def cmd_sort(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /sort dueDate|priority|createdAt [asc|desc]"
    by = next((k for k in SortKey if k.value.lower() == args[0].lower()), None)
    if by is None:
        return f"Unknown sort key: {args[0]!r}."
    order_raw = (args[1] if len(args) > 1 else "asc").lower()
    try:
        order = SortOrder(order_raw)
    except ValueError:
        return f"Unknown sort order: {order_raw!r}."
    state.store.set_sort(SortSpec(by=by, order=order))
    return f"Sorted by {by.value} {order.value}."


def cmd_view(state: AppState, args: list[str]) -> str:
    if not args:
        return f"Current view: {state.store.view.active_view.value}. Use /view ALL|TODAY|UPCOMING."
    try:
        view = SmartList(args[0].upper())
    except ValueError:
        return "Usage: /view ALL|TODAY|UPCOMING"
    state.store.set_active_view(view)
    return f"View: {view.value}"


def cmd_login(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /login <token>"
    state.identity.login(args[0])
    return "Logged in. Loading tasks from the server..."


def cmd_logout(state: AppState, args: list[str]) -> str:
    if state.identity.is_guest:
        return "Already in guest mode."
    state.identity.logout()
    return "Logged out. Guest tasks restored."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show mode, counts, filter and view.")
registry.register("add", cmd_add, help_text="Add a task: /add <start> <minutes> <title> [--priority=..] [--force].")
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <id> field=value ... [--force].")
registry.register("done", cmd_done, help_text="Mark a task completed: /done <id>.")
registry.register("undo", cmd_undo, help_text="Mark a task not completed: /undo <id>.")
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <id>.", aliases=["del"])
registry.register("sub", cmd_sub, help_text="Sub-tasks: /sub add <id> <title> | /sub toggle <id> <n>.")
registry.register("list", cmd_list, help_text="Show the timeline of visible tasks.", aliases=["ls"])
registry.register("stats", cmd_stats, help_text="Open tasks by due date: /stats day|week|month.")
registry.register("trend", cmd_trend, help_text="Completed tasks per week.")
registry.register("filter", cmd_filter, help_text="Filter: /filter status=.. priority=.. search=.. | clear.")
registry.register("sort", cmd_sort, help_text="Sort: /sort dueDate|priority|createdAt [asc|desc].")
registry.register("view", cmd_view, help_text="Smart list: /view ALL|TODAY|UPCOMING.")
registry.register("login", cmd_login, help_text="Switch to remote mode: /login <token>.")
registry.register("logout", cmd_logout, help_text="Back to guest mode.")
