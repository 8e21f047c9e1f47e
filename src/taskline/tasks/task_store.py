# src/taskline/tasks/task_store.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import uuid
from collections.abc import Callable, Iterable, Mapping
from dataclasses import replace
from datetime import datetime
from typing import Any

from ..core.ports import IdentityProvider, KeyValueStore, RemoteTaskApi
from .task_codec import decode_sub_task, decode_task, encode_for_api, encode_record
from .task_conflicts import ConflictCandidate, ConflictResult, find_conflict
from .task_grouping import (
    DEFAULT_TREND_WEEKS,
    CalendarBucket,
    CalendarUnit,
    CompletionSummary,
    TimelineGroups,
    TrendWindow,
    bucket_by_unit,
    calendar_candidates,
    completion_summary,
    completion_trend,
    group_for_timeline,
    select_visible,
)
from .task_models import (
    LOCAL_ID_PREFIX,
    SmartList,
    SortSpec,
    SubTask,
    Task,
    TaskDraft,
    TaskFilter,
    TaskId,
    TaskPriority,
    TaskStatus,
    TaskValidationError,
    ViewState,
)
from .task_scheduler import run_status_sweep
from .task_seed import build_guest_seed
from .task_status import all_sub_tasks_completed, apply_derived_fields, derive_status, infer_duration_type
from .task_time import normalize_date_value, parse_date_value

logger = logging.getLogger(__name__)

GUEST_TASKS_KEY = "tasks"

# Fields a caller may change through update_task(). status / duration_type are
# derived; the only way to set status is toggle_completed().
EDITABLE_FIELDS = frozenset(
    {"title", "description", "priority", "start_date", "due_date", "sub_tasks", "tags"}
)

StoreListener = Callable[[], None]


def validate_task_fields(title: str, start_date: object, due_date: object) -> None:
    if not (title or "").strip():
        raise TaskValidationError("Title is required.")
    start = parse_date_value(start_date)
    due = parse_date_value(due_date)
    if start is None:
        raise TaskValidationError(f"Start date is not a valid date-time: {start_date!r}")
    if due is None:
        raise TaskValidationError(f"Due date is not a valid date-time: {due_date!r}")
    if due <= start:
        raise TaskValidationError("Due date must be after the start date.")


def coerce_priority(value: object) -> TaskPriority:
    try:
        return TaskPriority(str(value).strip().upper())
    except ValueError:
        raise TaskValidationError(f"Unknown priority: {value!r}") from None


def new_local_id() -> TaskId:
    return TaskId(f"{LOCAL_ID_PREFIX}{uuid.uuid4().hex[:9]}")


def normalize_sub_tasks(items: Iterable[SubTask | Mapping[str, Any]]) -> tuple[SubTask, ...]:
    """Canonical sub-task times and ids unique within the parent."""
    out: list[SubTask] = []
    seen: set[str] = set()
    for i, item in enumerate(items):
        sub = item if isinstance(item, SubTask) else decode_sub_task(item, i)
        sub_id = (sub.id or "").strip()
        if not sub_id or sub_id in seen:
            n = i + 1
            while f"sub-{n}" in seen:
                n += 1
            sub_id = f"sub-{n}"
        seen.add(sub_id)
        out.append(
            replace(
                sub,
                id=sub_id,
                start_time=normalize_date_value(sub.start_time),
                end_time=normalize_date_value(sub.end_time),
            )
        )
    return tuple(out)


def normalize_task(task: Task, now: datetime) -> Task:
    """Canonical dates everywhere, then recompute status and duration type."""
    task = replace(
        task,
        start_date=normalize_date_value(task.start_date),
        due_date=normalize_date_value(task.due_date),
        sub_tasks=normalize_sub_tasks(task.sub_tasks),
    )
    return apply_derived_fields(task, now)


def merge_sub_task_completion(server: Iterable[SubTask], submitted: Iterable[SubTask]) -> tuple[SubTask, ...]:
    """
    Take the server's sub-tasks but keep the completion flags the client sent.

    Matching is by id, falling back to position when the server re-assigned ids.
    """
    submitted = tuple(submitted)
    by_id = {s.id: s for s in submitted}
    out: list[SubTask] = []
    for i, sub in enumerate(server):
        client = by_id.get(sub.id)
        if client is None and i < len(submitted):
            client = submitted[i]
        out.append(replace(sub, completed=client.completed) if client is not None else sub)
    return tuple(out)


class TaskStore:
    """
    Owner of the task collection.

    Two modes, selected by the identity provider:
    - guest:  no token; tasks live in memory and in a local key-value store
    - remote: bearer token; tasks come from and are written to the remote API

    Collection writes always read the current tuple, build the next one and
    replace it in one step, so a remote response that lands later only touches
    the task it concerns.

    Failure semantics:
    - create: not optimistic; a failed create leaves the collection unchanged
    - update: optimistic; the local merge stays even if the remote call fails
    - delete: optimistic; the local removal is never reverted
    - load:   a failed fetch clears the collection
    Remote failures are logged, never raised to the caller.
    """

    def __init__(
        self,
        *,
        identity: IdentityProvider,
        api: RemoteTaskApi | None = None,
        local: KeyValueStore | None = None,
        clock: Callable[[], datetime] | None = None,
        sweep_interval_seconds: float = 30.0,
        trend_weeks: int = DEFAULT_TREND_WEEKS,
    ) -> None:
        self._identity = identity
        self._api = api
        self._local = local
        self._clock = clock or datetime.now
        self._sweep_interval = float(sweep_interval_seconds)
        self._trend_weeks = int(trend_weeks)

        self._tasks: tuple[Task, ...] = ()
        self._view = ViewState()
        self._listeners: list[StoreListener] = []

        # Bumped on every reload; responses started under an older generation
        # belong to a previous identity and are dropped.
        self._generation = 0
        self._guest = True
        self._loaded_token: str | None = None
        # Bumped on every local write of a task; a reconciliation is applied
        # only if no newer local write happened meanwhile.
        self._revisions: dict[str, int] = {}

        self._sweep_task: asyncio.Task[None] | None = None
        self._background: set[asyncio.Task[Any]] = set()
        self._unsubscribe_identity: Callable[[], None] | None = None

    # ---- lifecycle ----

    async def start(self) -> None:
        """Load the collection, follow identity changes, start the status sweep."""
        if self._unsubscribe_identity is None:
            self._unsubscribe_identity = self._identity.subscribe(self._on_identity_change)
        await self.reload()
        if self._sweep_task is None:
            self._sweep_task = asyncio.create_task(
                run_status_sweep(self, interval_seconds=self._sweep_interval),
                name="taskline-status-sweep",
            )
        logger.info("TaskStore started mode=%s tasks=%d", self.mode, len(self._tasks))

    async def aclose(self) -> None:
        if self._unsubscribe_identity is not None:
            self._unsubscribe_identity()
            self._unsubscribe_identity = None

        pending = list(self._background)
        if self._sweep_task is not None:
            pending.append(self._sweep_task)
            self._sweep_task = None
        for task in pending:
            task.cancel()
        for task in pending:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._background.clear()
        logger.info("TaskStore closed")

    def _spawn(self, coro: Any) -> None:
        try:
            task = asyncio.get_running_loop().create_task(coro)
        except RuntimeError:
            coro.close()
            logger.warning("No running event loop; background work skipped")
            return
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _on_identity_change(self, token: str | None) -> None:
        logger.info("Identity change -> reloading tasks (%s)", "remote" if token else "guest")
        self._spawn(self.reload())

    # ---- read side ----

    @property
    def mode(self) -> str:
        return "guest" if self._guest else "remote"

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks)

    @property
    def view(self) -> ViewState:
        return self._view

    def get_task(self, task_id: str) -> Task | None:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def now(self) -> datetime:
        return self._clock()

    def add_listener(self, listener: StoreListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def visible_tasks(self) -> list[Task]:
        return select_visible(self._tasks, self._view, self.now())

    def timeline(self) -> TimelineGroups:
        return group_for_timeline(self.visible_tasks(), self.now())

    def calendar_buckets(self, unit: CalendarUnit | str) -> list[CalendarBucket]:
        return bucket_by_unit(calendar_candidates(self._tasks, self._view.filter), unit)

    def completion_trend(self, weeks: int | None = None) -> list[TrendWindow]:
        return completion_trend(self._tasks, self.now(), weeks=weeks or self._trend_weeks)

    def completion_summary(self) -> CompletionSummary:
        return completion_summary(self._tasks, self.now())

    def find_conflict(
        self, start_date: object, due_date: object, exclude_id: str | None = None
    ) -> ConflictResult | None:
        candidate = ConflictCandidate(start_date=start_date, due_date=due_date, exclude_id=exclude_id)
        return find_conflict(candidate, self._tasks)

    # ---- view setters (no derivation side effects) ----

    def set_filter(
        self,
        *,
        status: TaskStatus | str | None = None,
        priority: TaskPriority | str | None = None,
        search: str | None = None,
    ) -> TaskFilter:
        changes: dict[str, Any] = {}
        if status is not None:
            changes["status"] = status
        if priority is not None:
            changes["priority"] = priority
        if search is not None:
            changes["search"] = search
        self._view.filter = replace(self._view.filter, **changes)
        self._notify()
        return self._view.filter

    def set_sort(self, spec: SortSpec) -> None:
        self._view.sort = spec
        self._notify()

    def set_active_view(self, view: SmartList | str) -> None:
        self._view.active_view = SmartList(view)
        self._notify()

    # ---- collection plumbing ----

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Store listener failed")

    def _replace(self, tasks: Iterable[Task]) -> None:
        self._tasks = tuple(tasks)
        if self._guest:
            self._persist_guest()
        self._notify()

    def _put(self, task: Task) -> bool:
        """Replace the task with the same id in place. False if it is gone."""
        current = self._tasks
        for i, existing in enumerate(current):
            if existing.id == task.id:
                self._replace(current[:i] + (task,) + current[i + 1 :])
                return True
        return False

    def _bump_revision(self, task_id: str) -> int:
        rev = self._revisions.get(task_id, 0) + 1
        self._revisions[task_id] = rev
        return rev

    def _persist_guest(self) -> None:
        if self._local is None:
            return
        try:
            self._local.set(GUEST_TASKS_KEY, [encode_record(t) for t in self._tasks])
        except Exception:
            logger.exception("Failed to persist guest tasks")

    def _load_guest(self, now: datetime) -> list[Task]:
        records: Any = None
        if self._local is not None:
            try:
                records = self._local.get(GUEST_TASKS_KEY)
            except Exception:
                logger.exception("Failed to read guest tasks")
        if not isinstance(records, list):
            return [normalize_task(t, now) for t in build_guest_seed(now)]
        tasks = [decode_task(r) for r in records]
        return [normalize_task(t, now) for t in tasks if t is not None]

    def _remote(self) -> tuple[RemoteTaskApi, str] | None:
        """(api, token) when writes should go to the remote API."""
        token = self._identity.token
        if self._guest or self._api is None or token is None:
            return None
        return self._api, token

    # ---- load ----

    async def reload(self) -> None:
        """
        Rebuild the collection for the current identity.

        - token + API: fetch and normalize every task; failure clears the list
        - guest: load persisted guest tasks or the demo seed; coming from a
          remote session the guest set is reseeded
        """
        self._generation += 1
        generation = self._generation
        token = self._identity.token
        now = self.now()
        self._revisions.clear()

        if token is None or self._api is None:
            was_remote = not self._guest
            self._guest = True
            self._loaded_token = None
            if was_remote:
                tasks = [normalize_task(t, now) for t in build_guest_seed(now)]
                logger.info("Switched to guest mode; reseeded %d demo tasks", len(tasks))
            else:
                tasks = self._load_guest(now)
                logger.info("Loaded %d guest tasks", len(tasks))
            self._replace(tasks)
            return

        self._guest = False
        if token != self._loaded_token:
            # Never show the previous identity's tasks while the fetch runs.
            self._replace(())
        self._loaded_token = token

        try:
            raw = await self._api.list_tasks(token)
        except Exception:
            logger.exception("Failed to fetch tasks; clearing the list")
            if generation == self._generation:
                self._replace(())
            return

        if generation != self._generation:
            logger.info("Discarding task list for a stale identity")
            return

        now = self.now()
        tasks = [normalize_task(t, now) for t in (decode_task(r) for r in raw) if t is not None]
        self._replace(tasks)
        logger.info("Loaded %d remote tasks", len(tasks))

    # ---- mutations ----

    async def add_task(self, draft: TaskDraft) -> Task | None:
        """
        Create a task and prepend it to the collection.

        Remote mode inserts only the server-confirmed entity; on failure the
        collection is unchanged and None is returned.
        """
        validate_task_fields(draft.title, draft.start_date, draft.due_date)

        now = self.now()
        task = normalize_task(
            Task(
                id=new_local_id(),
                title=draft.title.strip(),
                description=draft.description or "",
                priority=coerce_priority(draft.priority),
                status=TaskStatus.TODO,
                start_date=normalize_date_value(draft.start_date),
                due_date=normalize_date_value(draft.due_date),
                sub_tasks=tuple(draft.sub_tasks),
                tags=tuple(draft.tags),
                created_at=now,
                updated_at=now,
            ),
            now,
        )

        remote = self._remote()
        if remote is None:
            self._replace((task,) + self._tasks)
            logger.debug("Task added id=%s status=%s", task.id, task.status)
            return task

        api, token = remote
        generation = self._generation
        try:
            created = await api.create_task(encode_for_api(task), token)
        except Exception:
            logger.exception("Remote create failed title=%r", task.title)
            return None

        if generation != self._generation:
            logger.info("Discarding create response for a stale identity")
            return None

        server_task = decode_task(created)
        if server_task is None:
            logger.error("Remote create returned an unusable entity: %r", created)
            return None

        now = self.now()
        confirmed = normalize_task(
            replace(
                server_task,
                created_at=server_task.created_at or task.created_at,
                updated_at=server_task.updated_at or now,
            ),
            now,
        )
        self._replace((confirmed,) + self._tasks)
        logger.debug("Task created id=%s (temp %s)", confirmed.id, task.id)
        return confirmed

    async def update_task(self, task_id: str, changes: Mapping[str, Any]) -> Task | None:
        """
        Merge a partial update, re-derive, store it immediately, then sync.

        Returns the task as it stands after the call (optimistic or reconciled),
        or None if the id is unknown.
        """
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise TaskValidationError(
                f"Not editable: {', '.join(sorted(unknown))}. Status is derived; use toggle_completed()."
            )
        return await self._commit(task_id, changes, None)

    async def toggle_completed(self, task_id: str, completed: bool | None = None) -> Task | None:
        """
        Set status to COMPLETED or back to TODO, bypassing derivation.

        Un-completing a task whose sub-tasks are all done also clears their
        completion, otherwise the next derivation would complete it again.
        """
        current = self.get_task(task_id)
        if current is None:
            logger.warning("toggle_completed: unknown task id=%s", task_id)
            return None
        if completed is None:
            completed = current.status != TaskStatus.COMPLETED

        changes: dict[str, Any] = {}
        if completed:
            status = TaskStatus.COMPLETED
        else:
            status = TaskStatus.TODO
            if all_sub_tasks_completed(current.sub_tasks):
                changes["sub_tasks"] = tuple(replace(s, completed=False) for s in current.sub_tasks)
        return await self._commit(task_id, changes, status)

    def _merge(self, current: Task, changes: Mapping[str, Any], now: datetime) -> Task:
        fields = dict(changes)
        if "priority" in fields:
            fields["priority"] = coerce_priority(fields["priority"])
        if "title" in fields:
            fields["title"] = str(fields["title"]).strip()
        if "start_date" in fields:
            fields["start_date"] = normalize_date_value(fields["start_date"])
        if "due_date" in fields:
            fields["due_date"] = normalize_date_value(fields["due_date"])
        if "sub_tasks" in fields:
            fields["sub_tasks"] = normalize_sub_tasks(fields["sub_tasks"] or ())
        if "tags" in fields:
            fields["tags"] = tuple(fields["tags"] or ())
        return replace(current, updated_at=now, **fields)

    async def _commit(
        self,
        task_id: str,
        changes: Mapping[str, Any],
        status_override: TaskStatus | None,
    ) -> Task | None:
        current = self.get_task(task_id)
        if current is None:
            logger.warning("update: unknown task id=%s", task_id)
            return None

        if {"title", "start_date", "due_date"} & set(changes):
            validate_task_fields(
                changes.get("title", current.title),
                changes.get("start_date", current.start_date),
                changes.get("due_date", current.due_date),
            )

        now = self.now()
        merged = self._merge(current, changes, now)

        if status_override is not None:
            merged = replace(
                merged,
                status=status_override,
                duration_type=infer_duration_type(merged.start_date, merged.due_date),
            )
        else:
            if (
                "sub_tasks" in changes
                and current.status == TaskStatus.COMPLETED
                and all_sub_tasks_completed(current.sub_tasks)
                and not all_sub_tasks_completed(merged.sub_tasks)
            ):
                # Completion came from the sub-tasks; un-checking one re-opens the task.
                merged = replace(merged, status=TaskStatus.TODO)
            merged = apply_derived_fields(merged, now)

        self._put(merged)
        revision = self._bump_revision(merged.id)

        remote = self._remote()
        if remote is None or merged.is_local:
            return merged

        api, token = remote
        generation = self._generation
        try:
            echoed = await api.update_task(merged.id, encode_for_api(merged), token)
        except Exception:
            logger.exception("Remote update failed id=%s; keeping local state", merged.id)
            return merged

        if generation != self._generation:
            logger.info("Discarding update response for a stale identity id=%s", merged.id)
            return merged
        if self._revisions.get(merged.id) != revision:
            logger.debug("Newer local edit pending for id=%s; skipping reconcile", merged.id)
            return self.get_task(merged.id)

        server_task = decode_task(echoed)
        if server_task is None:
            logger.warning("Remote update returned an unusable entity id=%s", merged.id)
            return merged

        latest = self.get_task(merged.id)
        if latest is None:
            logger.debug("Task id=%s deleted before its update response arrived", merged.id)
            return None

        # An echo without a subTasks list says nothing about them; keep ours.
        if isinstance(echoed.get("subTasks"), list):
            sub_tasks = merge_sub_task_completion(
                normalize_sub_tasks(server_task.sub_tasks), merged.sub_tasks
            )
        else:
            sub_tasks = merged.sub_tasks

        now = self.now()
        reconciled = replace(
            server_task,
            id=latest.id,
            status=latest.status,
            sub_tasks=sub_tasks,
            created_at=server_task.created_at or latest.created_at,
            updated_at=server_task.updated_at or latest.updated_at,
        )
        reconciled = normalize_task(reconciled, now)
        self._put(reconciled)
        return reconciled

    async def delete_task(self, task_id: str) -> bool:
        """Remove locally right away; a failed remote delete is only logged."""
        current = self._tasks
        remaining = tuple(t for t in current if t.id != task_id)
        if len(remaining) == len(current):
            logger.warning("delete: unknown task id=%s", task_id)
            return False

        self._replace(remaining)
        self._revisions.pop(task_id, None)

        remote = self._remote()
        if remote is None or task_id.startswith(LOCAL_ID_PREFIX):
            return True

        api, token = remote
        try:
            await api.delete_task(task_id, token)
        except Exception:
            logger.exception("Remote delete failed id=%s; local removal kept", task_id)
        return True

    # ---- periodic reconciliation ----

    def refresh_statuses(self, now: datetime | None = None) -> list[TaskId]:
        """
        Re-derive every task's status against `now`.

        Only tasks whose status changes are rewritten (with a fresh updated_at).
        Returns their ids.
        """
        if now is None:
            now = self.now()
        changed: list[TaskId] = []
        next_tasks: list[Task] = []
        for task in self._tasks:
            status = derive_status(task, now)
            if status != task.status:
                task = replace(task, status=status, updated_at=now)
                changed.append(task.id)
            next_tasks.append(task)
        if changed:
            self._replace(next_tasks)
        return changed
