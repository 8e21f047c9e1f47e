# src/taskline/tasks/task_api.py

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from .task_conflicts import ConflictResult
from .task_models import Task, TaskDraft, TaskPriority
from .task_store import TaskStore, validate_task_fields
from .task_time import parse_date_value, to_canonical_string

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SubmitResult:
    """
    Outcome of a form submission.

    - saved task, no conflict:   normal save
    - no task, conflict:         held back; resubmit with force=True to save anyway
    - saved task and conflict:   forced save
    - no task, no conflict:      the remote create failed (already logged)
    """

    task: Task | None
    conflict: ConflictResult | None = None

    @property
    def saved(self) -> bool:
        return self.task is not None


def quick_draft(
    title: str,
    *,
    start: datetime | str,
    duration_minutes: int = 60,
    priority: TaskPriority = TaskPriority.MEDIUM,
    description: str = "",
) -> TaskDraft:
    """
    Convenience helper: a draft running `duration_minutes` from `start`.
    An unparseable start is passed through so validation reports it.
    """
    start_dt = parse_date_value(start)
    if start_dt is None:
        return TaskDraft(title=title, start_date=start, due_date="", priority=priority,
                         description=description)
    due_dt = start_dt + timedelta(minutes=max(0, int(duration_minutes)))
    return TaskDraft(
        title=title,
        start_date=to_canonical_string(start_dt),
        due_date=to_canonical_string(due_dt),
        priority=priority,
        description=description,
    )


async def submit_new_task(store: TaskStore, draft: TaskDraft, *, force: bool = False) -> SubmitResult:
    """Validate, check for a scheduling conflict, then add (unless held back)."""
    validate_task_fields(draft.title, draft.start_date, draft.due_date)

    conflict = store.find_conflict(draft.start_date, draft.due_date)
    if conflict is not None and not force:
        logger.info("New task %r held back: %s", draft.title, conflict.message)
        return SubmitResult(task=None, conflict=conflict)

    task = await store.add_task(draft)
    return SubmitResult(task=task, conflict=conflict)


async def submit_task_edit(
    store: TaskStore,
    task_id: str,
    changes: Mapping[str, Any],
    *,
    force: bool = False,
) -> SubmitResult:
    """Same as submit_new_task() for an edit; the task never conflicts with itself."""
    current = store.get_task(task_id)
    if current is None:
        return SubmitResult(task=None)

    start = changes.get("start_date", current.start_date)
    due = changes.get("due_date", current.due_date)
    validate_task_fields(changes.get("title", current.title), start, due)

    conflict = store.find_conflict(start, due, exclude_id=task_id)
    if conflict is not None and not force:
        logger.info("Edit of %s held back: %s", task_id, conflict.message)
        return SubmitResult(task=None, conflict=conflict)

    task = await store.update_task(task_id, changes)
    return SubmitResult(task=task, conflict=conflict)
