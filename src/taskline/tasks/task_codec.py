# src/taskline/tasks/task_codec.py

"""
Task <-> dict encodings.

Two outbound shapes:
- encode_for_api():  remote task API payload (startTime/endTime with a space
                     separator, status DONE instead of COMPLETED)
- encode_record():   local key-value storage (startDate/dueDate canonical)

One tolerant decoder, decode_task(), reads both shapes plus the variations the
backend is known to send (numeric ids, startDate/dueDate instead of
startTime/endTime, missing lists).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from .task_models import DurationType, SubTask, Task, TaskId, TaskPriority, TaskStatus
from .task_time import normalize_date_value, parse_date_value, to_backend_string

logger = logging.getLogger(__name__)


def status_to_api(status: TaskStatus) -> str:
    if status == TaskStatus.COMPLETED:
        return "DONE"
    if status == TaskStatus.IN_PROGRESS:
        return "IN_PROGRESS"
    if status == TaskStatus.ARCHIVED:
        return "ARCHIVED"
    return "TODO"


def status_from_api(raw: object) -> TaskStatus:
    value = str(raw or "").strip().upper()
    if value in ("DONE", "COMPLETED"):
        return TaskStatus.COMPLETED
    if value == "IN_PROGRESS":
        return TaskStatus.IN_PROGRESS
    if value == "ARCHIVED":
        return TaskStatus.ARCHIVED
    return TaskStatus.TODO


def normalize_id(raw: object) -> TaskId | None:
    """Backend ids may be ints or strings; internally they are always str."""
    if raw is None or isinstance(raw, bool):
        return None
    value = str(raw).strip()
    return TaskId(value) if value else None


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value not in (None, ""):
            return value
    return None


def _backend_date(value: str) -> str:
    return to_backend_string(parse_date_value(value))


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat(timespec="seconds") if dt is not None else None


# ---- encode ----


def encode_for_api(task: Task) -> dict[str, Any]:
    return {
        "title": task.title,
        "description": task.description,
        "status": status_to_api(task.status),
        "priority": task.priority.value,
        "startTime": _backend_date(task.start_date),
        "endTime": _backend_date(task.due_date),
        "durationType": task.duration_type.value,
        "subTasks": [
            {
                "id": s.id,
                "title": s.title,
                "completed": s.completed,
                "startTime": _backend_date(s.start_time),
                "endTime": _backend_date(s.end_time),
            }
            for s in task.sub_tasks
        ],
        "tags": list(task.tags),
    }


def encode_record(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "priority": task.priority.value,
        "status": task.status.value,
        "startDate": task.start_date,
        "dueDate": task.due_date,
        "durationType": task.duration_type.value,
        "subTasks": [
            {
                "id": s.id,
                "title": s.title,
                "completed": s.completed,
                "startTime": s.start_time,
                "endTime": s.end_time,
            }
            for s in task.sub_tasks
        ],
        "tags": list(task.tags),
        "createdAt": _iso(task.created_at),
        "updatedAt": _iso(task.updated_at),
    }


# ---- decode ----


def decode_sub_task(raw: Mapping[str, Any], index: int) -> SubTask:
    sub_id = normalize_id(raw.get("id")) or f"sub-{index + 1}"
    return SubTask(
        id=str(sub_id),
        title=str(raw.get("title") or ""),
        completed=bool(raw.get("completed", False)),
        start_time=normalize_date_value(_first(raw, "startTime", "startDate")),
        end_time=normalize_date_value(_first(raw, "endTime", "dueDate")),
    )


def decode_task(raw: object) -> Task | None:
    """Build a Task from an API entity or a stored record; None if it has no id."""
    if not isinstance(raw, Mapping):
        logger.warning("Skipping non-object task entity: %r", raw)
        return None

    task_id = normalize_id(raw.get("id"))
    if task_id is None:
        logger.warning("Skipping task entity without id: %r", raw)
        return None

    subs_raw = raw.get("subTasks") or []
    sub_tasks = tuple(
        decode_sub_task(s, i) for i, s in enumerate(subs_raw) if isinstance(s, Mapping)
    )
    tags_raw = raw.get("tags") or []
    tags = tuple(str(t) for t in tags_raw) if isinstance(tags_raw, list) else ()

    try:
        duration_type = DurationType(str(raw.get("durationType") or "short").lower())
    except ValueError:
        duration_type = DurationType.SHORT

    return Task(
        id=task_id,
        title=str(raw.get("title") or ""),
        description=str(raw.get("description") or ""),
        priority=TaskPriority.parse(raw.get("priority")),
        status=status_from_api(raw.get("status")),
        start_date=normalize_date_value(_first(raw, "startTime", "startDate")),
        due_date=normalize_date_value(_first(raw, "endTime", "dueDate")),
        duration_type=duration_type,
        sub_tasks=sub_tasks,
        tags=tags,
        created_at=parse_date_value(raw.get("createdAt")),
        updated_at=parse_date_value(raw.get("updatedAt")),
    )
