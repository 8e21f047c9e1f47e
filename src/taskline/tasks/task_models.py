# src/taskline/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import NewType

TaskId = NewType("TaskId", str)

LOCAL_ID_PREFIX = "local-"


class TaskValidationError(ValueError):
    """Rejected submission (empty title, bad dates). No state was changed."""


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    Notes:
    - ARCHIVED is reached only by time (due date passed), never by a user action.
    - COMPLETED is sticky: only an explicit toggle or a sub-task change leaves it.
    """

    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"


class TaskPriority(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"

    @classmethod
    def parse(cls, raw: str | None) -> TaskPriority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(str(raw).strip().upper())
        except ValueError:
            return cls.MEDIUM

    @property
    def weight(self) -> int:
        return _PRIORITY_WEIGHT[self]


_PRIORITY_WEIGHT = {
    TaskPriority.LOW: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.HIGH: 2,
    TaskPriority.URGENT: 3,
}


class DurationType(StrEnum):
    SHORT = "short"
    LONG = "long"


class SmartList(StrEnum):
    """Active view of the primary task list."""

    ALL = "ALL"
    TODAY = "TODAY"
    UPCOMING = "UPCOMING"


class SortKey(StrEnum):
    DUE_DATE = "dueDate"
    PRIORITY = "priority"
    CREATED_AT = "createdAt"


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"


# Sentinel used by TaskFilter for "no constraint".
ALL = "ALL"


@dataclass(slots=True, frozen=True)
class SubTask:
    id: str
    title: str
    completed: bool = False
    start_time: str = ""
    end_time: str = ""


@dataclass(slots=True, frozen=True)
class Task:
    """
    A task entity.

    Date fields hold canonical date-time strings (YYYY-MM-DDTHH:mm).
    `status` and `duration_type` are derived values; TaskStore recomputes them
    on every write.
    """

    id: TaskId
    title: str
    description: str
    priority: TaskPriority
    status: TaskStatus
    start_date: str
    due_date: str
    duration_type: DurationType = DurationType.SHORT
    sub_tasks: tuple[SubTask, ...] = ()
    tags: tuple[str, ...] = ()
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_local(self) -> bool:
        return self.id.startswith(LOCAL_ID_PREFIX)


@dataclass(slots=True, frozen=True)
class TaskDraft:
    """User input for a new task, before the store assigns identity."""

    title: str
    start_date: object
    due_date: object
    description: str = ""
    priority: TaskPriority = TaskPriority.MEDIUM
    sub_tasks: tuple[SubTask, ...] = ()
    tags: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class TaskFilter:
    status: TaskStatus | str = ALL
    priority: TaskPriority | str = ALL
    search: str = ""


@dataclass(slots=True, frozen=True)
class SortSpec:
    by: SortKey = SortKey.CREATED_AT
    order: SortOrder = SortOrder.DESC


@dataclass(slots=True)
class ViewState:
    filter: TaskFilter = field(default_factory=TaskFilter)
    sort: SortSpec = field(default_factory=SortSpec)
    active_view: SmartList = SmartList.ALL
