# src/taskline/tasks/task_conflicts.py

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import timedelta

from .task_models import DurationType, Task, TaskStatus
from .task_status import infer_duration_type
from .task_time import parse_date_value

# Overlaps up to this long are normal transition time between short tasks.
OVERLAP_TOLERANCE = timedelta(minutes=30)

_INACTIVE = (TaskStatus.COMPLETED, TaskStatus.ARCHIVED)


@dataclass(slots=True, frozen=True)
class ConflictCandidate:
    start_date: object
    due_date: object
    exclude_id: str | None = None


@dataclass(slots=True, frozen=True)
class ConflictResult:
    """
    A scheduling overlap. This is data for the caller to show, not an error:
    the user may still save.
    """

    task: Task
    overlap: timedelta

    @property
    def message(self) -> str:
        minutes = int(self.overlap.total_seconds() // 60)
        return (
            f'Overlaps "{self.task.title}" ({self.task.start_date} - {self.task.due_date}) '
            f"by {minutes} min."
        )


def find_conflict(candidate: ConflictCandidate, tasks: Iterable[Task]) -> ConflictResult | None:
    """
    Return the first open short task overlapping the candidate by more than
    OVERLAP_TOLERANCE, in collection order.

    Long candidates are never checked.
    """
    start = parse_date_value(candidate.start_date)
    due = parse_date_value(candidate.due_date)
    if start is None or due is None:
        return None
    if infer_duration_type(start, due) != DurationType.SHORT:
        return None

    for task in tasks:
        if candidate.exclude_id is not None and task.id == candidate.exclude_id:
            continue
        if task.status in _INACTIVE:
            continue
        if infer_duration_type(task.start_date, task.due_date) != DurationType.SHORT:
            continue

        other_start = parse_date_value(task.start_date)
        other_due = parse_date_value(task.due_date)
        if other_start is None or other_due is None:
            continue

        overlap = min(due, other_due) - max(start, other_start)
        if overlap > OVERLAP_TOLERANCE:
            return ConflictResult(task=task, overlap=overlap)

    return None
