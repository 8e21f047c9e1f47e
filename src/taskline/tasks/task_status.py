# src/taskline/tasks/task_status.py

"""
Status derivation.

Pure functions: a task's status follows from its sub-tasks, its current status
(COMPLETED is sticky) and where `now` falls relative to its time window.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime, timedelta

from .task_models import DurationType, SubTask, Task, TaskStatus
from .task_time import parse_date_value

SHORT_TASK_MAX = timedelta(hours=24)


def all_sub_tasks_completed(sub_tasks: Sequence[SubTask]) -> bool:
    """True only for a non-empty list where every sub-task is done."""
    return bool(sub_tasks) and all(s.completed for s in sub_tasks)


def infer_duration_type(start: object, due: object) -> DurationType:
    """
    SHORT iff due - start <= 24h (exactly 24h is still short).

    Unparseable dates give SHORT; such tasks never pass submission anyway.
    """
    start_dt = parse_date_value(start)
    due_dt = parse_date_value(due)
    if start_dt is None or due_dt is None:
        return DurationType.SHORT
    if due_dt - start_dt <= SHORT_TASK_MAX:
        return DurationType.SHORT
    return DurationType.LONG


def derive_status(task: Task, now: datetime) -> TaskStatus:
    """
    First match wins:
    1. all sub-tasks completed (and at least one)   -> COMPLETED
    2. already COMPLETED                            -> COMPLETED
    3. start or due unparseable                     -> TODO
    4. now < start                                  -> TODO
    5. now > due                                    -> ARCHIVED
    6. start <= now <= due                          -> IN_PROGRESS
    """
    if all_sub_tasks_completed(task.sub_tasks):
        return TaskStatus.COMPLETED
    if task.status == TaskStatus.COMPLETED:
        return TaskStatus.COMPLETED

    start = parse_date_value(task.start_date)
    due = parse_date_value(task.due_date)
    if start is None or due is None:
        return TaskStatus.TODO
    if now < start:
        return TaskStatus.TODO
    if now > due:
        return TaskStatus.ARCHIVED
    return TaskStatus.IN_PROGRESS


def apply_derived_fields(task: Task, now: datetime) -> Task:
    """Recompute the cached fields (status, duration_type) of a task."""
    status = derive_status(task, now)
    duration_type = infer_duration_type(task.start_date, task.due_date)
    if status == task.status and duration_type == task.duration_type:
        return task
    return replace(task, status=status, duration_type=duration_type)
