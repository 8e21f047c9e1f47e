# src/taskline/tasks/task_seed.py

from __future__ import annotations

from datetime import datetime, timedelta

from .task_models import Task, TaskId, TaskPriority, TaskStatus
from .task_time import DAY, floor_minute, start_of_day, to_canonical_string


def _at(day: datetime, hour: int, minute: int = 0) -> str:
    return to_canonical_string(start_of_day(day) + timedelta(hours=hour, minutes=minute))


def _today_slot(now: datetime) -> tuple[str, str]:
    """
    A half-hour slot starting an hour from now, pulled earlier so it still
    ends today. In the last minutes before midnight it spills into tomorrow.
    """
    last = start_of_day(now) + DAY - timedelta(minutes=1)
    start = floor_minute(now) + timedelta(hours=1)
    due = start + timedelta(minutes=30)
    if due > last:
        start = floor_minute(now) + timedelta(minutes=1)
        due = max(start + timedelta(minutes=1), min(start + timedelta(minutes=30), last))
    return to_canonical_string(start), to_canonical_string(due)


def build_guest_seed(now: datetime) -> list[Task]:
    """Demonstration tasks for guest mode: one per interesting timeline bucket."""
    yesterday = now - DAY
    next_week = now + 7 * DAY
    today_slot = _today_slot(now)

    def make(task_id: str, title: str, description: str, priority: TaskPriority,
             start: str, due: str, tags: tuple[str, ...]) -> Task:
        return Task(
            id=TaskId(task_id),
            title=title,
            description=description,
            priority=priority,
            status=TaskStatus.TODO,
            start_date=start,
            due_date=due,
            tags=tags,
            created_at=now,
            updated_at=now,
        )

    return [
        make(
            "overdue-1",
            "Overdue demo: submit the project proposal",
            "Already past its due date; shown in the overdue group.",
            TaskPriority.URGENT,
            _at(now - 5 * DAY, 9),
            _at(yesterday, 18),
            ("Urgent",),
        ),
        make(
            "active-1",
            "Multi-day project: prototype the timeline view",
            "Started yesterday and runs into next week.",
            TaskPriority.HIGH,
            _at(yesterday, 9),
            _at(next_week, 18),
            ("Coding",),
        ),
        make(
            "today-1",
            "Today: team stand-up",
            "Discuss feedback on the timeline layout.",
            TaskPriority.MEDIUM,
            *today_slot,
            ("Meeting",),
        ),
        make(
            "future-1",
            "Later: exam revision",
            "Starts next week.",
            TaskPriority.LOW,
            _at(next_week, 9),
            _at(next_week + 3 * DAY, 18),
            ("Study",),
        ),
    ]
