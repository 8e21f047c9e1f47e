# src/taskline/tasks/task_grouping.py

"""
Read-only views over a task snapshot.

- group_for_timeline(): the seven named timeline buckets of the main list
- bucket_by_unit():     day/week/month buckets of open tasks (statistics view)
- completion_trend():   completed-task counts over trailing Monday-aligned weeks
- select_visible():     smart list + filter + sort

All functions are pure. Tasks with unparseable dates never raise; each view
documents where they end up.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum

from .task_models import (
    ALL,
    SmartList,
    SortKey,
    SortOrder,
    SortSpec,
    Task,
    TaskFilter,
    TaskStatus,
    ViewState,
)
from .task_time import (
    DAY,
    parse_date_value,
    same_day,
    start_of_day,
    start_of_month,
    start_of_week,
)

DEFAULT_TREND_WEEKS = 6


# ---- timeline ----


@dataclass(slots=True)
class TimelineGroups:
    overdue: list[Task] = field(default_factory=list)
    active: list[Task] = field(default_factory=list)
    today: list[Task] = field(default_factory=list)
    tomorrow: list[Task] = field(default_factory=list)
    this_week: list[Task] = field(default_factory=list)
    future: list[Task] = field(default_factory=list)
    completed: list[Task] = field(default_factory=list)

    def items(self) -> Iterator[tuple[str, list[Task]]]:
        yield "overdue", self.overdue
        yield "active", self.active
        yield "today", self.today
        yield "tomorrow", self.tomorrow
        yield "thisWeek", self.this_week
        yield "future", self.future
        yield "completed", self.completed

    def non_empty(self) -> list[tuple[str, list[Task]]]:
        return [(name, tasks) for name, tasks in self.items() if tasks]

    def total(self) -> int:
        return sum(len(tasks) for _, tasks in self.items())


def group_for_timeline(tasks: Iterable[Task], now: datetime) -> TimelineGroups:
    """
    Rules, first match wins:
    - COMPLETED                                      -> completed
    - due < now                                      -> overdue
    - start < now <= due                             -> active
    - due on today's calendar day                    -> today
    - due on tomorrow's calendar day                 -> tomorrow
    - ceil((due - now) / 1 day) <= 7                 -> thisWeek
    - otherwise                                      -> future

    A task whose due date does not parse goes to future; an unparseable start
    date only disqualifies it from active.
    """
    groups = TimelineGroups()
    tomorrow = now + DAY

    for task in tasks:
        if task.status == TaskStatus.COMPLETED:
            groups.completed.append(task)
            continue

        due = parse_date_value(task.due_date)
        if due is None:
            groups.future.append(task)
            continue

        start = parse_date_value(task.start_date)

        if due < now:
            groups.overdue.append(task)
        elif start is not None and start < now <= due:
            groups.active.append(task)
        elif same_day(due, now):
            groups.today.append(task)
        elif same_day(due, tomorrow):
            groups.tomorrow.append(task)
        elif math.ceil((due - now) / DAY) <= 7:
            groups.this_week.append(task)
        else:
            groups.future.append(task)

    return groups


# ---- calendar buckets ----


class CalendarUnit(StrEnum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


@dataclass(slots=True)
class CalendarBucket:
    key: str
    label: str
    start: datetime
    tasks: list[Task] = field(default_factory=list)


def bucket_info(dt: datetime, unit: CalendarUnit) -> tuple[str, str, datetime]:
    """(key, label, start) of the bucket containing dt."""
    if unit == CalendarUnit.MONTH:
        label = f"{dt.year:04d}-{dt.month:02d}"
        return f"m-{label}", label, start_of_month(dt)

    if unit == CalendarUnit.WEEK:
        monday = start_of_week(dt)
        iso_year, iso_week, _ = monday.isocalendar()
        label = f"{iso_year:04d}-W{iso_week:02d}"
        return f"w-{label}", label, monday

    label = f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"
    return f"d-{label}", label, start_of_day(dt)


def bucket_by_unit(tasks: Iterable[Task], unit: CalendarUnit | str) -> list[CalendarBucket]:
    """
    Group open tasks by the bucket containing their due date, sorted by bucket
    start. Completed tasks and tasks without a parseable due date are left out.
    """
    unit = CalendarUnit(unit)
    buckets: dict[str, CalendarBucket] = {}

    for task in tasks:
        if task.status == TaskStatus.COMPLETED:
            continue
        due = parse_date_value(task.due_date)
        if due is None:
            continue
        key, label, start = bucket_info(due, unit)
        bucket = buckets.get(key)
        if bucket is None:
            bucket = buckets[key] = CalendarBucket(key=key, label=label, start=start)
        bucket.tasks.append(task)

    return sorted(buckets.values(), key=lambda b: b.start)


# ---- completion statistics ----


@dataclass(slots=True, frozen=True)
class TrendWindow:
    label: str
    start: datetime
    end: datetime
    count: int


@dataclass(slots=True, frozen=True)
class CompletionSummary:
    this_week: int
    this_month: int
    total: int


def completion_time(task: Task) -> datetime | None:
    """
    When a task was completed: updated_at, else due date, else start date.

    Only the first present source is used; if it does not parse the task has
    no completion time.
    """
    if task.updated_at is not None:
        return parse_date_value(task.updated_at)
    source = task.due_date or task.start_date
    return parse_date_value(source)


def _completed_with_time(tasks: Iterable[Task]) -> list[datetime]:
    out: list[datetime] = []
    for task in tasks:
        if task.status != TaskStatus.COMPLETED:
            continue
        done_at = completion_time(task)
        if done_at is not None:
            out.append(done_at)
    return out


def completion_trend(
    tasks: Iterable[Task],
    now: datetime,
    *,
    weeks: int = DEFAULT_TREND_WEEKS,
) -> list[TrendWindow]:
    """Completed-task counts for the last `weeks` Monday-aligned weeks, oldest first."""
    done = _completed_with_time(tasks)
    this_week = start_of_week(now)
    windows: list[TrendWindow] = []

    for i in range(max(1, int(weeks)) - 1, -1, -1):
        start = this_week - timedelta(weeks=i)
        end = start + timedelta(weeks=1)
        count = sum(1 for d in done if start <= d < end)
        windows.append(
            TrendWindow(label=f"{start.month}/{start.day:02d}", start=start, end=end, count=count)
        )

    return windows


def completion_summary(tasks: Iterable[Task], now: datetime) -> CompletionSummary:
    done = _completed_with_time(tasks)
    week_start = start_of_week(now)
    month_start = start_of_month(now)
    return CompletionSummary(
        this_week=sum(1 for d in done if d >= week_start),
        this_month=sum(1 for d in done if d >= month_start),
        total=len(done),
    )


# ---- selection (smart list, filter, sort) ----


def matches_smart_list(task: Task, view: SmartList, now: datetime) -> bool:
    if view == SmartList.ALL:
        return True
    due = parse_date_value(task.due_date)
    if due is None:
        return False
    if view == SmartList.TODAY:
        return same_day(due, now)
    # UPCOMING: due after today's calendar day
    return due.date() > now.date()


def _matches_text_and_priority(task: Task, flt: TaskFilter) -> bool:
    needle = (flt.search or "").strip().lower()
    if needle and needle not in task.title.lower():
        return False
    return flt.priority == ALL or task.priority == flt.priority


def matches_filter(task: Task, flt: TaskFilter) -> bool:
    if not _matches_text_and_priority(task, flt):
        return False
    return flt.status == ALL or task.status == flt.status


def calendar_candidates(tasks: Iterable[Task], flt: TaskFilter) -> list[Task]:
    """Filter for the calendar view: status ALL means every non-completed status."""
    out: list[Task] = []
    for task in tasks:
        if not _matches_text_and_priority(task, flt):
            continue
        if flt.status == ALL:
            if task.status == TaskStatus.COMPLETED:
                continue
        elif task.status != flt.status:
            continue
        out.append(task)
    return out


def _sort_value(by: SortKey) -> Callable[[Task], object]:
    if by == SortKey.PRIORITY:
        return lambda t: t.priority.weight
    if by == SortKey.DUE_DATE:
        return lambda t: parse_date_value(t.due_date)
    return lambda t: t.created_at


def sort_tasks(tasks: Sequence[Task], spec: SortSpec) -> list[Task]:
    """Stable sort; tasks without a value for the key go last in either order."""
    value_of = _sort_value(spec.by)
    keyed = [(value_of(t), t) for t in tasks]
    present = [pair for pair in keyed if pair[0] is not None]
    missing = [t for value, t in keyed if value is None]
    present.sort(key=lambda pair: pair[0], reverse=spec.order == SortOrder.DESC)
    return [t for _, t in present] + missing


def select_visible(tasks: Iterable[Task], view: ViewState, now: datetime) -> list[Task]:
    picked = [
        t
        for t in tasks
        if matches_smart_list(t, view.active_view, now) and matches_filter(t, view.filter)
    ]
    return sort_tasks(picked, view.sort)
