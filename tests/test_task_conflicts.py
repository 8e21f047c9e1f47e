# tests/test_task_conflicts.py

from __future__ import annotations

from datetime import timedelta

from taskline.tasks.task_conflicts import ConflictCandidate, find_conflict
from taskline.tasks.task_models import TaskStatus

from .fakes import make_task


def _existing():
    return [make_task("a", "2024-06-10T10:00", "2024-06-10T11:00")]


def test_overlap_within_tolerance_is_allowed() -> None:
    candidate = ConflictCandidate("2024-06-10T10:45", "2024-06-10T11:30")
    assert find_conflict(candidate, _existing()) is None


def test_overlap_at_exactly_tolerance_is_allowed() -> None:
    candidate = ConflictCandidate("2024-06-10T10:30", "2024-06-10T11:30")
    assert find_conflict(candidate, _existing()) is None


def test_overlap_beyond_tolerance_reports_existing_task() -> None:
    candidate = ConflictCandidate("2024-06-10T10:20", "2024-06-10T11:20")
    result = find_conflict(candidate, _existing())

    assert result is not None
    assert result.task.id == "a"
    assert result.overlap == timedelta(minutes=40)
    assert "task a" in result.message
    assert "40 min" in result.message


def test_excluded_task_is_skipped_when_editing() -> None:
    candidate = ConflictCandidate("2024-06-10T10:00", "2024-06-10T11:00", exclude_id="a")
    assert find_conflict(candidate, _existing()) is None


def test_completed_archived_and_long_tasks_never_conflict() -> None:
    tasks = [
        make_task("c", "2024-06-10T10:00", "2024-06-10T11:00", status=TaskStatus.COMPLETED),
        make_task("r", "2024-06-10T10:00", "2024-06-10T11:00", status=TaskStatus.ARCHIVED),
        make_task("l", "2024-06-09T10:00", "2024-06-12T11:00"),
        make_task("x", "broken", "2024-06-10T11:00"),
    ]
    candidate = ConflictCandidate("2024-06-10T10:00", "2024-06-10T11:00")
    assert find_conflict(candidate, tasks) is None


def test_long_candidate_is_never_checked() -> None:
    candidate = ConflictCandidate("2024-06-10T09:00", "2024-06-11T12:00")
    assert find_conflict(candidate, _existing()) is None


def test_first_conflict_in_collection_order_wins() -> None:
    tasks = [
        make_task("first", "2024-06-10T10:00", "2024-06-10T11:00"),
        make_task("second", "2024-06-10T10:00", "2024-06-10T11:00"),
    ]
    result = find_conflict(ConflictCandidate("2024-06-10T10:00", "2024-06-10T11:00"), tasks)
    assert result is not None and result.task.id == "first"
