# tests/test_task_time.py

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from taskline.tasks.task_time import (
    date_part,
    normalize_date_value,
    parse_date_value,
    start_of_week,
    time_part,
    to_backend_string,
    to_canonical_string,
    with_date_part,
    with_time_part,
)


@pytest.mark.parametrize(
    "raw",
    ["2024-06-10T09:05", "2024-06-10 09:05", " 2024-06-10 09:05 ", "2024-06-10 09:05:00"],
)
def test_space_and_t_forms_parse_to_same_instant(raw: str) -> None:
    assert parse_date_value(raw) == datetime(2024, 6, 10, 9, 5)


@pytest.mark.parametrize("raw", ["2024-06-10T09:05", "2024-06-10 09:05", "1999-12-31T23:59"])
def test_canonical_normalization_is_idempotent(raw: str) -> None:
    once = to_canonical_string(parse_date_value(raw))
    assert to_canonical_string(parse_date_value(once)) == once
    assert "T" in once and len(once) == 16


def test_invalid_input_gives_none_and_empty_strings() -> None:
    for raw in ["", "   ", "not a date", "2024-13-40T99:99", None, 42]:
        assert parse_date_value(raw) is None
    assert to_canonical_string(None) == ""
    assert to_backend_string(None) == ""
    assert normalize_date_value("garbage") == ""


def test_structured_values_are_accepted() -> None:
    assert parse_date_value(date(2024, 6, 10)) == datetime(2024, 6, 10, 0, 0)
    dt = datetime(2024, 6, 10, 9, 5, 42)
    assert to_canonical_string(parse_date_value(dt)) == "2024-06-10T09:05"


def test_aware_timestamps_become_local_naive() -> None:
    aware = datetime(2024, 6, 10, 9, 5, tzinfo=timezone.utc)
    parsed = parse_date_value("2024-06-10T09:05:00Z")
    assert parsed is not None and parsed.tzinfo is None
    assert parsed == aware.astimezone().replace(tzinfo=None)


def test_backend_string_uses_space_and_minute_precision() -> None:
    dt = datetime(2024, 1, 2, 3, 4, 59)
    assert to_backend_string(dt) == "2024-01-02 03:04"
    assert to_canonical_string(dt) == "2024-01-02T03:04"


def test_split_and_compose_keep_the_other_part() -> None:
    value = "2024-06-10T09:30"
    assert date_part(value) == "2024-06-10"
    assert time_part(value) == "09:30"

    assert with_date_part(value, "2024-07-01") == "2024-07-01T09:30"
    assert with_time_part(value, "17:45") == "2024-06-10T17:45"

    # bad replacement keeps the original
    assert with_time_part(value, "nope") == value
    assert with_date_part(value, "nope") == value
    # no base value: a date gets midnight, a time has nothing to attach to
    assert with_date_part("", "2024-07-01") == "2024-07-01T00:00"
    assert with_time_part("", "10:00") == ""


def test_start_of_week_is_monday_midnight() -> None:
    sunday = datetime(2024, 6, 16, 22, 10)
    monday = start_of_week(sunday)
    assert monday == datetime(2024, 6, 10)
    assert start_of_week(monday) == monday
    assert start_of_week(monday - timedelta(minutes=1)) == datetime(2024, 6, 3)
