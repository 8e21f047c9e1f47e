# src/taskline/tasks/task_time.py

"""
Date-time normalization.

Task and sub-task dates arrive as strings in several shapes ("YYYY-MM-DD HH:mm"
from the backend, "YYYY-MM-DDTHH:mm" from pickers and local storage, ISO
timestamps with seconds or a timezone) or as datetime objects. Everything goes
through parse_date_value(), which returns a naive local datetime or None.

None is the "invalid instant": nothing here raises on bad input, callers check
for None before comparing.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta

DAY = timedelta(days=1)


def _to_local_naive(dt: datetime) -> datetime:
    if dt.tzinfo is not None:
        return dt.astimezone().replace(tzinfo=None)
    return dt


def parse_date_value(value: object) -> datetime | None:
    if isinstance(value, datetime):
        return _to_local_naive(value)
    if isinstance(value, date):
        return datetime.combine(value, time())
    if not isinstance(value, str):
        return None

    s = value.strip()
    if not s:
        return None
    if " " in s and "T" not in s:
        s = s.replace(" ", "T", 1)
    try:
        return _to_local_naive(datetime.fromisoformat(s))
    except ValueError:
        return None


def _fmt(dt: datetime, sep: str) -> str:
    return (
        f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"
        f"{sep}{dt.hour:02d}:{dt.minute:02d}"
    )


def to_canonical_string(dt: datetime | None) -> str:
    """YYYY-MM-DDTHH:mm, or "" for an invalid instant."""
    if dt is None:
        return ""
    return _fmt(dt, "T")


def to_backend_string(dt: datetime | None) -> str:
    """YYYY-MM-DD HH:mm (wire format of the remote task API)."""
    if dt is None:
        return ""
    return _fmt(dt, " ")


def normalize_date_value(value: object) -> str:
    return to_canonical_string(parse_date_value(value))


def floor_minute(dt: datetime) -> datetime:
    return dt.replace(second=0, microsecond=0)


# ---- split / compose (date and time pickers) ----


def date_part(value: object) -> str:
    dt = parse_date_value(value)
    if dt is None:
        return ""
    return f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"


def time_part(value: object) -> str:
    dt = parse_date_value(value)
    if dt is None:
        return ""
    return f"{dt.hour:02d}:{dt.minute:02d}"


def with_date_part(value: object, new_date: object) -> str:
    """Replace the calendar date of `value`, keeping its time of day."""
    d = parse_date_value(new_date)
    if d is None:
        return normalize_date_value(value)
    base = parse_date_value(value)
    t = base.time() if base is not None else time()
    return to_canonical_string(datetime.combine(d.date(), t))


def with_time_part(value: object, new_time: str) -> str:
    """Replace the time of day of `value` ("HH:mm"), keeping its date."""
    base = parse_date_value(value)
    if base is None:
        return ""
    try:
        t = time.fromisoformat((new_time or "").strip())
    except ValueError:
        return to_canonical_string(base)
    return to_canonical_string(datetime.combine(base.date(), t))


# ---- calendar helpers ----


def start_of_day(dt: datetime) -> datetime:
    return datetime.combine(dt.date(), time())


def start_of_week(dt: datetime) -> datetime:
    """Monday 00:00 of the week containing dt."""
    return start_of_day(dt) - timedelta(days=dt.weekday())


def start_of_month(dt: datetime) -> datetime:
    return datetime(dt.year, dt.month, 1)


def same_day(a: datetime, b: datetime) -> bool:
    return a.date() == b.date()
