from __future__ import annotations

import datetime as _dt
import re
from typing import Any

_ISO_DAY = re.compile(r"\d{4}-\d{2}-\d{2}")


def parse_date(value: Any) -> _dt.date | None:
    """
    Parse a YYYY-MM-DD string (or pass a date through); None when unparsable.

    Only the extended calendar form is accepted. Compact (`20250101`) and
    week (`2025-W01-3`) forms are rejected on every Python version.
    """

    if isinstance(value, _dt.datetime):
        return value.date()
    if isinstance(value, _dt.date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not _ISO_DAY.fullmatch(text):
        return None
    try:
        return _dt.date.fromisoformat(text)
    except ValueError:
        return None


def duration_days(start: Any, end: Any) -> int:
    """
    Inclusive calendar-day count between start and end.

    Returns 0 when either date fails to parse or end precedes start; callers
    treat 0 as "unscheduled", not as a zero-length task.
    """

    start_date = parse_date(start)
    end_date = parse_date(end)
    if start_date is None or end_date is None or end_date < start_date:
        return 0
    return (end_date - start_date).days + 1


def add_days(value: str, days: int) -> str:
    """Shift an ISO date string by `days` calendar days; unparsable input is returned unchanged."""

    parsed = parse_date(value)
    if parsed is None:
        return value
    return (parsed + _dt.timedelta(days=days)).isoformat()


def days_between(first: Any, second: Any) -> int | None:
    """Signed day difference `second - first`, or None if either side does not parse."""

    first_date = parse_date(first)
    second_date = parse_date(second)
    if first_date is None or second_date is None:
        return None
    return (second_date - first_date).days


def earlier(a: str | None, b: str | None) -> str | None:
    # Absent or unparsable dates lose to any present date.
    a_date, b_date = parse_date(a), parse_date(b)
    if a_date is None:
        return b if b_date is not None else None
    if b_date is None:
        return a
    return a if a_date <= b_date else b


def later(a: str | None, b: str | None) -> str | None:
    a_date, b_date = parse_date(a), parse_date(b)
    if a_date is None:
        return b if b_date is not None else None
    if b_date is None:
        return a
    return a if a_date >= b_date else b
