import datetime as dt

import pytest

from gantt_cpm.dates import add_days, days_between, duration_days, earlier, later, parse_date


@pytest.mark.parametrize(
    "start, end, expected",
    [
        ("2025-01-01", "2025-01-01", 1),
        ("2025-01-01", "2025-01-05", 5),
        ("2024-02-28", "2024-03-01", 3),
        ("2025-01-05", "2025-01-01", 0),
        ("garbage", "2025-01-01", 0),
        ("2025-01-01", "", 0),
        (None, None, 0),
    ],
)
def test_duration_days(start, end, expected):
    assert duration_days(start, end) == expected


def test_add_days_shifts_both_directions():
    assert add_days("2025-01-31", 1) == "2025-02-01"
    assert add_days("2025-03-01", -1) == "2025-02-28"
    assert add_days("2025-03-01", 0) == "2025-03-01"


def test_add_days_returns_unparsable_input_unchanged():
    assert add_days("someday", 3) == "someday"


def test_earlier_and_later_prefer_present_dates():
    assert earlier("2025-01-02", "2025-01-01") == "2025-01-01"
    assert later("2025-01-02", "2025-01-01") == "2025-01-02"
    assert earlier(None, "2025-01-01") == "2025-01-01"
    assert later("2025-01-01", None) == "2025-01-01"
    assert earlier("junk", "2025-01-01") == "2025-01-01"
    assert earlier(None, None) is None
    assert later(None, "junk") is None


def test_parse_date_and_days_between():
    assert parse_date("2025-06-01") == dt.date(2025, 6, 1)
    assert parse_date(dt.datetime(2025, 6, 1, 12, 0)) == dt.date(2025, 6, 1)
    assert parse_date("06/01/2025") is None
    assert parse_date("2025-02-30") is None
    assert days_between("2025-01-01", "2025-01-11") == 10


@pytest.mark.parametrize("value", ["20250101", "2025-W01-3", "2025-001", "2025-1-5", "2025-01-01T00:00"])
def test_parse_date_rejects_non_calendar_iso_forms(value):
    assert parse_date(value) is None
    assert duration_days(value, "2025-01-03") == 0
    assert add_days(value, 1) == value


def test_days_between_signs():
    assert days_between("2025-01-11", "2025-01-01") == -10
    assert days_between("2025-01-01", None) is None
