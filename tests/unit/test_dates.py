from datetime import date, datetime

import pytest
import pytz

from assistant.resolvers.dates import resolve_date, resolve_time

# Wednesday.
NEW_YEAR = datetime(2025, 1, 1, 9, 0)


@pytest.mark.parametrize(
    ("expression", "expected"),
    [
        ("today", "2025-01-01"),
        ("tomorrow", "2025-01-02"),
        ("next week", "2025-01-08"),
        ("next friday", "2025-01-03"),
        ("Next Friday.", "2025-01-03"),
        ("next thursday", "2025-01-02"),
        ("next wednesday", "2025-01-08"),
        ("next fri", "2025-01-03"),
        ("in 3 weeks", "2025-01-22"),
        ("in two weeks", "2025-01-15"),
        ("in a week", "2025-01-08"),
        ("end of month", "2025-01-31"),
        ("2025-02-14", "2025-02-14"),
    ],
)
def test_resolve_date(expression, expected):
    assert resolve_date(expression, NEW_YEAR) == expected


def test_end_of_month_handles_leap_year():
    assert resolve_date("end of the month", date(2024, 2, 10)) == "2024-02-29"


def test_late_evening_uses_local_calendar_day():
    assert resolve_date("tomorrow", datetime(2025, 1, 1, 23, 59)) == "2025-01-02"


def test_timezone_aware_now():
    now = pytz.timezone("Asia/Kuala_Lumpur").localize(datetime(2025, 1, 1, 23, 30))

    assert resolve_date("today", now) == "2025-01-01"


@pytest.mark.parametrize("expression", ["someday", "next funday", "in many weeks", "2025-13-40", ""])
def test_unresolved_dates_return_none(expression):
    assert resolve_date(expression, NEW_YEAR) is None


@pytest.mark.parametrize(
    ("expression", "expected"),
    [
        ("5 PM", "17:00"),
        ("5pm", "17:00"),
        ("5 p.m.", "17:00"),
        ("9:30 am", "09:30"),
        ("12 PM", "12:00"),
        ("12 AM", "00:00"),
        ("noon", "12:00"),
        ("midnight", "00:00"),
        ("17:45", "17:45"),
    ],
)
def test_resolve_time(expression, expected):
    assert resolve_time(expression) == expected


@pytest.mark.parametrize("expression", ["13 pm", "0 am", "25:00", "later", ""])
def test_unresolved_times_return_none(expression):
    assert resolve_time(expression) is None
