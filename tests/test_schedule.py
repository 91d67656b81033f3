# tests/test_schedule.py

from __future__ import annotations

from datetime import date, datetime

from focuslist.engine.model import Recurrence
from focuslist.engine.schedule import add_months, format_due_date, is_overdue, next_due_date

from fakes import START, TZ


def test_daily_and_weekly_successor_dates() -> None:
    assert next_due_date(date(2024, 6, 15), Recurrence.DAILY) == date(2024, 6, 16)
    assert next_due_date(date(2024, 6, 28), Recurrence.WEEKLY) == date(2024, 7, 5)
    assert next_due_date(date(2024, 12, 31), Recurrence.DAILY) == date(2025, 1, 1)


def test_monthly_keeps_day_number() -> None:
    assert next_due_date(date(2024, 6, 15), Recurrence.MONTHLY) == date(2024, 7, 15)
    assert next_due_date(date(2024, 12, 15), Recurrence.MONTHLY) == date(2025, 1, 15)


def test_monthly_overflow_spills_into_next_month() -> None:
    assert add_months(date(2023, 1, 31), 1) == date(2023, 3, 3)
    assert add_months(date(2024, 1, 31), 1) == date(2024, 3, 2)
    assert add_months(date(2024, 3, 31), 1) == date(2024, 5, 1)


def test_overdue_only_after_end_of_due_day() -> None:
    assert is_overdue(date(2024, 6, 14), START)
    assert not is_overdue(date(2024, 6, 15), START)
    assert not is_overdue(date(2024, 6, 15), datetime(2024, 6, 15, 23, 59, 59, tzinfo=TZ))
    assert is_overdue(date(2024, 6, 15), datetime(2024, 6, 16, 0, 0, 0, tzinfo=TZ))


def test_due_labels() -> None:
    today = date(2024, 6, 15)
    assert format_due_date(today, today) == "Today"
    assert format_due_date(date(2024, 6, 16), today) == "Tomorrow"
    assert format_due_date(date(2024, 6, 20), today) == "Jun 20"
    assert format_due_date(date(2024, 6, 14), today) == "Jun 14"
