# src/focuslist/engine/schedule.py

"""
Calendar rules for due dates: recurrence, overdue checks, labels.

All functions are pure. Due dates are local calendar dates; "now" is passed
in explicitly as an aware datetime in local time.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta

from .model import Recurrence

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def add_months(d: date, months: int) -> date:
    """
    Add calendar months keeping the day number.

    A day that does not exist in the target month spills over into the
    following month (Jan 31 + 1 month -> Mar 3, or Mar 2 in a leap year).
    """
    total = d.month - 1 + months
    year = d.year + total // 12
    month = total % 12 + 1
    first = date(year, month, 1)
    return first + timedelta(days=d.day - 1)


def next_due_date(current: date, recurrence: Recurrence) -> date:
    """Due date of the successor spawned when a recurring task completes."""
    if recurrence is Recurrence.DAILY:
        return current + timedelta(days=1)
    if recurrence is Recurrence.WEEKLY:
        return current + timedelta(days=7)
    if recurrence is Recurrence.MONTHLY:
        return add_months(current, 1)
    raise ValueError(f"Unknown recurrence: {recurrence!r}")


def end_of_day(d: date, now: datetime) -> datetime:
    """23:59:59 on `d`, in the timezone of `now`."""
    return datetime.combine(d, time(23, 59, 59), tzinfo=now.tzinfo)


def is_overdue(due: date, now: datetime) -> bool:
    return end_of_day(due, now) < now


def format_due_date(due: date, today: date) -> str:
    """Short label for list views: Today, Tomorrow, or e.g. `Jun 15`."""
    if due == today:
        return "Today"
    if due == today + timedelta(days=1):
        return "Tomorrow"
    return f"{_MONTHS[due.month - 1]} {due.day}"
