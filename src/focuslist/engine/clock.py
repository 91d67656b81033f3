# src/focuslist/engine/clock.py

"""
Time sources and instant/date conversions.

The engine never calls `datetime.now()` directly: every operation reads the
current instant from a `Clock`, so tests can drive time explicitly.

Conventions:
- instants are timezone-aware datetimes (ISO-8601 with a `Z` suffix on the wire),
- calendar dates (due dates) are plain `date` objects anchored to the
  clock's local timezone, never instants,
- timer values are integer epoch milliseconds.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Protocol


# ---------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------

class Clock(Protocol):
    def now(self) -> datetime:
        """Return the current instant as an aware datetime in local time."""
        ...


class SystemClock:
    """Wall clock in the machine's local timezone."""

    def now(self) -> datetime:
        return datetime.now().astimezone()


# ---------------------------------------------------------------------
# Conversions
# ---------------------------------------------------------------------

def to_ms(moment: datetime) -> int:
    """Epoch milliseconds for an aware datetime."""
    return int(round(moment.timestamp() * 1000))


def local_today(now: datetime) -> date:
    """Calendar date of `now` in its own timezone."""
    return now.date()


def local_midnight(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def format_instant(moment: datetime) -> str:
    """
    Render an instant the way JavaScript's `toISOString()` does:
    UTC, millisecond precision, `Z` suffix.
    """
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_instant(raw: str) -> datetime:
    """
    Parse an ISO-8601 instant.

    A trailing `Z` is accepted. Naive values are taken as local time.
    Raises ValueError on malformed input.
    """
    s = raw.strip()
    if s.endswith(("Z", "z")):
        s = s[:-1] + "+00:00"

    moment = datetime.fromisoformat(s)
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return moment


def parse_local_date(raw: str) -> date:
    """
    Parse a `YYYY-MM-DD` calendar date.

    Only the date part is used, so `2024-06-15T00:00:00` is accepted too;
    no timezone conversion is ever applied.
    """
    return date.fromisoformat(raw.strip()[:10])
