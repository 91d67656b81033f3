# tests/fakes.py

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from focuslist.engine.pomodoro import SessionEvent

# A non-UTC zone so local-date and UTC-instant handling cannot be confused.
TZ = timezone(timedelta(hours=2))
START = datetime(2024, 6, 15, 10, 0, 0, tzinfo=TZ)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


class RecordingNotifier:
    def __init__(self) -> None:
        self.events: list[SessionEvent] = []

    def __call__(self, event: SessionEvent) -> None:
        self.events.append(event)
