# tests/test_pomodoro.py

from __future__ import annotations

from datetime import datetime, timezone

from focuslist.engine import pomodoro
from focuslist.engine.model import Task, TimerState
from focuslist.engine.pomodoro import (
    FOCUS_MS,
    LONG_BREAK_MS,
    SHORT_BREAK_MS,
    SessionKind,
    format_time,
)

T0 = 1_718_440_000_000


def _task() -> Task:
    return Task(id=1, text="Write report", created_at=datetime(2024, 6, 15, tzinfo=timezone.utc))


def test_start_sets_focus_session() -> None:
    t = _task()
    pomodoro.start(t, T0)

    assert t.timer_state is TimerState.RUNNING
    assert t.pomodoro_start_time == T0
    assert t.pomodoro_duration == FOCUS_MS
    assert t.pomodoro_is_break is False
    assert t.pomodoro_count == 0
    assert pomodoro.time_remaining(t, T0 + 60_000) == FOCUS_MS - 60_000


def test_pause_and_resume_keep_remaining_time() -> None:
    t = _task()
    pomodoro.start(t, T0)

    assert pomodoro.pause(t, T0 + 100_000)
    assert t.timer_state is TimerState.PAUSED
    assert t.pomodoro_time_remaining == FOCUS_MS - 100_000
    # time does not run while paused
    assert pomodoro.time_remaining(t, T0 + 999_000) == FOCUS_MS - 100_000
    assert not pomodoro.is_expired(t, T0 + 10 * FOCUS_MS)

    assert pomodoro.resume(t, T0 + 500_000)
    assert t.timer_state is TimerState.RUNNING
    assert t.pomodoro_duration == FOCUS_MS - 100_000
    assert t.pomodoro_time_remaining is None
    assert pomodoro.time_remaining(t, T0 + 500_000) == FOCUS_MS - 100_000


def test_pause_and_resume_in_wrong_state_are_rejected() -> None:
    t = _task()
    assert not pomodoro.pause(t, T0)
    assert not pomodoro.resume(t, T0)

    pomodoro.start(t, T0)
    assert not pomodoro.resume(t, T0)


def test_remaining_time_never_negative() -> None:
    t = _task()
    assert pomodoro.time_remaining(t, T0) == 0

    pomodoro.start(t, T0)
    assert pomodoro.time_remaining(t, T0 + FOCUS_MS + 5_000) == 0


def test_completed_task_timer_never_expires() -> None:
    t = _task()
    pomodoro.start(t, T0)
    t.completed = True
    assert not pomodoro.is_expired(t, T0 + FOCUS_MS)


def test_fourth_focus_session_earns_long_break() -> None:
    t = _task()
    now = T0
    kinds = []

    for _ in range(4):
        pomodoro.start(t, now)
        now += FOCUS_MS
        assert pomodoro.is_expired(t, now)
        event = pomodoro.complete_session(t, now)
        kinds.append(event.kind)
        assert t.pomodoro_is_break is True

        if event.kind is SessionKind.FOCUS_DONE:
            assert t.pomodoro_duration == SHORT_BREAK_MS
        else:
            assert t.pomodoro_duration == LONG_BREAK_MS

        now += t.pomodoro_duration
        done = pomodoro.complete_session(t, now)
        assert done.kind is SessionKind.BREAK_DONE
        assert t.timer_state is TimerState.IDLE

    assert kinds == [
        SessionKind.FOCUS_DONE,
        SessionKind.FOCUS_DONE,
        SessionKind.FOCUS_DONE,
        SessionKind.LONG_BREAK_START,
    ]
    assert t.pomodoro_count == 0


def test_resume_without_remaining_time_goes_idle() -> None:
    t = _task()
    t.pomodoro_start_time = T0
    t.pomodoro_duration = FOCUS_MS
    t.pomodoro_paused = True
    t.pomodoro_count = 2
    assert t.timer_state is TimerState.PAUSED

    assert pomodoro.resume(t, T0 + 1_000)
    assert t.timer_state is TimerState.IDLE
    assert t.pomodoro_duration is None
    assert t.pomodoro_count == 2
    assert not pomodoro.is_expired(t, T0 + 10 * FOCUS_MS)


def test_break_end_keeps_session_count() -> None:
    t = _task()
    pomodoro.start(t, T0)
    pomodoro.complete_session(t, T0 + FOCUS_MS)
    pomodoro.complete_session(t, T0 + FOCUS_MS + SHORT_BREAK_MS)

    assert t.pomodoro_count == 1
    assert t.pomodoro_start_time is None
    assert t.pomodoro_is_break is None


def test_reset_starts_cycle_over() -> None:
    t = _task()
    pomodoro.start(t, T0)
    t.pomodoro_count = 2
    pomodoro.reset(t)

    assert t.timer_state is TimerState.IDLE
    assert t.pomodoro_count == 0


def test_event_texts() -> None:
    t = _task()
    pomodoro.start(t, T0)
    event = pomodoro.complete_session(t, T0 + FOCUS_MS)

    assert event.title == "Pomodoro Complete!"
    assert event.body == "Work session done for: Write report. Take a 5-minute break!"

    done = pomodoro.complete_session(t, T0 + FOCUS_MS + SHORT_BREAK_MS)
    assert done.title == "Break Complete!"
    assert "Ready to focus?" in done.body


def test_format_time() -> None:
    assert format_time(FOCUS_MS) == "25:00"
    assert format_time(90_000) == "1:30"
    assert format_time(999) == "0:00"
    assert format_time(-5_000) == "0:00"
