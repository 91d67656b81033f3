# src/focuslist/engine/pomodoro.py

"""
Pomodoro timer state machine.

States (derived from the task's pomodoro_* fields):

    idle -> running(focus) <-> paused(focus)
         -> running(break) <-> paused(break) -> idle

Every function here is a pure rule over a Task and the current epoch
milliseconds. Nothing is scheduled: the caller samples the clock (usually
once per second) and asks whether a timer has expired, so missed ticks and
clock jumps are harmless.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final

from .model import Task, TimerState


# ---------------------------------------------------------------------
# Durations
# ---------------------------------------------------------------------

MINUTE_MS: Final[int] = 60 * 1000

FOCUS_MS: Final[int] = 25 * MINUTE_MS
SHORT_BREAK_MS: Final[int] = 5 * MINUTE_MS
LONG_BREAK_MS: Final[int] = 15 * MINUTE_MS

# The fourth focus session of a cycle earns the long break.
SESSIONS_BEFORE_LONG_BREAK: Final[int] = 4

FOCUS_MINUTES: Final[int] = FOCUS_MS // MINUTE_MS


# ---------------------------------------------------------------------
# Session events
# ---------------------------------------------------------------------

class SessionKind(str, Enum):
    FOCUS_DONE = "focus_done"
    LONG_BREAK_START = "long_break_start"
    BREAK_DONE = "break_done"


@dataclass(frozen=True, slots=True)
class SessionEvent:
    """
    Emitted when a running timer reaches zero.

    `title` and `body` are ready-made notification texts.
    """

    task_id: int
    task_text: str
    kind: SessionKind

    @property
    def title(self) -> str:
        if self.kind is SessionKind.BREAK_DONE:
            return "Break Complete!"
        return "Pomodoro Complete!"

    @property
    def body(self) -> str:
        if self.kind is SessionKind.BREAK_DONE:
            return f"Break finished for: {self.task_text}. Ready to focus?"
        if self.kind is SessionKind.LONG_BREAK_START:
            return (
                f"Great work! You've completed {SESSIONS_BEFORE_LONG_BREAK} pomodoros "
                f"for: {self.task_text}. Enjoy a 15-minute long break!"
            )
        return f"Work session done for: {self.task_text}. Take a 5-minute break!"


# ---------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------

def start(task: Task, now_ms: int) -> None:
    """Begin a focus session from any state. The session counter is kept."""
    task.pomodoro_start_time = now_ms
    task.pomodoro_duration = FOCUS_MS
    task.pomodoro_paused = False
    task.pomodoro_time_remaining = None
    task.pomodoro_is_break = False
    task.pomodoro_count = task.pomodoro_count or 0


def pause(task: Task, now_ms: int) -> bool:
    """Freeze a running timer. Returns False when there is nothing to pause."""
    if task.timer_state is not TimerState.RUNNING:
        return False

    elapsed = now_ms - (task.pomodoro_start_time or 0)
    task.pomodoro_paused = True
    task.pomodoro_time_remaining = (task.pomodoro_duration or 0) - elapsed
    return True


def resume(task: Task, now_ms: int) -> bool:
    """
    Restart a paused timer with the remaining time as its new duration.

    A paused record without a remaining-time snapshot cannot be resumed;
    it goes back to idle instead (the completed-session count is kept).
    """
    if task.timer_state is not TimerState.PAUSED:
        return False

    if task.pomodoro_time_remaining is None:
        task.clear_timer()
        return True

    task.pomodoro_start_time = now_ms
    task.pomodoro_duration = task.pomodoro_time_remaining
    task.pomodoro_paused = False
    task.pomodoro_time_remaining = None
    return True


def reset(task: Task) -> None:
    """Back to idle and start the cycle over."""
    task.clear_timer()
    task.pomodoro_count = 0


def time_remaining(task: Task, now_ms: int) -> int:
    """
    Milliseconds left on the task's timer.

    Idle timers report 0, paused ones their snapshot; a running countdown
    never goes below zero.
    """
    if task.pomodoro_start_time is None or not task.pomodoro_duration:
        return 0
    if task.pomodoro_paused and task.pomodoro_time_remaining is not None:
        return task.pomodoro_time_remaining

    elapsed = now_ms - task.pomodoro_start_time
    return max(0, task.pomodoro_duration - elapsed)


def is_expired(task: Task, now_ms: int) -> bool:
    """True when a running, incomplete task's timer has reached zero."""
    if task.completed or task.timer_state is not TimerState.RUNNING:
        return False
    if not task.pomodoro_duration:
        return False
    return now_ms - (task.pomodoro_start_time or 0) >= task.pomodoro_duration


def complete_session(task: Task, now_ms: int) -> SessionEvent:
    """
    Apply the expiry transition and describe what happened.

    A finished break returns the task to idle. A finished focus session
    starts a break right away: a long one after the fourth session of the
    cycle (and the counter starts over), otherwise a short one.
    """
    if task.pomodoro_is_break:
        task.clear_timer()
        return SessionEvent(task.id, task.text, SessionKind.BREAK_DONE)

    count = task.pomodoro_count or 0
    long_break = count == SESSIONS_BEFORE_LONG_BREAK - 1

    task.pomodoro_start_time = now_ms
    task.pomodoro_duration = LONG_BREAK_MS if long_break else SHORT_BREAK_MS
    task.pomodoro_paused = False
    task.pomodoro_time_remaining = None
    task.pomodoro_is_break = True
    task.pomodoro_count = 0 if long_break else count + 1

    kind = SessionKind.LONG_BREAK_START if long_break else SessionKind.FOCUS_DONE
    return SessionEvent(task.id, task.text, kind)


# ---------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------

def format_time(milliseconds: int) -> str:
    """`M:SS` countdown label (90000 -> "1:30")."""
    total_seconds = max(0, milliseconds) // 1000
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes}:{seconds:02d}"
