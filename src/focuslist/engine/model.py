# src/focuslist/engine/model.py

"""
Core domain models.

This module defines the in-memory representations of tasks and subtasks,
the closed vocabularies they use (priority, recurrence, category), and the
default ordering rules.

No filesystem access should happen here. Wire formats (JSON keys, the
markdown store) live in `serialize`, `parse` and `ops`.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Iterable, Optional


# ---------------------------------------------------------------------
# Vocabularies
# ---------------------------------------------------------------------

class Priority(str, Enum):
    """
    Task priority.

    Ordering reflects UX priority: high first.
    """

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def sort_key(cls, priority: Optional["Priority"]) -> int:
        order = {
            cls.HIGH: 0,
            cls.MEDIUM: 1,
            cls.LOW: 2,
        }
        return order.get(priority, 3) if priority is not None else 3


class Recurrence(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class TimerState(str, Enum):
    """Derived pomodoro state of a task (see `Task.timer_state`)."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


CATEGORIES: tuple[str, ...] = ("work", "home", "personal", "learning", "health")


# ---------------------------------------------------------------------
# Subtask
# ---------------------------------------------------------------------

@dataclass(slots=True)
class Subtask:
    """
    A checklist item owned by exactly one task.

    Completion is independent of the parent's completion.
    """

    id: int
    text: str
    completed: bool = False


# ---------------------------------------------------------------------
# Task
# ---------------------------------------------------------------------

@dataclass(slots=True)
class Task:
    """
    In-memory representation of a task.

    Notes:
    - `id` is assigned at creation and never reused.
    - `completed_at` is present exactly when `completed` is True.
    - The pomodoro_* attributes form one group: all absent means idle;
      a start time with `pomodoro_paused` False means running; with
      `pomodoro_paused` True it means paused, and then
      `pomodoro_time_remaining` holds the snapshot.
    """

    # Identity / core
    id: int
    text: str
    created_at: datetime
    completed: bool = False
    completed_at: Optional[datetime] = None

    # Scheduling
    due_date: Optional[date] = None
    priority: Optional[Priority] = None
    recurring: Optional[Recurrence] = None

    # Organisation
    category: Optional[str] = None
    tags: Optional[list[str]] = None
    order: Optional[int] = None
    notes: Optional[str] = None
    time_estimate: Optional[int] = None

    # Composition
    subtasks: Optional[list[Subtask]] = None

    # Pomodoro (milliseconds / epoch milliseconds)
    pomodoro_start_time: Optional[int] = None
    pomodoro_duration: Optional[int] = None
    pomodoro_paused: Optional[bool] = None
    pomodoro_time_remaining: Optional[int] = None
    pomodoro_is_break: Optional[bool] = None
    pomodoro_count: Optional[int] = None

    # -----------------------------------------------------------------
    # Convenience properties
    # -----------------------------------------------------------------

    @property
    def timer_state(self) -> TimerState:
        if self.pomodoro_start_time is None:
            return TimerState.IDLE
        if self.pomodoro_paused:
            return TimerState.PAUSED
        return TimerState.RUNNING

    @property
    def subtask_progress(self) -> tuple[int, int]:
        items = self.subtasks or []
        return sum(1 for st in items if st.completed), len(items)

    def clone(self) -> "Task":
        """Deep copy (lists of tags and subtasks are not shared)."""
        return copy.deepcopy(self)

    def clear_timer(self) -> None:
        """Drop every timer field except the session counter."""
        self.pomodoro_start_time = None
        self.pomodoro_duration = None
        self.pomodoro_paused = None
        self.pomodoro_time_remaining = None
        self.pomodoro_is_break = None


# ---------------------------------------------------------------------
# Ordering helpers
# ---------------------------------------------------------------------

def sort_tasks(tasks: Iterable[Task]) -> list[Task]:
    """
    Default ordering for the active list:

    1. manual order (tasks without one go last)
    2. id (stable tie-breaker, roughly creation order)
    """
    return sorted(
        tasks,
        key=lambda t: (
            t.order if t.order is not None else float("inf"),
            t.id,
        ),
    )


def dedupe_tasks(tasks: Iterable[Task]) -> list[Task]:
    """Keep the first task for every id, preserving order."""
    seen: set[int] = set()
    out: list[Task] = []
    for task in tasks:
        if task.id in seen:
            continue
        seen.add(task.id)
        out.append(task)
    return out
