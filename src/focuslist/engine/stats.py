# src/focuslist/engine/stats.py

"""
Read-only views over a task collection.

Everything here is a pure function of (tasks, now): statistics for the
stats screen, the active/archive splits, and list filters.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, Optional

from .clock import local_midnight
from .model import Priority, Task, sort_tasks
from .pomodoro import FOCUS_MINUTES
from .schedule import is_overdue


@dataclass(frozen=True, slots=True)
class Stats:
    total: int = 0
    active: int = 0
    completed: int = 0
    completed_today: int = 0
    completed_this_week: int = 0
    total_pomodoros: int = 0
    pomodoro_minutes: int = 0
    total_time_estimate: int = 0
    overdue: int = 0
    completion_rate: int = 0
    by_priority: dict[str, int] = field(default_factory=dict)
    by_category: dict[str, int] = field(default_factory=dict)
    by_tag: dict[str, int] = field(default_factory=dict)


def calculate_stats(tasks: Iterable[Task], now: datetime) -> Stats:
    """
    Aggregate counters for the stats view.

    Notes:
    - "today" starts at local midnight; "this week" is the trailing
      7 x 24h window ending at local midnight today.
    - Pomodoros are summed over all tasks; time estimates, overdue counts
      and the priority/category/tag breakdowns cover active tasks only.
    """
    items = list(tasks)
    today = local_midnight(now)
    week_ago = today - timedelta(days=7)

    completed = [t for t in items if t.completed]
    active = [t for t in items if not t.completed]

    completed_today = sum(1 for t in completed if t.completed_at and t.completed_at >= today)
    completed_week = sum(1 for t in completed if t.completed_at and t.completed_at >= week_ago)

    total_pomodoros = sum(t.pomodoro_count or 0 for t in items)
    total_estimate = sum(t.time_estimate or 0 for t in active)
    overdue = sum(1 for t in active if t.due_date and is_overdue(t.due_date, now))

    by_priority: dict[str, int] = {}
    by_category: dict[str, int] = {}
    by_tag: dict[str, int] = {}
    for t in active:
        if t.priority:
            by_priority[t.priority.value] = by_priority.get(t.priority.value, 0) + 1
        if t.category:
            by_category[t.category] = by_category.get(t.category, 0) + 1
        for tag in t.tags or []:
            by_tag[tag] = by_tag.get(tag, 0) + 1

    total = len(items)
    # half-up rounding, not banker's
    rate = math.floor(len(completed) / total * 100 + 0.5) if total else 0

    return Stats(
        total=total,
        active=len(active),
        completed=len(completed),
        completed_today=completed_today,
        completed_this_week=completed_week,
        total_pomodoros=total_pomodoros,
        pomodoro_minutes=total_pomodoros * FOCUS_MINUTES,
        total_time_estimate=total_estimate,
        overdue=overdue,
        completion_rate=rate,
        by_priority=by_priority,
        by_category=by_category,
        by_tag=by_tag,
    )


# ---------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------

def active_tasks(tasks: Iterable[Task]) -> list[Task]:
    """Incomplete tasks in manual order."""
    return sort_tasks(t for t in tasks if not t.completed)


def completed_tasks(tasks: Iterable[Task]) -> list[Task]:
    """Archive view: most recently completed first."""
    done = [t for t in tasks if t.completed]
    return sorted(
        done,
        key=lambda t: t.completed_at.timestamp() if t.completed_at else 0.0,
        reverse=True,
    )


def filter_tasks(
    tasks: Iterable[Task],
    *,
    category: Optional[str] = None,
    tag: Optional[str] = None,
    priority: Optional[Priority] = None,
    search: Optional[str] = None,
) -> list[Task]:
    """
    Narrow a list by exact category/tag/priority and a case-insensitive
    substring search over text, notes and subtask texts.
    """
    needle = (search or "").strip().lower()

    def matches(t: Task) -> bool:
        if category and t.category != category:
            return False
        if tag and tag not in (t.tags or []):
            return False
        if priority and t.priority is not priority:
            return False
        if needle:
            haystack = [t.text, t.notes or "", *(st.text for st in t.subtasks or [])]
            if not any(needle in s.lower() for s in haystack):
                return False
        return True

    return [t for t in tasks if matches(t)]
