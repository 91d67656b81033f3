# src/focuslist/engine/render.py

"""
Rendering helpers.

This module is responsible for:
- the Obsidian-style markdown export,
- task list lines (list / shell),
- the structured task detail view (show),
- the statistics summary (stats).

It is presentation-only: functions return strings and never mutate tasks.
"""

from __future__ import annotations

import re
import shutil
import sys
import textwrap
from datetime import datetime
from typing import Iterable

from . import pomodoro
from .clock import format_instant, local_today, to_ms
from .model import Priority, Task, TimerState, sort_tasks
from .schedule import format_due_date, is_overdue
from .stats import Stats


# ---------------------------------------------------------------------
# Markdown export
# ---------------------------------------------------------------------

def export_markdown(tasks: Iterable[Task]) -> str:
    """
    Obsidian task-list export, sorted by manual order.

    Line shape:
      - [ ] @category #tag 📅 2024-06-15 ⏱30m Text ✅ 2024-06-16
    followed by indented note lines and nested subtask checkboxes.
    """
    lines: list[str] = []

    for task in sorted(tasks, key=lambda t: t.order or 0):
        checkbox = "[x]" if task.completed else "[ ]"
        category = f"@{task.category} " if task.category else ""
        tags = " ".join(f"#{t}" for t in task.tags) + " " if task.tags else ""
        due = f"📅 {task.due_date.isoformat()} " if task.due_date else ""
        estimate = f"⏱{task.time_estimate}m " if task.time_estimate else ""
        done = ""
        if task.completed:
            stamp = f"✅ {format_instant(task.completed_at)[:10]} " if task.completed_at else ""
            done = f" {stamp}"

        lines.append(f"- {checkbox} {category}{tags}{due}{estimate}{task.text}{done}")

        if task.notes:
            lines.extend(f"  {note_line}" for note_line in task.notes.split("\n"))

        for st in task.subtasks or []:
            lines.append(f"  - {'[x]' if st.completed else '[ ]'} {st.text}")

    return "\n".join(lines)


# ---------------------------------------------------------------------
# ANSI / terminal helpers
# ---------------------------------------------------------------------

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")

_RESET = "\033[0m"
_DIM = "\033[90m"
_RED = "\033[31m"

_COLOR = {
    Priority.HIGH: "\033[31m",    # red
    Priority.MEDIUM: "\033[33m",  # yellow
    Priority.LOW: "\033[34m",     # blue
}


def _supports_color() -> bool:
    """Return True if stdout is a TTY."""
    return sys.stdout.isatty()


def _visible_len(s: str) -> int:
    """Return string length without ANSI colour escapes."""
    return len(_ANSI_RE.sub("", s))


def _paint(s: str, code: str, color: bool) -> str:
    if not (color and code and _supports_color()):
        return s
    return f"{code}{s}{_RESET}"


# ---------------------------------------------------------------------
# Task list
# ---------------------------------------------------------------------

def timer_label(task: Task, now: datetime) -> str:
    """`🍅 12:34`, `☕ 4:10 (paused)` or empty when idle."""
    state = task.timer_state
    if state is TimerState.IDLE:
        return ""
    icon = "☕" if task.pomodoro_is_break else "🍅"
    left = pomodoro.format_time(pomodoro.time_remaining(task, to_ms(now)))
    suffix = " (paused)" if state is TimerState.PAUSED else ""
    return f"{icon} {left}{suffix}"


def render_task_line(task: Task, now: datetime, *, color: bool = True) -> str:
    """
    One list line:
      [ ] 1718440000000  Write report  !high @work #q2  Today  2/3  🍅 24:10
    """
    checkbox = "[x]" if task.completed else "[ ]"
    parts = [f"{checkbox} {task.id}  {task.text}"]

    meta: list[str] = []
    if task.priority:
        meta.append(_paint(f"!{task.priority.value}", _COLOR[task.priority], color))
    if task.category:
        meta.append(f"@{task.category}")
    meta.extend(f"#{t}" for t in task.tags or [])
    if task.recurring:
        meta.append(f"↻{task.recurring.value}")
    if meta:
        parts.append(" ".join(meta))

    if task.due_date and not task.completed:
        label = format_due_date(task.due_date, local_today(now))
        if is_overdue(task.due_date, now):
            label = _paint(f"{label} (overdue)", _RED, color)
        parts.append(label)

    done, total = task.subtask_progress
    if total:
        parts.append(f"{done}/{total}")
    if task.time_estimate:
        parts.append(f"⏱{task.time_estimate}m")

    timer = timer_label(task, now)
    if timer:
        parts.append(timer)

    return "  ".join(parts)


def render_task_list(
    tasks: Iterable[Task],
    now: datetime,
    *,
    color: bool = True,
    keep_order: bool = False,
) -> str:
    """Render list lines in manual order, or as given when `keep_order`."""
    items = list(tasks) if keep_order else sort_tasks(tasks)
    if not items:
        return _paint("(no tasks)", _DIM, color)
    return "\n".join(render_task_line(t, now, color=color) for t in items)


# ---------------------------------------------------------------------
# Task detail view (show)
# ---------------------------------------------------------------------

def render_task_detail(task: Task, now: datetime, *, color: bool = True) -> str:
    """
    Render a structured task detail view.

    Width is capped at 80 characters.
    """
    width = min(80, shutil.get_terminal_size(fallback=(80, 24)).columns)
    inner_w = max(20, width - 4)  # borders + padding
    out: list[str] = []

    def wrap_lines(s: str, *, indent: str = "") -> list[str]:
        lines: list[str] = []
        for ln in s.rstrip().splitlines() or [""]:
            if not ln.strip():
                lines.append(indent.rstrip())
                continue
            wrapped = textwrap.wrap(
                ln,
                width=inner_w - len(indent),
                break_long_words=False,
                break_on_hyphens=False,
            ) or [""]
            lines.extend(indent + x for x in wrapped)
        return lines

    def box_rule(ch: str = "-") -> None:
        out.append(f"+{ch * (width - 2)}+")

    def box_line(content: str = "") -> None:
        raw = content[:inner_w] if _visible_len(content) == len(content) else content
        pad = inner_w - _visible_len(raw)
        if pad > 0:
            raw = raw + (" " * pad)
        out.append(f"| {raw} |")

    status = "done" if task.completed else "active"
    box_rule("=")
    box_line(f"{task.text} ({_paint(status, _DIM if task.completed else '', color)})")
    box_rule("=")

    box_line(f"id: {task.id}")
    box_line(f"created: {task.created_at.astimezone(now.tzinfo):%Y-%m-%d %H:%M}")
    if task.completed_at:
        box_line(f"completed: {task.completed_at.astimezone(now.tzinfo):%Y-%m-%d %H:%M}")
    if task.due_date:
        overdue = " (overdue)" if not task.completed and is_overdue(task.due_date, now) else ""
        box_line(f"due: {task.due_date.isoformat()}{overdue}")
    if task.priority:
        box_line(f"priority: {_paint(task.priority.value, _COLOR[task.priority], color)}")
    if task.category:
        box_line(f"category: {task.category}")
    if task.recurring:
        box_line(f"recurring: {task.recurring.value}")
    if task.tags:
        box_line("tags: " + " ".join(f"#{t}" for t in task.tags))
    if task.time_estimate:
        box_line(f"estimate: {task.time_estimate}m")

    timer = timer_label(task, now)
    if timer or task.pomodoro_count:
        box_line(f"pomodoro: {timer or 'idle'} (sessions this cycle: {task.pomodoro_count or 0})")

    if task.notes:
        box_rule()
        box_line("Notes:")
        for ln in wrap_lines(task.notes, indent="  "):
            box_line(ln)

    if task.subtasks:
        box_rule()
        done, total = task.subtask_progress
        box_line(f"Subtasks ({done}/{total}):")
        for st in task.subtasks:
            mark = "[x]" if st.completed else "[ ]"
            for ln in wrap_lines(f"{mark} {st.text}  ({st.id})", indent="  "):
                box_line(ln)

    box_rule("=")
    return "\n".join(out)


# ---------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------

def render_stats(stats: Stats) -> str:
    hours, minutes = divmod(stats.total_time_estimate, 60)
    estimate = f"{hours}h {minutes}m" if hours else f"{minutes}m"

    lines = [
        f"Tasks:            {stats.total} ({stats.active} active, {stats.completed} completed)",
        f"Completion rate:  {stats.completion_rate}%",
        f"Completed today:  {stats.completed_today}",
        f"Completed (7d):   {stats.completed_this_week}",
        f"Overdue:          {stats.overdue}",
        f"Pomodoros:        {stats.total_pomodoros} ({stats.pomodoro_minutes} min)",
        f"Estimated work:   {estimate}",
    ]

    for title, counts in (
        ("By priority", stats.by_priority),
        ("By category", stats.by_category),
        ("By tag", stats.by_tag),
    ):
        if not counts:
            continue
        lines.append(f"{title}:")
        for key, n in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0])):
            lines.append(f"  {key:<14} {n}")

    return "\n".join(lines)
