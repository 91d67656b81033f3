# src/focuslist/engine/validate.py

"""
Task validation rules.

This module checks Task objects against the model invariants that the
store maintains (completion timestamps, timer state, tags, categories).
Tasks loaded from a hand-edited file or an import may break them; the
`validate` command reports what it finds.

It does NOT perform parsing or mutate anything.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from .model import CATEGORIES, Task
from .pomodoro import SESSIONS_BEFORE_LONG_BREAK


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class ValidationError(Exception):
    """
    Fatal validation error used for command flow control.

    Raised when a command must stop immediately (e.g. an unknown task id
    or invalid user input).
    """


# ---------------------------------------------------------------------
# Result objects
# ---------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """
    A single validation problem.

    `code` is a stable identifier suitable for tests and future filtering.
    """

    code: str
    message: str


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """
    Aggregated validation result for a single task.
    """

    task_id: int
    issues: Sequence[ValidationIssue]

    @property
    def ok(self) -> bool:
        return not self.issues


# ---------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------

def validate_task(task: Task) -> ValidationResult:
    issues: list[ValidationIssue] = []

    def issue(code: str, message: str) -> None:
        issues.append(ValidationIssue(code=code, message=message))

    if not task.text.strip():
        issue("text_empty", "Task text must not be empty")

    # completed <=> completed_at
    if task.completed and task.completed_at is None:
        issue("completed_no_timestamp", "Completed task has no completion timestamp")
    if not task.completed and task.completed_at is not None:
        issue("timestamp_not_completed", "Active task carries a completion timestamp")

    if task.category is not None and task.category not in CATEGORIES:
        issue(
            "category_invalid",
            f"Unknown category '{task.category}' (allowed: {', '.join(CATEGORIES)})",
        )

    if task.tags and len(set(task.tags)) != len(task.tags):
        issue("tags_duplicate", "Tags must be unique per task")

    if task.time_estimate is not None and task.time_estimate < 0:
        issue("estimate_negative", "Time estimate must not be negative")

    _validate_timer(task, issue)

    subtask_ids = [st.id for st in task.subtasks or []]
    if len(set(subtask_ids)) != len(subtask_ids):
        issue("subtask_id_duplicate", "Subtask ids must be unique within a task")

    return ValidationResult(task_id=task.id, issues=tuple(issues))


def validate_tasks(tasks: Iterable[Task]) -> list[ValidationResult]:
    """
    Validate every task, plus collection-wide id uniqueness.

    Only failing results are returned.
    """
    results: list[ValidationResult] = []
    seen: set[int] = set()

    for task in tasks:
        res = validate_task(task)
        if task.id in seen:
            res = ValidationResult(
                task_id=task.id,
                issues=(
                    *res.issues,
                    ValidationIssue(code="id_duplicate", message=f"Duplicate task id {task.id}"),
                ),
            )
        seen.add(task.id)
        if not res.ok:
            results.append(res)

    return results


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def _validate_timer(task: Task, issue) -> None:
    """
    The pomodoro fields move as one group.
    """
    started = task.pomodoro_start_time is not None

    if not started:
        stray = [
            name
            for name, value in (
                ("duration", task.pomodoro_duration),
                ("paused", task.pomodoro_paused),
                ("remaining", task.pomodoro_time_remaining),
                ("is_break", task.pomodoro_is_break),
            )
            if value is not None
        ]
        if stray:
            issue("timer_partial", f"Idle timer has stray fields: {', '.join(stray)}")
    else:
        if task.pomodoro_duration is None:
            issue("timer_no_duration", "Running or paused timer has no duration")
        if task.pomodoro_paused and task.pomodoro_time_remaining is None:
            issue("timer_paused_no_remaining", "Paused timer has no remaining-time snapshot")
        if not task.pomodoro_paused and task.pomodoro_time_remaining is not None:
            issue("timer_running_with_remaining", "Running timer carries a paused snapshot")

    count = task.pomodoro_count
    if count is not None and not 0 <= count < SESSIONS_BEFORE_LONG_BREAK:
        issue(
            "timer_count_range",
            f"Pomodoro count must be 0..{SESSIONS_BEFORE_LONG_BREAK - 1}, got {count}",
        )
