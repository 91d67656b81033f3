# src/focuslist/engine/serialize.py

"""
JSON wire format for tasks (export / import).

The wire shape uses camelCase keys (`createdAt`, `dueDate`,
`pomodoroStartTime`, ...). Absent optional fields are omitted rather than
written as null.

Import is strict: the payload must be a JSON array of task objects whose
fields have the expected types. Any deviation raises ImportFormatError and
nothing is returned.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Iterable, Optional, TypeVar

from .clock import format_instant, parse_instant, parse_local_date
from .model import Priority, Recurrence, Subtask, Task

T = TypeVar("T")


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class ImportFormatError(ValueError):
    """
    Raised when an import payload is not valid JSON or not a task list.
    """

    def __init__(self, message: str, *, index: Optional[int] = None) -> None:
        self.index = index
        where = f"task[{index}]: " if index is not None else ""
        super().__init__(where + message)


# ---------------------------------------------------------------------
# Task -> dict
# ---------------------------------------------------------------------

def subtask_to_dict(subtask: Subtask) -> dict[str, Any]:
    return {"id": subtask.id, "text": subtask.text, "completed": subtask.completed}


def task_to_dict(task: Task) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": task.id,
        "text": task.text,
        "completed": task.completed,
        "createdAt": format_instant(task.created_at),
    }

    optional: list[tuple[str, Any]] = [
        ("completedAt", format_instant(task.completed_at) if task.completed_at else None),
        ("pomodoroStartTime", task.pomodoro_start_time),
        ("pomodoroDuration", task.pomodoro_duration),
        ("pomodoroPaused", task.pomodoro_paused),
        ("pomodoroTimeRemaining", task.pomodoro_time_remaining),
        ("pomodoroIsBreak", task.pomodoro_is_break),
        ("pomodoroCount", task.pomodoro_count),
        ("dueDate", task.due_date.isoformat() if task.due_date else None),
        ("priority", task.priority.value if task.priority else None),
        ("order", task.order),
        ("category", task.category),
        (
            "subtasks",
            [subtask_to_dict(st) for st in task.subtasks] if task.subtasks is not None else None,
        ),
        ("recurring", task.recurring.value if task.recurring else None),
        ("notes", task.notes),
        ("tags", list(task.tags) if task.tags is not None else None),
        ("timeEstimate", task.time_estimate),
    ]
    for key, value in optional:
        if value is not None:
            data[key] = value

    return data


def export_json(tasks: Iterable[Task]) -> str:
    """The task collection as pretty-printed JSON, in collection order."""
    return json.dumps([task_to_dict(t) for t in tasks], indent=2, ensure_ascii=False)


# ---------------------------------------------------------------------
# dict -> Task (strict)
# ---------------------------------------------------------------------

def import_json(text: str) -> list[Task]:
    """
    Parse an exported task list.

    Raises ImportFormatError on malformed JSON, a non-array root, or any
    task with missing or mistyped fields.
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise ImportFormatError(f"Invalid JSON: {e}") from e

    if not isinstance(data, list):
        raise ImportFormatError("JSON root must be an array of tasks")

    return [task_from_dict(item, index=i) for i, item in enumerate(data)]


def task_from_dict(data: Any, *, index: Optional[int] = None) -> Task:
    if not isinstance(data, dict):
        raise ImportFormatError("task must be an object", index=index)

    def fail(msg: str) -> ImportFormatError:
        return ImportFormatError(msg, index=index)

    task_id = _require(data, "id", _is_int, "an integer", fail)
    text = _require(data, "text", _is_str, "a string", fail)
    if not text.strip():
        raise fail("'text' must not be empty")
    completed = _require(data, "completed", _is_bool, "a boolean", fail)
    created_raw = _require(data, "createdAt", _is_str, "a string", fail)

    task = Task(
        id=task_id,
        text=text,
        completed=completed,
        created_at=_instant(created_raw, "createdAt", fail),
    )

    completed_raw = _optional(data, "completedAt", _is_str, "a string", fail)
    if completed_raw is not None:
        task.completed_at = _instant(completed_raw, "completedAt", fail)

    due_raw = _optional(data, "dueDate", _is_str, "a string", fail)
    if due_raw is not None:
        try:
            task.due_date = parse_local_date(due_raw)
        except ValueError as e:
            raise fail(f"'dueDate' is not a YYYY-MM-DD date: {due_raw!r}") from e

    priority_raw = _optional(data, "priority", _is_str, "a string", fail)
    if priority_raw is not None:
        task.priority = _enum(Priority, priority_raw, "priority", fail)

    recurring_raw = _optional(data, "recurring", _is_str, "a string", fail)
    if recurring_raw is not None:
        task.recurring = _enum(Recurrence, recurring_raw, "recurring", fail)

    task.category = _optional(data, "category", _is_str, "a string", fail)
    task.order = _optional(data, "order", _is_int, "an integer", fail)
    task.notes = _optional(data, "notes", _is_str, "a string", fail)
    task.time_estimate = _optional(data, "timeEstimate", _is_int, "an integer", fail)

    tags = _optional(data, "tags", _is_list, "an array", fail)
    if tags is not None:
        if not all(isinstance(t, str) for t in tags):
            raise fail("'tags' must contain only strings")
        task.tags = list(tags)

    subtasks = _optional(data, "subtasks", _is_list, "an array", fail)
    if subtasks is not None:
        task.subtasks = [_subtask_from_dict(st, fail) for st in subtasks]

    task.pomodoro_start_time = _optional(data, "pomodoroStartTime", _is_int, "an integer", fail)
    task.pomodoro_duration = _optional(data, "pomodoroDuration", _is_int, "an integer", fail)
    task.pomodoro_paused = _optional(data, "pomodoroPaused", _is_bool, "a boolean", fail)
    task.pomodoro_time_remaining = _optional(
        data, "pomodoroTimeRemaining", _is_int, "an integer", fail
    )
    task.pomodoro_is_break = _optional(data, "pomodoroIsBreak", _is_bool, "a boolean", fail)
    task.pomodoro_count = _optional(data, "pomodoroCount", _is_int, "an integer", fail)

    return task


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def _is_int(v: Any) -> bool:
    # JSON numbers arrive as float when written with a fraction part.
    if isinstance(v, bool):
        return False
    return isinstance(v, int) or (isinstance(v, float) and v.is_integer())


def _is_str(v: Any) -> bool:
    return isinstance(v, str)


def _is_bool(v: Any) -> bool:
    return isinstance(v, bool)


def _is_list(v: Any) -> bool:
    return isinstance(v, list)


def _coerce(v: Any) -> Any:
    if isinstance(v, float):
        return int(v)
    return v


def _require(
    data: dict[str, Any],
    key: str,
    check: Callable[[Any], bool],
    what: str,
    fail: Callable[[str], ImportFormatError],
) -> Any:
    if key not in data or data[key] is None:
        raise fail(f"missing required key '{key}'")
    value = data[key]
    if not check(value):
        raise fail(f"'{key}' must be {what}")
    return _coerce(value)


def _optional(
    data: dict[str, Any],
    key: str,
    check: Callable[[Any], bool],
    what: str,
    fail: Callable[[str], ImportFormatError],
) -> Any:
    value = data.get(key)
    if value is None:
        return None
    if not check(value):
        raise fail(f"'{key}' must be {what}")
    return _coerce(value)


def _instant(raw: str, key: str, fail: Callable[[str], ImportFormatError]):
    try:
        return parse_instant(raw)
    except ValueError as e:
        raise fail(f"'{key}' is not an ISO-8601 timestamp: {raw!r}") from e


def _enum(enum_cls: type[T], raw: str, key: str, fail: Callable[[str], ImportFormatError]) -> T:
    try:
        return enum_cls(raw)  # type: ignore[call-arg]
    except ValueError as e:
        allowed = ", ".join(m.value for m in enum_cls)  # type: ignore[attr-defined]
        raise fail(f"invalid {key} '{raw}' (allowed: {allowed})") from e


def _subtask_from_dict(data: Any, fail: Callable[[str], ImportFormatError]) -> Subtask:
    if not isinstance(data, dict):
        raise fail("'subtasks' entries must be objects")
    sid = _require(data, "id", _is_int, "an integer", fail)
    text = _require(data, "text", _is_str, "a string", fail)
    done = _optional(data, "completed", _is_bool, "a boolean", fail)
    return Subtask(id=sid, text=text, completed=bool(done))
