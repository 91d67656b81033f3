# src/focuslist/engine/parse.py

"""
Task store parser (markdown document).

Parses the human-readable task file into Task models.

Document structure:

    # Todo List

    ## Active Tasks

    ## [ ] Write report
    - **ID:** 1718440000000
    - **Created:** 2024-06-15T10:00:00.000Z
    - **Tags:** ["q2"]
    ...

    ## Completed Tasks

    ## [x] Old task
    ...

Parsing is deliberately tolerant: unknown labels and malformed values are
skipped (the field stays absent), other `## ` headings just close the
current block, and a missing file is an empty task list.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Final, Optional

from .clock import parse_instant, parse_local_date, to_ms
from .model import Priority, Recurrence, Subtask, Task

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# Layout constants
# ---------------------------------------------------------------------

DOCUMENT_TITLE: Final[str] = "# Todo List"
ACTIVE_HEADING: Final[str] = "## Active Tasks"
COMPLETED_HEADING: Final[str] = "## Completed Tasks"

_TASK_HEADING_RE = re.compile(r"^## \[([ xX])\] (.+)$")
_FIELD_RE = re.compile(r"^- \*\*(.+?):\*\* ?(.*)$")
_ESCAPE_RE = re.compile(r"\\(.)")


# ---------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------

def read_document(path: str | Path, now: datetime) -> list[Task]:
    """
    Read and parse the task file.

    A missing file yields an empty list. Read errors propagate as OSError;
    the repository decides how to report them.
    """
    p = Path(path)
    if not p.exists():
        logger.info("No task file at %s; starting empty", p)
        return []

    text = p.read_text(encoding="utf-8")
    return parse_document(text, now)


def parse_document(text: str, now: datetime) -> list[Task]:
    """
    Parse document text into tasks, in document order.

    `now` supplies defaults for blocks lacking an ID (`now_ms + index`)
    or a creation timestamp.
    """
    base_ms = to_ms(now)
    tasks: list[Task] = []
    current: Optional[_Block] = None

    def flush() -> None:
        nonlocal current
        if current is not None:
            tasks.append(current.build(default_id=base_ms + len(tasks), now=now))
        current = None

    # Field values are passed on unstripped.
    for raw in text.split("\n"):
        line = raw.removesuffix("\r")
        if line.startswith("## "):
            flush()
            m = _TASK_HEADING_RE.match(line.rstrip())
            if m:
                current = _Block(text=m.group(2).strip(), completed=m.group(1) in "xX")
            continue

        if current is None:
            continue

        m = _FIELD_RE.match(line)
        if not m:
            continue

        label, value = m.group(1).strip(), m.group(2)
        current.apply(label, value)

    flush()
    return tasks


def unescape_notes(value: str) -> str:
    """Reverse of `ops.escape_notes`: `\\n` -> newline, `\\\\` -> backslash."""

    def repl(m: re.Match[str]) -> str:
        ch = m.group(1)
        if ch == "n":
            return "\n"
        if ch == "\\":
            return "\\"
        return m.group(0)

    return _ESCAPE_RE.sub(repl, value)


# ---------------------------------------------------------------------
# Block accumulation
# ---------------------------------------------------------------------

@dataclass(slots=True)
class _Block:
    text: str
    completed: bool
    values: dict[str, Any] = field(default_factory=dict)

    def apply(self, label: str, value: str) -> None:
        handler = _FIELDS.get(label)
        if handler is None:
            return

        attr, convert = handler
        try:
            self.values[attr] = convert(value)
        except (ValueError, TypeError) as e:
            logger.debug("Skipping malformed %r field in %r: %s", label, self.text, e)

    def build(self, *, default_id: int, now: datetime) -> Task:
        values = dict(self.values)
        task_id = values.pop("id", None)
        created_at = values.pop("created_at", None)

        task = Task(
            id=task_id if task_id is not None else default_id,
            text=self.text,
            completed=self.completed,
            created_at=created_at or now,
        )
        for attr, value in values.items():
            setattr(task, attr, value)
        return task


# ---------------------------------------------------------------------
# Field converters
# ---------------------------------------------------------------------

def _to_bool(value: str) -> bool:
    v = value.strip().lower()
    if v == "true":
        return True
    if v == "false":
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _to_int(value: str) -> int:
    return int(value.strip())


def _to_text(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("empty value")
    return value


def _to_priority(value: str) -> Priority:
    return Priority(value.strip())


def _to_recurrence(value: str) -> Recurrence:
    return Recurrence(value.strip())


def _to_subtasks(value: str) -> list[Subtask]:
    data = json.loads(value)
    if not isinstance(data, list):
        raise ValueError("subtasks must be a JSON array")

    out: list[Subtask] = []
    for item in data:
        if not isinstance(item, dict):
            continue
        sid, text = item.get("id"), item.get("text")
        if not isinstance(sid, int) or isinstance(sid, bool) or not isinstance(text, str):
            continue
        out.append(Subtask(id=sid, text=text, completed=item.get("completed") is True))
    return out


def _to_tags(value: str) -> list[str]:
    data = json.loads(value)
    if not isinstance(data, list):
        raise ValueError("tags must be a JSON array")
    return [t for t in data if isinstance(t, str)]


def _to_notes(value: str) -> str:
    if not value.strip():
        raise ValueError("empty value")
    return unescape_notes(value)


_FIELDS: Final[dict[str, tuple[str, Callable[[str], Any]]]] = {
    "ID": ("id", _to_int),
    "Created": ("created_at", parse_instant),
    "Completed": ("completed_at", parse_instant),
    "Priority": ("priority", _to_priority),
    "Category": ("category", _to_text),
    "Due": ("due_date", parse_local_date),
    "Order": ("order", _to_int),
    "Recurring": ("recurring", _to_recurrence),
    "Subtasks": ("subtasks", _to_subtasks),
    "Notes": ("notes", _to_notes),
    "Tags": ("tags", _to_tags),
    "Estimate": ("time_estimate", _to_int),
    "Pomodoro Start": ("pomodoro_start_time", _to_int),
    "Pomodoro Duration": ("pomodoro_duration", _to_int),
    "Pomodoro Paused": ("pomodoro_paused", _to_bool),
    "Pomodoro Remaining": ("pomodoro_time_remaining", _to_int),
    "Pomodoro Break": ("pomodoro_is_break", _to_bool),
    "Pomodoro Count": ("pomodoro_count", _to_int),
}

FIELD_LABELS: Final[dict[str, str]] = {attr: label for label, (attr, _) in _FIELDS.items()}
