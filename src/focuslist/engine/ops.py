# src/focuslist/engine/ops.py

"""
Storage rendering and the persistence collaborator.

This module contains:
- serialisation of Task objects into the markdown task document,
- `MarkdownRepository`: load/save of the whole collection,
- `BackgroundSaver`: fire-and-forget writes driven by store changes.

No parsing is performed here (see `parse`).
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Optional, Sequence

from .clock import Clock, SystemClock, format_instant
from .parse import ACTIVE_HEADING, COMPLETED_HEADING, DOCUMENT_TITLE, FIELD_LABELS, read_document

if TYPE_CHECKING:
    from .actions import TaskStore
    from .model import Task

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class PersistenceError(Exception):
    """Raised internally when the task file cannot be written."""


# ---------------------------------------------------------------------
# Serialisation (markdown document)
# ---------------------------------------------------------------------

def escape_notes(notes: str) -> str:
    """Fold multi-line notes into one line: `\\` -> `\\\\`, newline -> `\\n`."""
    return notes.replace("\\", "\\\\").replace("\r\n", "\n").replace("\n", "\\n")


def render_document(tasks: Iterable["Task"]) -> str:
    """
    Render the full task document.

    Active tasks come first, then completed ones; each group keeps
    collection order and is omitted when empty.
    """
    items = list(tasks)
    active = [t for t in items if not t.completed]
    done = [t for t in items if t.completed]

    out: list[str] = [DOCUMENT_TITLE, ""]

    if active:
        out += [ACTIVE_HEADING, ""]
        for task in active:
            out += _render_block(task)

    if done:
        out += [COMPLETED_HEADING, ""]
        for task in done:
            out += _render_block(task)

    return "\n".join(out)


def _render_block(task: "Task") -> list[str]:
    checkbox = "[x]" if task.completed else "[ ]"
    title = task.text.replace("\r", " ").replace("\n", " ")
    lines = [f"## {checkbox} {title}"]

    def field(attr: str, value: object) -> None:
        if value is None:
            return
        lines.append(f"- **{FIELD_LABELS[attr]}:** {value}")

    def flag(value: Optional[bool]) -> Optional[str]:
        return None if value is None else ("true" if value else "false")

    field("id", task.id)
    field("created_at", format_instant(task.created_at))
    field("completed_at", format_instant(task.completed_at) if task.completed_at else None)
    field("priority", task.priority.value if task.priority else None)
    field("category", task.category)
    field("due_date", task.due_date.isoformat() if task.due_date else None)
    field("order", task.order)
    field("recurring", task.recurring.value if task.recurring else None)
    if task.subtasks:
        field(
            "subtasks",
            json.dumps(
                [{"id": st.id, "text": st.text, "completed": st.completed} for st in task.subtasks],
                ensure_ascii=False,
            ),
        )
    field("notes", escape_notes(task.notes) if task.notes else None)
    if task.tags:
        field("tags", json.dumps(task.tags, ensure_ascii=False))
    field("time_estimate", task.time_estimate)
    field("pomodoro_start_time", task.pomodoro_start_time)
    field("pomodoro_duration", task.pomodoro_duration)
    field("pomodoro_paused", flag(task.pomodoro_paused))
    field("pomodoro_time_remaining", task.pomodoro_time_remaining)
    field("pomodoro_is_break", flag(task.pomodoro_is_break))
    field("pomodoro_count", task.pomodoro_count)

    lines.append("")
    return lines


# ---------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------

class MarkdownRepository:
    """
    Load/save the task collection as one markdown document.

    Neither method raises: load falls back to an empty list and save
    reports failure through its return value (both are logged).
    """

    def __init__(self, path: str | Path, *, clock: Optional[Clock] = None) -> None:
        self.path = Path(path)
        self._clock = clock or SystemClock()

    def load(self) -> list["Task"]:
        try:
            tasks = read_document(self.path, self._clock.now())
        except (OSError, UnicodeDecodeError):
            logger.exception("Failed to read %s; starting with an empty list", self.path)
            return []

        logger.info("Loaded %d task(s) from %s", len(tasks), self.path)
        return tasks

    def save(self, tasks: Sequence["Task"]) -> bool:
        try:
            self._write(render_document(tasks))
        except PersistenceError as e:
            logger.error("Failed to save tasks: %s", e)
            return False

        logger.debug("Saved %d task(s) to %s", len(tasks), self.path)
        return True

    def _write(self, text: str) -> None:
        """Write atomically: temp file in the same directory, then rename."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=".focuslist-", dir=str(self.path.parent))
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(text)
                os.replace(tmp, self.path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except OSError as e:
            raise PersistenceError(f"{self.path}: {e}") from e


# ---------------------------------------------------------------------
# Background saving
# ---------------------------------------------------------------------

class BackgroundSaver:
    """
    Write store snapshots on a worker thread.

    Only the newest pending snapshot is kept (last write wins), so a burst
    of mutations costs one write. `flush()` waits for pending writes;
    `close()` flushes and stops the worker.
    """

    def __init__(self, repository: MarkdownRepository) -> None:
        self._repository = repository
        self._cond = threading.Condition()
        self._pending: Optional[Sequence["Task"]] = None
        self._busy = False
        self._closed = False
        self._unsubscribe = None
        self._thread = threading.Thread(target=self._run, name="focuslist-saver", daemon=True)
        self._thread.start()

    def attach(self, store: "TaskStore") -> None:
        """
        Save after every change to `store`.

        Refuses to attach before the store's initial load, so an empty
        in-memory list can never overwrite the file.
        """
        if not store.loaded:
            raise RuntimeError("Store must be loaded before saving is enabled")
        self._unsubscribe = store.subscribe(self.submit)

    def submit(self, snapshot: Sequence["Task"]) -> None:
        with self._cond:
            if self._closed:
                logger.warning("Saver closed; dropping snapshot")
                return
            self._pending = snapshot
            self._cond.notify_all()

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Block until nothing is pending. Returns False on timeout."""
        with self._cond:
            return self._cond.wait_for(lambda: self._pending is None and not self._busy, timeout)

    def close(self, timeout: Optional[float] = 5.0) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.flush(timeout)
        with self._cond:
            self._closed = True
            self._cond.notify_all()
        self._thread.join(timeout)

    def _run(self) -> None:
        while True:
            with self._cond:
                self._cond.wait_for(lambda: self._pending is not None or self._closed)
                if self._pending is None and self._closed:
                    return
                snapshot, self._pending = self._pending, None
                self._busy = True

            try:
                self._repository.save(snapshot or [])
            finally:
                with self._cond:
                    self._busy = False
                    self._cond.notify_all()
