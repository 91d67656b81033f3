# tests/test_persistence.py

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from focuslist.engine.actions import TaskStore
from focuslist.engine.clock import to_ms
from focuslist.engine.model import Priority, Recurrence, Subtask, Task
from focuslist.engine.ops import BackgroundSaver, MarkdownRepository, escape_notes, render_document
from focuslist.engine.parse import parse_document, read_document, unescape_notes

from fakes import START

DOC = """\
# Todo List

## Active Tasks

## [ ] Write report
- **ID:** 1718440000000
- **Created:** 2024-06-15T08:40:00.000Z
- **Priority:** high
- **Due:** 2024-06-20
- **Tags:** ["q2", "urgent"]
- **Subtasks:** [{"id": 1718440000001, "text": "outline", "completed": true}]
- **Notes:** line one\\nline two
- **Pomodoro Start:** 1718440000000
- **Pomodoro Duration:** 1500000
- **Pomodoro Paused:** false
- **Pomodoro Count:** 2

## Completed Tasks

## [x] Old task
- **ID:** 1718000000000
- **Created:** 2024-06-10T08:00:00.000Z
- **Completed:** 2024-06-11T08:00:00.000Z
"""


# ---------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------

def test_render_document_layout() -> None:
    active = Task(id=2, text="Active one", created_at=START, order=1, priority=Priority.LOW)
    done = Task(id=1, text="Done one", created_at=START, completed=True, completed_at=START)

    text = render_document([done, active])
    lines = text.split("\n")

    assert lines[:4] == ["# Todo List", "", "## Active Tasks", ""]
    assert lines[4] == "## [ ] Active one"
    assert "- **ID:** 2" in lines
    assert "- **Priority:** low" in lines
    assert "- **Order:** 1" in lines
    assert text.index("## Completed Tasks") > text.index("## [ ] Active one")
    assert "- **Completed:** 2024-06-15T08:00:00.000Z" in lines


def test_empty_groups_are_omitted() -> None:
    assert render_document([]) == "# Todo List\n"
    text = render_document([Task(id=1, text="a", created_at=START)])
    assert "## Completed Tasks" not in text


def test_notes_escaping() -> None:
    notes = "path C:\\temp\nsecond line \\n literal"
    escaped = escape_notes(notes)
    assert "\n" not in escaped
    assert unescape_notes(escaped) == notes


# ---------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------

def test_parse_document_reads_all_fields() -> None:
    active, done = parse_document(DOC, START)

    assert active.id == 1718440000000
    assert active.text == "Write report"
    assert active.completed is False
    assert active.priority is Priority.HIGH
    assert active.due_date == date(2024, 6, 20)
    assert active.tags == ["q2", "urgent"]
    assert active.subtasks == [Subtask(id=1718440000001, text="outline", completed=True)]
    assert active.notes == "line one\nline two"
    assert active.pomodoro_paused is False
    assert active.pomodoro_count == 2

    assert done.completed is True
    assert done.completed_at is not None
    assert done.completed_at.isoformat() == "2024-06-11T08:00:00+00:00"


def test_parse_is_tolerant() -> None:
    text = """\
# Todo List
some stray text

## [ ] No metadata
- **Priority:** extreme
- **Due:** someday
- **Mystery:** 42
- **Tags:** not json
not a field line

## Notes
- **ID:** 7

## [X] Upper-case box
- **ID:** 9
"""
    first, second = parse_document(text, START)

    assert first.id == to_ms(START)
    assert first.created_at == START
    assert first.priority is None
    assert first.due_date is None
    assert first.tags is None

    # an unrelated heading closes the block; its fields are ignored
    assert second.id == 9
    assert second.completed is True


def test_render_then_parse_preserves_tasks() -> None:
    tasks = [
        Task(
            id=10,
            text="Gym",
            created_at=START,
            category="health",
            recurring=Recurrence.DAILY,
            due_date=date(2024, 6, 15),
            notes="a\\b\nc",
            tags=["fitness"],
            time_estimate=45,
            subtasks=[Subtask(id=11, text="stretch")],
            pomodoro_start_time=1,
            pomodoro_duration=2,
            pomodoro_paused=True,
            pomodoro_time_remaining=3,
            pomodoro_is_break=True,
            pomodoro_count=0,
        ),
        Task(id=13, text="Buy  milk", created_at=START, notes="    code\nline two  "),
        Task(id=12, text="Done", created_at=START, completed=True, completed_at=START),
    ]
    assert parse_document(render_document(tasks), START) == tasks


def test_padded_values_and_crlf_line_endings() -> None:
    text = (
        "## [ ] Padded  \r\n"
        "- **Priority:**  high \r\n"
        "- **Recurring:** weekly  \r\n"
        "- **Category:**  work \r\n"
        "- **Notes:**   indented\\nkept  \r\n"
    )
    (task,) = parse_document(text, START)

    assert task.text == "Padded"
    assert task.priority is Priority.HIGH
    assert task.recurring is Recurrence.WEEKLY
    assert task.category == "work"
    assert task.notes == "  indented\nkept  "


def test_read_document_missing_file(tmp_path: Path) -> None:
    assert read_document(tmp_path / "nope.md", START) == []


# ---------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------

def test_repository_save_and_load(data_file: Path, clock) -> None:
    repo = MarkdownRepository(data_file, clock=clock)
    tasks = [Task(id=1, text="a", created_at=START)]

    assert repo.save(tasks) is True
    assert data_file.read_text(encoding="utf-8").startswith("# Todo List")
    assert repo.load() == tasks
    assert [p.name for p in data_file.parent.iterdir()] == ["todos.md"]


def test_repository_load_failure_yields_empty_list(tmp_path: Path, clock) -> None:
    # a directory exists at the path but cannot be read as a file
    folder = tmp_path / "todos.md"
    folder.mkdir()
    assert MarkdownRepository(folder, clock=clock).load() == []


def test_repository_save_failure_returns_false(tmp_path: Path, clock) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    repo = MarkdownRepository(blocker / "todos.md", clock=clock)
    assert repo.save([Task(id=1, text="a", created_at=START)]) is False


# ---------------------------------------------------------------------
# Background saving
# ---------------------------------------------------------------------

def test_saver_refuses_unloaded_store(data_file: Path, clock) -> None:
    saver = BackgroundSaver(MarkdownRepository(data_file, clock=clock))
    try:
        with pytest.raises(RuntimeError):
            saver.attach(TaskStore(clock=clock))
    finally:
        saver.close()
    assert not data_file.exists()


def test_saver_writes_after_each_change(data_file: Path, clock) -> None:
    repo = MarkdownRepository(data_file, clock=clock)
    store = TaskStore(clock=clock)
    store.load(repo.load())

    saver = BackgroundSaver(repo)
    saver.attach(store)
    try:
        task = store.create("Persist me")
        store.add_tag(task.id, "saved")
        assert saver.flush(timeout=5)

        (loaded,) = repo.load()
        assert loaded.text == "Persist me"
        assert loaded.tags == ["saved"]
    finally:
        saver.close()

    # detached after close
    store.create("not saved")
    assert [t.text for t in repo.load()] == ["Persist me"]


def test_load_alone_does_not_write(data_file: Path, clock) -> None:
    data_file.write_text(DOC, encoding="utf-8")
    repo = MarkdownRepository(data_file, clock=clock)
    store = TaskStore(clock=clock)
    store.load(repo.load())

    saver = BackgroundSaver(repo)
    saver.attach(store)
    saver.close()

    assert data_file.read_text(encoding="utf-8") == DOC
