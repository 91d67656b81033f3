# tests/test_serialize.py

from __future__ import annotations

import json
from datetime import date

import pytest

from focuslist.engine.model import Priority, Recurrence, Subtask, Task
from focuslist.engine.serialize import (
    ImportFormatError,
    export_json,
    import_json,
    task_to_dict,
)

from fakes import START


def _full_task() -> Task:
    return Task(
        id=1718445600000,
        text="Write report",
        created_at=START,
        due_date=date(2024, 6, 15),
        priority=Priority.HIGH,
        recurring=Recurrence.WEEKLY,
        category="work",
        tags=["q2"],
        order=3,
        notes="first\nsecond",
        time_estimate=30,
        subtasks=[Subtask(id=1718445600001, text="outline", completed=True)],
        pomodoro_start_time=1718445600000,
        pomodoro_duration=1_500_000,
        pomodoro_paused=False,
        pomodoro_is_break=False,
        pomodoro_count=1,
    )


def test_task_to_dict_uses_wire_keys() -> None:
    data = task_to_dict(_full_task())

    assert data["createdAt"] == "2024-06-15T08:00:00.000Z"
    assert data["dueDate"] == "2024-06-15"
    assert data["priority"] == "high"
    assert data["recurring"] == "weekly"
    assert data["timeEstimate"] == 30
    assert data["pomodoroStartTime"] == 1718445600000
    assert data["pomodoroPaused"] is False
    assert data["subtasks"] == [{"id": 1718445600001, "text": "outline", "completed": True}]
    assert "completedAt" not in data
    assert "pomodoroTimeRemaining" not in data


def test_minimal_task_omits_absent_fields() -> None:
    data = task_to_dict(Task(id=1, text="a", created_at=START))
    assert data == {
        "id": 1,
        "text": "a",
        "completed": False,
        "createdAt": "2024-06-15T08:00:00.000Z",
    }


def test_export_then_import_preserves_task() -> None:
    original = _full_task()
    (restored,) = import_json(export_json([original]))

    assert restored == original
    assert restored.created_at.utcoffset().total_seconds() == 0


def test_export_is_pretty_printed_unicode() -> None:
    text = export_json([Task(id=1, text="Café ☕", created_at=START)])
    assert "Café ☕" in text
    assert text.startswith("[\n  {")


def test_import_accepts_integral_floats_and_unknown_keys() -> None:
    payload = json.dumps(
        [
            {
                "id": 5.0,
                "text": "a",
                "completed": True,
                "createdAt": "2024-06-01T00:00:00.000Z",
                "completedAt": "2024-06-02T09:30:00.000Z",
                "somethingNew": 1,
            }
        ]
    )
    (task,) = import_json(payload)
    assert task.id == 5
    assert isinstance(task.id, int)
    assert task.completed_at.isoformat() == "2024-06-02T09:30:00+00:00"


@pytest.mark.parametrize(
    ("payload", "fragment"),
    [
        ("{", "Invalid JSON"),
        ('{"tasks": []}', "array"),
        ("[1]", "object"),
        ('[{"text": "a", "completed": false, "createdAt": "2024-06-01T00:00:00Z"}]', "'id'"),
        ('[{"id": true, "text": "a", "completed": false, "createdAt": "2024-06-01T00:00:00Z"}]', "'id'"),
        ('[{"id": 1, "text": "   ", "completed": false, "createdAt": "2024-06-01T00:00:00Z"}]', "must not be empty"),
        ('[{"id": 1, "text": "a", "completed": "no", "createdAt": "2024-06-01T00:00:00Z"}]', "'completed'"),
        ('[{"id": 1, "text": "a", "completed": false, "createdAt": "yesterday"}]', "createdAt"),
        (
            '[{"id": 1, "text": "a", "completed": false, "createdAt": "2024-06-01T00:00:00Z",'
            ' "priority": "urgent"}]',
            "priority",
        ),
        (
            '[{"id": 1, "text": "a", "completed": false, "createdAt": "2024-06-01T00:00:00Z",'
            ' "tags": ["ok", 3]}]',
            "tags",
        ),
        (
            '[{"id": 1, "text": "a", "completed": false, "createdAt": "2024-06-01T00:00:00Z",'
            ' "subtasks": [{"id": 2}]}]',
            "'text'",
        ),
    ],
)
def test_import_rejects_malformed_payloads(payload: str, fragment: str) -> None:
    with pytest.raises(ImportFormatError) as exc:
        import_json(payload)
    assert fragment in str(exc.value)


def test_import_error_reports_task_index() -> None:
    payload = json.dumps(
        [
            {"id": 1, "text": "ok", "completed": False, "createdAt": "2024-06-01T00:00:00Z"},
            {"id": 2, "text": "bad", "completed": False},
        ]
    )
    with pytest.raises(ImportFormatError) as exc:
        import_json(payload)
    assert exc.value.index == 1
    assert str(exc.value).startswith("task[1]: ")
