# tests/conftest.py

from __future__ import annotations

from pathlib import Path

import pytest

from focuslist.engine.actions import TaskStore

from fakes import START, FakeClock, RecordingNotifier


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(START)


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def store(clock: FakeClock, notifier: RecordingNotifier) -> TaskStore:
    """
    Empty, loaded store on the fake clock.

    The notifier records pomodoro session events.
    """
    s = TaskStore(clock=clock, notifier=notifier)
    s.load([])
    return s


@pytest.fixture()
def data_file(tmp_path: Path) -> Path:
    return tmp_path / "todos.md"
