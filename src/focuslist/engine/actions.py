# src/focuslist/engine/actions.py

"""
Task mutation actions.

`TaskStore` owns the ordered task collection and contains *all*
state-changing operations: creation, completion (with recurrence),
editing, soft delete with undo, subtasks, tags, reordering, import,
and the pomodoro timer.

Design principles:
- No file parsing or rendering here (handled by parse / ops / render).
- Operations addressing an unknown id, or given blank text, are no-ops.
  They never raise.
- Time comes from the injected clock only.
- Every state change notifies subscribers with a fresh snapshot; callers
  never hold live references to stored tasks.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Callable, Iterable, Optional

from . import pomodoro
from .clock import Clock, SystemClock, local_today, to_ms
from .model import CATEGORIES, Priority, Recurrence, Subtask, Task, dedupe_tasks
from .pomodoro import SessionEvent
from .schedule import next_due_date
from .serialize import ImportFormatError, import_json

logger = logging.getLogger(__name__)

Listener = Callable[[tuple[Task, ...]], None]
Notifier = Callable[[SessionEvent], None]

UNDO_GRACE = timedelta(seconds=5)


# ---------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------

class IdAllocator:
    """
    Hands out task and subtask identifiers.

    Ids are seeded from wall-clock milliseconds (compatible with existing
    data) but are strictly increasing: a candidate that is not greater than
    every id seen so far is bumped past it.
    """

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._last = 0

    def observe(self, value: int) -> None:
        if value > self._last:
            self._last = value

    def observe_task(self, task: Task) -> None:
        self.observe(task.id)
        for st in task.subtasks or []:
            self.observe(st.id)

    def next(self) -> int:
        candidate = to_ms(self._clock.now())
        if candidate <= self._last:
            candidate = self._last + 1
        self._last = candidate
        return candidate


# ---------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------

class TaskStore:
    """
    Single owner of the task collection.

    Snapshots returned by `tasks` / `get` are copies; mutate through the
    store's methods only.
    """

    def __init__(
        self,
        tasks: Optional[Iterable[Task]] = None,
        *,
        clock: Optional[Clock] = None,
        undo_grace: timedelta = UNDO_GRACE,
        notifier: Optional[Notifier] = None,
    ) -> None:
        self._clock: Clock = clock or SystemClock()
        self._ids = IdAllocator(self._clock)
        self._undo_grace = undo_grace
        self._notifier = notifier

        self._tasks: list[Task] = []
        self._loaded = False
        self._listeners: list[Listener] = []

        # single-slot undo buffer
        self._deleted: Optional[Task] = None
        self._undo_deadline: Optional[datetime] = None

        if tasks is not None:
            self.load(tasks)

    # -----------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def tasks(self) -> tuple[Task, ...]:
        return tuple(t.clone() for t in self._tasks)

    def get(self, task_id: int) -> Optional[Task]:
        task = self._find(task_id)
        return task.clone() if task else None

    @property
    def undo_pending(self) -> bool:
        self._expire_undo(self._clock.now())
        return self._deleted is not None

    @property
    def deleted_task(self) -> Optional[Task]:
        self._expire_undo(self._clock.now())
        return self._deleted.clone() if self._deleted else None

    def time_remaining(self, task_id: int) -> int:
        task = self._find(task_id)
        if task is None:
            return 0
        return pomodoro.time_remaining(task, self._now_ms())

    # -----------------------------------------------------------------
    # Subscription
    # -----------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _changed(self) -> None:
        if not self._listeners:
            return
        snapshot = self.tasks
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Task listener failed")

    # -----------------------------------------------------------------
    # Loading
    # -----------------------------------------------------------------

    def load(self, tasks: Iterable[Task]) -> None:
        """
        Install the startup collection.

        Runs once; later calls are ignored so a repeated startup load can
        never clobber state. Duplicate ids are dropped (first one wins).
        """
        if self._loaded:
            logger.debug("Ignoring repeated load")
            return

        items = [t.clone() for t in tasks]
        unique = dedupe_tasks(items)
        if len(unique) != len(items):
            logger.warning("Dropped %d duplicate task(s) on load", len(items) - len(unique))

        self._tasks = unique
        for task in self._tasks:
            self._ids.observe_task(task)
        self._loaded = True
        logger.debug("Loaded %d task(s)", len(self._tasks))

    # -----------------------------------------------------------------
    # CRUD
    # -----------------------------------------------------------------

    def create(
        self,
        text: str,
        *,
        due_date: Optional[date] = None,
        priority: Optional[Priority] = None,
        category: Optional[str] = None,
        recurring: Optional[Recurrence] = None,
        tags: Optional[Iterable[str]] = None,
        time_estimate: Optional[int] = None,
    ) -> Optional[Task]:
        text = (text or "").strip()
        if not text:
            return None

        now = self._clock.now()
        max_order = max([0, *(t.order or 0 for t in self._tasks)])

        task = Task(
            id=self._ids.next(),
            text=text,
            created_at=now,
            due_date=due_date or local_today(now),
            priority=priority,
            order=max_order + 1,
            category=_valid_category(category),
            recurring=recurring,
            tags=_clean_tags(tags),
            time_estimate=_valid_estimate(time_estimate),
        )
        self._tasks.append(task)
        logger.debug("Task created id=%s order=%s", task.id, task.order)
        self._changed()
        return task.clone()

    def toggle_complete(self, task_id: int) -> None:
        """
        Flip completion.

        Completing an incomplete recurring task that has a due date also
        strips its rule and appends a fresh successor due one period later.
        """
        task = self._find(task_id)
        if task is None:
            return

        now = self._clock.now()

        if not task.completed and task.recurring and task.due_date:
            successor = self._spawn_successor(task, now)
            task.completed = True
            task.completed_at = now
            task.recurring = None
            self._tasks.append(successor)
            logger.debug(
                "Recurring task id=%s completed; successor id=%s due=%s",
                task.id,
                successor.id,
                successor.due_date,
            )
        else:
            task.completed = not task.completed
            task.completed_at = now if task.completed else None
            logger.debug("Task id=%s completed=%s", task.id, task.completed)

        self._changed()

    def _spawn_successor(self, task: Task, now: datetime) -> Task:
        new_id = self._ids.next()
        successor = task.clone()
        successor.id = new_id
        successor.completed = False
        successor.completed_at = None
        successor.created_at = now
        successor.due_date = next_due_date(task.due_date, task.recurring)
        successor.clear_timer()
        successor.pomodoro_count = 0

        if successor.subtasks is not None:
            for idx, st in enumerate(successor.subtasks):
                st.id = new_id + idx + 1
                st.completed = False
            self._ids.observe(new_id + len(successor.subtasks))

        return successor

    def edit(self, task_id: int, new_text: str) -> None:
        text = (new_text or "").strip()
        task = self._find(task_id)
        if task is None or not text:
            return
        task.text = text
        self._changed()

    def restore(self, task_id: int) -> None:
        """Move a completed task back to the active list."""
        task = self._find(task_id)
        if task is None or not task.completed:
            return
        task.completed = False
        task.completed_at = None
        self._changed()

    def clear_all_completed(self, confirm: Callable[[], bool]) -> int:
        """
        Permanently drop every completed task.

        Irreversible (the undo buffer is not involved), so `confirm` must
        return True for anything to happen. Returns the number removed.
        """
        if not any(t.completed for t in self._tasks):
            return 0
        if not confirm():
            return 0

        before = len(self._tasks)
        self._tasks = [t for t in self._tasks if not t.completed]
        removed = before - len(self._tasks)
        logger.info("Cleared %d completed task(s)", removed)
        self._changed()
        return removed

    # -----------------------------------------------------------------
    # Delete / undo
    # -----------------------------------------------------------------

    def delete(self, task_id: int) -> None:
        """
        Remove a task, keeping it in the undo buffer for the grace window.

        A pending undo from an earlier delete is replaced.
        """
        task = self._find(task_id)
        if task is None:
            return

        self._tasks = [t for t in self._tasks if t is not task]
        self._deleted = task
        self._undo_deadline = self._clock.now() + self._undo_grace
        logger.debug("Task id=%s deleted (undo until %s)", task.id, self._undo_deadline)
        self._changed()

    def undo(self) -> bool:
        """Put the last deleted task back (at the end). False if nothing to undo."""
        self._expire_undo(self._clock.now())
        if self._deleted is None:
            return False

        task = self._deleted
        self._deleted = None
        self._undo_deadline = None

        if self._find(task.id) is not None:
            logger.warning("Undo skipped: id=%s already present", task.id)
            return False

        self._tasks.append(task)
        logger.debug("Task id=%s restored from undo buffer", task.id)
        self._changed()
        return True

    def dismiss_undo(self) -> None:
        self._deleted = None
        self._undo_deadline = None

    def _expire_undo(self, now: datetime) -> None:
        if self._undo_deadline is not None and now >= self._undo_deadline:
            logger.debug("Undo window elapsed; purging id=%s", self._deleted and self._deleted.id)
            self._deleted = None
            self._undo_deadline = None

    # -----------------------------------------------------------------
    # Field setters
    # -----------------------------------------------------------------

    def set_notes(self, task_id: int, notes: Optional[str]) -> None:
        task = self._find(task_id)
        if task is None:
            return
        task.notes = notes if notes else None
        self._changed()

    def set_time_estimate(self, task_id: int, minutes: Optional[int]) -> None:
        task = self._find(task_id)
        if task is None:
            return
        if minutes is not None and minutes < 0:
            return
        task.time_estimate = _valid_estimate(minutes)
        self._changed()

    def set_priority(self, task_id: int, priority: Optional[Priority]) -> None:
        task = self._find(task_id)
        if task is None:
            return
        task.priority = priority
        self._changed()

    def set_category(self, task_id: int, category: Optional[str]) -> None:
        task = self._find(task_id)
        if task is None:
            return
        value = _valid_category(category)
        if category is not None and value is None:
            return
        task.category = value
        self._changed()

    def set_due_date(self, task_id: int, due_date: Optional[date]) -> None:
        task = self._find(task_id)
        if task is None:
            return
        task.due_date = due_date
        self._changed()

    def set_recurring(self, task_id: int, recurring: Optional[Recurrence]) -> None:
        task = self._find(task_id)
        if task is None:
            return
        task.recurring = recurring
        self._changed()

    # -----------------------------------------------------------------
    # Ordering
    # -----------------------------------------------------------------

    def reorder(self, dragged_id: int, target_id: int) -> None:
        """
        Move the dragged task to the target's slot, then renumber `order`
        for the whole collection by position.
        """
        if dragged_id == target_id:
            return

        ids = [t.id for t in self._tasks]
        if dragged_id not in ids or target_id not in ids:
            return

        dragged_index = ids.index(dragged_id)
        target_index = ids.index(target_id)

        dragged = self._tasks.pop(dragged_index)
        self._tasks.insert(target_index, dragged)

        for index, task in enumerate(self._tasks):
            task.order = index
        self._changed()

    # -----------------------------------------------------------------
    # Subtasks
    # -----------------------------------------------------------------

    def add_subtask(self, task_id: int, text: str) -> Optional[Subtask]:
        text = (text or "").strip()
        task = self._find(task_id)
        if task is None or not text:
            return None

        subtask = Subtask(id=self._ids.next(), text=text)
        task.subtasks = [*(task.subtasks or []), subtask]
        self._changed()
        return Subtask(subtask.id, subtask.text, subtask.completed)

    def toggle_subtask(self, task_id: int, subtask_id: int) -> None:
        subtask = self._find_subtask(task_id, subtask_id)
        if subtask is None:
            return
        subtask.completed = not subtask.completed
        self._changed()

    def delete_subtask(self, task_id: int, subtask_id: int) -> None:
        task = self._find(task_id)
        if task is None or self._find_subtask(task_id, subtask_id) is None:
            return
        task.subtasks = [st for st in task.subtasks or [] if st.id != subtask_id]
        self._changed()

    # -----------------------------------------------------------------
    # Tags
    # -----------------------------------------------------------------

    def add_tag(self, task_id: int, tag: str) -> None:
        tag = (tag or "").strip()
        task = self._find(task_id)
        if task is None or not tag:
            return
        if task.tags and tag in task.tags:
            return
        task.tags = [*(task.tags or []), tag]
        self._changed()

    def remove_tag(self, task_id: int, tag: str) -> None:
        task = self._find(task_id)
        if task is None or not task.tags or tag not in task.tags:
            return
        task.tags = [t for t in task.tags if t != tag]
        self._changed()

    # -----------------------------------------------------------------
    # Import
    # -----------------------------------------------------------------

    def import_json(self, text: str) -> bool:
        """
        Replace the whole collection with an exported task list.

        Returns False (and changes nothing) when the payload is invalid.
        """
        try:
            imported = import_json(text)
            ids = [t.id for t in imported]
            if len(set(ids)) != len(ids):
                raise ImportFormatError("duplicate task ids")
        except ImportFormatError as e:
            logger.warning("Import rejected: %s", e)
            return False

        self._tasks = imported
        for task in self._tasks:
            self._ids.observe_task(task)
        self.dismiss_undo()
        logger.info("Imported %d task(s)", len(imported))
        self._changed()
        return True

    # -----------------------------------------------------------------
    # Pomodoro
    # -----------------------------------------------------------------

    def start_pomodoro(self, task_id: int) -> None:
        task = self._find(task_id)
        if task is None:
            return
        pomodoro.start(task, self._now_ms())
        self._changed()

    def pause_pomodoro(self, task_id: int) -> None:
        task = self._find(task_id)
        if task is not None and pomodoro.pause(task, self._now_ms()):
            self._changed()

    def resume_pomodoro(self, task_id: int) -> None:
        task = self._find(task_id)
        if task is not None and pomodoro.resume(task, self._now_ms()):
            self._changed()

    def reset_pomodoro(self, task_id: int) -> None:
        task = self._find(task_id)
        if task is None:
            return
        pomodoro.reset(task)
        self._changed()

    def tick(self) -> list[SessionEvent]:
        """
        Re-evaluate time-dependent state against the clock.

        Expired focus/break timers are advanced (notifying for each one)
        and an expired undo buffer is purged. Safe to call at any rate.
        """
        now = self._clock.now()
        now_ms = to_ms(now)
        self._expire_undo(now)

        events: list[SessionEvent] = []
        for task in self._tasks:
            if not pomodoro.is_expired(task, now_ms):
                continue
            event = pomodoro.complete_session(task, now_ms)
            events.append(event)
            logger.info("Timer finished id=%s kind=%s", event.task_id, event.kind.value)
            self._notify(event)

        if events:
            self._changed()
        return events

    def _notify(self, event: SessionEvent) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier(event)
        except Exception:
            logger.exception("Session notifier failed for id=%s", event.task_id)

    # -----------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------

    def _now_ms(self) -> int:
        return to_ms(self._clock.now())

    def _find(self, task_id: int) -> Optional[Task]:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def _find_subtask(self, task_id: int, subtask_id: int) -> Optional[Subtask]:
        task = self._find(task_id)
        if task is None:
            return None
        for st in task.subtasks or []:
            if st.id == subtask_id:
                return st
        return None


# ---------------------------------------------------------------------
# Input normalisation
# ---------------------------------------------------------------------

def _clean_tags(tags: Optional[Iterable[str]]) -> Optional[list[str]]:
    out: list[str] = []
    for raw in tags or []:
        tag = (raw or "").strip()
        if tag and tag not in out:
            out.append(tag)
    return out or None


def _valid_category(category: Optional[str]) -> Optional[str]:
    if category is None:
        return None
    value = category.strip().lower()
    if value not in CATEGORIES:
        logger.debug("Ignoring unknown category %r", category)
        return None
    return value


def _valid_estimate(minutes: Optional[int]) -> Optional[int]:
    if minutes is None or minutes <= 0:
        return None
    return int(minutes)
