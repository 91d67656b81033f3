# src/focuslist/cli.py

"""
Command-line interface for focuslist.

This module:
- defines argument parsing and subcommands,
- wires settings, logging, the markdown repository and the task store,
- delegates every state change to TaskStore and every view to render/stats,
- keeps user interaction (prompts, selection, the shell loop) here.

KISS rule: keep commands small and predictable.
"""

import argparse
import logging
import shlex
import shutil
import subprocess
import sys
import time
from dataclasses import dataclass, replace
from datetime import date, timedelta
from pathlib import Path
from typing import Callable, Optional

from focuslist.config import ConfigError, Settings, load_settings
from focuslist.engine.actions import TaskStore
from focuslist.engine.clock import SystemClock, parse_local_date
from focuslist.engine.model import CATEGORIES, Priority, Recurrence, Task, TimerState
from focuslist.engine.ops import BackgroundSaver, MarkdownRepository
from focuslist.engine.pomodoro import SessionEvent
from focuslist.engine.render import (
    export_markdown,
    render_stats,
    render_task_detail,
    render_task_list,
    timer_label,
)
from focuslist.engine.serialize import export_json
from focuslist.engine.stats import active_tasks, calculate_stats, completed_tasks, filter_tasks
from focuslist.engine.validate import ValidationError, validate_tasks
from focuslist.logging_setup import setup_logging

logger = logging.getLogger(__name__)

NONE = "none"


# ---------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------

@dataclass
class Session:
    """Everything a command needs: settings, the store and its saver."""

    settings: Settings
    store: TaskStore
    repository: MarkdownRepository
    saver: BackgroundSaver
    color: bool = True
    interactive: bool = False

    def close(self) -> None:
        self.saver.close()


def open_session(settings: Settings, *, color: bool = True) -> Session:
    """
    Load the task file into a fresh store, then enable background saving.

    Saving is attached only after the load so that a failed or slow load
    can never overwrite the file with an empty list.
    """
    clock = SystemClock()
    repository = MarkdownRepository(settings.data_file, clock=clock)
    store = TaskStore(
        clock=clock,
        undo_grace=timedelta(seconds=settings.undo_grace_seconds),
        notifier=_make_notifier(settings),
    )
    store.load(repository.load())
    logger.debug("Session opened on %s with %d task(s)", settings.data_file, len(store.tasks))

    saver = BackgroundSaver(repository)
    saver.attach(store)
    return Session(settings=settings, store=store, repository=repository, saver=saver, color=color)


def _make_notifier(settings: Settings) -> Callable[[SessionEvent], None]:
    def notify(event: SessionEvent) -> None:
        bell = "\a" if settings.bell else ""
        print(f"\n{bell}{event.title} {event.body}", flush=True)

    return notify


# ---------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="focuslist")
    parser.add_argument("--config", type=str, default=None, help="Path to config.yml")
    parser.add_argument("--data", type=str, default=None, help="Task file (overrides config)")
    parser.add_argument("--no-color", action="store_true", help="Disable coloured output")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log to the console (-v info, -vv debug)",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    _add_commands(sub)
    return parser


def _add_commands(sub: argparse._SubParsersAction) -> None:
    # ------------------------------------------------------------------
    # Read-only commands
    # ------------------------------------------------------------------

    p_list = sub.add_parser("list", help="List tasks (active by default)")
    view = p_list.add_mutually_exclusive_group()
    view.add_argument("--all", action="store_true", help="Active and completed tasks")
    view.add_argument("--completed", action="store_true", help="Archive (completed tasks)")
    p_list.add_argument("--category", choices=CATEGORIES, help="Only this category")
    p_list.add_argument("--tag", type=str, help="Only tasks with this tag")
    p_list.add_argument("--priority", choices=[p.value for p in Priority], help="Only this priority")
    p_list.add_argument("--search", type=str, help="Substring in text, notes or subtasks")
    p_list.set_defaults(func=cmd_list)

    p_show = sub.add_parser("show", help="Show a single task (structured view)")
    p_show.add_argument("task_id", nargs="?", default="", help="Task id")
    p_show.set_defaults(func=cmd_show)

    p_stats = sub.add_parser("stats", help="Show statistics")
    p_stats.set_defaults(func=cmd_stats)

    p_validate = sub.add_parser("validate", help="Check stored tasks for broken invariants")
    p_validate.set_defaults(func=cmd_validate)

    p_export = sub.add_parser("export", help="Export tasks")
    p_export.add_argument("format", choices=["md", "json"], help="Obsidian markdown or JSON")
    p_export.add_argument("-o", "--output", type=str, help="Write to file instead of stdout")
    p_export.set_defaults(func=cmd_export)

    # ------------------------------------------------------------------
    # Create / edit commands
    # ------------------------------------------------------------------

    p_add = sub.add_parser("add", help="Create a new task")
    p_add.add_argument("text", nargs="+", help="Task text")
    p_add.add_argument("--due", type=str, help="Due date YYYY-MM-DD (default: today)")
    p_add.add_argument("--priority", choices=[p.value for p in Priority])
    p_add.add_argument("--category", choices=CATEGORIES)
    p_add.add_argument("--recurring", choices=[r.value for r in Recurrence])
    p_add.add_argument("--tag", action="append", default=[], help="Tag (repeatable)")
    p_add.add_argument("--estimate", type=int, help="Time estimate in minutes")
    p_add.set_defaults(func=cmd_add)

    p_done = sub.add_parser("done", help="Toggle task completion")
    p_done.add_argument("task_id", nargs="?", default="", help="Task id")
    p_done.set_defaults(func=cmd_done)

    p_restore = sub.add_parser("restore", help="Move a completed task back to active")
    p_restore.add_argument("task_id", help="Task id")
    p_restore.set_defaults(func=cmd_restore)

    p_edit = sub.add_parser("edit", help="Replace task text")
    p_edit.add_argument("task_id", help="Task id")
    p_edit.add_argument("text", nargs="+", help="New text")
    p_edit.set_defaults(func=cmd_edit)

    p_set = sub.add_parser("set", help="Change scheduling fields ('none' clears)")
    p_set.add_argument("task_id", help="Task id")
    p_set.add_argument("--due", type=str)
    p_set.add_argument("--priority", choices=[p.value for p in Priority] + [NONE])
    p_set.add_argument("--category", choices=list(CATEGORIES) + [NONE])
    p_set.add_argument("--recurring", choices=[r.value for r in Recurrence] + [NONE])
    p_set.set_defaults(func=cmd_set)

    p_note = sub.add_parser("note", help="Set task notes (empty text clears)")
    p_note.add_argument("task_id", help="Task id")
    p_note.add_argument("text", nargs="*", help="Notes; use \\n for line breaks")
    p_note.set_defaults(func=cmd_note)

    p_estimate = sub.add_parser("estimate", help="Set time estimate in minutes")
    p_estimate.add_argument("task_id", help="Task id")
    p_estimate.add_argument("minutes", help="Minutes, or 'none'")
    p_estimate.set_defaults(func=cmd_estimate)

    p_tag = sub.add_parser("tag", help="Add or remove a tag")
    p_tag.add_argument("action", choices=["add", "rm"])
    p_tag.add_argument("task_id", help="Task id")
    p_tag.add_argument("tag", help="Tag text")
    p_tag.set_defaults(func=cmd_tag)

    p_sub = sub.add_parser("sub", help="Manage subtasks")
    p_sub.add_argument("action", choices=["add", "done", "rm"])
    p_sub.add_argument("task_id", help="Task id")
    p_sub.add_argument("value", nargs="+", help="Subtask text (add) or subtask id")
    p_sub.set_defaults(func=cmd_sub)

    p_move = sub.add_parser("move", help="Move a task to another task's position")
    p_move.add_argument("task_id", help="Task to move")
    p_move.add_argument("target_id", help="Task whose position it takes")
    p_move.set_defaults(func=cmd_move)

    # ------------------------------------------------------------------
    # Destructive commands
    # ------------------------------------------------------------------

    p_rm = sub.add_parser("rm", help="Delete a task (undo available in the shell)")
    p_rm.add_argument("task_id", help="Task id")
    p_rm.set_defaults(func=cmd_rm)

    p_undo = sub.add_parser("undo", help="Restore the last deleted task")
    p_undo.set_defaults(func=cmd_undo)

    p_dismiss = sub.add_parser("dismiss", help="Forget the last deleted task")
    p_dismiss.set_defaults(func=cmd_dismiss)

    p_clear = sub.add_parser("clear-completed", help="Permanently delete completed tasks")
    p_clear.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    p_clear.set_defaults(func=cmd_clear_completed)

    p_import = sub.add_parser("import", help="Replace all tasks with a JSON export")
    p_import.add_argument("path", help="JSON file ('-' for stdin)")
    p_import.set_defaults(func=cmd_import)

    # ------------------------------------------------------------------
    # Pomodoro / interactive
    # ------------------------------------------------------------------

    p_timer = sub.add_parser("timer", help="Control a task's pomodoro timer")
    p_timer.add_argument("action", choices=["start", "pause", "resume", "reset"])
    p_timer.add_argument("task_id", nargs="?", default="", help="Task id")
    p_timer.set_defaults(func=cmd_timer)

    p_watch = sub.add_parser("watch", help="Run timers in the foreground (Ctrl-C to stop)")
    p_watch.set_defaults(func=cmd_watch)

    p_shell = sub.add_parser("shell", help="Interactive session")
    p_shell.set_defaults(func=cmd_shell)


# ---------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------

def cmd_list(args: argparse.Namespace, session: Session) -> int:
    tasks = session.store.tasks
    if args.completed:
        items = completed_tasks(tasks)
    elif args.all:
        items = active_tasks(tasks) + completed_tasks(tasks)
    else:
        items = active_tasks(tasks)

    items = filter_tasks(
        items,
        category=args.category,
        tag=args.tag,
        priority=Priority(args.priority) if args.priority else None,
        search=args.search,
    )

    now = session.store.clock.now()
    # archive views keep completion ordering
    keep = bool(args.completed or args.all)
    print(render_task_list(items, now, color=session.color, keep_order=keep))
    return 0


def cmd_show(args: argparse.Namespace, session: Session) -> int:
    task_id = _choose_task(session, args.task_id)
    task = _require_task(session, task_id)
    print(render_task_detail(task, session.store.clock.now(), color=session.color))
    return 0


def cmd_stats(args: argparse.Namespace, session: Session) -> int:
    stats = calculate_stats(session.store.tasks, session.store.clock.now())
    print(render_stats(stats))
    return 0


def cmd_validate(args: argparse.Namespace, session: Session) -> int:
    results = validate_tasks(session.store.tasks)
    for res in results:
        print(f"{res.task_id}")
        for issue in res.issues:
            print(f"  - {issue.code}: {issue.message}")
    return 1 if results else 0


def cmd_export(args: argparse.Namespace, session: Session) -> int:
    tasks = session.store.tasks
    text = export_markdown(tasks) if args.format == "md" else export_json(tasks)

    if args.output:
        Path(args.output).expanduser().write_text(text + "\n", encoding="utf-8")
        print(f"Exported {len(tasks)} task(s) to {args.output}")
    else:
        print(text)
    return 0


def cmd_add(args: argparse.Namespace, session: Session) -> int:
    task = session.store.create(
        " ".join(args.text),
        due_date=_parse_date(args.due) if args.due else None,
        priority=Priority(args.priority) if args.priority else None,
        category=args.category,
        recurring=Recurrence(args.recurring) if args.recurring else None,
        tags=args.tag,
        time_estimate=args.estimate,
    )
    if task is None:
        print("Error: task text is required")
        return 1

    print(task.id)
    return 0


def cmd_done(args: argparse.Namespace, session: Session) -> int:
    task_id = _choose_task(session, args.task_id, active_only=True)
    before = len(session.store.tasks)
    session.store.toggle_complete(task_id)

    task = _require_task(session, task_id)
    print(f"{'Completed' if task.completed else 'Reopened'}: {task.text}")
    if len(session.store.tasks) > before:
        successor = session.store.tasks[-1]
        print(f"Next occurrence {successor.id} due {successor.due_date}")
    return 0


def cmd_restore(args: argparse.Namespace, session: Session) -> int:
    session.store.restore(_resolve_id(session, args.task_id))
    return 0


def cmd_edit(args: argparse.Namespace, session: Session) -> int:
    text = " ".join(args.text).strip()
    if not text:
        print("Error: text must not be empty")
        return 1
    session.store.edit(_resolve_id(session, args.task_id), text)
    return 0


def cmd_set(args: argparse.Namespace, session: Session) -> int:
    store = session.store
    task_id = _resolve_id(session, args.task_id)

    if args.due is not None:
        store.set_due_date(task_id, None if args.due == NONE else _parse_date(args.due))
    if args.priority is not None:
        store.set_priority(task_id, None if args.priority == NONE else Priority(args.priority))
    if args.category is not None:
        store.set_category(task_id, None if args.category == NONE else args.category)
    if args.recurring is not None:
        store.set_recurring(
            task_id, None if args.recurring == NONE else Recurrence(args.recurring)
        )
    return 0


def cmd_note(args: argparse.Namespace, session: Session) -> int:
    notes = " ".join(args.text).replace("\\n", "\n").strip()
    session.store.set_notes(_resolve_id(session, args.task_id), notes or None)
    return 0


def cmd_estimate(args: argparse.Namespace, session: Session) -> int:
    task_id = _resolve_id(session, args.task_id)
    if args.minutes.strip().lower() == NONE:
        session.store.set_time_estimate(task_id, None)
        return 0

    try:
        minutes = int(args.minutes)
    except ValueError:
        raise ValidationError(f"Invalid minutes: {args.minutes}") from None
    if minutes < 0:
        raise ValidationError("Minutes must not be negative")

    session.store.set_time_estimate(task_id, minutes)
    return 0


def cmd_tag(args: argparse.Namespace, session: Session) -> int:
    task_id = _resolve_id(session, args.task_id)
    if args.action == "add":
        session.store.add_tag(task_id, args.tag)
    else:
        session.store.remove_tag(task_id, args.tag)
    return 0


def cmd_sub(args: argparse.Namespace, session: Session) -> int:
    store = session.store
    task_id = _resolve_id(session, args.task_id)

    if args.action == "add":
        subtask = store.add_subtask(task_id, " ".join(args.value))
        if subtask is None:
            print("Error: subtask text is required")
            return 1
        print(subtask.id)
        return 0

    try:
        subtask_id = int(args.value[0])
    except ValueError:
        raise ValidationError(f"Invalid subtask id: {args.value[0]}") from None

    if args.action == "done":
        store.toggle_subtask(task_id, subtask_id)
    else:
        store.delete_subtask(task_id, subtask_id)
    return 0


def cmd_move(args: argparse.Namespace, session: Session) -> int:
    session.store.reorder(
        _resolve_id(session, args.task_id),
        _resolve_id(session, args.target_id),
    )
    return 0


def cmd_rm(args: argparse.Namespace, session: Session) -> int:
    task_id = _resolve_id(session, args.task_id)
    task = _require_task(session, task_id)
    session.store.delete(task_id)

    if session.interactive:
        seconds = int(session.settings.undo_grace_seconds)
        print(f"Deleted: {task.text} (type 'undo' within {seconds}s to restore)")
    else:
        print(f"Deleted: {task.text}")
    return 0


def cmd_undo(args: argparse.Namespace, session: Session) -> int:
    if not session.store.undo():
        print("Nothing to undo")
        return 1
    print("Restored")
    return 0


def cmd_dismiss(args: argparse.Namespace, session: Session) -> int:
    session.store.dismiss_undo()
    return 0


def cmd_clear_completed(args: argparse.Namespace, session: Session) -> int:
    count = sum(1 for t in session.store.tasks if t.completed)

    def confirm() -> bool:
        if args.yes:
            return True
        ans = input(f"Permanently delete {count} completed task(s)? [y/N] ").strip().lower()
        return ans in {"y", "yes"}

    removed = session.store.clear_all_completed(confirm)
    print(f"Removed {removed} completed task(s)")
    return 0


def cmd_import(args: argparse.Namespace, session: Session) -> int:
    try:
        if args.path == "-":
            text = sys.stdin.read()
        else:
            text = Path(args.path).expanduser().read_text(encoding="utf-8")
    except OSError as e:
        print(f"Error: {e}")
        return 1

    if not session.store.import_json(text):
        print("Error: invalid JSON format")
        return 1

    print(f"Imported {len(session.store.tasks)} task(s)")
    return 0


def cmd_timer(args: argparse.Namespace, session: Session) -> int:
    store = session.store
    task_id = _choose_task(session, args.task_id, active_only=True)

    action = {
        "start": store.start_pomodoro,
        "pause": store.pause_pomodoro,
        "resume": store.resume_pomodoro,
        "reset": store.reset_pomodoro,
    }[args.action]
    action(task_id)

    task = _require_task(session, task_id)
    print(timer_label(task, store.clock.now()) or "Timer idle")
    return 0


def cmd_watch(args: argparse.Namespace, session: Session) -> int:
    """
    Drive the timers: tick once per `tick_seconds` and show a status line
    for every running or paused timer until interrupted.
    """
    store = session.store
    interval = session.settings.tick_seconds

    try:
        while True:
            store.tick()
            now = store.clock.now()
            timers = [
                f"{t.text}: {timer_label(t, now)}"
                for t in active_tasks(store.tasks)
                if t.timer_state is not TimerState.IDLE
            ]
            line = " | ".join(timers) if timers else "No timers running"
            print(f"\r\033[K{line}", end="", flush=True)
            time.sleep(interval)
    except KeyboardInterrupt:
        print()
    return 0


def cmd_shell(args: argparse.Namespace, session: Session) -> int:
    """
    Interactive loop over the same commands. Timers are ticked before each
    command, and `undo` works within the grace window.
    """
    parser = argparse.ArgumentParser(prog="", add_help=False, exit_on_error=False)
    sub = parser.add_subparsers(dest="command", required=True)
    _add_commands(sub)

    session.interactive = True
    print("focuslist shell. Type 'help' for commands, 'exit' to quit.")

    while True:
        session.store.tick()
        try:
            line = input("focuslist> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break

        if not line:
            continue
        if line in {"exit", "quit"}:
            break
        if line == "help":
            sub_names = sorted(sub.choices.keys())
            print("Commands: " + ", ".join(n for n in sub_names if n not in {"shell", "watch"}))
            continue

        try:
            a = parser.parse_args(shlex.split(line))
        except (argparse.ArgumentError, SystemExit, ValueError) as e:
            if not isinstance(e, SystemExit):
                print(f"Error: {e}")
            continue

        if a.func in (cmd_shell, cmd_watch):
            print(f"'{a.command}' is not available inside the shell")
            continue

        try:
            a.func(a, session)
        except ValidationError as e:
            print(e)

    return 0


# ---------------------------------------------------------------------
# Task selection helpers
# ---------------------------------------------------------------------

def _parse_date(raw: str) -> date:
    try:
        return parse_local_date(raw)
    except ValueError:
        raise ValidationError(f"Invalid date (expected YYYY-MM-DD): {raw}") from None


def _resolve_id(session: Session, raw: str) -> int:
    try:
        task_id = int(str(raw).strip())
    except ValueError:
        raise ValidationError(f"Invalid task id: {raw}") from None

    if session.store.get(task_id) is None:
        raise ValidationError(f"Task not found: {task_id}")
    return task_id


def _require_task(session: Session, task_id: int) -> Task:
    task = session.store.get(task_id)
    if task is None:
        raise ValidationError(f"Task not found: {task_id}")
    return task


def _select_task_id(items: list[tuple[int, str]]) -> Optional[int]:
    """
    items: list of (task_id, label)
    Returns selected task_id or None if cancelled.
    """
    if not items:
        return None

    if len(items) == 1:
        return items[0][0]

    if shutil.which("fzf"):
        text = "\n".join([f"{tid}\t{label}" for tid, label in items]) + "\n"
        p = subprocess.run(
            ["fzf", "--with-nth=2..", "--delimiter=\t"],
            input=text,
            text=True,
            capture_output=True,
        )
        if p.returncode != 0:
            return None
        line = (p.stdout or "").strip()
        if not line:
            return None
        return int(line.split("\t", 1)[0].strip())

    for i, (tid, label) in enumerate(items, start=1):
        print(f"{i}) {label} [{tid}]")

    s = input("Select task number (blank to cancel): ").strip()
    if not s:
        return None

    try:
        n = int(s)
    except ValueError:
        return None

    if n < 1 or n > len(items):
        return None

    return items[n - 1][0]


def _choose_task(session: Session, raw: str, *, active_only: bool = False) -> int:
    """
    Resolve a task id.

    Rules:
    - If an id is given: it must exist.
    - Otherwise let the user pick from the (active) list.
    """
    if raw and str(raw).strip():
        return _resolve_id(session, raw)

    tasks = session.store.tasks
    pool = active_tasks(tasks) if active_only else active_tasks(tasks) + completed_tasks(tasks)
    items = [(t.id, f"{t.text} ({'done' if t.completed else 'active'})") for t in pool]
    if not items:
        raise ValidationError("No tasks found")

    chosen = _select_task_id(items)
    if chosen is None:
        raise ValidationError("Cancelled")
    return chosen


# ---------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    func = getattr(args, "func", None)
    if func is None:
        parser.print_help()
        return 2

    try:
        settings = load_settings(args.config)
    except ConfigError as e:
        print(f"Error: {e}")
        return 1

    if args.data:
        settings = _with_data_file(settings, args.data)

    console_level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    setup_logging(log_dir=settings.log_dir, console_level=console_level, file_level=settings.log_level)

    session = open_session(settings, color=not args.no_color)
    try:
        return func(args, session)
    except ValidationError as e:
        print(e)
        return 1
    finally:
        session.close()


def _with_data_file(settings: Settings, raw: str) -> Settings:
    return replace(settings, data_file=Path(raw).expanduser())


if __name__ == "__main__":
    raise SystemExit(main())
