# src/todo_reminders/cli/commands.py

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import cast

from ..core.state import AppState
from ..errors import ReminderError
from ..reminders.dispatcher import run_exclusive_sweep
from ..reminders.manual import send_test_notification
from ..reminders.models import ReminderTier, RunSummary
from ..reminders.render import DEFAULT_APP_URL

CommandEmitter = Callable[[str], None]
CommandHandler3 = Callable[[AppState, list[str], str | None], str]
CommandHandler4 = Callable[[AppState, list[str], str | None, CommandEmitter | None], str]
CommandHandler = CommandHandler3 | CommandHandler4

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the operator console (/help, /sweep, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        user_id: str | None = None,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 4

        if nparams >= 4:
            h4 = cast(CommandHandler4, handler)
            return h4(state, args, user_id, emit)

        h3 = cast(CommandHandler3, handler)
        return h3(state, args, user_id)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _fmt_ts(dt: datetime | None) -> str:
    if dt is None:
        return "-"
    return dt.astimezone().strftime("%Y-%m-%d %H:%M")


def format_summary(summary: RunSummary) -> str:
    lines = [
        f"Sweep at {_fmt_ts(summary.started_at)}: "
        f"sent={len(summary.sent)} skipped={len(summary.skipped)} failed={len(summary.failed)}"
    ]
    for r in summary.results:
        extra = f" ({r.reason})" if r.reason else ""
        lines.append(f"  [{int(r.tier)}min] {r.task_id}: {r.outcome.value}{extra}")
    for tier, err in summary.tier_errors.items():
        lines.append(f"  [{int(tier)}min] query failed: {err}")
    if summary.commit_error:
        lines.append(f"  commit failed: {summary.commit_error}")
    return "\n".join(lines)


def cmd_help(state: AppState, args: list[str], user_id: str | None) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str], user_id: str | None) -> str:
    s = state.settings
    sched = "ON" if getattr(s, "scheduler_enabled", False) else "OFF"
    return (
        "Status:\n"
        f"  Database: {getattr(s, 'db_path', '?')} ({state.task_store.count_tasks()} tasks)\n"
        f"  Scheduler: {sched} every {getattr(s, 'interval_seconds', '?')}s\n"
        f"  SMTP: {getattr(s, 'smtp_host', '?')}:{getattr(s, 'smtp_port', '?')}\n"
        f"  Console user: {user_id or '(not signed in)'}"
    )


def cmd_email(state: AppState, args: list[str], user_id: str | None) -> str:
    """
    /email              -> show the address reminders go to
    /email <address>    -> set it
    """
    if not user_id:
        return "No console user configured (set REMINDERS_CONSOLE_USER_ID)."
    if not args:
        current = state.directory.resolve_email(user_id)
        return f"Reminder address: {current or '(none)'}"
    address = args[0].strip()
    if "@" not in address:
        return "Usage: /email <address>"
    state.directory.upsert_profile(user_id, email=address)
    return f"Reminder address set to {address}."


def cmd_add(state: AppState, args: list[str], user_id: str | None) -> str:
    """/add <minutes> <text...> -> new task due that many minutes from now."""
    if not user_id:
        return "No console user configured (set REMINDERS_CONSOLE_USER_ID)."
    if len(args) < 2:
        return "Usage: /add <minutes> <text>"
    try:
        minutes = int(args[0])
    except ValueError:
        return "Usage: /add <minutes> <text>"

    due_at = datetime.now(UTC) + timedelta(minutes=minutes)
    task_id = state.task_store.add_task(text=" ".join(args[1:]), owner_id=user_id, due_at=due_at)
    return f"Task {task_id} due {_fmt_ts(due_at)}."


def cmd_tasks(state: AppState, args: list[str], user_id: str | None) -> str:
    if not user_id:
        return "No console user configured (set REMINDERS_CONSOLE_USER_ID)."
    tasks = state.task_store.list_tasks_for_owner(user_id)
    if not tasks:
        return "No tasks."
    lines = [f"Tasks for {user_id}:"]
    for t in tasks:
        mark = "x" if t.completed else " "
        flags = ",".join(
            f"{int(tier)}min" for tier in (ReminderTier.FAR, ReminderTier.NEAR) if t.is_sent(tier)
        )
        lines.append(
            f"  [{mark}] {t.id} {t.text!r} due {_fmt_ts(t.due_at)}"
            + (f" (sent: {flags})" if flags else "")
        )
    return "\n".join(lines)


def cmd_done(state: AppState, args: list[str], user_id: str | None) -> str:
    if not args:
        return "Usage: /done <task_id>"
    task = state.task_store.get_by_id(args[0])
    if task is None or task.owner_id != user_id:
        return f"No such task: {args[0]}"
    state.task_store.set_completed(task.id, True)
    return f"Task {task.id} completed."


def cmd_sweep(
    state: AppState,
    args: list[str],
    user_id: str | None,
    emit: CommandEmitter | None = None,
) -> str:
    """/sweep -> run one reminder sweep now (same code path as the scheduler)."""
    if emit:
        with contextlib.suppress(Exception):
            emit("[SWEEP] Checking upcoming tasks...")

    s = state.settings
    summary = asyncio.run(
        run_exclusive_sweep(
            state.sweep_lock,
            state.task_store,
            state.directory,
            state.mailer,
            app_url=getattr(s, "app_url", None) or DEFAULT_APP_URL,
            send_concurrency=int(getattr(s, "send_concurrency", 1)),
        )
    )
    return format_summary(summary)


def cmd_notify(
    state: AppState,
    args: list[str],
    user_id: str | None,
    emit: CommandEmitter | None = None,
) -> str:
    """
    /notify <task_id>        -> send a 30-minute style test reminder
    /notify <task_id> 15     -> send a 15-minute style test reminder
    """
    task_id = args[0] if args else None
    tier: object = args[1] if len(args) > 1 else ReminderTier.FAR

    try:
        result = asyncio.run(
            send_test_notification(
                state.task_store,
                state.directory,
                state.mailer,
                caller_id=user_id,
                task_id=task_id,
                tier=tier,
                app_url=getattr(state.settings, "app_url", None) or DEFAULT_APP_URL,
            )
        )
    except ReminderError as e:
        logger.debug("Manual reminder refused: %s", e.to_dict())
        return f"Error [{e.code}]: {e.message}"

    return str(result["message"])


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show database/scheduler/SMTP settings.")
registry.register("email", cmd_email, help_text="Show or set your reminder address: /email [address].")
registry.register("add", cmd_add, help_text="Add a task: /add <minutes> <text>.")
registry.register("tasks", cmd_tasks, help_text="List your tasks.", aliases=["ls"])
registry.register("done", cmd_done, help_text="Complete a task: /done <task_id>.")
registry.register("sweep", cmd_sweep, help_text="Run one reminder sweep now.")
registry.register(
    "notify", cmd_notify, help_text="Send a test reminder: /notify <task_id> [15|30]."
)
