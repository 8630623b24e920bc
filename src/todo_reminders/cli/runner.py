# src/todo_reminders/cli/runner.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from dataclasses import dataclass

from ..core.state import AppState
from ..reminders.dispatcher import run_reminder_scheduler
from ..reminders.render import DEFAULT_APP_URL

logger = logging.getLogger(__name__)


@dataclass
class SchedulerBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except RuntimeError:
            logger.debug("Failed to signal scheduler stop (loop closed).", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_scheduler_in_background(state: AppState) -> SchedulerBackgroundRunner | None:
    """
    Start the reminder loop in a background thread with its own event loop,
    so the blocking console REPL can own the main thread.
    """
    settings = state.settings
    if not getattr(settings, "scheduler_enabled", True):
        logger.info("Reminder scheduler disabled, not starting.")
        return None

    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(
                run_reminder_scheduler(
                    state.task_store,
                    state.directory,
                    state.mailer,
                    interval_seconds=float(getattr(settings, "interval_seconds", 60.0)),
                    app_url=getattr(settings, "app_url", None) or DEFAULT_APP_URL,
                    send_concurrency=int(getattr(settings, "send_concurrency", 1)),
                    stop_event=stop_event,
                    sweep_lock=state.sweep_lock,
                )
            )
        finally:
            with contextlib.suppress(RuntimeError):
                loop.close()

    t = threading.Thread(target=runner, name="reminder-scheduler", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Scheduler thread did not initialize properly.")
        return None

    logger.info("Reminder scheduler started (every %ss).", getattr(settings, "interval_seconds", 60.0))
    return SchedulerBackgroundRunner(thread=t, loop=loop, stop_event=stop_event)
