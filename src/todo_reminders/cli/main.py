# src/todo_reminders/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- the reminder scheduler in a background thread (optional),
- the operator console REPL in the main thread (optional).
"""

from __future__ import annotations

import logging
import signal
import threading

from ..config import get_settings
from ..logging_setup import setup_logging
from .bootstrap import create_initial_state
from .console import run_console_loop
from .runner import SchedulerBackgroundRunner, start_scheduler_in_background

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    log_file = setup_logging(
        log_dir=settings.data_dir, level=getattr(settings, "log_level", "INFO")
    )

    logger.info("Starting %s (log file: %s)...", settings.app_name, log_file)

    state = create_initial_state(settings=settings)

    runner: SchedulerBackgroundRunner | None = start_scheduler_in_background(state)

    # Use an Event so main can wait without a busy while-loop.
    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    # The console REPL relies on KeyboardInterrupt, so only trap signals without it.
    if not settings.console_enabled:
        try:
            signal.signal(signal.SIGINT, _handle_signal)
            signal.signal(signal.SIGTERM, _handle_signal)
        except (ValueError, OSError):
            # Not on the main thread, or the platform lacks SIGTERM.
            pass

    try:
        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        elif runner is None:
            logger.warning("Scheduler and console are both disabled; nothing to do.")
        else:
            logger.info("Console disabled. Running reminder scheduler only. Press Ctrl+C to stop.")
            stop_main.wait()
    finally:
        if runner is not None:
            runner.stop()
            runner.join(timeout=10.0)
        state.task_store.close()
        logger.info("Bye.")


if __name__ == "__main__":
    main()
