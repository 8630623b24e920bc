# src/todo_reminders/cli/console.py

from __future__ import annotations

import logging
from datetime import datetime

from ..core.state import AppState
from .commands import registry as command_registry

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def run_console_loop(state: AppState) -> None:
    user_id = getattr(state.settings, "console_user_id", None)
    logger.info("Console started (user=%s).", user_id or "-")
    _print_ts("[CONSOLE] Operator console. Use /help for commands. Use /exit to quit.\n")

    def emit(text: str) -> None:
        print(f"[{_ts_local()}] {text}", flush=True)

    while True:
        try:
            line = input(">>> ").strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not line:
            continue

        if line.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            with state.lock:
                reply = command_registry.handle(state, line, user_id=user_id, emit=emit)
        except Exception:
            logger.exception("Command failed: %s", line)
            _print_ts("[CONSOLE] Command failed, see log for details.")
            continue

        if reply is None:
            _print_ts("[CONSOLE] Not a command. Use /help.")
            continue

        _print_ts(reply)
