# src/todo_reminders/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers of ours that run once a minute in the background; INFO from them
# would interleave with the operator's prompt.
_BACKGROUND_LOGGERS = ("todo_reminders.cli.runner",)

# Third-party loggers capped in every handler, file included.
_LIBRARY_LEVELS = {
    "aiosmtplib": logging.WARNING,
    "asyncio": logging.WARNING,
}


class ConsoleFilter(logging.Filter):
    """Console gets our own records; background loggers and other libraries only when serious."""

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith(_BACKGROUND_LOGGERS):
            return record.levelno >= logging.WARNING
        if name == "todo_reminders" or name.startswith("todo_reminders."):
            return True
        # py.warnings and everything third-party.
        return record.levelno >= logging.ERROR


def resolve_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).strip().upper())
    return value if isinstance(value, int) else logging.INFO


def setup_logging(
    *,
    log_dir: str | Path = ".local/todo_reminders",
    level: str | int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Console on stderr at `level` (filtered), plus `reminders.log` under log_dir
    at `file_level` with every sweep and send. Replaces existing root handlers.

    Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "reminders.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(resolve_level(level))
    console.setFormatter(fmt)
    console.addFilter(ConsoleFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    for name, lib_level in _LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(lib_level)

    logging.captureWarnings(True)
    return log_file
