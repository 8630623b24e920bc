# src/todo_reminders/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations (SQLite stores, SMTP mailer) into AppState.

The mailer is built here and handed down explicitly; nothing else in the
package constructs or caches a transport.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import Mailer
from ..core.state import AppState
from ..mail.smtp_mailer import SmtpConfig, SmtpMailer
from ..storage.task_store import TaskStore
from ..storage.user_store import UserStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, mailer: Mailer | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings and mailer injectable makes the app easy to test.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    if mailer is None:
        mailer = SmtpMailer(SmtpConfig.from_settings(settings))
        if not getattr(settings, "smtp_username", ""):
            logger.warning("SMTP username not set; the server may refuse unauthenticated mail.")

    return AppState(
        settings=settings,
        task_store=TaskStore(settings.db_path),
        directory=UserStore(settings.db_path),
        mailer=mailer,
    )
