# tests/conftest.py

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from todo_reminders.core.state import AppState
from todo_reminders.storage.task_store import TaskStore
from todo_reminders.storage.user_store import UserStore

from .fakes import FakeMailer


@pytest.fixture()
def now() -> datetime:
    return datetime(2026, 10, 19, 12, 0, 0, tzinfo=UTC)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI commands.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="todo-reminders-test",
        data_dir=tmp_path,
        db_path=tmp_path / "todos.sqlite3",
        scheduler_enabled=False,
        console_enabled=False,
        console_user_id="u1",
        interval_seconds=60.0,
        send_concurrency=1,
        app_url="https://todo.example.test",
        smtp_host="smtp.example.test",
        smtp_port=587,
    )


@pytest.fixture()
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture()
def state(settings: SimpleNamespace, mailer: FakeMailer) -> AppState:
    """
    AppState wired with a fake mailer.

    NOTE: We keep real SQLite stores here because their query/commit
    semantics are part of what we want to test.
    """
    return AppState(
        settings=settings,
        task_store=TaskStore(settings.db_path),
        directory=UserStore(settings.db_path),
        mailer=mailer,
    )
