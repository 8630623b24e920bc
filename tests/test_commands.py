# tests/test_commands.py

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from todo_reminders.cli.commands import CommandRegistry, registry
from todo_reminders.cli.runner import start_scheduler_in_background
from todo_reminders.core.state import AppState
from todo_reminders.storage.task_store import TaskStore
from todo_reminders.storage.user_store import UserStore

from .fakes import SlowMailer


def test_command_registry_routes_3_and_4_params(state) -> None:
    reg = CommandRegistry()
    called = {"h3": 0, "h4": 0}

    def h3(state, args, user_id):
        called["h3"] += 1
        return "h3"

    def h4(state, args, user_id, emit):
        called["h4"] += 1
        if emit is not None:
            emit("note")
        return "h4"

    reg.register("a", h3, "a")
    reg.register("b", h4, "b")

    assert reg.handle(state, "/a x", user_id="u") == "h3"
    assert reg.handle(state, "/b y", user_id="u", emit=lambda _: None) == "h4"
    assert called["h3"] == 1
    assert called["h4"] == 1


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")


def test_console_flow_add_sweep_and_list(state, mailer) -> None:
    assert "set to u1@x.com" in registry.handle(state, "/email u1@x.com", user_id="u1")
    reply = registry.handle(state, "/add 10 Water the plants", user_id="u1")
    assert reply.startswith("Task ")

    out = registry.handle(state, "/sweep", user_id="u1")
    assert "sent=1" in out
    assert len(mailer.sent) == 1
    assert "URGENT (15min)" in mailer.sent[0].subject

    listing = registry.handle(state, "/tasks", user_id="u1")
    assert "Water the plants" in listing
    assert "sent: 15min" in listing


def test_notify_reports_structured_errors(state, mailer) -> None:
    assert registry.handle(state, "/notify t1", user_id=None).startswith("Error [unauthenticated]")
    assert registry.handle(state, "/notify missing", user_id="u1").startswith("Error [not-found]")

    state.directory.upsert_profile("u2", email="u2@x.com")
    task_id = state.task_store.add_task(text="theirs", owner_id="u2")
    denied = registry.handle(state, f"/notify {task_id}", user_id="u1")
    assert denied.startswith("Error [permission-denied]")
    assert mailer.sent == []

    assert registry.handle(state, f"/notify {task_id} 15", user_id="u2") == "Test notification sent"
    assert mailer.to("u2@x.com")


def test_console_sweep_waits_for_running_scheduler_sweep(settings) -> None:
    settings.scheduler_enabled = True
    mailer = SlowMailer(delay=0.3)
    state = AppState(
        settings=settings,
        task_store=TaskStore(settings.db_path),
        directory=UserStore(settings.db_path),
        mailer=mailer,
    )
    state.directory.upsert_profile("u1", email="u1@x.com")
    state.task_store.add_task(
        text="t", owner_id="u1", due_at=datetime.now(UTC) + timedelta(minutes=10)
    )

    runner = start_scheduler_in_background(state)
    assert runner is not None
    try:
        # The scheduler's first sweep is mid-send when /sweep arrives.
        assert mailer.started.wait(timeout=5.0)
        out = registry.handle(state, "/sweep", user_id="u1")
    finally:
        runner.stop()
        runner.join(timeout=5.0)

    assert "sent=0" in out
    assert len(mailer.sent) == 1
    assert "URGENT (15min)" in mailer.sent[0].subject
