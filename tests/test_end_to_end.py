# tests/test_end_to_end.py

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from todo_reminders.reminders.dispatcher import run_reminder_sweep


@pytest.mark.asyncio
async def test_sqlite_sweep_sends_urgent_reminder_and_latches(state, mailer) -> None:
    now = datetime.now(UTC)
    state.directory.upsert_profile("u1", email="u1@x.com")
    state.task_store.add_task(
        text="Submit timesheet", owner_id="u1", due_at=now + timedelta(minutes=10), task_id="t1"
    )

    summary = await run_reminder_sweep(state.task_store, state.directory, state.mailer, now=now)

    assert len(mailer.sent) == 1
    mail = mailer.sent[0]
    assert mail.recipient == "u1@x.com"
    assert "URGENT" in mail.subject
    assert "15min" in mail.subject
    assert summary.committed is True

    task = state.task_store.get_by_id("t1")
    assert task is not None
    assert task.sent15 is True
    assert task.sent30 is False

    again = await run_reminder_sweep(
        state.task_store, state.directory, state.mailer, now=now + timedelta(seconds=60)
    )
    assert again.results == []
    assert len(mailer.sent) == 1


@pytest.mark.asyncio
async def test_sqlite_sweep_handles_both_tiers(state, mailer) -> None:
    now = datetime.now(UTC)
    state.directory.upsert_profile("u1", email="u1@x.com")
    state.task_store.add_task(
        text="near", owner_id="u1", due_at=now + timedelta(minutes=15), task_id="near"
    )
    state.task_store.add_task(
        text="far", owner_id="u1", due_at=now + timedelta(minutes=30), task_id="far"
    )

    await run_reminder_sweep(state.task_store, state.directory, state.mailer, now=now)

    near = state.task_store.get_by_id("near")
    far = state.task_store.get_by_id("far")
    assert (near.sent15, near.sent30) == (True, False)
    assert (far.sent15, far.sent30) == (False, True)
    assert len(mailer.sent) == 2
