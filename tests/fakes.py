# tests/fakes.py

from __future__ import annotations

import asyncio
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime

from todo_reminders.core.ports import Mailer
from todo_reminders.reminders.models import Task


@dataclass(slots=True, frozen=True)
class FakeSendResult:
    success: bool
    error: str | None = None


@dataclass(slots=True)
class SentMail:
    recipient: str
    subject: str
    body: str
    html: str | None


@dataclass(slots=True)
class FakeMailer(Mailer):
    """
    Fake Mailer used by dispatcher / manual trigger tests.

    - fail_for: recipients that get a failed SendResult
    - raise_for: recipients whose send raises
    """

    sent: list[SentMail] = field(default_factory=list)
    fail_for: set[str] = field(default_factory=set)
    raise_for: set[str] = field(default_factory=set)

    async def send(
        self,
        recipient: str,
        subject: str,
        body: str,
        *,
        html: str | None = None,
    ) -> FakeSendResult:
        if recipient in self.raise_for:
            raise ConnectionError("transport exploded")
        if recipient in self.fail_for:
            return FakeSendResult(success=False, error="550 mailbox unavailable")
        self.sent.append(SentMail(recipient=recipient, subject=subject, body=body, html=html))
        return FakeSendResult(success=True)

    def to(self, recipient: str) -> list[SentMail]:
        return [m for m in self.sent if m.recipient == recipient]


class SlowMailer:
    """Mailer whose every send takes `delay` seconds; `started` is set on the first send."""

    def __init__(self, delay: float) -> None:
        self.delay = delay
        self.sent: list[SentMail] = []
        self.started = threading.Event()

    async def send(
        self,
        recipient: str,
        subject: str,
        body: str,
        *,
        html: str | None = None,
    ) -> FakeSendResult:
        self.started.set()
        await asyncio.sleep(self.delay)
        self.sent.append(SentMail(recipient=recipient, subject=subject, body=body, html=html))
        return FakeSendResult(success=True)


class FakeDirectory:
    def __init__(self, emails: dict[str, str] | None = None) -> None:
        self.emails = dict(emails or {})

    def resolve_email(self, owner_id: str) -> str | None:
        return self.emails.get(owner_id) or None


class FakeTaskRepo:
    """
    In-memory TaskRepo used for dispatcher unit tests.

    This avoids SQLite and keeps tests purely about sweep logic:
    windows, latch gating, staging and the batched commit.
    """

    def __init__(self, tasks: list[Task]) -> None:
        self.tasks = {t.id: t for t in tasks}
        self.queries: list[tuple[datetime, datetime, str]] = []
        self.commits: list[list[tuple[str, str]]] = []
        self.fail_query_for: set[str] = set()
        self.fail_commit = False

    def query_by_window(self, due_from: datetime, due_to: datetime, *, flag: str) -> list[Task]:
        self.queries.append((due_from, due_to, flag))
        if flag in self.fail_query_for:
            raise RuntimeError("firestore unavailable")
        out = [
            t
            for t in self.tasks.values()
            if not t.completed
            and t.email_notifications
            and not getattr(t, flag)
            and t.due_at is not None
            and due_from < t.due_at <= due_to
        ]
        out.sort(key=lambda t: t.due_at)
        return out

    def batch_set_flags(self, updates: Iterable[tuple[str, str]]) -> int:
        pairs = list(updates)
        if self.fail_commit:
            raise RuntimeError("batch write rejected")
        for task_id, flag in pairs:
            self.tasks[task_id] = replace(self.tasks[task_id], **{flag: True})
        self.commits.append(pairs)
        return len(pairs)

    def get_by_id(self, task_id: str) -> Task | None:
        return self.tasks.get(task_id)
