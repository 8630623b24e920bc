# src/todo_reminders/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the reminder core.

The dispatcher and the manual trigger depend on Protocols instead of concrete
implementations, so storage and mail transport stay swappable and testable.
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Any, Awaitable, Protocol


class SendOutcome(Protocol):
    success: bool
    error: str | None


class Mailer(Protocol):
    """
    Outbound email port.

    Must report transport failure through the returned result, not by raising.
    The dispatcher still treats a raised exception as a failed send.
    """

    def send(
            self,
            recipient: str,
            subject: str,
            body: str,
            *,
            html: str | None = None,
    ) -> Awaitable[SendOutcome]: ...


class UserDirectory(Protocol):
    def resolve_email(self, owner_id: str) -> str | None: ...


class TaskRepo(Protocol):
    # Dispatcher API
    def query_by_window(
            self,
            due_from: datetime,
            due_to: datetime,
            *,
            flag: str,
    ) -> list[Any]: ...

    def batch_set_flags(self, updates: Iterable[tuple[str, str]]) -> int: ...

    # Manual trigger API
    def get_by_id(self, task_id: str) -> Any | None: ...
