# src/todo_reminders/errors.py

"""
Error taxonomy.

Manual-trigger errors are raised to the caller and carry a stable `code`.
Repository errors are raised by the dispatcher's storage calls and are
caught inside a sweep; they never escape `run_reminder_sweep`.
"""

from __future__ import annotations

from typing import Any


class ReminderError(Exception):
    code: str = "unknown"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


class Unauthenticated(ReminderError):
    code = "unauthenticated"


class InvalidArgument(ReminderError):
    code = "invalid-argument"


class NotFound(ReminderError):
    code = "not-found"


class PermissionDenied(ReminderError):
    code = "permission-denied"


class Internal(ReminderError):
    code = "internal"


class RepositoryQueryError(ReminderError):
    code = "repository-query"


class RepositoryCommitError(ReminderError):
    code = "repository-commit"
