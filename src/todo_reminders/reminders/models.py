# src/todo_reminders/reminders/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum, StrEnum


class ReminderTier(IntEnum):
    """
    Urgency tier of a reminder, valued in minutes before the due time.

    Each tier owns exactly one latch flag on the task row.
    """

    NEAR = 15
    FAR = 30

    @property
    def flag(self) -> str:
        return "sent15" if self is ReminderTier.NEAR else "sent30"

    @property
    def label(self) -> str:
        return "URGENT" if self is ReminderTier.NEAR else "REMINDER"

    @property
    def emoji(self) -> str:
        return "\U0001f6a8" if self is ReminderTier.NEAR else "⏰"

    @property
    def color(self) -> str:
        return "#ff4444" if self is ReminderTier.NEAR else "#ffa500"

    @classmethod
    def parse(cls, raw: object) -> ReminderTier:
        """Accept 15/30 as int, integral float (15.0) or str; raise ValueError otherwise."""
        try:
            value = raw if isinstance(raw, int | float) else float(str(raw).strip())
            if isinstance(value, bool) or value != int(value):
                raise ValueError
            return cls(int(value))
        except (TypeError, ValueError, OverflowError):
            raise ValueError(f"tier must be 15 or 30, got {raw!r}") from None


@dataclass(slots=True)
class Task:
    id: str
    text: str
    due_at: datetime | None
    completed: bool
    owner_id: str

    sent15: bool = False
    sent30: bool = False
    email_notifications: bool = True

    created_at: datetime | None = None

    def is_sent(self, tier: ReminderTier) -> bool:
        return self.sent15 if tier is ReminderTier.NEAR else self.sent30


@dataclass(slots=True, frozen=True)
class NotificationEvent:
    """One reminder about to go out. Never persisted."""

    tier: ReminderTier
    task: Task
    recipient: str
    minutes_remaining: int


@dataclass(slots=True, frozen=True)
class RenderedReminder:
    subject: str
    body: str
    html: str
    minutes_remaining: int


class CandidateOutcome(StrEnum):
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class CandidateResult:
    task_id: str
    tier: ReminderTier
    outcome: CandidateOutcome
    reason: str | None = None
    recipient: str | None = None

    @classmethod
    def sent(cls, task_id: str, tier: ReminderTier, recipient: str) -> CandidateResult:
        return cls(task_id, tier, CandidateOutcome.SENT, recipient=recipient)

    @classmethod
    def skipped(cls, task_id: str, tier: ReminderTier, reason: str) -> CandidateResult:
        return cls(task_id, tier, CandidateOutcome.SKIPPED, reason=reason)

    @classmethod
    def failed(
        cls, task_id: str, tier: ReminderTier, reason: str, recipient: str | None = None
    ) -> CandidateResult:
        return cls(task_id, tier, CandidateOutcome.FAILED, reason=reason, recipient=recipient)


@dataclass(slots=True)
class RunSummary:
    """
    Outcome of one sweep.

    `results` keeps processing order: near tier first, then far tier.
    `tier_errors` holds the query failure message per tier that was aborted.
    """

    started_at: datetime
    results: list[CandidateResult] = field(default_factory=list)
    tier_errors: dict[ReminderTier, str] = field(default_factory=dict)
    staged: list[tuple[str, str]] = field(default_factory=list)
    committed: bool = False
    commit_error: str | None = None

    def by_outcome(self, outcome: CandidateOutcome) -> list[CandidateResult]:
        return [r for r in self.results if r.outcome is outcome]

    @property
    def sent(self) -> list[CandidateResult]:
        return self.by_outcome(CandidateOutcome.SENT)

    @property
    def skipped(self) -> list[CandidateResult]:
        return self.by_outcome(CandidateOutcome.SKIPPED)

    @property
    def failed(self) -> list[CandidateResult]:
        return self.by_outcome(CandidateOutcome.FAILED)

    def candidates(self, tier: ReminderTier) -> list[str]:
        return [r.task_id for r in self.results if r.tier is tier]
