# src/todo_reminders/reminders/dispatcher.py

from __future__ import annotations

"""
Reminder dispatcher.

One sweep:
- captures `now` and builds two disjoint windows,
    near = (now, now+15min]   -> 15-minute tier, latch `sent15`
    far  = (now+15min, now+30min] -> 30-minute tier, latch `sent30`
- queries candidates per tier (near first),
- renders + sends one email per candidate,
- stages the latch flag only for confirmed sends,
- commits every staged flag in one batch at the very end.

Per task and tier the latch is a two-state machine: unsent -> sent, entered
only after a confirmed send and never reverted. A failed or skipped candidate
stays unsent and is picked up again next tick while it is still in its window.

A crash after sending but before the commit means the next tick may send the
same tier twice. That is preferred over dropping a reminder.
"""

import asyncio
import contextlib
import logging
import threading
from collections.abc import AsyncIterator, Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from ..core.ports import Mailer, TaskRepo, UserDirectory
from ..errors import RepositoryCommitError, RepositoryQueryError
from .models import (
    CandidateOutcome,
    CandidateResult,
    NotificationEvent,
    ReminderTier,
    RunSummary,
    Task,
)
from .render import DEFAULT_APP_URL, render_reminder

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_LOCK_POLL_S = 0.05


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True, frozen=True)
class Window:
    """Half-open interval (start, end] of due times."""

    start: datetime
    end: datetime

    def __contains__(self, instant: object) -> bool:
        return isinstance(instant, datetime) and self.start < instant <= self.end


def compute_windows(now: datetime) -> dict[ReminderTier, Window]:
    near_edge = now + timedelta(minutes=int(ReminderTier.NEAR))
    far_edge = now + timedelta(minutes=int(ReminderTier.FAR))
    return {
        ReminderTier.NEAR: Window(now, near_edge),
        ReminderTier.FAR: Window(near_edge, far_edge),
    }


async def deliver_reminder(
    task: Task,
    tier: ReminderTier,
    directory: UserDirectory,
    mailer: Mailer,
    *,
    clock: Clock = utc_now,
    app_url: str = DEFAULT_APP_URL,
) -> CandidateResult:
    """
    Resolve the owner, render, send. Never raises.

    Shared by the sweep and the manual trigger; does not touch latch flags.
    """
    task_id = str(task.id)

    try:
        recipient = directory.resolve_email(task.owner_id)
    except Exception as e:
        logger.exception("resolve_email failed task_id=%s owner=%s", task_id, task.owner_id)
        return CandidateResult.failed(task_id, tier, f"directory lookup failed: {e}")

    if not recipient:
        logger.warning(
            "No email for owner=%s; %s-minute reminder skipped task_id=%s",
            task.owner_id,
            int(tier),
            task_id,
        )
        return CandidateResult.skipped(task_id, tier, "no email for owner")

    rendered = render_reminder(task, tier, now=clock(), app_url=app_url)
    event = NotificationEvent(
        tier=tier, task=task, recipient=recipient, minutes_remaining=rendered.minutes_remaining
    )

    try:
        result: Any = await mailer.send(
            event.recipient, rendered.subject, rendered.body, html=rendered.html
        )
    except Exception as e:
        logger.exception("mailer.send raised task_id=%s tier=%s", task_id, int(tier))
        return CandidateResult.failed(task_id, tier, f"send raised: {e}", recipient)

    if not getattr(result, "success", False):
        reason = getattr(result, "error", None) or "send failed"
        logger.warning(
            "%s-minute reminder failed task_id=%s to=%s: %s", int(tier), task_id, recipient, reason
        )
        return CandidateResult.failed(task_id, tier, reason, recipient)

    logger.info(
        "%s-minute reminder sent task_id=%s to=%s (%s min left)",
        int(event.tier),
        task_id,
        event.recipient,
        event.minutes_remaining,
    )
    return CandidateResult.sent(task_id, tier, recipient)


def _query_tier(task_repo: TaskRepo, tier: ReminderTier, window: Window) -> list[Task]:
    try:
        return list(task_repo.query_by_window(window.start, window.end, flag=tier.flag))
    except Exception as e:
        raise RepositoryQueryError(f"{tier.flag} query failed: {e}") from e


def _commit(task_repo: TaskRepo, staged: Sequence[tuple[str, str]]) -> None:
    try:
        task_repo.batch_set_flags(staged)
    except Exception as e:
        raise RepositoryCommitError(f"batch flag commit failed ({len(staged)} updates): {e}") from e


async def _send_tier(
    tasks: Sequence[Task],
    tier: ReminderTier,
    directory: UserDirectory,
    mailer: Mailer,
    *,
    clock: Clock,
    app_url: str,
    send_concurrency: int,
) -> list[CandidateResult]:
    sem = asyncio.Semaphore(max(1, int(send_concurrency)))

    async def one(task: Task) -> CandidateResult:
        async with sem:
            return await deliver_reminder(
                task, tier, directory, mailer, clock=clock, app_url=app_url
            )

    # gather keeps input order, so results follow repository order.
    return list(await asyncio.gather(*(one(t) for t in tasks)))


async def run_reminder_sweep(
    task_repo: TaskRepo,
    directory: UserDirectory,
    mailer: Mailer,
    *,
    now: datetime | None = None,
    clock: Clock = utc_now,
    app_url: str = DEFAULT_APP_URL,
    send_concurrency: int = 1,
) -> RunSummary:
    """
    Run one reminder sweep and return its summary.

    Repository failures are logged and recorded on the summary:
    - a failed query aborts only that tier,
    - a failed commit loses every staged flag of this run (they resend next tick).
    """
    if now is None:
        now = clock()

    windows = compute_windows(now)
    summary = RunSummary(started_at=now)

    for tier in (ReminderTier.NEAR, ReminderTier.FAR):
        try:
            tasks = _query_tier(task_repo, tier, windows[tier])
        except RepositoryQueryError as e:
            logger.exception("Reminder query aborted tier=%s", int(tier))
            summary.tier_errors[tier] = e.message
            continue

        results = await _send_tier(
            tasks,
            tier,
            directory,
            mailer,
            clock=clock,
            app_url=app_url,
            send_concurrency=send_concurrency,
        )
        for r in results:
            summary.results.append(r)
            if r.outcome is CandidateOutcome.SENT:
                summary.staged.append((r.task_id, tier.flag))

    if summary.staged:
        try:
            _commit(task_repo, summary.staged)
            summary.committed = True
        except RepositoryCommitError as e:
            logger.exception("Latch commit failed; %d reminders may resend", len(summary.staged))
            summary.commit_error = e.message
    else:
        summary.committed = True

    logger.info(
        "Reminder sweep done near=%d far=%d sent=%d skipped=%d failed=%d committed=%s",
        len(summary.candidates(ReminderTier.NEAR)),
        len(summary.candidates(ReminderTier.FAR)),
        len(summary.sent),
        len(summary.skipped),
        len(summary.failed),
        summary.committed,
    )
    return summary


@contextlib.asynccontextmanager
async def _holding(lock: threading.Lock | None) -> AsyncIterator[None]:
    # Polled so the owning loop stays responsive to cancellation and stop events.
    if lock is None:
        yield
        return
    while not lock.acquire(blocking=False):
        await asyncio.sleep(_LOCK_POLL_S)
    try:
        yield
    finally:
        lock.release()


async def run_exclusive_sweep(
    sweep_lock: threading.Lock | None,
    task_repo: TaskRepo,
    directory: UserDirectory,
    mailer: Mailer,
    **kwargs: Any,
) -> RunSummary:
    """
    run_reminder_sweep under a process-wide lock.

    The scheduler thread and the operator console each drive sweeps on their
    own event loop; both go through here with the same lock so two sweeps
    never see the same unsent task before one of them commits.
    """
    async with _holding(sweep_lock):
        return await run_reminder_sweep(task_repo, directory, mailer, **kwargs)


async def run_reminder_scheduler(
        task_repo: TaskRepo,
        directory: UserDirectory,
        mailer: Mailer,
        *,
        interval_seconds: float = 60.0,
        app_url: str = DEFAULT_APP_URL,
        send_concurrency: int = 1,
        stop_event: asyncio.Event | None = None,
        on_summary: Callable[[RunSummary], None] | None = None,
        sweep_lock: threading.Lock | None = None,
) -> None:
    """
    Polling loop: one sweep every interval_seconds, forever.

    Ticks are spaced from the start of each sweep, so a slow sweep does not
    push later ticks back. A sweep longer than the interval is awaited and the
    next one starts right away; sweeps never overlap.
    Any sweep error is logged and the loop keeps its cadence.

    To stop, cancel the coroutine or set stop_event.
    """
    interval = max(0.5, float(interval_seconds))
    loop = asyncio.get_running_loop()

    while stop_event is None or not stop_event.is_set():
        started = loop.time()
        try:
            summary = await run_exclusive_sweep(
                sweep_lock,
                task_repo,
                directory,
                mailer,
                app_url=app_url,
                send_concurrency=send_concurrency,
            )
            if on_summary is not None:
                on_summary(summary)
        except Exception:
            logger.exception("Reminder sweep crashed")

        elapsed = loop.time() - started
        sleep_s = max(0.0, interval - elapsed)
        if elapsed > interval:
            logger.warning(
                "Reminder sweep took %.1fs, longer than the %.1fs interval", elapsed, interval
            )

        if stop_event is None:
            await asyncio.sleep(sleep_s)
            continue

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=sleep_s)
        except TimeoutError:
            pass

    logger.info("Reminder scheduler stopped.")
