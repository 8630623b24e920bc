# src/todo_reminders/reminders/manual.py

from __future__ import annotations

import logging
from typing import Any

from ..core.ports import Mailer, TaskRepo, UserDirectory
from ..errors import Internal, InvalidArgument, NotFound, PermissionDenied, Unauthenticated
from .dispatcher import Clock, deliver_reminder, utc_now
from .models import CandidateOutcome, ReminderTier
from .render import DEFAULT_APP_URL

logger = logging.getLogger(__name__)


async def send_test_notification(
    task_repo: TaskRepo,
    directory: UserDirectory,
    mailer: Mailer,
    *,
    caller_id: str | None,
    task_id: str | None,
    tier: Any = ReminderTier.FAR,
    app_url: str = DEFAULT_APP_URL,
    clock: Clock = utc_now,
) -> dict[str, Any]:
    """
    Send one reminder for a task on demand.

    Bypasses windows and latch flags entirely: sent15/sent30 are left as they are.
    Raises a ReminderError subclass on every failure path.
    """
    if not caller_id:
        raise Unauthenticated("User must be authenticated")

    if not task_id or not str(task_id).strip():
        raise InvalidArgument("taskId is required")

    try:
        tier = ReminderTier.parse(tier if tier is not None else ReminderTier.FAR)
    except ValueError as e:
        raise InvalidArgument(str(e)) from e

    try:
        task = task_repo.get_by_id(str(task_id).strip())
    except Exception as e:
        logger.exception("get_by_id failed task_id=%s", task_id)
        raise Internal("Failed to load task") from e

    if task is None:
        raise NotFound("Task not found")

    if task.owner_id != caller_id:
        logger.warning("Manual reminder denied task_id=%s caller=%s", task_id, caller_id)
        raise PermissionDenied("Not authorized")

    result = await deliver_reminder(task, tier, directory, mailer, clock=clock, app_url=app_url)

    if result.outcome is CandidateOutcome.SKIPPED:
        raise Internal("No email address on file for this account")
    if result.outcome is CandidateOutcome.FAILED:
        raise Internal("Failed to send notification")

    logger.info("Manual %s-minute reminder sent task_id=%s", int(tier), task.id)
    return {"success": True, "message": "Test notification sent"}
