# src/todo_reminders/reminders/render.py

from __future__ import annotations

"""
Reminder renderer.

Pure: task + tier (+ the instant to measure from) -> subject / text / html.
Never raises for odd task data; missing text becomes "Task" and a missing due
time renders as "no due date" with zero minutes remaining.
"""

import html as html_lib
import math
from datetime import UTC, datetime

from .models import ReminderTier, RenderedReminder, Task

DEFAULT_LABEL = "Task"
DEFAULT_APP_URL = "https://your-app-domain.com"


def minutes_remaining(due_at: datetime | None, now: datetime) -> int:
    """Whole minutes until due, rounded half-up and clamped at zero."""
    if due_at is None:
        return 0
    seconds = (due_at - now).total_seconds()
    return max(0, math.floor(seconds / 60.0 + 0.5))


def _format_due(due_at: datetime | None) -> str:
    if due_at is None:
        return "no due date"
    return due_at.astimezone(UTC).strftime("%a, %d %b %Y %H:%M UTC")


def render_reminder(
    task: Task,
    tier: ReminderTier,
    *,
    now: datetime | None = None,
    app_url: str = DEFAULT_APP_URL,
) -> RenderedReminder:
    if now is None:
        now = datetime.now(UTC)

    label = (getattr(task, "text", "") or "").strip() or DEFAULT_LABEL
    due_at = getattr(task, "due_at", None)
    mins = minutes_remaining(due_at, now)
    due_str = _format_due(due_at)
    tier_min = int(tier)

    subject = f'{tier.emoji} {tier.label} ({tier_min}min): "{label}"'

    lines = [
        f"{tier.label} - {tier_min} Minutes",
        "",
        label,
        f"Due: {due_str}",
        f"Time remaining: {mins} minutes",
    ]
    if tier is ReminderTier.NEAR:
        lines.append("URGENT: Task due soon!")
    lines += [
        "",
        f"View task: {app_url}",
        "",
        f"This is an automated {tier_min}-minute reminder from your To-Do List app.",
    ]
    body = "\n".join(lines)

    color = tier.color
    safe_label = html_lib.escape(label)
    safe_url = html_lib.escape(app_url, quote=True)
    banner = (
        '<p style="color: #ff4444; font-weight: bold; text-align: center; font-size: 16px;">'
        "⚠️ URGENT: Task due soon!</p>"
        if tier is ReminderTier.NEAR
        else ""
    )
    html = (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<h2 style="color: {color}; text-align: center;">{tier.label} - {tier_min} Minutes</h2>'
        f'<div style="background: #1a1a2e; padding: 20px; border-radius: 8px; border: 2px solid {color};">'
        f'<h3 style="color: #ffffff; margin-top: 0;">{safe_label}</h3>'
        f'<p style="color: #00ffff;"><strong>Due:</strong> {due_str}</p>'
        f'<p style="color: {color}; font-weight: bold;"><strong>Time remaining:</strong> {mins} minutes</p>'
        f"{banner}"
        '<div style="text-align: center; margin-top: 20px;">'
        f'<a href="{safe_url}" style="background: {color}; color: #000; padding: 10px 20px; '
        'text-decoration: none; border-radius: 4px; font-weight: bold;">View Task</a>'
        "</div></div>"
        '<p style="color: #666; text-align: center; margin-top: 20px; font-size: 12px;">'
        f"This is an automated {tier_min}-minute reminder from your To-Do List app.</p>"
        "</div>"
    )

    return RenderedReminder(subject=subject, body=body, html=html, minutes_remaining=mins)
