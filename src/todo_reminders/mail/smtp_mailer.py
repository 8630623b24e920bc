# src/todo_reminders/mail/smtp_mailer.py

"""
SMTP mailer built on aiosmtplib.

One connection per message: reminders are low-volume and a fresh session keeps
the mailer free of shared connection state between the scheduler thread and
the console.

Transport errors are reported through SendResult, never raised, so the
dispatcher can tell "sent" from "not sent" without exception plumbing.
"""

from __future__ import annotations

import logging
import ssl
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from email.message import EmailMessage
from email.utils import format_datetime

import aiosmtplib

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SendResult:
    success: bool
    message_id: str | None = None
    error: str | None = None
    error_code: str | None = None
    rejected: list[str] = field(default_factory=list)

    @classmethod
    def ok(cls, message_id: str | None) -> SendResult:
        return cls(success=True, message_id=message_id)

    @classmethod
    def failure(cls, error: str, error_code: str, rejected: list[str] | None = None) -> SendResult:
        return cls(success=False, error=error, error_code=error_code, rejected=rejected or [])


@dataclass(slots=True, frozen=True)
class SmtpConfig:
    host: str
    port: int = 587
    username: str | None = None
    password: str | None = None
    use_tls: bool = True  # STARTTLS
    use_ssl: bool = False  # implicit TLS
    timeout: float = 30.0
    from_email: str | None = None
    from_name: str | None = None

    @staticmethod
    def from_settings(settings) -> SmtpConfig:
        username = (getattr(settings, "smtp_username", "") or "").strip() or None
        from_email = (getattr(settings, "mail_from", "") or "").strip() or username
        return SmtpConfig(
            host=str(getattr(settings, "smtp_host", "") or ""),
            port=int(getattr(settings, "smtp_port", 587) or 587),
            username=username,
            password=(getattr(settings, "smtp_password", "") or None),
            use_tls=bool(getattr(settings, "smtp_use_tls", True)),
            use_ssl=bool(getattr(settings, "smtp_use_ssl", False)),
            timeout=float(getattr(settings, "smtp_timeout", 30.0) or 30.0),
            from_email=from_email,
            from_name=getattr(settings, "app_name", None),
        )


class SmtpMailer:
    """Mailer port implementation over SMTP (STARTTLS on 587 or SSL on 465)."""

    def __init__(self, config: SmtpConfig) -> None:
        if not config.host:
            raise ValueError("SMTP host is required")
        self._config = config
        logger.info(
            "SmtpMailer ready host=%s port=%s tls=%s ssl=%s",
            config.host,
            config.port,
            config.use_tls,
            config.use_ssl,
        )

    @property
    def config(self) -> SmtpConfig:
        return self._config

    def _tls_context(self) -> ssl.SSLContext | None:
        if not (self._config.use_tls or self._config.use_ssl):
            return None
        return ssl.create_default_context()

    def build_message(
        self, recipient: str, subject: str, body: str, *, html: str | None = None
    ) -> EmailMessage:
        cfg = self._config
        from_email = cfg.from_email or "noreply@localhost"

        msg = EmailMessage()
        msg["From"] = f"{cfg.from_name} <{from_email}>" if cfg.from_name else from_email
        msg["To"] = recipient
        msg["Subject"] = subject
        msg["Message-ID"] = f"<{uuid.uuid4()}@{cfg.host}>"
        msg["Date"] = format_datetime(datetime.now(UTC))
        msg.set_content(body)
        if html:
            msg.add_alternative(html, subtype="html")
        return msg

    async def send(
        self, recipient: str, subject: str, body: str, *, html: str | None = None
    ) -> SendResult:
        recipient = (recipient or "").strip()
        if not recipient:
            return SendResult.failure("recipient address is empty", "NO_RECIPIENT")

        cfg = self._config
        message = self.build_message(recipient, subject, body, html=html)
        message_id = message["Message-ID"]

        smtp = aiosmtplib.SMTP(
            hostname=cfg.host,
            port=cfg.port,
            use_tls=cfg.use_ssl,
            start_tls=cfg.use_tls and not cfg.use_ssl,
            tls_context=self._tls_context(),
            timeout=cfg.timeout,
        )

        try:
            async with smtp:
                if cfg.username and cfg.password:
                    await smtp.login(cfg.username, cfg.password)
                errors, _response = await smtp.send_message(message)
        except aiosmtplib.SMTPAuthenticationError as e:
            return SendResult.failure(f"SMTP authentication failed: {e}", "AUTH_FAILED")
        except aiosmtplib.SMTPRecipientsRefused as e:
            return SendResult.failure(f"recipient refused: {e}", "RECIPIENTS_REFUSED", [recipient])
        except aiosmtplib.SMTPConnectError as e:
            return SendResult.failure(f"SMTP connection failed: {e}", "CONNECTION_ERROR")
        except aiosmtplib.SMTPException as e:
            return SendResult.failure(f"SMTP error: {e}", "SMTP_ERROR")
        except OSError as e:
            return SendResult.failure(f"network error: {e}", "NETWORK_ERROR")

        if recipient in (errors or {}):
            return SendResult.failure(
                f"recipient rejected: {errors[recipient]}", "RECIPIENTS_REFUSED", [recipient]
            )

        logger.debug("Mail sent message_id=%s to=%s", message_id, recipient)
        return SendResult.ok(message_id)
