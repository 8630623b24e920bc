# tests/test_smtp_mailer.py

from __future__ import annotations

from types import SimpleNamespace

import aiosmtplib
import pytest

from todo_reminders.mail import smtp_mailer
from todo_reminders.mail.smtp_mailer import SmtpConfig, SmtpMailer


class StubSMTP:
    """Stands in for aiosmtplib.SMTP; records what would go over the wire."""

    instances: list[StubSMTP] = []
    raise_on_send: Exception | None = None

    def __init__(self, **kwargs) -> None:
        self.kwargs = kwargs
        self.logged_in: tuple[str, str] | None = None
        self.messages = []
        StubSMTP.instances.append(self)

    async def __aenter__(self) -> StubSMTP:
        return self

    async def __aexit__(self, *exc) -> None:
        return None

    async def login(self, username: str, password: str) -> None:
        self.logged_in = (username, password)

    async def send_message(self, message):
        if StubSMTP.raise_on_send is not None:
            raise StubSMTP.raise_on_send
        self.messages.append(message)
        return {}, "250 OK"


@pytest.fixture()
def stub_smtp(monkeypatch):
    StubSMTP.instances = []
    StubSMTP.raise_on_send = None
    monkeypatch.setattr(smtp_mailer.aiosmtplib, "SMTP", StubSMTP)
    return StubSMTP


def _mailer() -> SmtpMailer:
    return SmtpMailer(
        SmtpConfig(
            host="smtp.example.test",
            username="bot@example.test",
            password="secret",
            from_email="bot@example.test",
            from_name="Todo",
        )
    )


@pytest.mark.asyncio
async def test_send_builds_multipart_message_and_logs_in(stub_smtp) -> None:
    result = await _mailer().send("u1@x.com", "Hi", "plain body", html="<p>html</p>")

    assert result.success is True
    assert result.message_id
    smtp = stub_smtp.instances[0]
    assert smtp.kwargs["start_tls"] is True
    assert smtp.kwargs["use_tls"] is False
    assert smtp.logged_in == ("bot@example.test", "secret")

    msg = smtp.messages[0]
    assert msg["To"] == "u1@x.com"
    assert msg["From"] == "Todo <bot@example.test>"
    assert msg.get_body(preferencelist=("plain",)).get_content().strip() == "plain body"
    assert "<p>html</p>" in msg.get_body(preferencelist=("html",)).get_content()


@pytest.mark.asyncio
async def test_empty_recipient_fails_without_connecting(stub_smtp) -> None:
    result = await _mailer().send("  ", "Hi", "body")

    assert result.success is False
    assert result.error_code == "NO_RECIPIENT"
    assert stub_smtp.instances == []


@pytest.mark.asyncio
async def test_transport_error_is_reported_not_raised(stub_smtp) -> None:
    stub_smtp.raise_on_send = aiosmtplib.SMTPServerDisconnected("gone")

    result = await _mailer().send("u1@x.com", "Hi", "body")

    assert result.success is False
    assert result.error_code == "SMTP_ERROR"


def test_config_from_settings_defaults_sender_to_username() -> None:
    cfg = SmtpConfig.from_settings(
        SimpleNamespace(
            smtp_host="smtp.example.test",
            smtp_port=465,
            smtp_username="bot@example.test",
            smtp_password="pw",
            smtp_use_tls=False,
            smtp_use_ssl=True,
            smtp_timeout=10,
            mail_from="",
            app_name="Todo",
        )
    )
    assert cfg.from_email == "bot@example.test"
    assert cfg.port == 465
    assert cfg.use_ssl is True


def test_host_is_required() -> None:
    with pytest.raises(ValueError):
        SmtpMailer(SmtpConfig(host=""))
