# src/todo_reminders/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time (SMTP credentials are read lazily by the mailer).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

ENV_PREFIX = "REMINDERS"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except ImportError:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path

    # ---- Runtime switches ----
    scheduler_enabled: bool
    console_enabled: bool
    console_user_id: Optional[str]

    # ---- Sweep ----
    interval_seconds: float
    send_concurrency: int
    app_url: str

    # ---- SMTP ----
    smtp_host: str
    smtp_port: int
    smtp_username: str
    smtp_password: str
    smtp_use_tls: bool
    smtp_use_ssl: bool
    smtp_timeout: float
    mail_from: str

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "todo-reminders")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/todo_reminders"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "todos.sqlite3")

        scheduler_enabled = _env_bool(_k("SCHEDULER_ENABLED"), True)
        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)
        console_user_id = _env(_k("CONSOLE_USER_ID"), "").strip() or None

        interval_seconds = _env_float(_k("INTERVAL_SECONDS"), 60.0)
        send_concurrency = max(1, _env_int(_k("SEND_CONCURRENCY"), 1))
        app_url = _env(_k("APP_URL"), "https://your-app-domain.com")

        smtp_use_ssl = _env_bool(_k("SMTP_USE_SSL"), False)
        smtp_host = _env(_k("SMTP_HOST"), "smtp.gmail.com").strip()
        smtp_port = _env_int(_k("SMTP_PORT"), 465 if smtp_use_ssl else 587)
        smtp_username = _env(_k("SMTP_USERNAME"), "").strip()
        smtp_password = _env(_k("SMTP_PASSWORD"), "")
        smtp_use_tls = _env_bool(_k("SMTP_USE_TLS"), not smtp_use_ssl)
        smtp_timeout = _env_float(_k("SMTP_TIMEOUT"), 30.0)
        mail_from = _env(_k("MAIL_FROM"), smtp_username).strip()

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            db_path=db_path,
            scheduler_enabled=scheduler_enabled,
            console_enabled=console_enabled,
            console_user_id=console_user_id,
            interval_seconds=interval_seconds,
            send_concurrency=send_concurrency,
            app_url=app_url,
            smtp_host=smtp_host,
            smtp_port=smtp_port,
            smtp_username=smtp_username,
            smtp_password=smtp_password,
            smtp_use_tls=smtp_use_tls,
            smtp_use_ssl=smtp_use_ssl,
            smtp_timeout=smtp_timeout,
            mail_from=mail_from,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
