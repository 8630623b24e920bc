# src/todo_reminders/storage/user_store.py

from __future__ import annotations

import logging
import sqlite3
import time
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class UserProfile:
    uid: str
    email: str
    display_name: str | None
    created_at: float
    updated_at: float


class UserStore:
    """
    SQLite user profiles, used to resolve a task owner to an email address.

    Shares the database file with TaskStore; each call opens its own connection.
    """

    def __init__(self, db_path: str | Path = "todos.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS profiles (
                    uid TEXT PRIMARY KEY,
                    email TEXT NOT NULL DEFAULT '',
                    display_name TEXT,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    def upsert_profile(self, uid: str, *, email: str, display_name: str | None = None) -> None:
        if not uid or not uid.strip():
            raise ValueError("uid is required")

        now = time.time()
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO profiles(uid, email, display_name, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(uid) DO UPDATE SET
                    email = excluded.email,
                    display_name = COALESCE(excluded.display_name, profiles.display_name),
                    updated_at = excluded.updated_at
                """,
                (uid.strip(), (email or "").strip(), display_name, now, now),
            )
            conn.commit()
        finally:
            conn.close()
        logger.debug("Profile saved uid=%s", uid)

    def get_profile(self, uid: str) -> UserProfile | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM profiles WHERE uid = ?", (uid,)).fetchone()
        finally:
            conn.close()
        if row is None:
            return None
        return UserProfile(
            uid=row["uid"],
            email=row["email"] or "",
            display_name=row["display_name"],
            created_at=float(row["created_at"]),
            updated_at=float(row["updated_at"]),
        )

    def resolve_email(self, owner_id: str) -> str | None:
        """Owner's email address, or None if the user is unknown or has none."""
        if not owner_id:
            return None
        profile = self.get_profile(owner_id)
        if profile is None:
            return None
        email = profile.email.strip()
        return email or None
