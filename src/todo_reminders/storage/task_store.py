# src/todo_reminders/storage/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
import uuid
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from ..reminders.models import Task

logger = logging.getLogger(__name__)

LATCH_FLAGS = frozenset({"sent15", "sent30"})


def to_ts(dt: datetime) -> float:
    if dt.tzinfo is None:
        raise ValueError("naive datetime; pass an aware UTC instant")
    return dt.timestamp()


def from_ts(ts: float | None) -> datetime | None:
    if ts is None:
        return None
    return datetime.fromtimestamp(float(ts), tz=UTC)


class TaskStore:
    """
    SQLite todo store.

    The reminder core only reads rows and flips `sent15` / `sent30` from 0 to 1.
    Everything else here (add/complete/list) is glue for the operator console
    and tests.

    The schema is migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "todos.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except sqlite3.Error:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS todos (
                    id TEXT PRIMARY KEY,
                    text TEXT NOT NULL DEFAULT '',
                    due_at REAL,
                    completed INTEGER NOT NULL DEFAULT 0,
                    owner_id TEXT NOT NULL,
                    sent15 INTEGER NOT NULL DEFAULT 0,
                    sent30 INTEGER NOT NULL DEFAULT 0,
                    email_notifications INTEGER NOT NULL DEFAULT 1,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )

            cur.execute("PRAGMA table_info(todos)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE todos ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            # Rows written before the latch flags existed start unsent.
            add_col("sent15", "INTEGER NOT NULL DEFAULT 0")
            add_col("sent30", "INTEGER NOT NULL DEFAULT 0")
            add_col("email_notifications", "INTEGER NOT NULL DEFAULT 1")

            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_todos_due_open ON todos(completed, due_at)"
            )
            cur.execute("CREATE INDEX IF NOT EXISTS idx_todos_owner ON todos(owner_id)")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=str(row["id"]),
            text=str(row["text"] or ""),
            due_at=from_ts(row["due_at"]),
            completed=bool(row["completed"]),
            owner_id=str(row["owner_id"]),
            sent15=bool(row["sent15"]),
            sent30=bool(row["sent30"]),
            email_notifications=bool(row["email_notifications"]),
            created_at=from_ts(row["created_at"]),
        )

    @staticmethod
    def _check_flag(flag: str) -> str:
        if flag not in LATCH_FLAGS:
            raise ValueError(f"unknown latch flag: {flag!r}")
        return flag

    # ---- reminder core API ----

    def query_by_window(self, due_from: datetime, due_to: datetime, *, flag: str) -> list[Task]:
        """
        Open, opted-in tasks whose latch `flag` is still unset and whose
        due time falls in (due_from, due_to].

        Rows without due_at never match.
        """
        col = self._check_flag(flag)
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                f"""
                SELECT *
                FROM todos
                WHERE completed = 0
                  AND email_notifications = 1
                  AND {col} = 0
                  AND due_at IS NOT NULL
                  AND due_at > ?
                  AND due_at <= ?
                ORDER BY due_at ASC, created_at ASC
                """,
                (to_ts(due_from), to_ts(due_to)),
            )
            return [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def batch_set_flags(self, updates: Iterable[tuple[str, str]]) -> int:
        """
        Set every (task_id, flag) pair to true in a single transaction.

        Either all updates land or none do. Returns the number of rows touched.
        """
        pairs = [(str(task_id), self._check_flag(flag)) for task_id, flag in updates]
        if not pairs:
            return 0

        now = time.time()
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            touched = 0
            for task_id, col in pairs:
                cur.execute(
                    f"UPDATE todos SET {col} = 1, updated_at = ? WHERE id = ?",
                    (now, task_id),
                )
                touched += cur.rowcount
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

        logger.debug("Latch flags committed pairs=%d rows=%d", len(pairs), touched)
        return touched

    def get_by_id(self, task_id: str) -> Task | None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM todos WHERE id = ?", (str(task_id),))
            row = cur.fetchone()
            return self._row_to_task(row) if row else None
        finally:
            conn.close()

    # ---- task management glue ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT COUNT(*) FROM todos")
            (n,) = cur.fetchone()
            return int(n)
        finally:
            conn.close()

    def add_task(
        self,
        *,
        text: str,
        owner_id: str,
        due_at: datetime | None = None,
        completed: bool = False,
        email_notifications: bool = True,
        task_id: str | None = None,
    ) -> str:
        if not owner_id or not owner_id.strip():
            raise ValueError("owner_id is required")

        task_id = task_id or uuid.uuid4().hex
        now = time.time()

        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO todos(
                    id, text, due_at, completed, owner_id,
                    sent15, sent30, email_notifications,
                    created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, 0, 0, ?, ?, ?)
                """,
                (
                    task_id,
                    (text or "").strip(),
                    to_ts(due_at) if due_at is not None else None,
                    int(bool(completed)),
                    owner_id.strip(),
                    int(bool(email_notifications)),
                    now,
                    now,
                ),
            )
            conn.commit()
        finally:
            conn.close()

        logger.debug("Task added id=%s owner=%s due_at=%s", task_id, owner_id, due_at)
        return task_id

    def set_completed(self, task_id: str, completed: bool = True) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "UPDATE todos SET completed = ?, updated_at = ? WHERE id = ?",
                (int(bool(completed)), time.time(), str(task_id)),
            )
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    def list_tasks_for_owner(self, owner_id: str, limit: int = 50) -> list[Task]:
        if not owner_id:
            return []

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT *
                FROM todos
                WHERE owner_id = ?
                ORDER BY completed ASC, COALESCE(due_at, created_at) ASC
                    LIMIT ?
                """,
                (owner_id, int(limit)),
            )
            return [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()
