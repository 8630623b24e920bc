# src/todo_reminders/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from ..storage.task_store import TaskStore
from ..storage.user_store import UserStore
from .ports import Mailer


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    task_store: TaskStore
    directory: UserStore
    mailer: Mailer

    # Serializes console commands against each other.
    lock: threading.Lock = field(default_factory=threading.Lock)

    # Held by every reminder sweep, whichever thread runs it.
    sweep_lock: threading.Lock = field(default_factory=threading.Lock)
