# src/remindly/core/state.py

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from ..notifications.local_gateway import LocalNotificationGateway
from ..priority.engine import PriorityInferenceEngine
from ..reminders.reminder_scheduler import ReminderScheduler
from ..reminders.reminder_store import ReminderStore
from .ports import LanguageModelClient, TaskRepo


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    llm: LanguageModelClient
    gateway: LocalNotificationGateway
    task_store: TaskRepo
    reminder_store: ReminderStore
    reminders: ReminderScheduler
    priority: PriorityInferenceEngine

    # Task-detail "view" opened in this session (None when closed).
    open_task_id: int | None = None
    # UpcomingRunner for the open task; typed loosely to avoid a connectors import.
    upcoming_runner: Any = None

    clock: Callable[[], float] = time.time
    lock: threading.RLock = field(default_factory=threading.RLock)
