# src/remindly/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (LLM/stores/gateway/scheduler),
- re-arms notifications for reminders still pending from a previous run.
"""

from __future__ import annotations

import logging
import time

from ..config import get_settings
from ..core.errors import RemindlyError
from ..core.ports import LanguageModelClient
from ..core.state import AppState
from ..llm.client import OpenRouterLLMClient
from ..llm.offline import OfflineLLMClient
from ..notifications.local_gateway import LocalNotificationGateway
from ..priority.engine import PriorityInferenceEngine
from ..reminders.reminder_scheduler import (
    NOTIFICATION_TITLE,
    ReminderScheduler,
    build_notification_body,
    reminder_payload,
)
from ..reminders.reminder_store import ReminderStore
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.reminders_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    llm_client: LanguageModelClient
    try:
        llm_client = OpenRouterLLMClient(settings)
    except RuntimeError as e:
        logger.info("LLM not configured (%s); priorities use the due-date rule only.", e)
        llm_client = OfflineLLMClient()

    gateway = LocalNotificationGateway(permission_granted=bool(settings.notifications_enabled))
    reminder_store = ReminderStore(settings.reminders_db_path)
    scheduler = ReminderScheduler(gateway, reminder_store)
    gateway.set_delivery_callback(scheduler.handle_delivered)

    return AppState(
        settings=settings,
        llm=llm_client,
        gateway=gateway,
        task_store=TaskStore(settings.tasks_db_path),
        reminder_store=reminder_store,
        reminders=scheduler,
        priority=PriorityInferenceEngine(llm_client),
    )


def restore_pending_notifications(state: AppState, *, now: float | None = None) -> int:
    """
    Re-arm in-process notifications for pending reminders after a restart.

    Handles are reused so records and notifications stay correlated.
    Reminders whose time passed while the app was down are presented once
    and marked sent. Reminders of deleted tasks are dropped. Returns the
    number of re-armed notifications.
    """
    now = time.time() if now is None else now
    restored = 0

    for reminder in state.reminder_store.list_pending():
        handle = reminder.notification_handle
        if not handle:
            continue

        task = state.task_store.get_task(reminder.task_id)
        if task is None:
            logger.warning("Reminder %s references missing task_id=%s; dropping it", reminder.id, reminder.task_id)
            state.reminder_store.delete(reminder.id)
            continue

        body = build_notification_body(task.title, reminder.custom_message)
        payload = reminder_payload(task, reminder.remind_at)

        if reminder.remind_at <= now:
            logger.info("Reminder %s was due while offline (task_id=%s)", reminder.id, task.id)
            try:
                state.gateway.present_now(title=NOTIFICATION_TITLE, body=body, payload=payload)
            except RemindlyError as e:
                logger.warning("Could not present missed reminder %s: %s", reminder.id, e)
            state.reminder_store.mark_sent_by_handle(handle)
            continue

        try:
            state.gateway.rearm(handle, title=NOTIFICATION_TITLE, body=body, when=reminder.remind_at, payload=payload)
            restored += 1
        except RemindlyError as e:
            logger.warning("Could not re-arm reminder %s: %s", reminder.id, e)

    if restored:
        logger.info("Re-armed %d pending notifications", restored)
    return restored
