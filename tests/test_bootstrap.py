# tests/test_bootstrap.py

from __future__ import annotations

import time

from remindly.cli.bootstrap import create_initial_state, restore_pending_notifications
from remindly.llm.offline import OfflineLLMClient
from remindly.reminders.reminder_models import NewReminder, ReminderStatus
from remindly.reminders.reminder_scheduler import NOTIFICATION_TITLE

from .fakes import HOUR


def test_without_api_key_state_runs_offline(settings) -> None:
    state = create_initial_state(settings=settings)
    try:
        assert isinstance(state.llm, OfflineLLMClient)
        assert state.gateway.permission_granted is True
        assert settings.tasks_db_path.exists()
        assert settings.reminders_db_path.exists()
    finally:
        state.gateway.shutdown()


def test_restore_rearms_future_and_settles_the_rest(settings) -> None:
    state = create_initial_state(settings=settings)
    shown: list[tuple[str, str, dict]] = []
    state.gateway.set_presenter(lambda title, body, payload: shown.append((title, body, payload)))
    try:
        now = time.time()
        task_id = state.task_store.add_task(title="Renew passport")
        future = state.reminder_store.create(
            NewReminder(task_id=task_id, remind_at=now + HOUR, custom_message=None, notification_handle="h-future")
        )
        missed = state.reminder_store.create(
            NewReminder(task_id=task_id, remind_at=now - HOUR, custom_message="bring photo", notification_handle="h-past")
        )
        orphan = state.reminder_store.create(
            NewReminder(task_id=999, remind_at=now + 2 * HOUR, custom_message=None, notification_handle="h-orphan")
        )

        assert restore_pending_notifications(state, now=now) == 1
        assert state.gateway.pending_handles() == [future.notification_handle]

        # The missed reminder is shown once and no longer pending.
        assert state.reminder_store.get(missed.id).status == ReminderStatus.SENT
        assert len(shown) == 1
        title, body, payload = shown[0]
        assert title == NOTIFICATION_TITLE
        assert body == "Renew passport\nbring photo"
        assert payload["task_id"] == task_id
        assert "scheduled_time" in payload

        assert state.reminder_store.get(orphan.id) is None

        # Every pending reminder with a handle now has a live notification.
        live = set(state.gateway.pending_handles())
        assert all(r.notification_handle in live for r in state.reminder_store.list_pending())
    finally:
        state.gateway.shutdown()


def test_restore_marks_missed_reminder_sent_without_permission(settings) -> None:
    settings.notifications_enabled = False
    state = create_initial_state(settings=settings)
    try:
        now = time.time()
        task_id = state.task_store.add_task(title="Water plants")
        missed = state.reminder_store.create(
            NewReminder(task_id=task_id, remind_at=now - HOUR, custom_message=None, notification_handle="h-past")
        )

        assert restore_pending_notifications(state, now=now) == 0
        assert state.reminder_store.get(missed.id).status == ReminderStatus.SENT
    finally:
        state.gateway.shutdown()
