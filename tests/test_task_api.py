# tests/test_task_api.py

from __future__ import annotations

import pytest

from remindly.core.errors import (
    LLMNetworkError,
    NotFoundError,
    ReminderValidationError,
    ValidationErrorKind,
)
from remindly.reminders.reminder_models import ReminderStatus
from remindly.tasks import task_api
from remindly.tasks.task_models import PriorityLabel, TaskStatus

from .fakes import DAY, HOUR, MINUTE, NOW


def test_due_tomorrow_with_model_down_then_two_reminders(state, llm, gateway) -> None:
    llm.error = LLMNetworkError("offline")

    task = task_api.create_task(state, title="Renew insurance", due_at=NOW + DAY, now=NOW)
    assert task.priority_label == PriorityLabel.HIGH
    assert task.category is None

    first = task_api.schedule_reminder(state, task.id, NOW + 2 * HOUR, now=NOW)
    assert first.status == ReminderStatus.PENDING

    with pytest.raises(ReminderValidationError) as exc:
        task_api.schedule_reminder(state, task.id, NOW + 2 * HOUR + 30 * MINUTE, now=NOW)
    assert exc.value.kind == ValidationErrorKind.TOO_CLOSE_TO_EXISTING

    assert [r.id for r in state.reminder_store.list_by_task(task.id)] == [first.id]
    assert list(gateway.outstanding) == [first.notification_handle]


def test_create_task_uses_model_answer(state, llm) -> None:
    llm.next_text = "LOW"
    task = task_api.create_task(state, title="Read novel", due_at=NOW + DAY, now=NOW)
    assert task.priority_label == PriorityLabel.LOW
    assert task.priority == 1


def test_create_task_with_explicit_priority_skips_model(state, llm) -> None:
    task = task_api.create_task(state, title="Call bank", priority=PriorityLabel.HIGH)
    assert task.priority_label == PriorityLabel.HIGH
    assert llm.prompts == []


def test_reclassify_and_override(state, llm) -> None:
    task = task_api.create_task(state, title="Plan trip", priority=PriorityLabel.LOW)

    llm.next_text = "HIGH"
    assert task_api.reclassify_task(state, task.id).priority_label == PriorityLabel.HIGH
    assert task_api.reclassify_task(state, task.id, override=PriorityLabel.MEDIUM).priority_label == PriorityLabel.MEDIUM


def test_toggle_completed_keeps_reminders(state) -> None:
    task = task_api.create_task(state, title="Dentist", priority=PriorityLabel.MEDIUM)
    task_api.schedule_reminder(state, task.id, NOW + HOUR, now=NOW)

    done = task_api.toggle_completed(state, task.id, now=NOW)
    assert done.status == TaskStatus.COMPLETED
    assert done.completed_at == NOW
    assert len(state.reminder_store.list_by_task(task.id)) == 1

    reopened = task_api.toggle_completed(state, task.id)
    assert reopened.status == TaskStatus.PENDING
    assert reopened.completed_at is None


def test_delete_task_cancels_its_reminders(state, gateway) -> None:
    task = task_api.create_task(state, title="Gym", priority=PriorityLabel.LOW)
    task_api.schedule_reminder(state, task.id, NOW + HOUR, now=NOW)
    task_api.schedule_reminder(state, task.id, NOW + 3 * HOUR, now=NOW)

    assert task_api.delete_task(state, task.id) == 2
    assert gateway.outstanding == {}
    assert state.reminder_store.list_by_task(task.id) == []
    assert state.task_store.get_task(task.id) is None


def test_cancel_reminder_round_trip(state, gateway) -> None:
    task = task_api.create_task(state, title="Pick up parcel", priority=PriorityLabel.MEDIUM)
    reminder = task_api.schedule_reminder(state, task.id, NOW + HOUR, "post office", now=NOW)

    task_api.cancel_reminder(state, reminder.id)

    assert gateway.outstanding == {}
    assert state.reminder_store.get(reminder.id) is None


def test_missing_task_and_reminder_raise_not_found(state) -> None:
    with pytest.raises(NotFoundError):
        task_api.schedule_reminder(state, 999, NOW + HOUR, now=NOW)
    with pytest.raises(NotFoundError):
        task_api.cancel_reminder(state, 999)
