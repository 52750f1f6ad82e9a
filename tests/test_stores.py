# tests/test_stores.py

from __future__ import annotations

from pathlib import Path

import pytest

from remindly.core.errors import StoreError
from remindly.reminders.reminder_models import NewReminder, ReminderStatus
from remindly.reminders.reminder_store import ReminderStore
from remindly.tasks.task_models import (
    PriorityLabel,
    RecurrenceFrequency,
    RecurrencePattern,
    TaskStatus,
)
from remindly.tasks.task_store import TaskStore

from .fakes import DAY, HOUR, NOW


def test_reminder_create_list_delete(tmp_path: Path) -> None:
    store = ReminderStore(tmp_path / "reminders.sqlite3")

    late = store.create(NewReminder(task_id=1, remind_at=NOW + 3 * HOUR, custom_message=None, notification_handle="h-late"))
    early = store.create(NewReminder(task_id=1, remind_at=NOW + HOUR, custom_message="first", notification_handle="h-early"))
    store.create(NewReminder(task_id=2, remind_at=NOW + 2 * HOUR, custom_message=None, notification_handle="h-other"))

    listed = store.list_by_task(1)
    assert [r.id for r in listed] == [early.id, late.id]
    assert listed[0].custom_message == "first"
    assert listed[0].status == ReminderStatus.PENDING
    assert listed[0].notification_handle == "h-early"

    store.delete(early.id)
    assert [r.id for r in store.list_by_task(1)] == [late.id]
    assert store.get(early.id) is None
    assert store.count_reminders() == 2


def test_reminder_mark_sent_by_handle(tmp_path: Path) -> None:
    store = ReminderStore(tmp_path / "reminders.sqlite3")
    r = store.create(NewReminder(task_id=1, remind_at=NOW + HOUR, custom_message=None, notification_handle="abc"))

    assert store.mark_sent_by_handle("abc") is True
    assert store.get(r.id).status == ReminderStatus.SENT
    assert store.mark_sent_by_handle("abc") is False
    assert store.mark_sent_by_handle("unknown") is False
    assert store.list_pending() == []


def test_reminder_store_errors_become_store_error(tmp_path: Path) -> None:
    store = ReminderStore(tmp_path / "reminders.sqlite3")
    store._db_path = tmp_path / "missing-dir" / "nope" / "reminders.sqlite3"
    with pytest.raises(StoreError):
        store.list_by_task(1)


def test_task_add_get_update_delete(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")
    recurrence = RecurrencePattern(frequency=RecurrenceFrequency.WEEKLY, interval=2, days_of_week=(1, 3))

    task_id = store.add_task(
        title="  Water plants ",
        description="",
        due_at=NOW + DAY,
        category="home",
        priority_label=PriorityLabel.HIGH,
        recurrence=recurrence,
        tags=["garden"],
    )
    task = store.get_task(task_id)
    assert task is not None
    assert task.title == "Water plants"
    assert task.description is None
    assert task.priority_label == PriorityLabel.HIGH
    assert task.priority == 3
    assert task.recurrence == recurrence
    assert task.tags == ["garden"]

    store.update_task_fields(task_id, status=TaskStatus.COMPLETED, completed_at=NOW, due_at=None)
    task = store.get_task(task_id)
    assert task.status == TaskStatus.COMPLETED
    assert task.completed_at == NOW
    assert task.due_at is None

    store.delete_task(task_id)
    assert store.get_task(task_id) is None


def test_task_update_rejects_unknown_fields(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")
    task_id = store.add_task(title="x")
    with pytest.raises(ValueError):
        store.update_task_fields(task_id, owner="someone")


def test_task_requires_title(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")
    with pytest.raises(ValueError):
        store.add_task(title="   ")


def test_task_list_orders_by_priority_then_due(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")
    low = store.add_task(title="low", priority_label=PriorityLabel.LOW, due_at=NOW + DAY)
    med_late = store.add_task(title="med late", priority_label=PriorityLabel.MEDIUM, due_at=NOW + 5 * DAY)
    med_none = store.add_task(title="med none", priority_label=PriorityLabel.MEDIUM)
    med_soon = store.add_task(title="med soon", priority_label=PriorityLabel.MEDIUM, due_at=NOW + DAY)
    high = store.add_task(title="high", priority_label=PriorityLabel.HIGH)
    archived = store.add_task(title="old", status=TaskStatus.ARCHIVED)

    ids = [t.id for t in store.list_tasks()]
    assert ids == [high, med_soon, med_late, med_none, low]
    assert archived in [t.id for t in store.list_tasks(include_archived=True)]
