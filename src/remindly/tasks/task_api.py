# src/remindly/tasks/task_api.py

from __future__ import annotations

import logging
import time

from ..core.errors import NotFoundError
from ..core.state import AppState
from ..priority.engine import PriorityInput
from ..reminders.reminder_models import Reminder
from .task_models import PriorityLabel, RecurrencePattern, Task, TaskStatus

logger = logging.getLogger(__name__)


def get_task_or_raise(state: AppState, task_id: int) -> Task:
    task = state.task_store.get_task(task_id)
    if task is None:
        raise NotFoundError(f"Task {task_id} not found")
    return task


def create_task(
    state: AppState,
    *,
    title: str,
    description: str | None = None,
    due_at: float | None = None,
    category: str | None = None,
    priority: PriorityLabel | None = None,
    recurrence: RecurrencePattern | None = None,
    tags: list[str] | None = None,
    now: float | None = None,
) -> Task:
    """
    Create a task. Without an explicit priority the task is classified
    first (model tier, then due-date fallback).
    """
    if priority is None:
        priority = state.priority.classify(
            PriorityInput(title=title, description=description, due_at=due_at, category=category),
            now,
        )

    task_id = state.task_store.add_task(
        title=title,
        description=description,
        due_at=due_at,
        category=category,
        priority_label=priority,
        recurrence=recurrence,
        tags=tags,
    )
    logger.info("Task %s created priority=%s", task_id, priority.value)
    return get_task_or_raise(state, task_id)


def reclassify_task(
    state: AppState,
    task_id: int,
    *,
    override: PriorityLabel | None = None,
    now: float | None = None,
) -> Task:
    """Recompute the priority label, or set it manually when `override` is given."""
    task = get_task_or_raise(state, task_id)
    label = override if override is not None else state.priority.classify(task, now)
    state.task_store.update_task_fields(task_id, priority_label=label)
    return get_task_or_raise(state, task_id)


def set_task_status(state: AppState, task_id: int, status: TaskStatus, *, now: float | None = None) -> Task:
    get_task_or_raise(state, task_id)
    completed_at = (time.time() if now is None else now) if status == TaskStatus.COMPLETED else None
    state.task_store.update_task_fields(task_id, status=status, completed_at=completed_at)
    return get_task_or_raise(state, task_id)


def toggle_completed(state: AppState, task_id: int, *, now: float | None = None) -> Task:
    """Completion toggle; reminders are left as they are."""
    task = get_task_or_raise(state, task_id)
    new_status = TaskStatus.PENDING if task.status == TaskStatus.COMPLETED else TaskStatus.COMPLETED
    return set_task_status(state, task_id, new_status, now=now)


def delete_task(state: AppState, task_id: int) -> int:
    """
    Delete a task and its reminders.

    Reminders are released through the scheduler first so no notification
    outlives its task. Returns the number of reminders cancelled.
    """
    get_task_or_raise(state, task_id)
    cancelled = state.reminders.cancel_all_for_task(task_id)
    state.task_store.delete_task(task_id)
    logger.info("Task %s deleted (%d reminders cancelled)", task_id, cancelled)
    return cancelled


def schedule_reminder(
    state: AppState,
    task_id: int,
    remind_at: float,
    message: str | None = None,
    *,
    now: float | None = None,
) -> Reminder:
    """Re-reads the task's reminders right before validating (see ReminderScheduler.schedule)."""
    task = get_task_or_raise(state, task_id)
    return state.reminders.schedule(task, remind_at, message, now=now)


def cancel_reminder(state: AppState, reminder_id: int) -> Reminder:
    reminder = state.reminder_store.get(reminder_id)
    if reminder is None:
        raise NotFoundError(f"Reminder {reminder_id} not found")
    state.reminders.cancel(reminder)
    return reminder


def list_reminders(state: AppState, task_id: int) -> list[Reminder]:
    get_task_or_raise(state, task_id)
    return state.reminder_store.list_by_task(task_id)
