# src/remindly/reminders/reminder_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class ReminderStatus(StrEnum):
    """
    Reminder lifecycle status.

    Transitions:
    - pending -> sent       (the gateway delivered the notification)
    - pending -> cancelled  (released before firing)

    A changed time is modeled as cancel + new reminder, never as an update.
    """

    PENDING = "pending"
    SENT = "sent"
    CANCELLED = "cancelled"

    @classmethod
    def from_db(cls, raw: str | None) -> ReminderStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


@dataclass(slots=True)
class Reminder:
    id: int
    task_id: int
    remind_at: float
    status: ReminderStatus
    created_at: float
    updated_at: float

    custom_message: str | None = None
    # Opaque handle returned by the NotificationGateway; never parsed.
    notification_handle: str | None = None


@dataclass(slots=True, frozen=True)
class NewReminder:
    """Creation request passed to ReminderRepo.create (no id/timestamps yet)."""

    task_id: int
    remind_at: float
    custom_message: str | None
    notification_handle: str | None
    status: ReminderStatus = ReminderStatus.PENDING
