# src/remindly/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class TaskStatus(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ARCHIVED = "archived"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


class PriorityLabel(StrEnum):
    """
    Authoritative task priority.

    The numeric 1..3 value used for sorting is a one-way projection of the
    label (see `numeric`); it is never stored separately.
    """

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def numeric(self) -> int:
        return _NUMERIC[self]

    @classmethod
    def parse(cls, raw: str | None) -> PriorityLabel | None:
        """Trim + uppercase; return the label only on an exact match."""
        if raw is None:
            return None
        text = raw.strip().upper()
        try:
            return cls(text)
        except ValueError:
            return None

    @classmethod
    def from_db(cls, raw: str | None) -> PriorityLabel:
        return cls.parse(raw) or cls.MEDIUM


_NUMERIC = {PriorityLabel.LOW: 1, PriorityLabel.MEDIUM: 2, PriorityLabel.HIGH: 3}


class RecurrenceFrequency(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


@dataclass(slots=True, frozen=True)
class RecurrencePattern:
    """Stored with the task; not interpreted by reminder scheduling."""

    frequency: RecurrenceFrequency
    interval: int = 1
    end_at: float | None = None
    days_of_week: tuple[int, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "frequency": self.frequency.value,
            "interval": self.interval,
            "end_at": self.end_at,
            "days_of_week": list(self.days_of_week),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> RecurrencePattern | None:
        if not data:
            return None
        try:
            frequency = RecurrenceFrequency(str(data.get("frequency", "")))
        except ValueError:
            return None
        end_at = data.get("end_at")
        return cls(
            frequency=frequency,
            interval=max(1, int(data.get("interval") or 1)),
            end_at=float(end_at) if end_at is not None else None,
            days_of_week=tuple(int(d) for d in data.get("days_of_week") or ()),
        )


@dataclass(slots=True)
class Task:
    id: int
    title: str
    status: TaskStatus
    priority_label: PriorityLabel
    created_at: float
    updated_at: float

    description: str | None = None
    due_at: float | None = None
    category: str | None = None
    completed_at: float | None = None
    recurrence: RecurrencePattern | None = None
    tags: list[str] = field(default_factory=list)

    @property
    def priority(self) -> int:
        return self.priority_label.numeric
