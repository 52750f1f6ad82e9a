# src/remindly/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The reminder scheduler and the priority engine depend on Protocols instead of
concrete implementations, so the OS notification layer, the stores and the
LLM provider stay swappable and tests can use in-memory fakes.
"""

from typing import Any, Callable, Protocol

from ..reminders.reminder_models import NewReminder, Reminder

NotificationPayload = dict[str, Any]
# Free-form data attached to a notification: {"task_id": ..., "task_title": ...}.

DeliveryCallback = Callable[[str], None]
# Called by a gateway with the handle of a notification that just fired.


class NotificationGateway(Protocol):
    """
    OS-level notification subsystem.

    schedule_at may raise NoPermissionError, GatewayError or
    ReminderValidationError(PAST_TIME). cancel is idempotent: unknown or
    already-fired handles are a no-op.
    """

    def schedule_at(self, *, title: str, body: str, when: float, payload: NotificationPayload) -> str: ...
    def cancel(self, handle: str) -> None: ...
    def present_now(self, *, title: str, body: str, payload: NotificationPayload) -> None: ...


class ReminderRepo(Protocol):
    """Durable reminder records. Failures are raised as StoreError."""

    def create(self, reminder: NewReminder) -> Reminder: ...
    def delete(self, reminder_id: int) -> None: ...
    def list_by_task(self, task_id: int) -> list[Reminder]: ...
    def get(self, reminder_id: int) -> Reminder | None: ...
    def mark_sent_by_handle(self, handle: str) -> bool: ...


class TaskRepo(Protocol):
    def add_task(
            self,
            *,
            title: str,
            description: str | None = None,
            due_at: float | None = None,
            category: str | None = None,
            priority_label: Any = None,
            status: Any = None,
            recurrence: Any = None,
            tags: list[str] | None = None,
    ) -> int: ...

    def get_task(self, task_id: int) -> Any | None: ...
    def list_tasks(self, *, include_archived: bool = False, limit: int = 100) -> list[Any]: ...
    def update_task_fields(self, task_id: int, **fields: Any) -> None: ...
    def delete_task(self, task_id: int) -> None: ...


class LanguageModelClient(Protocol):
    """
    Single-shot text completion.

    Raises LLMNetworkError / LLMAuthError / LLMRateLimitedError. No format
    contract on the returned text; callers parse it themselves.
    """

    def complete(self, prompt: str) -> str: ...
