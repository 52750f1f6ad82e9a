# src/remindly/reminders/reminder_scheduler.py

from __future__ import annotations

"""
Reminder scheduling.

Keeps notification state and reminder records from diverging:
- validate a proposed time against "now" and the task's other reminders,
- schedule the OS notification first, then persist the record
  (releasing the handle again if persistence fails),
- on cancel, release the handle first, then delete the record.

Also hosts the in-app "upcoming reminder" check: a pure function plus a
small polling loop around it.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from ..core.errors import NoPermissionError, ReminderValidationError, StoreError, ValidationErrorKind
from ..core.ports import NotificationGateway, NotificationPayload, ReminderRepo
from ..tasks.task_models import Task
from .reminder_models import NewReminder, Reminder, ReminderStatus

logger = logging.getLogger(__name__)

HOUR_SECONDS = 60.0 * 60.0
DAY_SECONDS = 24 * HOUR_SECONDS

# Hard policy constants, deliberately not settings.
MAX_LEAD_SECONDS = 14 * DAY_SECONDS
MIN_SPACING_SECONDS = HOUR_SECONDS

DEFAULT_UPCOMING_WINDOW_SECONDS = 5 * 60.0
DEFAULT_POLL_INTERVAL_SECONDS = 60.0

NOTIFICATION_TITLE = "Task Reminder"
UPCOMING_TITLE = "Upcoming Reminder"


def validate_reminder_time(candidate: float, existing: Iterable[Reminder], now: float) -> None:
    """
    Raise ReminderValidationError if `candidate` is not acceptable.

    Rules, first failure wins:
    1. candidate <= now                         -> PAST_TIME
    2. candidate > now + 14 days                -> TOO_FAR_IN_FUTURE
    3. |candidate - other.remind_at| < 1 hour   -> TOO_CLOSE_TO_EXISTING
    """
    if candidate <= now:
        raise ReminderValidationError(ValidationErrorKind.PAST_TIME, "Reminder time must be in the future")

    if candidate > now + MAX_LEAD_SECONDS:
        raise ReminderValidationError(
            ValidationErrorKind.TOO_FAR_IN_FUTURE,
            "Reminder cannot be set more than 14 days in advance",
        )

    for other in existing:
        if other.status == ReminderStatus.CANCELLED:
            continue
        if abs(candidate - other.remind_at) < MIN_SPACING_SECONDS:
            raise ReminderValidationError(
                ValidationErrorKind.TOO_CLOSE_TO_EXISTING,
                "A reminder already exists within 1 hour of this time",
                conflicting=other,
            )


def build_notification_body(task_title: str, custom_message: str | None) -> str:
    message = (custom_message or "").strip()
    return f"{task_title}\n{message}" if message else task_title


def _payload_for(task_id: int, task_title: str, **extra: object) -> NotificationPayload:
    return {"task_id": task_id, "task_title": task_title, **extra}


def reminder_payload(task: Task, remind_at: float) -> NotificationPayload:
    """Payload attached to a scheduled reminder notification."""
    scheduled_iso = datetime.fromtimestamp(remind_at, tz=timezone.utc).isoformat()
    return _payload_for(task.id, task.title, scheduled_time=scheduled_iso)


class ReminderScheduler:
    """Coordinates validation, the notification gateway and the reminder store."""

    def __init__(
            self,
            gateway: NotificationGateway,
            store: ReminderRepo,
            *,
            clock: Callable[[], float] = time.time,
    ) -> None:
        self._gateway = gateway
        self._store = store
        self._clock = clock

    def validate(self, candidate: float, existing: Iterable[Reminder], now: float | None = None) -> None:
        validate_reminder_time(candidate, existing, self._clock() if now is None else now)

    def schedule(
            self,
            task: Task,
            remind_at: float,
            message: str | None = None,
            *,
            existing: Sequence[Reminder] | None = None,
            now: float | None = None,
    ) -> Reminder:
        """
        Validate, schedule the notification, persist the record.

        When `existing` is None the task's reminders are re-read from the
        store right before validation. Validation, NoPermissionError and
        GatewayError propagate untouched; a StoreError propagates after the
        freshly obtained handle has been released.
        """
        now = self._clock() if now is None else now
        if existing is None:
            existing = self._store.list_by_task(task.id)

        validate_reminder_time(remind_at, existing, now)

        custom_message = (message or "").strip() or None
        payload = reminder_payload(task, remind_at)
        handle = self._gateway.schedule_at(
            title=NOTIFICATION_TITLE,
            body=build_notification_body(task.title, custom_message),
            when=remind_at,
            payload=payload,
        )

        try:
            reminder = self._store.create(
                NewReminder(
                    task_id=task.id,
                    remind_at=remind_at,
                    custom_message=custom_message,
                    notification_handle=handle,
                )
            )
        except StoreError:
            logger.warning("Reminder persist failed for task_id=%s; releasing notification handle", task.id)
            self._gateway.cancel(handle)
            raise

        logger.info("Reminder %s scheduled for task_id=%s at %s", reminder.id, task.id, payload["scheduled_time"])
        return reminder

    def cancel(self, reminder: Reminder) -> None:
        """
        Release the notification, then delete the record.

        If the delete fails the record is left with a dead handle; that is
        preferred over a live notification with no record.
        """
        if reminder.notification_handle:
            self._gateway.cancel(reminder.notification_handle)
        self._store.delete(reminder.id)
        logger.info("Reminder %s cancelled (task_id=%s)", reminder.id, reminder.task_id)

    def cancel_all_for_task(self, task_id: int) -> int:
        reminders = self._store.list_by_task(task_id)
        for reminder in reminders:
            self.cancel(reminder)
        return len(reminders)

    def handle_delivered(self, handle: str) -> None:
        """Gateway delivery callback: pending -> sent."""
        try:
            if self._store.mark_sent_by_handle(handle):
                logger.info("Reminder with handle=%s marked sent", handle)
        except StoreError:
            logger.exception("Failed to mark reminder sent handle=%s", handle)


@dataclass(slots=True, frozen=True)
class UpcomingCheck:
    """Result of one poll: what to surface now, and the state for the next poll."""

    reminder: Reminder | None
    last_shown_id: int | None


def check_upcoming(
        reminders: Iterable[Reminder],
        now: float,
        last_shown_id: int | None = None,
        window_seconds: float = DEFAULT_UPCOMING_WINDOW_SECONDS,
) -> UpcomingCheck:
    """
    Find the first pending reminder with now < remind_at <= now + window.

    A reminder whose id equals `last_shown_id` is not surfaced again. When
    nothing is upcoming the last-shown state resets, so a later reminder
    always surfaces.
    """
    upcoming = next(
        (
            r
            for r in reminders
            if r.status == ReminderStatus.PENDING and now < r.remind_at <= now + window_seconds
        ),
        None,
    )

    if upcoming is None:
        return UpcomingCheck(reminder=None, last_shown_id=None)

    if upcoming.id == last_shown_id:
        return UpcomingCheck(reminder=None, last_shown_id=last_shown_id)

    return UpcomingCheck(reminder=upcoming, last_shown_id=upcoming.id)


async def run_upcoming_poller(
        store: ReminderRepo,
        gateway: NotificationGateway,
        task: Task,
        *,
        on_upcoming: Callable[[Reminder], None] | None = None,
        interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        window_seconds: float = DEFAULT_UPCOMING_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
) -> None:
    """
    Poll the task's reminders and surface an in-app heads-up.

    Every interval_seconds:
    - read the task's reminders (read-only; the poller never mutates them)
    - run check_upcoming with the last-shown id carried from the previous tick
    - present the surfaced reminder via gateway.present_now and on_upcoming

    The next tick is scheduled only after the current one finishes, so ticks
    never overlap. To stop the poller, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))
    last_shown_id: int | None = None

    while True:
        try:
            reminders = store.list_by_task(task.id)
        except StoreError:
            logger.exception("list_by_task failed task_id=%s", task.id)
            reminders = []

        result = check_upcoming(reminders, clock(), last_shown_id, window_seconds)
        last_shown_id = result.last_shown_id

        if result.reminder is not None:
            reminder = result.reminder
            logger.info("Upcoming reminder %s for task_id=%s", reminder.id, task.id)
            try:
                gateway.present_now(
                    title=UPCOMING_TITLE,
                    body=f"{task.title}\n{reminder.custom_message or ''}",
                    payload=_payload_for(task.id, task.title),
                )
            except NoPermissionError:
                logger.debug("Heads-up not presented (no permission) reminder_id=%s", reminder.id)
            except Exception:
                logger.exception("present_now failed reminder_id=%s", reminder.id)

            if on_upcoming is not None:
                try:
                    on_upcoming(reminder)
                except Exception:
                    logger.exception("on_upcoming callback failed reminder_id=%s", reminder.id)

        await asyncio.sleep(sleep_s)
