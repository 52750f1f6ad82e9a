# src/remindly/notifications/local_gateway.py

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import Callable
from typing import Any

from ..core.errors import GatewayError, NoPermissionError, ReminderValidationError, ValidationErrorKind
from ..core.ports import DeliveryCallback, NotificationPayload

logger = logging.getLogger(__name__)

Presenter = Callable[[str, str, NotificationPayload], None]


def log_presenter(title: str, body: str, payload: NotificationPayload) -> None:
    logger.info("NOTIFY %s: %s (payload=%s)", title, body.replace("\n", " | "), payload)


class LocalNotificationGateway:
    """
    In-process NotificationGateway.

    Each scheduled notification is a daemon threading.Timer keyed by an
    opaque UUID handle. When a timer fires, the presenter shows the
    notification and the delivery callback receives the handle.

    Notifications live only as long as the process; see `rearm` for
    restoring pending reminders on startup.
    """

    def __init__(
        self,
        *,
        permission_granted: bool = True,
        presenter: Presenter = log_presenter,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.permission_granted = permission_granted
        self._presenter = presenter
        self._clock = clock
        self._on_delivered: DeliveryCallback | None = None
        self._timers: dict[str, threading.Timer] = {}
        self._lock = threading.Lock()

    def set_presenter(self, presenter: Presenter) -> None:
        self._presenter = presenter

    def set_delivery_callback(self, callback: DeliveryCallback | None) -> None:
        self._on_delivered = callback

    # ---- NotificationGateway ----

    def schedule_at(self, *, title: str, body: str, when: float, payload: NotificationPayload) -> str:
        return self._arm(str(uuid.uuid4()), title=title, body=body, when=when, payload=payload)

    def cancel(self, handle: str) -> None:
        with self._lock:
            timer = self._timers.pop(handle, None)
        if timer is None:
            logger.debug("cancel: handle=%s unknown or already fired", handle)
            return
        timer.cancel()
        logger.debug("Notification cancelled handle=%s", handle)

    def present_now(self, *, title: str, body: str, payload: NotificationPayload) -> None:
        self._require_permission()
        try:
            self._presenter(title, body, payload)
        except Exception as e:
            raise GatewayError(f"failed to present notification: {e}") from e

    # ---- extras ----

    def rearm(self, handle: str, *, title: str, body: str, when: float, payload: NotificationPayload) -> str:
        """Schedule under an existing handle (used to restore pending reminders after a restart)."""
        return self._arm(handle, title=title, body=body, when=when, payload=payload)

    def pending_handles(self) -> list[str]:
        with self._lock:
            return list(self._timers)

    def shutdown(self) -> None:
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()
        logger.info("LocalNotificationGateway stopped (%d pending notifications dropped)", len(timers))

    # ---- internals ----

    def _require_permission(self) -> None:
        if not self.permission_granted:
            raise NoPermissionError("No notification permission")

    def _arm(self, handle: str, *, title: str, body: str, when: float, payload: NotificationPayload) -> str:
        self._require_permission()

        delay = when - self._clock()
        if delay <= 0:
            raise ReminderValidationError(
                ValidationErrorKind.PAST_TIME, "Cannot schedule notification in the past"
            )

        timer = threading.Timer(delay, self._fire, args=(handle, title, body, dict(payload)))
        timer.daemon = True
        with self._lock:
            previous = self._timers.pop(handle, None)
            self._timers[handle] = timer
        if previous is not None:
            previous.cancel()

        try:
            timer.start()
        except RuntimeError as e:
            with self._lock:
                self._timers.pop(handle, None)
            raise GatewayError(f"failed to start notification timer: {e}") from e

        logger.debug("Notification scheduled handle=%s in %.1fs", handle, delay)
        return handle

    def _fire(self, handle: str, title: str, body: str, payload: dict[str, Any]) -> None:
        with self._lock:
            if self._timers.pop(handle, None) is None:
                return

        try:
            self._presenter(title, body, payload)
        except Exception:
            logger.exception("Presenter failed for handle=%s", handle)

        callback = self._on_delivered
        if callback is not None:
            try:
                callback(handle)
            except Exception:
                logger.exception("Delivery callback failed for handle=%s", handle)
