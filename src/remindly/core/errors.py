# src/remindly/core/errors.py

"""
Error taxonomy.

Every failure carries a `kind` so callers can branch on it without
string matching:
- ReminderValidationError: local, user-correctable, never retried.
- NoPermissionError / GatewayError / StoreError: scheduling failed.
- LanguageModelError and subclasses: raised by LLM clients only; the
  priority engine absorbs them and never lets them reach its caller.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ValidationErrorKind(StrEnum):
    PAST_TIME = "past_time"
    TOO_FAR_IN_FUTURE = "too_far_in_future"
    TOO_CLOSE_TO_EXISTING = "too_close_to_existing"


class RemindlyError(Exception):
    kind: str = "error"


class NotFoundError(RemindlyError):
    kind = "not_found"


class ReminderValidationError(RemindlyError):
    """A proposed reminder time was rejected."""

    def __init__(self, kind: ValidationErrorKind, message: str, *, conflicting: Any = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.conflicting = conflicting


class SchedulingError(RemindlyError):
    kind = "scheduling_failed"


class NoPermissionError(SchedulingError):
    kind = "no_permission"


class GatewayError(SchedulingError):
    kind = "gateway_error"


class StoreError(SchedulingError):
    kind = "store_error"


class LanguageModelError(RemindlyError):
    kind = "language_model_error"


class LLMNetworkError(LanguageModelError):
    kind = "network_error"


class LLMAuthError(LanguageModelError):
    kind = "auth_error"


class LLMRateLimitedError(LanguageModelError):
    kind = "rate_limited"
