# src/remindly/priority/engine.py

from __future__ import annotations

"""
Priority inference.

Two strategies composed in a fixed order:
- remote_priority: ask the language model, accept only an exact HIGH/MEDIUM/LOW
  answer; anything else (error, empty, unparseable) means "unavailable".
- fallback_priority: pure function of days until the due date.

classify() runs the remote strategy once (no retry) and falls back to the
local one. It never raises.
"""

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Protocol

from ..core.errors import LanguageModelError
from ..core.ports import LanguageModelClient
from ..tasks.task_models import PriorityLabel

logger = logging.getLogger(__name__)

DAY_SECONDS = 24 * 60 * 60.0

PRIORITY_PROMPT_TEMPLATE = """
Task Title: {title}
Description: {description}
Due Date: {due_date}
Category: {category}

Based on the task information above, classify this task's priority as either HIGH, MEDIUM, or LOW.
Consider the following criteria:
- Urgency (due date proximity)
- Task complexity and importance (based on description)
- Task scope and impact
- Keywords indicating priority

Respond with only one word: HIGH, MEDIUM, or LOW
""".strip()


class PrioritySubject(Protocol):
    """What the engine needs from a task (Task and PriorityInput both fit)."""

    @property
    def title(self) -> str: ...
    @property
    def description(self) -> str | None: ...
    @property
    def due_at(self) -> float | None: ...
    @property
    def category(self) -> str | None: ...


@dataclass(slots=True, frozen=True)
class PriorityInput:
    """A task that has not been stored yet."""

    title: str
    description: str | None = None
    due_at: float | None = None
    category: str | None = None


class PrioritySource(StrEnum):
    MODEL = "model"
    FALLBACK = "fallback"


@dataclass(slots=True, frozen=True)
class PriorityDecision:
    label: PriorityLabel
    source: PrioritySource


def build_priority_prompt(task: PrioritySubject) -> str:
    due_date = "None"
    if task.due_at is not None:
        due_date = datetime.fromtimestamp(task.due_at).astimezone().strftime("%Y-%m-%d")
    return PRIORITY_PROMPT_TEMPLATE.format(
        title=task.title,
        description=task.description or "None",
        due_date=due_date,
        category=task.category or "None",
    )


def fallback_priority(due_at: float | None, now: float) -> PriorityLabel:
    """
    diff_days = ceil((due_at - now) / 1 day)
      <= 2  -> HIGH
      3..7  -> MEDIUM
      > 7   -> LOW
    No due date -> MEDIUM. Infinite due dates map to the outermost bucket.
    """
    if due_at is None or math.isnan(due_at):
        return PriorityLabel.MEDIUM
    if math.isinf(due_at):
        return PriorityLabel.LOW if due_at > 0 else PriorityLabel.HIGH

    diff_days = math.ceil((due_at - now) / DAY_SECONDS)
    if diff_days <= 2:
        return PriorityLabel.HIGH
    if diff_days <= 7:
        return PriorityLabel.MEDIUM
    return PriorityLabel.LOW


class PriorityInferenceEngine:
    def __init__(self, llm: LanguageModelClient, *, clock: Callable[[], float] = time.time) -> None:
        self._llm = llm
        self._clock = clock

    def remote_priority(self, task: PrioritySubject) -> PriorityLabel | None:
        """One model call; None when the model gives no usable answer."""
        try:
            raw = self._llm.complete(build_priority_prompt(task))
        except LanguageModelError as e:
            logger.info("Priority model unavailable (%s): %s", e.kind, e)
            return None
        except Exception:
            logger.exception("Priority model call crashed")
            return None

        label = PriorityLabel.parse(raw)
        if label is None:
            logger.info("Priority model answer not usable: %r", (raw or "")[:80])
        return label

    def local_priority(self, task: PrioritySubject, now: float | None = None) -> PriorityLabel:
        return fallback_priority(task.due_at, self._clock() if now is None else now)

    def decide(self, task: PrioritySubject, now: float | None = None) -> PriorityDecision:
        label = self.remote_priority(task)
        if label is not None:
            return PriorityDecision(label=label, source=PrioritySource.MODEL)
        return PriorityDecision(label=self.local_priority(task, now), source=PrioritySource.FALLBACK)

    def classify(self, task: PrioritySubject, now: float | None = None) -> PriorityLabel:
        decision = self.decide(task, now)
        logger.debug("Priority for %r: %s (%s)", task.title, decision.label.value, decision.source.value)
        return decision.label
