# src/remindly/connectors/upcoming_runner.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

from ..core.state import AppState
from ..reminders.reminder_models import Reminder
from ..reminders.reminder_scheduler import run_upcoming_poller
from ..tasks.task_models import Task

logger = logging.getLogger(__name__)


@dataclass
class UpcomingRunner:
    task_id: int
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    poll_task: asyncio.Task

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.poll_task.cancel)
        except RuntimeError:
            logger.debug("Upcoming poller loop already closed task_id=%s", self.task_id)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_upcoming_runner(
    state: AppState,
    task: Task,
    on_upcoming: Callable[[Reminder], None] | None = None,
) -> UpcomingRunner | None:
    """
    Run the upcoming-reminder poller for one task in a background thread.

    Why a thread:
    - the console REPL is blocking (input()).
    - the poller is a coroutine and wants its own event loop.
    """
    settings = state.settings
    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        poll_task = loop.create_task(
            run_upcoming_poller(
                state.reminder_store,
                state.gateway,
                task,
                on_upcoming=on_upcoming,
                interval_seconds=float(getattr(settings, "poll_interval_seconds", 60.0)),
                window_seconds=float(getattr(settings, "upcoming_window_seconds", 300.0)),
                clock=state.clock,
            )
        )
        holder["loop"] = loop
        holder["poll_task"] = poll_task
        ready.set()

        try:
            loop.run_until_complete(poll_task)
        except asyncio.CancelledError:
            logger.debug("Upcoming poller cancelled task_id=%s", task.id)
        finally:
            with contextlib.suppress(RuntimeError):
                loop.close()

    t = threading.Thread(target=runner, name=f"upcoming-{task.id}", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    poll_task = holder.get("poll_task")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(poll_task, asyncio.Task):
        logger.error("Upcoming poller thread did not initialize properly.")
        return None

    logger.info("Upcoming poller started task_id=%s", task.id)
    return UpcomingRunner(task_id=task.id, thread=t, loop=loop, poll_task=poll_task)


def open_task_view(
    state: AppState,
    task: Task,
    on_upcoming: Callable[[Reminder], None] | None = None,
) -> None:
    """Make `task` the open task; the previous view's poller is stopped first."""
    close_task_view(state)
    state.open_task_id = task.id
    state.upcoming_runner = start_upcoming_runner(state, task, on_upcoming)


def close_task_view(state: AppState, *, join_timeout: float = 5.0) -> None:
    runner = state.upcoming_runner
    state.upcoming_runner = None
    state.open_task_id = None
    if runner is not None:
        runner.stop()
        runner.join(timeout=join_timeout)
        logger.info("Upcoming poller stopped task_id=%s", runner.task_id)
