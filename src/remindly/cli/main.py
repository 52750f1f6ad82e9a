# src/remindly/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, re-arms pending notifications, then
runs the console REPL in the main thread.
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state, restore_pending_notifications
from ..config import get_settings
from ..connectors.console_connector import console_presenter, run_console_loop
from ..connectors.upcoming_runner import close_task_view
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _shutdown(state) -> None:
    """Best-effort shutdown: stop the poller thread, then drop pending timers."""
    try:
        close_task_view(state)
    except Exception:
        logger.exception("Failed to stop the upcoming poller.")

    try:
        state.gateway.shutdown()
    except Exception:
        logger.debug("Gateway shutdown failed.", exc_info=True)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)

    logger.info("Starting %s...", settings.app_name)

    state = create_initial_state(settings=settings)
    state.gateway.set_presenter(console_presenter)
    restore_pending_notifications(state)

    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        signal.signal(signal.SIGTERM, _handle_signal)
    except (ValueError, OSError):
        logger.debug("SIGTERM handler not installed.", exc_info=True)

    try:
        if settings.console_enabled:
            run_console_loop(state)
        else:
            logger.info("Console disabled. Delivering scheduled reminders only. Press Ctrl+C to stop.")
            try:
                stop_main.wait()
            except KeyboardInterrupt:
                pass
    finally:
        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
