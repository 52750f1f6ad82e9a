# src/remindly/cli/commands.py

from __future__ import annotations

import logging
import math
import re
import shlex
import time
from collections.abc import Callable
from datetime import datetime

from ..connectors.upcoming_runner import close_task_view, open_task_view
from ..core.errors import RemindlyError
from ..core.state import AppState
from ..llm.offline import OfflineLLMClient
from ..reminders.reminder_models import Reminder
from ..tasks import task_api
from ..tasks.task_models import PriorityLabel, Task, TaskStatus

CommandEmitter = Callable[[str], None]
CommandHandler = Callable[[AppState, list[str], CommandEmitter | None], str]

logger = logging.getLogger(__name__)

_OFFSET_RE = re.compile(r"^\+(\d+(?:\.\d+)?)([mhd])$")
_OFFSET_UNITS = {"m": 60.0, "h": 3600.0, "d": 86400.0}


class CommandRegistry:
    """Slash-command registry used by the console connector (/help, /task, /remind, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str, emit: CommandEmitter | None = None) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Domain errors (validation, permission, store, not found) and bad
        arguments become a one-line reply; anything else propagates.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Could not parse command: {e}"
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            return handler(state, args, emit)
        except RemindlyError as e:
            logger.info("/%s failed: %s (%s)", name, e, e.kind)
            return f"Error: {e}"
        except ValueError as e:
            return f"Invalid arguments: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- parsing / formatting helpers ----


def parse_when(text: str, now: float | None = None) -> float:
    """
    Parse "+<n>m|h|d" offsets or an ISO-8601 datetime (naive = local time).
    """
    now = time.time() if now is None else now
    raw = text.strip()
    m = _OFFSET_RE.match(raw)
    if m:
        return _checked_ts(now + float(m.group(1)) * _OFFSET_UNITS[m.group(2)], text)
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError:
        raise ValueError(f"unrecognized time {text!r} (use +30m, +2h, +3d or YYYY-MM-DDTHH:MM)") from None
    if dt.tzinfo is None:
        dt = dt.astimezone()
    return _checked_ts(dt.timestamp(), text)


def _checked_ts(ts: float, text: str) -> float:
    # Must stay printable as a local datetime.
    try:
        if not math.isfinite(ts):
            raise OverflowError
        datetime.fromtimestamp(ts)
    except (OverflowError, OSError, ValueError):
        raise ValueError(f"time {text!r} is out of range") from None
    return ts


def split_options(args: list[str], names: set[str]) -> tuple[list[str], dict[str, str]]:
    """Separate "--name value" pairs from positional words."""
    positional: list[str] = []
    options: dict[str, str] = {}
    i = 0
    while i < len(args):
        word = args[i]
        if word.startswith("--") and word[2:] in names:
            if i + 1 >= len(args):
                raise ValueError(f"{word} needs a value")
            options[word[2:]] = args[i + 1]
            i += 2
            continue
        positional.append(word)
        i += 1
    return positional, options


def _parse_id(raw: str, what: str = "id") -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{what} must be a number, got {raw!r}") from None


def fmt_ts(ts: float | None) -> str:
    if ts is None:
        return "-"
    return datetime.fromtimestamp(ts).astimezone().strftime("%a %b %d %H:%M")


def format_task_line(task: Task) -> str:
    due = f" due {fmt_ts(task.due_at)}" if task.due_at is not None else ""
    cat = f" [{task.category}]" if task.category else ""
    return f"#{task.id} {task.priority_label.value:<6} {task.status.value:<11} {task.title}{cat}{due}"


def format_reminder_line(reminder: Reminder) -> str:
    msg = f" - {reminder.custom_message}" if reminder.custom_message else ""
    return f"  r{reminder.id} {fmt_ts(reminder.remind_at)} ({reminder.status.value}){msg}"


def upcoming_announcer(
    state: AppState, task: Task, emit: CommandEmitter | None
) -> Callable[[Reminder], None] | None:
    """
    Console fallback for the upcoming heads-up.

    With notification permission the gateway presenter already shows it,
    so nothing is echoed.
    """
    if emit is None or state.gateway.permission_granted:
        return None

    def announce(reminder: Reminder) -> None:
        msg = f"\n  {reminder.custom_message}" if reminder.custom_message else ""
        emit(f"[UPCOMING] {task.title} at {fmt_ts(reminder.remind_at)}{msg}")

    return announce


# ---- commands ----


def cmd_help(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    llm = "offline (due-date rule only)" if isinstance(state.llm, OfflineLLMClient) else getattr(state.llm, "model", "?")
    notify = "granted" if state.gateway.permission_granted else "denied"
    open_task = f"#{state.open_task_id}" if state.open_task_id is not None else "none"
    return (
        "Status:\n"
        f"  Priority model: {llm}\n"
        f"  Notifications: {notify} ({len(state.gateway.pending_handles())} scheduled)\n"
        f"  Open task: {open_task}"
    )


def _task_add(state: AppState, args: list[str]) -> str:
    words, opts = split_options(args, {"due", "category", "desc", "priority"})
    title = " ".join(words).strip()
    if not title:
        return "Usage: /task add <title> [--due <when>] [--category <c>] [--desc <text>] [--priority HIGH|MEDIUM|LOW]"

    now = state.clock()
    due_at = parse_when(opts["due"], now) if "due" in opts else None
    priority = None
    if "priority" in opts:
        priority = PriorityLabel.parse(opts["priority"])
        if priority is None:
            raise ValueError("priority must be HIGH, MEDIUM or LOW")

    task = task_api.create_task(
        state,
        title=title,
        description=opts.get("desc"),
        due_at=due_at,
        category=opts.get("category"),
        priority=priority,
        now=now,
    )
    return f"Created {format_task_line(task)}"


def _task_show(state: AppState, task_id: int) -> str:
    task = task_api.get_task_or_raise(state, task_id)
    reminders = state.reminder_store.list_by_task(task_id)
    lines = [
        format_task_line(task),
        f"  Description: {task.description or 'None'}",
        f"  Priority: {task.priority_label.value} ({task.priority})",
    ]
    if task.recurrence is not None:
        lines.append(f"  Repeats: every {task.recurrence.interval} {task.recurrence.frequency.value}")
    lines.append("  Reminders:" if reminders else "  No reminders set")
    lines.extend(format_reminder_line(r) for r in reminders)
    return "\n".join(lines)


def cmd_task(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /task add <title> [--due <when>] [--category <c>] [--desc <text>] [--priority <label>]
    /task list | show <id> | open <id> | close | done <id> | status <id> <status>
    /task priority <id> [HIGH|MEDIUM|LOW] | delete <id>
    """
    if not args:
        return cmd_task.__doc__.strip() if cmd_task.__doc__ else "Usage: /task <subcommand>"

    sub, rest = args[0].lower(), args[1:]

    if sub == "add":
        return _task_add(state, rest)

    if sub == "list":
        tasks = state.task_store.list_tasks()
        if not tasks:
            return "No tasks."
        return "\n".join(format_task_line(t) for t in tasks)

    if sub == "close":
        if state.open_task_id is None:
            return "No task is open."
        closed = state.open_task_id
        close_task_view(state)
        return f"Closed task #{closed}."

    if not rest:
        return f"Usage: /task {sub} <id>"
    task_id = _parse_id(rest[0], "task id")

    if sub == "show":
        return _task_show(state, task_id)

    if sub == "open":
        task = task_api.get_task_or_raise(state, task_id)

        open_task_view(state, task, upcoming_announcer(state, task, emit))
        return _task_show(state, task_id)

    if sub == "done":
        task = task_api.toggle_completed(state, task_id, now=state.clock())
        return f"Task #{task.id} is now {task.status.value}."

    if sub == "status":
        if len(rest) < 2:
            return "Usage: /task status <id> pending|in_progress|completed|archived"
        try:
            status = TaskStatus(rest[1].lower())
        except ValueError:
            raise ValueError(f"unknown status {rest[1]!r}") from None
        task = task_api.set_task_status(state, task_id, status, now=state.clock())
        return f"Task #{task.id} is now {task.status.value}."

    if sub == "priority":
        override = None
        if len(rest) > 1:
            override = PriorityLabel.parse(rest[1])
            if override is None:
                raise ValueError("priority must be HIGH, MEDIUM or LOW")
        task = task_api.reclassify_task(state, task_id, override=override, now=state.clock())
        return f"Task #{task.id} priority: {task.priority_label.value}"

    if sub == "delete":
        if state.open_task_id == task_id:
            close_task_view(state)
        cancelled = task_api.delete_task(state, task_id)
        return f"Deleted task #{task_id} ({cancelled} reminders cancelled)."

    return f"Unknown /task subcommand: {sub}."


def cmd_remind(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /remind add <when> [message] [--task <id>]   (defaults to the open task)
    /remind list [task_id]
    /remind cancel <reminder_id>
    """
    if not args:
        return cmd_remind.__doc__.strip() if cmd_remind.__doc__ else "Usage: /remind <subcommand>"

    sub, rest = args[0].lower(), args[1:]
    words, opts = split_options(rest, {"task"})

    def target_task_id(explicit: str | None) -> int:
        if explicit is not None:
            return _parse_id(explicit, "task id")
        if state.open_task_id is None:
            raise ValueError("no task is open; use --task <id> or /task open <id>")
        return state.open_task_id

    if sub == "add":
        if not words:
            return "Usage: /remind add <when> [message] [--task <id>]"
        task_id = target_task_id(opts.get("task"))
        now = state.clock()
        remind_at = parse_when(words[0], now)
        message = " ".join(words[1:]) or None
        reminder = task_api.schedule_reminder(state, task_id, remind_at, message, now=now)
        return f"Reminder set for task #{task_id}:\n{format_reminder_line(reminder)}"

    if sub == "list":
        task_id = target_task_id(words[0] if words else opts.get("task"))
        reminders = task_api.list_reminders(state, task_id)
        if not reminders:
            return f"No reminders set for task #{task_id}."
        return "\n".join([f"Reminders for task #{task_id}:"] + [format_reminder_line(r) for r in reminders])

    if sub == "cancel":
        if not words:
            return "Usage: /remind cancel <reminder_id>"
        reminder = task_api.cancel_reminder(state, _parse_id(words[0].lstrip("r"), "reminder id"))
        return f"Reminder r{reminder.id} cancelled."

    return f"Unknown /remind subcommand: {sub}."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show model / notification / open-task status.")
registry.register("task", cmd_task, help_text="Tasks: /task add|list|show|open|close|done|status|priority|delete.")
registry.register("remind", cmd_remind, help_text="Reminders: /remind add <when> [msg] | list | cancel <id>.")
