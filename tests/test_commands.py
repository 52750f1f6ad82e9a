# tests/test_commands.py

from __future__ import annotations

from datetime import datetime

import pytest

from remindly.cli.commands import CommandRegistry, parse_when, registry, split_options, upcoming_announcer
from remindly.core.errors import LLMNetworkError, NotFoundError
from remindly.tasks.task_models import PriorityLabel

from .fakes import DAY, HOUR, MINUTE, NOW, make_reminder


def test_command_registry_routes_and_aliases(state) -> None:
    reg = CommandRegistry()
    seen: list[list[str]] = []

    def h(state, args, emit):
        seen.append(args)
        if emit is not None:
            emit("note")
        return "ok"

    reg.register("a", h, "a", aliases=["alpha"])

    assert reg.handle(state, "/a x 'y z'") == "ok"
    assert reg.handle(state, "/ALPHA", emit=lambda _: None) == "ok"
    assert seen == [["x", "y z"], []]


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")


def test_domain_errors_become_replies(state) -> None:
    reg = CommandRegistry()

    def h(state, args, emit):
        raise NotFoundError("Task 9 not found")

    reg.register("x", h, "x")
    assert reg.handle(state, "/x") == "Error: Task 9 not found"


def test_parse_when_offsets_and_iso() -> None:
    assert parse_when("+30m", NOW) == NOW + 30 * MINUTE
    assert parse_when("+2h", NOW) == NOW + 2 * HOUR
    assert parse_when("+1.5d", NOW) == NOW + 1.5 * DAY
    assert parse_when("2030-01-02T03:04:00+00:00") == datetime.fromisoformat("2030-01-02T03:04:00+00:00").timestamp()
    with pytest.raises(ValueError):
        parse_when("next tuesday", NOW)


def test_split_options() -> None:
    words, opts = split_options(["Buy", "milk", "--due", "+2d", "--category", "home"], {"due", "category"})
    assert words == ["Buy", "milk"]
    assert opts == {"due": "+2d", "category": "home"}
    with pytest.raises(ValueError):
        split_options(["--due"], {"due"})


def test_task_and_remind_flow(state, llm, gateway) -> None:
    llm.next_text = "HIGH"
    out = registry.handle(state, "/task add Pay invoice --category work --due +3d")
    assert out is not None and out.startswith("Created #1 HIGH")

    assert "Pay invoice" in registry.handle(state, "/task list")

    out = registry.handle(state, "/remind add +2h 'call first' --task 1")
    assert "Reminder set for task #1" in out
    assert "call first" in out
    assert len(gateway.outstanding) == 1

    out = registry.handle(state, "/remind add +2h30m --task 1")
    assert out.startswith("Invalid arguments")  # +2h30m is not a valid offset

    out = registry.handle(state, "/remind add +150m --task 1")
    assert out == "Error: A reminder already exists within 1 hour of this time"

    out = registry.handle(state, "/remind list 1")
    assert "r1" in out

    assert registry.handle(state, "/remind cancel r1") == "Reminder r1 cancelled."
    assert gateway.outstanding == {}

    assert registry.handle(state, "/task priority 1 low") == "Task #1 priority: LOW"
    assert state.task_store.get_task(1).priority_label == PriorityLabel.LOW

    assert registry.handle(state, "/task done 1") == "Task #1 is now completed."
    assert registry.handle(state, "/task delete 1") == "Deleted task #1 (0 reminders cancelled)."


def test_remind_requires_open_task(state) -> None:
    out = registry.handle(state, "/remind add +2h")
    assert out is not None and "no task is open" in out


def test_open_and_close_task_view(state) -> None:
    registry.handle(state, "/task add Laundry --priority medium")

    out = registry.handle(state, "/task open 1", emit=lambda _: None)
    assert out.startswith("#1 MEDIUM")
    assert state.open_task_id == 1
    assert state.upcoming_runner is not None

    assert "Reminder set for task #1" in registry.handle(state, "/remind add +3h")

    assert registry.handle(state, "/task close") == "Closed task #1."
    assert state.open_task_id is None
    assert state.upcoming_runner is None


def test_status_reports_gateway_and_open_task(state) -> None:
    out = registry.handle(state, "/status")
    assert "Notifications: granted (0 scheduled)" in out
    assert "Open task: none" in out


def test_parse_when_rejects_out_of_range_times() -> None:
    with pytest.raises(ValueError):
        parse_when("+" + "9" * 400 + "d", NOW)
    with pytest.raises(ValueError):
        parse_when("+" + "9" * 30 + "d", NOW)


def test_huge_due_offset_is_a_reply_not_a_crash(state, llm) -> None:
    llm.error = LLMNetworkError("down")
    out = registry.handle(state, "/task add x --due +" + "9" * 400 + "d")
    assert out is not None and out.startswith("Invalid arguments")
    assert state.task_store.list_tasks() == []


def test_upcoming_heads_up_is_echoed_only_without_notifications(state, gateway, task) -> None:
    lines: list[str] = []
    assert upcoming_announcer(state, task, lines.append) is None

    gateway.permission_granted = False
    announce = upcoming_announcer(state, task, lines.append)
    assert announce is not None
    announce(make_reminder(3, NOW + 2 * MINUTE, message="leave now"))
    assert len(lines) == 1
    assert lines[0].startswith("[UPCOMING] Submit tax return at ")
    assert lines[0].endswith("leave now")
