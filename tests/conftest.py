# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from remindly.core.state import AppState
from remindly.notifications.local_gateway import LocalNotificationGateway
from remindly.priority.engine import PriorityInferenceEngine
from remindly.reminders.reminder_scheduler import ReminderScheduler
from remindly.reminders.reminder_store import ReminderStore
from remindly.tasks.task_models import Task, TaskStatus, PriorityLabel
from remindly.tasks.task_store import TaskStore

from .fakes import DAY, NOW, FakeLLMClient, FakeNotificationGateway


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the bootstrap helpers.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="remindly-test",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        reminders_db_path=tmp_path / "reminders.sqlite3",
        llm_api_key=None,
        llm_base_url="https://example.invalid/v1",
        llm_model="test-model",
        llm_timeout_seconds=1.0,
        extra_headers={},
        notifications_enabled=True,
        poll_interval_seconds=0.01,
        upcoming_window_seconds=300.0,
        console_enabled=False,
    )


@pytest.fixture()
def llm() -> FakeLLMClient:
    return FakeLLMClient(next_text="MEDIUM")


@pytest.fixture()
def gateway() -> FakeNotificationGateway:
    return FakeNotificationGateway()


@pytest.fixture()
def state(settings: SimpleNamespace, llm: FakeLLMClient, gateway: FakeNotificationGateway) -> AppState:
    """
    AppState wired with deterministic fakes for the LLM and the gateway.

    NOTE: We keep real SQLite stores here (TaskStore/ReminderStore) because
    their correctness is part of what we want to test.
    """
    reminder_store = ReminderStore(settings.reminders_db_path)
    return AppState(
        settings=settings,
        llm=llm,
        gateway=gateway,  # type: ignore[arg-type]
        task_store=TaskStore(settings.tasks_db_path),
        reminder_store=reminder_store,
        reminders=ReminderScheduler(gateway, reminder_store, clock=lambda: NOW),
        priority=PriorityInferenceEngine(llm, clock=lambda: NOW),
        clock=lambda: NOW,
    )


@pytest.fixture()
def task() -> Task:
    return Task(
        id=1,
        title="Submit tax return",
        status=TaskStatus.PENDING,
        priority_label=PriorityLabel.MEDIUM,
        created_at=NOW - DAY,
        updated_at=NOW - DAY,
        due_at=NOW + DAY,
    )


@pytest.fixture()
def local_gateway():
    gw = LocalNotificationGateway(presenter=lambda title, body, payload: None)
    yield gw
    gw.shutdown()
