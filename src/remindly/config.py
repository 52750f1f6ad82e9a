# src/remindly/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time (the LLM key is optional; without it
  priority classification runs on the deterministic tier only).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv

ENV_PREFIX = "REMINDLY"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Connector flags ----
    console_enabled: bool

    # ---- LLM (OpenAI-compatible endpoint) ----
    llm_api_key: Optional[str]
    llm_base_url: str
    llm_model: str
    llm_timeout_seconds: float
    extra_headers: Dict[str, str]

    # ---- Notifications ----
    notifications_enabled: bool
    poll_interval_seconds: float
    upcoming_window_seconds: float

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path
    reminders_db_path: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _first_env(_k("APP_NAME"), default="remindly") or "remindly"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        llm_api_key = _first_env(_k("LLM_API_KEY"), "OPENROUTER_API_KEY", default=None)
        llm_base_url = _env(_k("LLM_BASE_URL"), "https://openrouter.ai/api/v1")
        llm_model = _env(_k("LLM_MODEL"), "mistralai/mistral-7b-instruct").strip()
        llm_timeout_seconds = _env_float(_k("LLM_TIMEOUT_SECONDS"), 20.0)

        extra_headers = {
            "HTTP-Referer": _env(_k("HTTP_REFERER"), "https://example.com"),
            "X-Title": _env(_k("APP_TITLE"), app_name),
        }

        notifications_enabled = _env_bool(_k("NOTIFICATIONS_ENABLED"), True)
        poll_interval_seconds = _env_float(_k("POLL_INTERVAL_SECONDS"), 60.0)
        upcoming_window_seconds = _env_float(_k("UPCOMING_WINDOW_SECONDS"), 300.0)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/remindly"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")
        reminders_db_path = _env_path(_k("REMINDERS_DB_PATH"), data_dir / "reminders.sqlite3")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            llm_api_key=llm_api_key,
            llm_base_url=llm_base_url,
            llm_model=llm_model,
            llm_timeout_seconds=llm_timeout_seconds,
            extra_headers=extra_headers,
            notifications_enabled=notifications_enabled,
            poll_interval_seconds=poll_interval_seconds,
            upcoming_window_seconds=upcoming_window_seconds,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            reminders_db_path=reminders_db_path,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
