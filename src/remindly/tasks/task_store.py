# src/remindly/tasks/task_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any

from ..core.errors import StoreError
from .task_models import PriorityLabel, RecurrencePattern, Task, TaskStatus

logger = logging.getLogger(__name__)

# Columns update_task_fields may touch, mapped to their encoder.
_UPDATABLE = {
    "title": lambda v: str(v).strip(),
    "description": lambda v: v,
    "due_at": lambda v: float(v) if v is not None else None,
    "category": lambda v: v,
    "status": lambda v: TaskStatus(v).value,
    "priority_label": lambda v: PriorityLabel(v).value,
    "completed_at": lambda v: float(v) if v is not None else None,
    "recurrence": lambda v: TaskStore._json_or_null(v.to_dict() if v is not None else None),
    "tags": lambda v: json.dumps(list(v or []), ensure_ascii=False),
}


class TaskStore:
    """
    SQLite task store.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("TaskStore ready db=%s total=%s", self._db_path, self.count_tasks())

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    description TEXT,
                    status TEXT NOT NULL DEFAULT 'pending',
                    priority_label TEXT NOT NULL DEFAULT 'MEDIUM',
                    due_at REAL,
                    category TEXT,
                    completed_at REAL,
                    recurrence TEXT,
                    tags TEXT NOT NULL DEFAULT '[]',
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )

            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("completed_at", "REAL")
            add_col("recurrence", "TEXT")
            add_col("tags", "TEXT NOT NULL DEFAULT '[]'")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status_due ON tasks(status, due_at)")
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _json_or_null(value: Any) -> str | None:
        if value is None:
            return None
        return json.dumps(value, ensure_ascii=False)

    @staticmethod
    def _load_json(s: str | None, default: Any) -> Any:
        if not s:
            return default
        try:
            return json.loads(s)
        except ValueError:
            logger.warning("TaskStore: unreadable JSON column value %r", s[:80])
            return default

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        tags = self._load_json(row["tags"], [])
        recurrence = self._load_json(row["recurrence"], None)
        return Task(
            id=int(row["id"]),
            title=str(row["title"] or ""),
            status=TaskStatus.from_db(row["status"]),
            priority_label=PriorityLabel.from_db(row["priority_label"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
            description=row["description"],
            due_at=float(row["due_at"]) if row["due_at"] is not None else None,
            category=row["category"],
            completed_at=float(row["completed_at"]) if row["completed_at"] is not None else None,
            recurrence=RecurrencePattern.from_dict(recurrence if isinstance(recurrence, dict) else None),
            tags=[str(t) for t in tags] if isinstance(tags, list) else [],
        )

    def _execute(self, op: str, sql: str, params: tuple | list = ()) -> sqlite3.Cursor:
        conn = self._get_conn()
        try:
            cur = conn.execute(sql, params)
            conn.commit()
            return cur
        except sqlite3.Error as e:
            logger.exception("TaskStore %s failed", op)
            raise StoreError(f"task store {op} failed: {e}") from e
        finally:
            conn.close()

    def _fetch(self, op: str, sql: str, params: tuple | list = ()) -> list[sqlite3.Row]:
        conn = self._get_conn()
        try:
            return conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            logger.exception("TaskStore %s failed", op)
            raise StoreError(f"task store {op} failed: {e}") from e
        finally:
            conn.close()

    # ---- public API ----

    def count_tasks(self) -> int:
        (row,) = self._fetch("count", "SELECT COUNT(*) AS n FROM tasks")
        return int(row["n"])

    def add_task(
        self,
        *,
        title: str,
        description: str | None = None,
        due_at: float | None = None,
        category: str | None = None,
        priority_label: PriorityLabel = PriorityLabel.MEDIUM,
        status: TaskStatus = TaskStatus.PENDING,
        recurrence: RecurrencePattern | None = None,
        tags: list[str] | None = None,
    ) -> int:
        if not title or not title.strip():
            raise ValueError("title is required")

        now = time.time()
        cur = self._execute(
            "add_task",
            """
            INSERT INTO tasks(
                title, description, status, priority_label, due_at, category,
                recurrence, tags, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                title.strip(),
                (description or "").strip() or None,
                status.value,
                priority_label.value,
                float(due_at) if due_at is not None else None,
                (category or "").strip() or None,
                self._json_or_null(recurrence.to_dict() if recurrence else None),
                json.dumps(list(tags or []), ensure_ascii=False),
                now,
                now,
            ),
        )
        rowid = cur.lastrowid
        if rowid is None:
            raise StoreError("SQLite did not return lastrowid for tasks insert")
        task_id = int(rowid)
        logger.debug("Task added id=%s priority=%s due_at=%s", task_id, priority_label.value, due_at)
        return task_id

    def get_task(self, task_id: int) -> Task | None:
        rows = self._fetch("get_task", "SELECT * FROM tasks WHERE id = ?", (int(task_id),))
        return self._row_to_task(rows[0]) if rows else None

    def list_tasks(self, *, include_archived: bool = False, limit: int = 100) -> list[Task]:
        """
        Tasks ordered for display: HIGH, MEDIUM, LOW, then nearest due date
        (tasks without a due date last), then creation order.
        """
        where = "" if include_archived else "WHERE status != 'archived'"
        rows = self._fetch(
            "list_tasks",
            f"""
            SELECT *
            FROM tasks
            {where}
            ORDER BY CASE priority_label WHEN 'HIGH' THEN 0 WHEN 'MEDIUM' THEN 1 ELSE 2 END,
                     due_at IS NULL, due_at ASC, created_at ASC
                LIMIT ?
            """,
            (int(limit),),
        )
        return [self._row_to_task(r) for r in rows]

    def update_task_fields(self, task_id: int, **fields: Any) -> None:
        """
        Update the given columns. Unlike a None-means-skip API, passing
        None explicitly clears a nullable column (e.g. due_at=None).
        """
        unknown = set(fields) - set(_UPDATABLE)
        if unknown:
            raise ValueError(f"unknown task fields: {sorted(unknown)}")
        if not fields:
            return

        assignments: list[str] = []
        params: list[Any] = []
        for name, value in fields.items():
            assignments.append(f"{name} = ?")
            params.append(_UPDATABLE[name](value))

        assignments.append("updated_at = ?")
        params.append(time.time())
        params.append(int(task_id))

        self._execute("update_task_fields", f"UPDATE tasks SET {', '.join(assignments)} WHERE id = ?", params)

    def delete_task(self, task_id: int) -> None:
        self._execute("delete_task", "DELETE FROM tasks WHERE id = ?", (int(task_id),))
