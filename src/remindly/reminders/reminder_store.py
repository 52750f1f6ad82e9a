# src/remindly/reminders/reminder_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from collections.abc import Iterator
from pathlib import Path

from ..core.errors import StoreError
from .reminder_models import NewReminder, Reminder, ReminderStatus

logger = logging.getLogger(__name__)


class ReminderStore:
    """
    SQLite reminder store.

    Every sqlite3 failure is re-raised as StoreError so the scheduler can
    tell persistence faults apart from gateway faults.

    Thread-safety:
    - each method opens its own SQLite connection (the gateway's timer threads
      and the upcoming poller thread read/write concurrently with the console).
    """

    def __init__(self, db_path: str | Path = "reminders.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("ReminderStore ready db=%s", self._db_path)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    @contextlib.contextmanager
    def _conn(self, op: str) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise StoreError(f"reminder store unavailable ({op}): {e}") from e
        try:
            yield conn
        except sqlite3.Error as e:
            logger.exception("ReminderStore %s failed", op)
            raise StoreError(f"reminder store {op} failed: {e}") from e
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._conn("ensure_schema") as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS reminders (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    task_id INTEGER NOT NULL,
                    remind_at REAL NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending',
                    custom_message TEXT,
                    notification_handle TEXT,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_reminders_task ON reminders(task_id, remind_at)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_reminders_handle ON reminders(notification_handle)")
            conn.commit()

    @staticmethod
    def _row_to_reminder(row: sqlite3.Row) -> Reminder:
        return Reminder(
            id=int(row["id"]),
            task_id=int(row["task_id"]),
            remind_at=float(row["remind_at"]),
            status=ReminderStatus.from_db(row["status"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
            custom_message=row["custom_message"],
            notification_handle=row["notification_handle"],
        )

    # ---- public API ----

    def create(self, reminder: NewReminder) -> Reminder:
        now = time.time()
        with self._conn("create") as conn:
            cur = conn.execute(
                """
                INSERT INTO reminders(
                    task_id, remind_at, status, custom_message,
                    notification_handle, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    int(reminder.task_id),
                    float(reminder.remind_at),
                    reminder.status.value,
                    reminder.custom_message,
                    reminder.notification_handle,
                    now,
                    now,
                ),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise StoreError("SQLite did not return lastrowid for reminders insert")

        logger.debug("Reminder added id=%s task_id=%s remind_at=%s", rowid, reminder.task_id, reminder.remind_at)
        return Reminder(
            id=int(rowid),
            task_id=int(reminder.task_id),
            remind_at=float(reminder.remind_at),
            status=reminder.status,
            created_at=now,
            updated_at=now,
            custom_message=reminder.custom_message,
            notification_handle=reminder.notification_handle,
        )

    def get(self, reminder_id: int) -> Reminder | None:
        with self._conn("get") as conn:
            row = conn.execute("SELECT * FROM reminders WHERE id = ?", (int(reminder_id),)).fetchone()
            return self._row_to_reminder(row) if row else None

    def delete(self, reminder_id: int) -> None:
        with self._conn("delete") as conn:
            conn.execute("DELETE FROM reminders WHERE id = ?", (int(reminder_id),))
            conn.commit()

    def list_by_task(self, task_id: int) -> list[Reminder]:
        """All reminders of a task, ascending by trigger time."""
        with self._conn("list_by_task") as conn:
            rows = conn.execute(
                """
                SELECT *
                FROM reminders
                WHERE task_id = ?
                ORDER BY remind_at ASC, id ASC
                """,
                (int(task_id),),
            ).fetchall()
            return [self._row_to_reminder(r) for r in rows]

    def list_pending(self) -> list[Reminder]:
        with self._conn("list_pending") as conn:
            rows = conn.execute(
                "SELECT * FROM reminders WHERE status = 'pending' ORDER BY remind_at ASC, id ASC"
            ).fetchall()
            return [self._row_to_reminder(r) for r in rows]

    def mark_sent_by_handle(self, handle: str) -> bool:
        """
        pending -> sent for the reminder holding `handle`.

        Returns False when no pending reminder carries the handle (e.g. the
        notification fired after the record was already deleted).
        """
        if not handle:
            return False
        with self._conn("mark_sent_by_handle") as conn:
            cur = conn.execute(
                """
                UPDATE reminders
                SET status = 'sent', updated_at = ?
                WHERE notification_handle = ?
                  AND status = 'pending'
                """,
                (time.time(), handle),
            )
            conn.commit()
            return cur.rowcount == 1

    def count_reminders(self) -> int:
        with self._conn("count") as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM reminders").fetchone()
            return int(n)
