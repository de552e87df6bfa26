"""Shared SQLite handle for the task and bid stores."""

from __future__ import annotations

import contextlib
import sqlite3
from pathlib import Path
from threading import RLock
from typing import TYPE_CHECKING, Any

from task_market_service.core.exceptions import StoreError

if TYPE_CHECKING:
    from collections.abc import Sequence

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS tasks (
    task_id      TEXT PRIMARY KEY,
    title        TEXT NOT NULL,
    category     TEXT NOT NULL,
    description  TEXT NOT NULL,
    deadline     TEXT NOT NULL,
    budget       NUMERIC NOT NULL,
    user_email   TEXT NOT NULL,
    user_name    TEXT NOT NULL,
    bids_count   INTEGER NOT NULL DEFAULT 0 CHECK (bids_count >= 0),
    created_at   TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS ix_tasks_deadline ON tasks (deadline);
CREATE INDEX IF NOT EXISTS ix_tasks_user_email ON tasks (user_email);

CREATE TABLE IF NOT EXISTS bids (
    bid_id      TEXT PRIMARY KEY,
    task_id     TEXT NOT NULL REFERENCES tasks (task_id) ON DELETE CASCADE,
    user_email  TEXT NOT NULL,
    user_name   TEXT,
    amount      NUMERIC NOT NULL,
    message     TEXT,
    date        TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS ix_bids_task_date ON bids (task_id, date);
"""


class Database:
    """
    Process-wide SQLite connection shared by every in-flight request.

    All access goes through an RLock. sqlite3 failures other than
    integrity violations surface as StoreError.
    """

    def __init__(self, db_path: str) -> None:
        self._lock = RLock()
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = sqlite3.connect(db_path, check_same_thread=False)
        self._db.row_factory = sqlite3.Row
        self._db.execute("PRAGMA journal_mode=WAL")
        self._db.execute("PRAGMA foreign_keys=ON")
        self._db.execute("PRAGMA busy_timeout=5000")
        self._init_schema()

    def _init_schema(self) -> None:
        with self._lock:
            self._db.executescript(_SCHEMA_SQL)
            self._db.commit()

    def execute(self, query: str, params: Sequence[Any] = ()) -> int:
        """Run a single write statement, commit, and return the affected row count."""
        with self._lock:
            try:
                cursor = self._db.execute(query, params)
                self._db.commit()
            except sqlite3.IntegrityError:
                with contextlib.suppress(sqlite3.Error):
                    self._db.rollback()
                raise
            except sqlite3.Error as exc:
                with contextlib.suppress(sqlite3.Error):
                    self._db.rollback()
                raise StoreError("STORE_ERROR", "Database operation failed") from exc
        return int(cursor.rowcount)

    def fetch_one(self, query: str, params: Sequence[Any] = ()) -> sqlite3.Row | None:
        """Run a read query and return the first row."""
        with self._lock:
            try:
                row: sqlite3.Row | None = self._db.execute(query, params).fetchone()
            except sqlite3.Error as exc:
                raise StoreError("STORE_ERROR", "Database read failed") from exc
        return row

    def fetch_all(self, query: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        """Run a read query and return all rows."""
        with self._lock:
            try:
                rows = self._db.execute(query, params).fetchall()
            except sqlite3.Error as exc:
                raise StoreError("STORE_ERROR", "Database read failed") from exc
        return list(rows)

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._db.close()
