"""SQLite-backed task storage."""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING, Any

from task_market_service.core.exceptions import NotFoundError, StoreError

if TYPE_CHECKING:
    from task_market_service.services.database import Database


class DuplicateTaskError(Exception):
    """Raised when attempting to insert a task with a duplicate task_id."""


class TaskStore:
    """Task rows and the atomic bids_count counter."""

    _TASK_COLUMNS: tuple[str, ...] = (
        "task_id",
        "title",
        "category",
        "description",
        "deadline",
        "budget",
        "user_email",
        "user_name",
        "bids_count",
        "created_at",
    )
    _EDITABLE_COLUMNS: frozenset[str] = frozenset(
        {"title", "category", "description", "deadline", "budget"}
    )
    _TASK_INSERT_SQL = (
        "INSERT INTO tasks ("
        "task_id, title, category, description, deadline, budget, "
        "user_email, user_name, bids_count, created_at"
        ") VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)"
    )
    _TASK_SELECT_BASE_SQL = (
        "SELECT task_id, title, category, description, deadline, budget, "
        "user_email, user_name, bids_count, created_at FROM tasks"
    )

    def __init__(self, database: Database) -> None:
        self._database = database

    def _row_to_task(self, row: sqlite3.Row) -> dict[str, Any]:
        return {column: row[column] for column in self._TASK_COLUMNS}

    def insert_task(self, task_data: dict[str, Any]) -> None:
        """Insert a new task row."""
        values = tuple(task_data[column] for column in self._TASK_COLUMNS)
        try:
            self._database.execute(self._TASK_INSERT_SQL, values)
        except sqlite3.IntegrityError as exc:
            if "unique" in str(exc).lower():
                raise DuplicateTaskError(
                    f"A task with task_id={task_data['task_id']} already exists"
                ) from exc
            raise StoreError("STORE_ERROR", "Task could not be stored") from exc

    def get_task(self, task_id: str) -> dict[str, Any] | None:
        """Fetch a task by ID."""
        row = self._database.fetch_one(
            self._TASK_SELECT_BASE_SQL + " WHERE task_id = ?",
            (task_id,),
        )
        if row is None:
            return None
        return self._row_to_task(row)

    def list_tasks(self, limit: int | None, user_email: str | None) -> list[dict[str, Any]]:
        """
        List tasks soonest deadline first.

        A positive limit caps the result; None means unbounded.
        """
        query = self._TASK_SELECT_BASE_SQL
        params: list[object] = []

        if user_email is not None:
            query += " WHERE user_email = ?"
            params.append(user_email)

        query += " ORDER BY deadline ASC, rowid ASC"

        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        rows = self._database.fetch_all(query, params)
        return [self._row_to_task(row) for row in rows]

    def update_task(
        self,
        task_id: str,
        updates: dict[str, Any],
        *,
        expected_owner: str | None,
    ) -> int:
        """Replace editable columns and return the number of affected rows."""
        if len(updates) == 0:
            return 0

        if any(column not in self._EDITABLE_COLUMNS for column in updates):
            msg = "Attempted to update a non-editable task column"
            raise ValueError(msg)

        set_clause = ", ".join(f"{column} = ?" for column in updates)
        params: list[object] = list(updates.values())

        query = "UPDATE tasks SET " + set_clause + " WHERE task_id = ?"  # nosec B608
        params.append(task_id)
        if expected_owner is not None:
            query += " AND user_email = ?"
            params.append(expected_owner)

        return self._database.execute(query, params)

    def delete_task(self, task_id: str) -> int:
        """Delete a task (its bids cascade) and return the number of removed rows."""
        return self._database.execute("DELETE FROM tasks WHERE task_id = ?", (task_id,))

    def delete_all_tasks(self) -> int:
        """Delete every task (and, by cascade, every bid)."""
        return self._database.execute("DELETE FROM tasks")

    def increment_bids_count(self, task_id: str, delta: int) -> None:
        """
        Add delta to bids_count in a single UPDATE statement.

        The arithmetic happens inside SQLite, so concurrent callers never
        lose updates. The counter is clamped at zero.

        Raises:
            NotFoundError: the task row no longer exists
        """
        changed = self._database.execute(
            "UPDATE tasks SET bids_count = MAX(bids_count + ?, 0) WHERE task_id = ?",
            (delta, task_id),
        )
        if changed == 0:
            raise NotFoundError("TASK_NOT_FOUND", "Task not found")

    def count_tasks(self) -> int:
        """Count total tasks."""
        row = self._database.fetch_one("SELECT COUNT(*) FROM tasks")
        return int(row[0]) if row is not None else 0
