"""Task posting, editing and deletion with ownership checks."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

from task_market_service.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from task_market_service.logging import get_logger
from task_market_service.services.task_store import DuplicateTaskError
from task_market_service.services.validators import (
    now_iso,
    parse_deadline,
    require_text,
    validate_budget,
    validate_email,
    validate_task_id,
)

if TYPE_CHECKING:
    from task_market_service.services.task_store import TaskStore
    from task_market_service.services.token_validator import Principal

_MAX_INSERT_ATTEMPTS = 3


def task_to_response(row: dict[str, Any]) -> dict[str, Any]:
    """Convert a DB row dict to the public task shape."""
    return {
        "_id": row["task_id"],
        "title": row["title"],
        "category": row["category"],
        "description": row["description"],
        "deadline": row["deadline"],
        "budget": row["budget"],
        "userEmail": row["user_email"],
        "userName": row["user_name"],
        "bidsCount": row["bids_count"],
        "createdAt": row["created_at"],
    }


def _validate_editable_fields(data: dict[str, Any]) -> dict[str, Any]:
    """Validate the fields an owner may set; returns column -> value."""
    return {
        "title": require_text(data, "title"),
        "category": require_text(data, "category"),
        "description": require_text(data, "description"),
        "deadline": parse_deadline(require_text(data, "deadline")),
        "budget": validate_budget(data.get("budget")),
    }


class TaskManager:
    """
    Owns task CRUD semantics on top of TaskStore.

    Every check that can fail does so before the first write.
    """

    def __init__(self, store: TaskStore) -> None:
        self._store = store
        self._logger = get_logger(__name__)

    def _load_task(self, task_id: str) -> dict[str, Any]:
        validate_task_id(task_id)
        task = self._store.get_task(task_id)
        if task is None:
            raise NotFoundError("TASK_NOT_FOUND", "Task not found")
        return task

    async def create_task(self, data: dict[str, Any], owner: Principal | None) -> str:
        """
        Validate and store a new task with bidsCount = 0.

        When the request is authenticated the owner identity is stamped
        from the verified principal instead of the body.

        Returns:
            The store-assigned task identifier.
        """
        if owner is not None:
            data = {**data, "userEmail": owner.email}
            if not data.get("userName"):
                data["userName"] = owner.name

        fields = _validate_editable_fields(data)
        user_email = validate_email(require_text(data, "userEmail"))
        user_name = require_text(data, "userName")

        created_at = now_iso()
        for _attempt in range(_MAX_INSERT_ATTEMPTS):
            task_id = f"t-{uuid.uuid4()}"
            try:
                self._store.insert_task(
                    {
                        "task_id": task_id,
                        **fields,
                        "user_email": user_email,
                        "user_name": user_name,
                        "bids_count": 0,
                        "created_at": created_at,
                    }
                )
            except DuplicateTaskError:
                self._logger.warning("Task id collision, retrying", extra={"task_id": task_id})
                continue
            self._logger.info(
                "Task created",
                extra={"task_id": task_id, "user_email": user_email},
            )
            return task_id

        msg = "Could not allocate a unique task id"
        raise RuntimeError(msg)

    async def get_task(self, task_id: str) -> dict[str, Any]:
        """
        Get a single task by ID.

        Raises:
            ValidationError: INVALID_TASK_ID
            NotFoundError: TASK_NOT_FOUND
        """
        return task_to_response(self._load_task(task_id))

    async def list_tasks(self, limit: int | None) -> list[dict[str, Any]]:
        """List tasks soonest deadline first, capped at limit when given."""
        return [task_to_response(row) for row in self._store.list_tasks(limit, None)]

    async def list_tasks_by_owner(self, user_email: str) -> list[dict[str, Any]]:
        """List every task posted by user_email."""
        if not user_email:
            raise ValidationError("MISSING_FIELD", "Missing userEmail")
        return [task_to_response(row) for row in self._store.list_tasks(None, user_email)]

    async def update_task(
        self,
        task_id: str,
        data: dict[str, Any],
        requester_email: str,
    ) -> dict[str, Any]:
        """
        Replace the editable fields of a task owned by the requester.

        Error precedence:
        1. INVALID_TASK_ID
        2. TASK_NOT_FOUND
        3. FORBIDDEN: requester is not the owner
        4. MISSING_FIELD / INVALID_DEADLINE / INVALID_BUDGET
        """
        task = self._load_task(task_id)

        if task["user_email"] != requester_email:
            raise ForbiddenError("FORBIDDEN", "Unauthorized to update this task")

        updates = _validate_editable_fields(data)

        # Owner guard repeated in the WHERE clause.
        changed = self._store.update_task(task_id, updates, expected_owner=requester_email)
        if changed == 0:
            raise NotFoundError("TASK_NOT_FOUND", "Task not found")

        updated = self._store.get_task(task_id)
        if updated is None:
            raise NotFoundError("TASK_NOT_FOUND", "Task not found")

        self._logger.info("Task updated", extra={"task_id": task_id})
        return task_to_response(updated)

    async def delete_task(self, task_id: str, requester_email: str | None) -> None:
        """
        Delete a task. Its bids go with it (cascade).

        With requester_email None the ownership check is skipped; that path
        is only reachable through the administrative entry point.
        """
        task = self._load_task(task_id)

        if requester_email is not None and task["user_email"] != requester_email:
            raise ForbiddenError("FORBIDDEN", "Unauthorized: You cannot delete this task")

        removed = self._store.delete_task(task_id)
        if removed == 0:
            raise NotFoundError("TASK_NOT_FOUND", "Task not found")

        self._logger.info(
            "Task deleted",
            extra={
                "task_id": task_id,
                "owner_checked": requester_email is not None,
                "bids_count": task["bids_count"],
            },
        )

    async def delete_all_tasks(self) -> int:
        """Administrative bulk delete. Returns the number of removed tasks."""
        deleted = self._store.delete_all_tasks()
        self._logger.warning("All tasks deleted", extra={"deleted_count": deleted})
        return deleted

    def get_stats(self) -> dict[str, int]:
        """Task statistics for the health endpoint."""
        return {"total_tasks": self._store.count_tasks()}
