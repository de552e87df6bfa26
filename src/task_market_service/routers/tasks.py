"""Task endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from task_market_service.config import get_settings
from task_market_service.core.exceptions import UnauthorizedError
from task_market_service.core.state import get_app_state
from task_market_service.routers.validation import (
    authenticate,
    parse_json_body,
    require_principal,
)
from task_market_service.schemas import TaskResponse, TaskUpdatedResponse

router = APIRouter()


def _parse_limit(limit_raw: str | None) -> int | None:
    """A positive integer caps the listing; anything else means no cap."""
    if limit_raw is None:
        return None
    try:
        limit = int(limit_raw.strip())
    except ValueError:
        return None
    return limit if limit > 0 else None


# ---------------------------------------------------------------------------
# POST /tasks: create task
# ---------------------------------------------------------------------------


@router.post("/tasks", status_code=201)
async def create_task(request: Request) -> JSONResponse:
    """Create a task. An authenticated request is stamped with the caller as owner."""
    data = parse_json_body(await request.body())
    owner = await authenticate(request, required=False)

    task_manager = get_app_state().require_task_manager()
    task_id = await task_manager.create_task(data, owner)
    return JSONResponse(status_code=201, content={"insertedId": task_id})


# ---------------------------------------------------------------------------
# GET /tasks: list tasks, soonest deadline first
# ---------------------------------------------------------------------------


@router.get("/tasks", response_model=list[TaskResponse])
async def list_tasks(request: Request) -> list[dict[str, Any]]:
    """List tasks, or the tasks of one owner when ?userEmail= is given."""
    task_manager = get_app_state().require_task_manager()

    if "userEmail" in request.query_params:
        return await task_manager.list_tasks_by_owner(request.query_params["userEmail"])

    limit = _parse_limit(request.query_params.get("limit"))
    return await task_manager.list_tasks(limit)


# ---------------------------------------------------------------------------
# DELETE /tasks: administrative bulk delete
# ---------------------------------------------------------------------------


@router.delete("/tasks")
async def delete_all_tasks() -> dict[str, Any]:
    """Delete every task and, by cascade, every bid."""
    task_manager = get_app_state().require_task_manager()
    deleted = await task_manager.delete_all_tasks()
    return {"message": "All tasks deleted", "deletedCount": deleted}


# ---------------------------------------------------------------------------
# GET /my-tasks: tasks of the authenticated caller
# ---------------------------------------------------------------------------


@router.get("/my-tasks", response_model=list[TaskResponse])
async def list_my_tasks(request: Request) -> list[dict[str, Any]]:
    """List the tasks owned by the verified principal."""
    principal = await require_principal(request)
    task_manager = get_app_state().require_task_manager()
    return await task_manager.list_tasks_by_owner(principal.email)


# ---------------------------------------------------------------------------
# /tasks/{task_id}
# ---------------------------------------------------------------------------


@router.get("/tasks/{task_id}", response_model=TaskResponse)
async def get_task(task_id: str) -> dict[str, Any]:
    """Get full task details."""
    task_manager = get_app_state().require_task_manager()
    return await task_manager.get_task(task_id)


@router.put("/tasks/{task_id}", response_model=TaskUpdatedResponse)
async def update_task(task_id: str, request: Request) -> dict[str, Any]:
    """Edit a task as its owner."""
    data = parse_json_body(await request.body())
    principal = await require_principal(request)

    task_manager = get_app_state().require_task_manager()
    updated = await task_manager.update_task(task_id, data, principal.email)
    return {"message": "Task successfully updated", "updatedTask": updated}


@router.delete("/tasks/{task_id}")
async def delete_task(task_id: str, request: Request) -> dict[str, Any]:
    """
    Delete a task.

    With a bearer credential only the owner may delete. Without one the
    delete is unchecked, and only allowed when anonymous deletes are on.
    """
    principal = await authenticate(request, required=False)
    if principal is None and not get_settings().admin.allow_anonymous_deletes:
        raise UnauthorizedError("UNAUTHORIZED", "Unauthorized: Missing token")

    task_manager = get_app_state().require_task_manager()
    await task_manager.delete_task(task_id, principal.email if principal is not None else None)
    return {"message": "Task deleted"}
