"""Bid submission, listing, and removal endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from task_market_service.core.state import get_app_state
from task_market_service.routers.validation import (
    authenticate,
    parse_json_body,
    parse_optional_json_body,
    require_principal,
)
from task_market_service.schemas import BidResponse
from task_market_service.services.validators import normalize_display_name

router = APIRouter()


# ---------------------------------------------------------------------------
# GET /tasks/{task_id}/bids: bid feed, most recent first
# ---------------------------------------------------------------------------


@router.get("/tasks/{task_id}/bids", response_model=list[BidResponse])
async def list_bids(task_id: str) -> list[dict[str, Any]]:
    """List bids for a task."""
    bid_manager = get_app_state().require_bid_manager()
    return await bid_manager.list_bids(task_id)


# ---------------------------------------------------------------------------
# POST /tasks/{task_id}/bids: submit bid with the bidder named in the body
# ---------------------------------------------------------------------------


@router.post("/tasks/{task_id}/bids", status_code=201)
async def submit_bid(task_id: str, request: Request) -> JSONResponse:
    """Submit a bid on a task."""
    data = parse_json_body(await request.body())

    bid_manager = get_app_state().require_bid_manager()
    bid = await bid_manager.submit_bid(
        task_id,
        data.get("userEmail"),  # type: ignore[arg-type]
        normalize_display_name(data.get("userName")),
        data.get("amount"),
        data.get("message"),
    )
    return JSONResponse(status_code=201, content={"insertedId": bid["_id"]})


# ---------------------------------------------------------------------------
# PATCH /tasks/{task_id}/bids: legacy entry point
#
# With a bearer credential: bid as the verified caller, respond with the
# task's bid list. Without one: count-only bid, respond {"success": true}.
# ---------------------------------------------------------------------------


@router.patch("/tasks/{task_id}/bids", response_model=None)
async def patch_bids(task_id: str, request: Request) -> list[dict[str, Any]] | dict[str, Any]:
    """Place a bid through the legacy PATCH route."""
    data = parse_optional_json_body(await request.body())
    principal = await authenticate(request, required=False)

    bid_manager = get_app_state().require_bid_manager()
    if principal is None:
        await bid_manager.record_bid_on_task(task_id)
        return {"success": True}

    return await bid_manager.submit_bid_for_principal(
        task_id,
        principal,
        data.get("amount"),
        data.get("message"),
    )


# ---------------------------------------------------------------------------
# /bids
# ---------------------------------------------------------------------------


@router.get("/bids", response_model=list[BidResponse])
async def list_all_bids() -> list[dict[str, Any]]:
    """List every bid across all tasks."""
    bid_manager = get_app_state().require_bid_manager()
    return await bid_manager.list_all_bids()


@router.delete("/bids/{bid_id}")
async def delete_bid(bid_id: str, request: Request) -> dict[str, Any]:
    """Delete a bid as its bidder or as the owner of its task."""
    principal = await require_principal(request)

    bid_manager = get_app_state().require_bid_manager()
    await bid_manager.remove_bid(bid_id, principal.email)
    return {"message": "Bid deleted"}
