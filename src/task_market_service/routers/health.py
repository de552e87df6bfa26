"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from task_market_service.core.state import get_app_state
from task_market_service.schemas import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check service health and return statistics."""
    state = get_app_state()
    total_tasks = 0
    total_bids = 0
    if state.task_manager is not None:
        total_tasks = state.task_manager.get_stats()["total_tasks"]
    if state.bid_manager is not None:
        total_bids = state.bid_manager.get_stats()["total_bids"]
    return HealthResponse(
        status="ok",
        uptime_seconds=state.uptime_seconds,
        started_at=state.started_at,
        total_tasks=total_tasks,
        total_bids=total_bids,
    )
