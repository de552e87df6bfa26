"""API routers."""

from task_market_service.routers import bids, health, tasks

__all__ = ["bids", "health", "tasks"]
