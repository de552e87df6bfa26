"""Service layer components."""

from task_market_service.services.bid_manager import BidManager
from task_market_service.services.bid_store import BidStore
from task_market_service.services.database import Database
from task_market_service.services.task_manager import TaskManager
from task_market_service.services.task_store import TaskStore
from task_market_service.services.token_validator import Principal, TokenValidator

__all__ = [
    "BidManager",
    "BidStore",
    "Database",
    "Principal",
    "TaskManager",
    "TaskStore",
    "TokenValidator",
]
