"""Application state management."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from task_market_service.core.exceptions import StoreError

if TYPE_CHECKING:
    from task_market_service.clients.identity_client import IdentityClient
    from task_market_service.services.bid_manager import BidManager
    from task_market_service.services.database import Database
    from task_market_service.services.task_manager import TaskManager
    from task_market_service.services.token_validator import TokenValidator


@dataclass
class AppState:
    """Runtime application state."""

    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    database: Database | None = None
    task_manager: TaskManager | None = None
    bid_manager: BidManager | None = None
    identity_client: IdentityClient | None = None
    token_validator: TokenValidator | None = None

    def __setattr__(self, name: str, value: Any) -> None:
        """Keep the TokenValidator pointed at the current IdentityClient."""
        super().__setattr__(name, value)

        token_validator = self.__dict__.get("token_validator")
        if name == "identity_client" and value is not None and token_validator is not None:
            token_validator._identity_client = value
        elif name == "token_validator" and value is not None:
            identity_client = self.__dict__.get("identity_client")
            if identity_client is not None:
                value._identity_client = identity_client

    def require_task_manager(self) -> TaskManager:
        """Return the TaskManager or fail the request with STORE_NOT_INITIALIZED."""
        if self.task_manager is None:
            raise StoreError("STORE_NOT_INITIALIZED", "Database not connected")
        return self.task_manager

    def require_bid_manager(self) -> BidManager:
        """Return the BidManager or fail the request with STORE_NOT_INITIALIZED."""
        if self.bid_manager is None:
            raise StoreError("STORE_NOT_INITIALIZED", "Database not connected")
        return self.bid_manager

    def require_token_validator(self) -> TokenValidator:
        """Return the TokenValidator; it only exists after startup."""
        if self.token_validator is None:
            msg = "TokenValidator not initialized"
            raise RuntimeError(msg)
        return self.token_validator

    @property
    def uptime_seconds(self) -> float:
        """Calculate uptime in seconds."""
        return (datetime.now(UTC) - self.start_time).total_seconds()

    @property
    def started_at(self) -> str:
        """ISO format start time."""
        return self.start_time.isoformat(timespec="seconds").replace("+00:00", "Z")


# Global application state container
_state_container: dict[str, AppState | None] = {"app_state": None}


def get_app_state() -> AppState:
    """Get the current application state."""
    app_state = _state_container["app_state"]
    if app_state is None:
        msg = "Application state not initialized"
        raise RuntimeError(msg)
    return app_state


def init_app_state() -> AppState:
    """Initialize application state. Called during startup."""
    app_state = AppState()
    _state_container["app_state"] = app_state
    return app_state


def reset_app_state() -> None:
    """Reset application state. Used in testing."""
    _state_container["app_state"] = None
