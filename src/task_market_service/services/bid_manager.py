"""Bid lifecycle: submission and removal kept consistent with bidsCount."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from task_market_service.core.exceptions import (
    BidNotRecordedError,
    ForbiddenError,
    NotFoundError,
    StoreError,
)
from task_market_service.logging import get_logger
from task_market_service.services.validators import (
    normalize_message,
    validate_amount,
    validate_bid_id,
    validate_email,
    validate_task_id,
)

if TYPE_CHECKING:
    from task_market_service.services.bid_store import BidStore
    from task_market_service.services.task_store import TaskStore
    from task_market_service.services.token_validator import Principal


def bid_to_response(row: dict[str, Any]) -> dict[str, Any]:
    """Convert a DB row dict to the public bid shape."""
    return {
        "_id": row["bid_id"],
        "taskId": row["task_id"],
        "userEmail": row["user_email"],
        "userName": row["user_name"],
        "amount": row["amount"],
        "message": row["message"],
        "date": row["date"],
    }


class BidManager:
    """
    Orchestrates bid writes across BidStore and TaskStore.

    A bid insert and its bidsCount increment are two statements, not one
    transaction. Validation and authorization always finish before the
    first of them runs.
    """

    def __init__(self, task_store: TaskStore, bid_store: BidStore) -> None:
        self._task_store = task_store
        self._bid_store = bid_store
        self._logger = get_logger(__name__)

    async def submit_bid(
        self,
        task_id: str,
        bidder_email: str,
        bidder_name: str | None,
        amount: object,
        message: object = None,
    ) -> dict[str, Any]:
        """
        Record a bid and bump the task's bidsCount by one.

        Error precedence:
        1. INVALID_TASK_ID
        2. INVALID_AMOUNT / INVALID_EMAIL / INVALID_PAYLOAD
        3. TASK_NOT_FOUND: task absent at insert time, or gone before the increment
        4. STORE_ERROR: increment failed after the bid was stored (not rolled back)
        """
        validate_task_id(task_id)
        validate_amount(amount)
        validate_email(bidder_email)
        normalize_message(message)

        bid = self._bid_store.insert_bid(task_id, bidder_email, bidder_name, amount, message)

        try:
            self._task_store.increment_bids_count(task_id, 1)
        except NotFoundError:
            # Task vanished between insert and increment: take the bid back out.
            removed = self._bid_store.delete_bid(bid["bid_id"])
            self._logger.warning(
                "Task disappeared during bid submission, bid rolled back",
                extra={"task_id": task_id, "bid_id": bid["bid_id"], "bid_removed": removed},
            )
            raise
        except StoreError:
            self._logger.error(
                "bidsCount increment failed after bid insert; count is now behind",
                extra={"task_id": task_id, "bid_id": bid["bid_id"]},
            )
            raise

        self._logger.info(
            "Bid submitted",
            extra={"task_id": task_id, "bid_id": bid["bid_id"], "bidder_email": bidder_email},
        )
        return bid_to_response(bid)

    async def submit_bid_for_principal(
        self,
        task_id: str,
        principal: Principal,
        amount: object,
        message: object = None,
    ) -> list[dict[str, Any]]:
        """Submit a bid as the verified principal and return the task's bid list."""
        await self.submit_bid(task_id, principal.email, principal.name, amount, message)
        return await self.list_bids(task_id)

    async def list_bids(self, task_id: str) -> list[dict[str, Any]]:
        """List bids for a task, most recent first."""
        validate_task_id(task_id)
        return [bid_to_response(row) for row in self._bid_store.list_bids_for_task(task_id)]

    async def list_all_bids(self) -> list[dict[str, Any]]:
        """List every bid, most recent first."""
        return [bid_to_response(row) for row in self._bid_store.list_all_bids()]

    async def remove_bid(self, bid_id: str, requester_email: str) -> None:
        """
        Delete a bid as its bidder or as the owner of its task.

        Error precedence:
        1. INVALID_BID_ID
        2. BID_NOT_FOUND
        3. FORBIDDEN: requester is neither bidder nor task owner
        4. BID_NOT_FOUND: a concurrent delete won the race; no decrement
        """
        validate_bid_id(bid_id)
        bid = self._bid_store.get_bid(bid_id)
        task = self._task_store.get_task(bid["task_id"])

        is_bidder = bid["user_email"] == requester_email
        is_task_owner = task is not None and task["user_email"] == requester_email
        if not is_bidder and not is_task_owner:
            raise ForbiddenError("FORBIDDEN", "Unauthorized to delete this bid")

        if not self._bid_store.delete_bid(bid_id):
            raise NotFoundError("BID_NOT_FOUND", "Bid not found")

        try:
            self._task_store.increment_bids_count(bid["task_id"], -1)
        except NotFoundError:
            self._logger.info(
                "Bid removed from a task that no longer exists",
                extra={"bid_id": bid_id, "task_id": bid["task_id"]},
            )

        self._logger.info(
            "Bid deleted",
            extra={
                "bid_id": bid_id,
                "task_id": bid["task_id"],
                "removed_by": "bidder" if is_bidder else "task_owner",
            },
        )

    async def record_bid_on_task(self, task_id: str) -> None:
        """
        Count-only bid: bump bidsCount without storing bid detail.

        Raises:
            NotFoundError: TASK_NOT_FOUND when the task is absent
            BidNotRecordedError: the increment matched no row (stale id race)
        """
        validate_task_id(task_id)
        if self._task_store.get_task(task_id) is None:
            raise NotFoundError("TASK_NOT_FOUND", "Task not found")

        try:
            self._task_store.increment_bids_count(task_id, 1)
        except NotFoundError as exc:
            raise BidNotRecordedError(
                "BID_NOT_RECORDED",
                "Task not found or already updated",
            ) from exc

    def get_stats(self) -> dict[str, int]:
        """Bid statistics for the health endpoint."""
        return {"total_bids": self._bid_store.count_bids()}
