"""SQLite-backed bid storage (standalone bids table keyed by task_id)."""

from __future__ import annotations

import sqlite3
import uuid
from typing import TYPE_CHECKING, Any

from task_market_service.core.exceptions import NotFoundError, StoreError
from task_market_service.services.validators import (
    normalize_message,
    now_iso,
    validate_amount,
    validate_email,
)

if TYPE_CHECKING:
    from task_market_service.services.database import Database


class BidStore:
    """Bid records. Bids are never mutated in place, only inserted and deleted."""

    _BID_COLUMNS: tuple[str, ...] = (
        "bid_id",
        "task_id",
        "user_email",
        "user_name",
        "amount",
        "message",
        "date",
    )
    _BID_SELECT_BASE_SQL = (
        "SELECT bid_id, task_id, user_email, user_name, amount, message, date FROM bids"
    )

    def __init__(self, database: Database) -> None:
        self._database = database

    def _row_to_bid(self, row: sqlite3.Row) -> dict[str, Any]:
        return {column: row[column] for column in self._BID_COLUMNS}

    def insert_bid(
        self,
        task_id: str,
        bidder_email: str,
        bidder_name: str | None,
        amount: object,
        message: object = None,
    ) -> dict[str, Any]:
        """
        Validate and persist a bid, stamping its date server-side.

        Raises:
            ValidationError: amount not strictly positive, or empty bidder email
            NotFoundError: task_id does not reference an existing task
        """
        bid = {
            "bid_id": f"bid-{uuid.uuid4()}",
            "task_id": task_id,
            "user_email": validate_email(bidder_email),
            "user_name": bidder_name,
            "amount": validate_amount(amount),
            "message": normalize_message(message),
            "date": now_iso(),
        }
        try:
            self._database.execute(
                """
                INSERT INTO bids (bid_id, task_id, user_email, user_name, amount, message, date)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                tuple(bid[column] for column in self._BID_COLUMNS),
            )
        except sqlite3.IntegrityError as exc:
            if "foreign key" in str(exc).lower():
                raise NotFoundError("TASK_NOT_FOUND", "Task not found") from exc
            raise StoreError("STORE_ERROR", "Bid could not be stored") from exc
        return bid

    def get_bid(self, bid_id: str) -> dict[str, Any]:
        """
        Fetch a bid by ID.

        Raises:
            NotFoundError: no such bid
        """
        row = self._database.fetch_one(self._BID_SELECT_BASE_SQL + " WHERE bid_id = ?", (bid_id,))
        if row is None:
            raise NotFoundError("BID_NOT_FOUND", "Bid not found")
        return self._row_to_bid(row)

    def list_bids_for_task(self, task_id: str) -> list[dict[str, Any]]:
        """Fetch all bids for a task, most recent first."""
        rows = self._database.fetch_all(
            self._BID_SELECT_BASE_SQL + " WHERE task_id = ? ORDER BY date DESC, rowid DESC",
            (task_id,),
        )
        return [self._row_to_bid(row) for row in rows]

    def list_all_bids(self) -> list[dict[str, Any]]:
        """Fetch every bid, most recent first."""
        rows = self._database.fetch_all(self._BID_SELECT_BASE_SQL + " ORDER BY date DESC, rowid DESC")
        return [self._row_to_bid(row) for row in rows]

    def delete_bid(self, bid_id: str) -> bool:
        """Delete a bid and report whether a row was actually removed."""
        changed = self._database.execute("DELETE FROM bids WHERE bid_id = ?", (bid_id,))
        return changed > 0

    def count_bids(self) -> int:
        """Count total bids."""
        row = self._database.fetch_one("SELECT COUNT(*) FROM bids")
        return int(row[0]) if row is not None else 0
