"""Field validation helpers shared by the task and bid services."""

from __future__ import annotations

import math
import re
from datetime import UTC, datetime
from typing import Any

from task_market_service.core.exceptions import ValidationError

# Regex for task_id format: t-<uuid4>
TASK_ID_RE = re.compile(
    r"^t-[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

# Regex for bid_id format: bid-<uuid4>
BID_ID_RE = re.compile(
    r"^bid-[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

# Largest integer SQLite can store in an INTEGER/NUMERIC column
_SQLITE_MAX_INT = 2**63 - 1


def now_iso() -> str:
    """Return current UTC time as ISO 8601 string with Z suffix."""
    return datetime.now(UTC).isoformat(timespec="microseconds").replace("+00:00", "Z")


def validate_task_id(task_id: str) -> str:
    """Reject identifiers that could never have been assigned by the store."""
    if not TASK_ID_RE.match(task_id):
        raise ValidationError("INVALID_TASK_ID", "Invalid task ID")
    return task_id


def validate_bid_id(bid_id: str) -> str:
    """Reject bid identifiers that could never have been assigned by the store."""
    if not BID_ID_RE.match(bid_id):
        raise ValidationError("INVALID_BID_ID", "Invalid bid ID")
    return bid_id


def is_positive_number(value: object) -> bool:
    """Check if value is a finite, storable number > 0 (bool is not a number here)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    if isinstance(value, int) and value > _SQLITE_MAX_INT:
        return False
    return math.isfinite(value) and value > 0


def require_text(data: dict[str, Any], field_name: str) -> str:
    """Return a required, non-blank string field."""
    value = data.get(field_name)
    if value is None:
        raise ValidationError("MISSING_FIELD", f"Missing required field: {field_name}")
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(
            "MISSING_FIELD",
            f"Field '{field_name}' must be a non-empty string",
        )
    return value


def parse_deadline(value: object) -> str:
    """
    Parse a deadline into a normalized UTC instant.

    Naive timestamps and bare dates are read as UTC. The normalized form
    has a fixed width, so lexical order equals chronological order.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("INVALID_DEADLINE", "Invalid deadline date")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValidationError("INVALID_DEADLINE", "Invalid deadline date") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    try:
        utc_value = parsed.astimezone(UTC)
    except OverflowError as exc:
        raise ValidationError("INVALID_DEADLINE", "Invalid deadline date") from exc
    return utc_value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def validate_budget(value: object) -> int | float:
    """Budget must be a strictly positive number."""
    if not is_positive_number(value):
        raise ValidationError("INVALID_BUDGET", "Invalid budget")
    return value  # type: ignore[return-value]


def validate_amount(value: object) -> int | float:
    """Bid amount must be a strictly positive number; zero is rejected."""
    if not is_positive_number(value):
        raise ValidationError("INVALID_AMOUNT", "Invalid bid amount")
    return value  # type: ignore[return-value]


def validate_email(value: object) -> str:
    """Bidder/owner identity must be a non-empty string."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("INVALID_EMAIL", "Missing or invalid user email")
    return value


def normalize_message(value: object) -> str | None:
    """Treat a missing or empty message as no message."""
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValidationError("INVALID_PAYLOAD", "Bid message must be a string")
    return value


def normalize_display_name(value: object) -> str | None:
    """Optional display name; empty means absent."""
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValidationError("INVALID_PAYLOAD", "userName must be a string")
    return value
