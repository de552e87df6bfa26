"""Shared test helpers for bearer credentials and task payloads."""

from __future__ import annotations

import base64
import json
from typing import Any

from task_market_service.core.exceptions import UnauthorizedError

_TOKEN_PREFIX = "test-token."


def make_token(email: str, name: str | None = None) -> str:
    """Build an opaque bearer credential that the fake Identity service accepts."""
    claims: dict[str, Any] = {"email": email}
    if name is not None:
        claims["name"] = name
    encoded = base64.urlsafe_b64encode(json.dumps(claims).encode()).decode()
    return _TOKEN_PREFIX + encoded


def auth_header(email: str, name: str | None = None) -> dict[str, str]:
    """Authorization header for a principal."""
    return {"Authorization": f"Bearer {make_token(email, name)}"}


async def fake_verify_token(token: str) -> dict[str, Any]:
    """Stand-in for IdentityClient.verify_token: accepts only make_token() credentials."""
    if not token.startswith(_TOKEN_PREFIX):
        raise UnauthorizedError("UNAUTHORIZED", "Unauthorized: Invalid token")
    claims = json.loads(base64.urlsafe_b64decode(token[len(_TOKEN_PREFIX) :]))
    return {"valid": True, **claims}


def task_payload(**overrides: Any) -> dict[str, Any]:
    """A complete, valid task body."""
    payload: dict[str, Any] = {
        "title": "Fix bug",
        "category": "dev",
        "description": "Crash on startup when the config file is empty",
        "deadline": "2030-01-01",
        "budget": 100,
        "userEmail": "a@x.com",
        "userName": "A",
    }
    payload.update(overrides)
    return payload
