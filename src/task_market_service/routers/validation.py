"""Shared request validation helpers for the marketplace routers."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from task_market_service.core.exceptions import UnauthorizedError, ValidationError
from task_market_service.core.state import get_app_state

if TYPE_CHECKING:
    from fastapi import Request

    from task_market_service.services.token_validator import Principal


def parse_json_body(raw_body: bytes) -> dict[str, Any]:
    """Parse JSON body, raising ValidationError on failure."""
    try:
        data = json.loads(raw_body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationError("INVALID_JSON", "Request body is not valid JSON") from exc

    if not isinstance(data, dict):
        raise ValidationError("INVALID_JSON", "Request body must be a JSON object")

    return data


def parse_optional_json_body(raw_body: bytes) -> dict[str, Any]:
    """Like parse_json_body, but an empty body is an empty object."""
    if raw_body.strip() == b"":
        return {}
    return parse_json_body(raw_body)


def extract_bearer_token(authorization: str | None, *, required: bool) -> str | None:
    """Extract the credential from an Authorization header."""
    if authorization is None:
        if required:
            raise UnauthorizedError("UNAUTHORIZED", "Missing or invalid Authorization header")
        return None

    if not authorization.startswith("Bearer "):
        raise UnauthorizedError("UNAUTHORIZED", "Missing or invalid Authorization header")

    token = authorization[len("Bearer ") :].strip()
    if not token:
        raise UnauthorizedError("UNAUTHORIZED", "Unauthorized: Missing token")

    return token


async def authenticate(request: Request, *, required: bool) -> Principal | None:
    """Verify the request's bearer credential, if any, and return its principal."""
    token = extract_bearer_token(request.headers.get("authorization"), required=required)
    if token is None:
        return None
    validator = get_app_state().require_token_validator()
    return await validator.verify(token)


async def require_principal(request: Request) -> Principal:
    """Verify the bearer credential; a request without one is rejected."""
    principal = await authenticate(request, required=True)
    if principal is None:
        raise UnauthorizedError("UNAUTHORIZED", "Missing or invalid Authorization header")
    return principal
