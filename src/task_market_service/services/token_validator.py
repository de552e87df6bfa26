"""Bearer credential verification for ownership checks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from task_market_service.core.exceptions import ServiceError, UnauthorizedError

if TYPE_CHECKING:
    from task_market_service.clients.identity_client import IdentityClient

_ANONYMOUS_NAME = "Anonymous"


@dataclass(frozen=True)
class Principal:
    """Verified identity behind a request."""

    email: str
    name: str


class TokenValidator:
    """Turns a bearer credential into a Principal via the Identity service."""

    def __init__(self, identity_client: IdentityClient) -> None:
        self._identity_client = identity_client

    async def verify(self, token: str) -> Principal:
        """
        Verify the credential and return the principal it names.

        Raises:
            UnauthorizedError: empty credential, rejected credential, or no email claim
            ServiceError: IDENTITY_SERVICE_UNAVAILABLE when the Identity service fails
        """
        if not token:
            raise UnauthorizedError("UNAUTHORIZED", "Unauthorized: Missing token")

        # IdentityClient.verify_token raises:
        #   UnauthorizedError on valid=false
        #   ServiceError("IDENTITY_SERVICE_UNAVAILABLE", ..., 502) on connection/timeout
        result: Any
        try:
            result = await self._identity_client.verify_token(token)
        except ServiceError:
            raise
        except Exception as exc:
            raise ServiceError(
                "IDENTITY_SERVICE_UNAVAILABLE",
                "Cannot connect to Identity service",
                502,
                {},
            ) from exc

        if not isinstance(result, dict):
            raise UnauthorizedError("UNAUTHORIZED", "Unauthorized: Invalid token")

        email = result.get("email")
        if not isinstance(email, str) or not email:
            raise UnauthorizedError("UNAUTHORIZED", "Unauthorized: Invalid token")

        name = result.get("name") or result.get("displayName")
        if not isinstance(name, str) or not name:
            name = _ANONYMOUS_NAME

        return Principal(email=email, name=name)
