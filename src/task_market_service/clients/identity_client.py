"""Async HTTP client for the Identity service."""

from __future__ import annotations

from typing import Any

import httpx

from task_market_service.core.exceptions import ServiceError, UnauthorizedError
from task_market_service.logging import get_logger


class IdentityClient:
    """
    Client for bearer-credential verification.

    Signature checks are delegated to the Identity service via
    POST {verify_token_path}. The credential payload is never trusted
    without that round trip.
    """

    def __init__(
        self,
        base_url: str,
        verify_token_path: str,
        timeout_seconds: int,
    ) -> None:
        self._base_url = base_url
        self._verify_token_path = verify_token_path
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout_seconds),
        )

    async def verify_token(self, token: str) -> dict[str, Any]:
        """
        Verify a bearer credential via the Identity service.

        Args:
            token: Credential exactly as received after "Bearer "

        Returns:
            dict with keys: valid (bool), email (str), name (str | None)

        Raises:
            UnauthorizedError: the Identity service says valid=false or rejects the credential
            ServiceError: IDENTITY_SERVICE_UNAVAILABLE (502) on connection/timeout/unexpected errors
        """
        logger = get_logger(__name__)

        try:
            response = await self._client.post(
                self._verify_token_path,
                json={"token": token},
            )
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            logger.warning(
                "Identity service connection failed",
                extra={"error": str(exc), "base_url": self._base_url},
            )
            raise ServiceError(
                error="IDENTITY_SERVICE_UNAVAILABLE",
                message="Cannot connect to Identity service",
                status_code=502,
                details={},
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning(
                "Identity service HTTP error",
                extra={"error": str(exc), "base_url": self._base_url},
            )
            raise ServiceError(
                error="IDENTITY_SERVICE_UNAVAILABLE",
                message="Identity service request failed",
                status_code=502,
                details={},
            ) from exc

        if response.status_code in (401, 403):
            raise UnauthorizedError("UNAUTHORIZED", "Unauthorized: Invalid token")

        if response.status_code != 200:
            logger.warning(
                "Identity service unexpected status",
                extra={
                    "status_code": response.status_code,
                    "base_url": self._base_url,
                },
            )
            raise ServiceError(
                error="IDENTITY_SERVICE_UNAVAILABLE",
                message="Identity service returned unexpected status",
                status_code=502,
                details={},
            )

        try:
            result: Any = response.json()
        except ValueError as exc:
            raise ServiceError(
                error="IDENTITY_SERVICE_UNAVAILABLE",
                message="Identity service returned an invalid body",
                status_code=502,
                details={},
            ) from exc

        if not isinstance(result, dict) or not result.get("valid", False):
            raise UnauthorizedError("UNAUTHORIZED", "Unauthorized: Invalid token")

        return result

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
