"""HTTP clients for external services."""

from task_market_service.clients.identity_client import IdentityClient

__all__ = ["IdentityClient"]
