"""Router test fixtures with a mocked Identity service."""

from __future__ import annotations

import os
import uuid
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from task_market_service.app import create_app
from task_market_service.config import clear_settings_cache, get_settings
from task_market_service.core.lifespan import lifespan
from task_market_service.core.state import get_app_state, reset_app_state
from tests.helpers import auth_header, fake_verify_token, task_payload

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

# ---------------------------------------------------------------------------
# Fixed principals
# ---------------------------------------------------------------------------
ALICE_EMAIL = "a@x.com"
BOB_EMAIL = "b@x.com"
CAROL_EMAIL = "c@x.com"


# ---------------------------------------------------------------------------
# ID generators
# ---------------------------------------------------------------------------
def make_task_id() -> str:
    """Generate a well-formed task ID."""
    return f"t-{uuid.uuid4()}"


def make_bid_id() -> str:
    """Generate a well-formed bid ID."""
    return f"bid-{uuid.uuid4()}"


# ---------------------------------------------------------------------------
# App + client fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
async def app(tmp_path: Path) -> AsyncIterator[Any]:
    """Create a test app with a temp database and a mocked Identity service."""
    db_path = tmp_path / "test.db"
    config_content = f"""\
service:
  name: "task-market"
  version: "0.1.0"
server:
  host: "0.0.0.0"
  port: 8010
  log_level: "info"
logging:
  level: "WARNING"
  directory: "{tmp_path / "logs"}"
database:
  path: "{db_path}"
identity:
  base_url: "http://localhost:8001"
  verify_token_path: "/auth/verify-token"
  timeout_seconds: 10
request:
  max_body_size: 1048576
admin:
  allow_anonymous_deletes: false
"""
    config_path = tmp_path / "config.yaml"
    config_path.write_text(config_content)

    old_config = os.environ.get("CONFIG_PATH")
    os.environ["CONFIG_PATH"] = str(config_path)

    clear_settings_cache()
    reset_app_state()

    test_app = create_app()
    async with lifespan(test_app):
        state = get_app_state()

        # Default: any credential built by tests.helpers.make_token verifies
        mock_identity = AsyncMock()
        mock_identity.close = AsyncMock()
        mock_identity.verify_token = AsyncMock(side_effect=fake_verify_token)
        state.identity_client = mock_identity

        yield test_app

    reset_app_state()
    clear_settings_cache()
    if old_config is None:
        os.environ.pop("CONFIG_PATH", None)
    else:
        os.environ["CONFIG_PATH"] = old_config


@pytest.fixture
async def client(app: Any) -> AsyncIterator[AsyncClient]:
    """Create an async HTTP client for the test app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


# ---------------------------------------------------------------------------
# Override fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def anonymous_deletes_enabled(_app: Any) -> None:
    """Turn on the administrative anonymous delete entry points."""
    get_settings().admin.allow_anonymous_deletes = True


@pytest.fixture
def mock_identity_unavailable(_app: Any) -> None:
    """Configure the Identity mock to simulate service unavailability."""
    state = get_app_state()
    state.identity_client.verify_token = AsyncMock(
        side_effect=ConnectionError("Identity service unreachable")
    )


@pytest.fixture
def mock_identity_timeout(_app: Any) -> None:
    """Configure the Identity mock to simulate a timeout."""
    state = get_app_state()
    state.identity_client.verify_token = AsyncMock(
        side_effect=TimeoutError("Identity service timed out")
    )


@pytest.fixture
def mock_identity_without_name(_app: Any) -> None:
    """Identity verifies credentials but reports no display name."""
    state = get_app_state()
    state.identity_client.verify_token = AsyncMock(
        return_value={"valid": True, "email": CAROL_EMAIL}
    )


# ---------------------------------------------------------------------------
# Marketplace helper functions
# ---------------------------------------------------------------------------
async def create_task(
    client: AsyncClient,
    *,
    owner_email: str = ALICE_EMAIL,
    authenticated: bool = False,
    **overrides: Any,
) -> str:
    """Create a task via POST /tasks and return its ID."""
    payload = task_payload(userEmail=owner_email, **overrides)
    headers = auth_header(owner_email) if authenticated else {}
    response = await client.post("/tasks", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["insertedId"]


async def submit_bid(
    client: AsyncClient,
    task_id: str,
    *,
    bidder_email: str = BOB_EMAIL,
    amount: Any = 50,
    message: str | None = None,
    bidder_name: str | None = None,
) -> Any:
    """Submit a bid via POST /tasks/{task_id}/bids and return the response."""
    body: dict[str, Any] = {"userEmail": bidder_email, "amount": amount}
    if message is not None:
        body["message"] = message
    if bidder_name is not None:
        body["userName"] = bidder_name
    return await client.post(f"/tasks/{task_id}/bids", json=body)


async def get_task(client: AsyncClient, task_id: str) -> dict[str, Any]:
    """Fetch a task via GET /tasks/{task_id}, asserting it exists."""
    response = await client.get(f"/tasks/{task_id}")
    assert response.status_code == 200, response.text
    return response.json()
