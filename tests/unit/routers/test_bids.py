"""Bid endpoint tests: submission, listing, removal and the PATCH adapter."""

from __future__ import annotations

import pytest

from task_market_service.core.state import get_app_state
from task_market_service.schemas import BidResponse
from tests.helpers import auth_header
from tests.unit.routers.conftest import (
    ALICE_EMAIL,
    BOB_EMAIL,
    CAROL_EMAIL,
    create_task,
    get_task,
    make_bid_id,
    make_task_id,
    submit_bid,
)

# ---------------------------------------------------------------------------
# POST /tasks/{task_id}/bids
# ---------------------------------------------------------------------------


@pytest.mark.unit
async def test_submit_bid_increments_count(client):
    """Each accepted bid bumps bidsCount by exactly one."""
    task_id = await create_task(client)

    for amount in (40, 55, 60, 75):
        response = await submit_bid(client, task_id, amount=amount)
        assert response.status_code == 201
        assert response.json()["insertedId"].startswith("bid-")

    task = await get_task(client, task_id)
    assert task["bidsCount"] == 4
    assert len((await client.get(f"/tasks/{task_id}/bids")).json()) == 4


@pytest.mark.unit
async def test_submit_bid_shape(client):
    """A stored bid carries the bidder, amount, message and a server timestamp."""
    task_id = await create_task(client)
    await submit_bid(client, task_id, amount=50.5, message="Can start today", bidder_name="Bob")

    bids = (await client.get(f"/tasks/{task_id}/bids")).json()
    bid = BidResponse.model_validate(bids[0])
    assert bid.task_id == task_id
    assert bid.user_email == BOB_EMAIL
    assert bid.user_name == "Bob"
    assert bid.amount == 50.5
    assert bid.message == "Can start today"
    assert bid.date.endswith("Z")


@pytest.mark.unit
async def test_submit_bid_empty_message_is_no_message(client):
    """An empty message is stored as no message rather than rejected."""
    task_id = await create_task(client)
    response = await submit_bid(client, task_id, message="")
    assert response.status_code == 201

    bids = (await client.get(f"/tasks/{task_id}/bids")).json()
    assert bids[0]["message"] is None


@pytest.mark.unit
@pytest.mark.parametrize("amount", [0, -10, "50", None, False])
async def test_submit_bid_invalid_amount_mutates_nothing(client, amount):
    """Non-positive or non-numeric amounts are rejected before any write."""
    task_id = await create_task(client)

    response = await submit_bid(client, task_id, amount=amount)
    assert response.status_code == 400
    assert response.json()["error"] == "INVALID_AMOUNT"

    assert (await get_task(client, task_id))["bidsCount"] == 0
    assert (await client.get("/bids")).json() == []


@pytest.mark.unit
async def test_submit_bid_amount_too_large(client):
    """An amount beyond 64-bit integer range is rejected and nothing is written."""
    task_id = await create_task(client)

    response = await submit_bid(client, task_id, amount=10**20)
    assert response.status_code == 400
    assert response.json()["error"] == "INVALID_AMOUNT"

    assert (await get_task(client, task_id))["bidsCount"] == 0
    assert (await client.get("/bids")).json() == []


@pytest.mark.unit
async def test_submit_bid_missing_email(client):
    """A bid without a bidder email is rejected."""
    task_id = await create_task(client)
    response = await client.post(f"/tasks/{task_id}/bids", json={"amount": 10})
    assert response.status_code == 400
    assert response.json()["error"] == "INVALID_EMAIL"


@pytest.mark.unit
async def test_submit_bid_non_string_message(client):
    """A message that is not a string is rejected."""
    task_id = await create_task(client)
    response = await client.post(
        f"/tasks/{task_id}/bids",
        json={"amount": 10, "userEmail": BOB_EMAIL, "message": 42},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "INVALID_PAYLOAD"


@pytest.mark.unit
async def test_submit_bid_malformed_task_id(client):
    """Bids on a malformed task ID are rejected."""
    response = await submit_bid(client, "nope")
    assert response.status_code == 400
    assert response.json()["error"] == "INVALID_TASK_ID"


@pytest.mark.unit
async def test_submit_bid_unknown_task(client):
    """Bids on an unknown task are 404 and leave no bid behind."""
    response = await submit_bid(client, make_task_id())
    assert response.status_code == 404
    assert response.json()["error"] == "TASK_NOT_FOUND"
    assert (await client.get("/bids")).json() == []


# ---------------------------------------------------------------------------
# GET /tasks/{task_id}/bids and GET /bids
# ---------------------------------------------------------------------------


@pytest.mark.unit
async def test_list_bids_most_recent_first(client):
    """Bids placed at t1 < t2 < t3 come back as [t3, t2, t1]."""
    task_id = await create_task(client)
    first = (await submit_bid(client, task_id, amount=10)).json()["insertedId"]
    second = (await submit_bid(client, task_id, amount=20)).json()["insertedId"]
    third = (await submit_bid(client, task_id, amount=30)).json()["insertedId"]

    bids = (await client.get(f"/tasks/{task_id}/bids")).json()
    assert [bid["_id"] for bid in bids] == [third, second, first]


@pytest.mark.unit
async def test_list_bids_malformed_task_id(client):
    """Listing bids for a malformed ID is a validation error."""
    response = await client.get("/tasks/xyz/bids")
    assert response.status_code == 400
    assert response.json()["error"] == "INVALID_TASK_ID"


@pytest.mark.unit
async def test_list_bids_unknown_task_is_empty(client):
    """An unknown but well-formed task simply has no bids."""
    response = await client.get(f"/tasks/{make_task_id()}/bids")
    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.unit
async def test_list_all_bids_spans_tasks(client):
    """GET /bids returns bids from every task."""
    first_task = await create_task(client)
    second_task = await create_task(client, owner_email=CAROL_EMAIL)
    await submit_bid(client, first_task)
    await submit_bid(client, second_task)

    bids = (await client.get("/bids")).json()
    assert {bid["taskId"] for bid in bids} == {first_task, second_task}


# ---------------------------------------------------------------------------
# DELETE /bids/{bid_id}
# ---------------------------------------------------------------------------


@pytest.mark.unit
async def test_remove_bid_as_bidder(client):
    """The bidder can withdraw a bid; bidsCount drops by one."""
    task_id = await create_task(client)
    bid_id = (await submit_bid(client, task_id)).json()["insertedId"]
    await submit_bid(client, task_id, bidder_email=CAROL_EMAIL)

    response = await client.delete(f"/bids/{bid_id}", headers=auth_header(BOB_EMAIL))
    assert response.status_code == 200
    assert response.json() == {"message": "Bid deleted"}
    assert (await get_task(client, task_id))["bidsCount"] == 1


@pytest.mark.unit
async def test_remove_bid_as_task_owner(client):
    """The task owner can remove any bid on their task."""
    task_id = await create_task(client)
    bid_id = (await submit_bid(client, task_id)).json()["insertedId"]

    response = await client.delete(f"/bids/{bid_id}", headers=auth_header(ALICE_EMAIL))
    assert response.status_code == 200
    assert (await get_task(client, task_id))["bidsCount"] == 0


@pytest.mark.unit
async def test_remove_bid_by_stranger_forbidden(client):
    """Neither bidder nor owner: refused, bid and count unchanged."""
    task_id = await create_task(client)
    bid_id = (await submit_bid(client, task_id)).json()["insertedId"]

    response = await client.delete(f"/bids/{bid_id}", headers=auth_header(CAROL_EMAIL))
    assert response.status_code == 403
    assert response.json()["error"] == "FORBIDDEN"

    assert (await get_task(client, task_id))["bidsCount"] == 1
    assert [bid["_id"] for bid in (await client.get(f"/tasks/{task_id}/bids")).json()] == [bid_id]


@pytest.mark.unit
async def test_remove_bid_errors(client):
    """Malformed IDs are 400, unknown bids are 404, no credential is 401."""
    malformed = await client.delete("/bids/123", headers=auth_header(BOB_EMAIL))
    assert malformed.status_code == 400
    assert malformed.json()["error"] == "INVALID_BID_ID"

    missing = await client.delete(f"/bids/{make_bid_id()}", headers=auth_header(BOB_EMAIL))
    assert missing.status_code == 404
    assert missing.json()["error"] == "BID_NOT_FOUND"

    anonymous = await client.delete(f"/bids/{make_bid_id()}")
    assert anonymous.status_code == 401


@pytest.mark.unit
async def test_remove_bid_twice(client):
    """The second removal of the same bid is 404 and does not decrement again."""
    task_id = await create_task(client)
    bid_id = (await submit_bid(client, task_id)).json()["insertedId"]
    await submit_bid(client, task_id, bidder_email=CAROL_EMAIL)

    first = await client.delete(f"/bids/{bid_id}", headers=auth_header(BOB_EMAIL))
    second = await client.delete(f"/bids/{bid_id}", headers=auth_header(BOB_EMAIL))
    assert first.status_code == 200
    assert second.status_code == 404
    assert (await get_task(client, task_id))["bidsCount"] == 1


# ---------------------------------------------------------------------------
# PATCH /tasks/{task_id}/bids
# ---------------------------------------------------------------------------


@pytest.mark.unit
async def test_patch_bid_authenticated_returns_bid_list(client):
    """With a credential the bid is placed as the principal and the list returned."""
    task_id = await create_task(client)
    await submit_bid(client, task_id, bidder_email=CAROL_EMAIL, amount=80)

    response = await client.patch(
        f"/tasks/{task_id}/bids",
        json={"amount": 65, "message": "Done by Friday"},
        headers=auth_header(BOB_EMAIL, "Bob"),
    )
    assert response.status_code == 200
    bids = response.json()
    assert len(bids) == 2
    assert bids[0]["userEmail"] == BOB_EMAIL
    assert bids[0]["userName"] == "Bob"
    assert bids[0]["amount"] == 65
    assert (await get_task(client, task_id))["bidsCount"] == 2


@pytest.mark.unit
async def test_patch_bid_principal_without_name(client, mock_identity_without_name):
    """A principal with no display name bids as Anonymous."""
    task_id = await create_task(client)
    response = await client.patch(
        f"/tasks/{task_id}/bids",
        json={"amount": 10},
        headers={"Authorization": "Bearer opaque"},
    )
    assert response.status_code == 200
    assert response.json()[0]["userName"] == "Anonymous"
    assert response.json()[0]["userEmail"] == CAROL_EMAIL


@pytest.mark.unit
async def test_patch_bid_authenticated_invalid_amount(client):
    """The authenticated PATCH path applies the same amount rule."""
    task_id = await create_task(client)
    response = await client.patch(
        f"/tasks/{task_id}/bids",
        json={"amount": 0},
        headers=auth_header(BOB_EMAIL),
    )
    assert response.status_code == 400
    assert (await get_task(client, task_id))["bidsCount"] == 0


@pytest.mark.unit
async def test_patch_bid_numeric_string_amount_rejected(client):
    """The PATCH adapter takes JSON numbers only; "50" is not coerced."""
    task_id = await create_task(client)
    response = await client.patch(
        f"/tasks/{task_id}/bids",
        json={"amount": "50"},
        headers=auth_header(BOB_EMAIL),
    )
    assert response.status_code == 400
    assert response.json()["error"] == "INVALID_AMOUNT"
    assert (await get_task(client, task_id))["bidsCount"] == 0
    assert (await client.get("/bids")).json() == []


@pytest.mark.unit
async def test_patch_bid_anonymous_counts_only(client):
    """Without a credential PATCH only bumps bidsCount."""
    task_id = await create_task(client)

    response = await client.patch(f"/tasks/{task_id}/bids")
    assert response.status_code == 200
    assert response.json() == {"success": True}

    assert (await get_task(client, task_id))["bidsCount"] == 1
    assert (await client.get(f"/tasks/{task_id}/bids")).json() == []


@pytest.mark.unit
async def test_patch_bid_anonymous_unknown_task(client):
    """Count-only bids on an unknown task are 404."""
    response = await client.patch(f"/tasks/{make_task_id()}/bids")
    assert response.status_code == 404
    assert response.json()["error"] == "TASK_NOT_FOUND"


@pytest.mark.unit
async def test_patch_bid_rejected_credential(client):
    """A credential the Identity service rejects is 401, not a count-only bid."""
    task_id = await create_task(client)
    response = await client.patch(
        f"/tasks/{task_id}/bids",
        json={"amount": 10},
        headers={"Authorization": "Bearer forged"},
    )
    assert response.status_code == 401
    assert (await get_task(client, task_id))["bidsCount"] == 0


# ---------------------------------------------------------------------------
# Store not initialized
# ---------------------------------------------------------------------------


@pytest.mark.unit
async def test_bid_routes_before_store_init(client):
    """A missing store handle surfaces as a structured 500."""
    get_app_state().bid_manager = None
    response = await client.get("/bids")
    assert response.status_code == 500
    assert response.json()["error"] == "STORE_NOT_INITIALIZED"
