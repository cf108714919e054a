"""
Integration tests for parcel booking, lifecycle updates and access control.
"""

import pytest
from sqlalchemy import select

from backend.app.models.enums import AgentAvailability
from backend.app.models.user import User


async def _book(client, headers, payload):
    return await client.post("/parcels", json=payload, headers=headers)


async def _claim(client, parcel_id, agent_email, headers):
    return await client.patch(
        f"/parcels/{parcel_id}",
        json={"status": "Assigned", "delivery_agent": {"email": agent_email}},
        headers=headers,
    )


async def _availability(context, email):
    async with context.session_factory() as session:
        result = await session.execute(select(User.availability).where(User.email == email))
        return result.scalar_one()


# --- booking ---

@pytest.mark.asyncio
async def test_book_parcel(client, context, customer, headers_for, booking):
    response = await _book(client, headers_for(customer.email), booking())
    await context.notifier.drain()

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "Pending"
    assert data["owner_email"] == customer.email
    assert data["pickup_lat"] is not None and data["pickup_lng"] is not None
    assert data["delivery_lat"] is not None and data["delivery_lng"] is not None
    assert data["agent_email"] is None

    assert [mail["to"] for mail in context.mailer.sent] == [customer.email]
    assert "House 12, Road 5, Gulshan" in context.mailer.sent[0]["html"]


@pytest.mark.asyncio
async def test_book_with_unresolvable_address(client, context, customer, headers_for, booking):
    headers = headers_for(customer.email)
    response = await _book(client, headers, booking(delivery_address="Nowhere Lane 999"))
    await context.notifier.drain()

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_ADDRESS_001"
    assert response.json()["details"]["fields"] == ["delivery_address"]
    assert context.mailer.sent == []

    listing = await client.get("/parcels", headers=headers)
    assert listing.json()["total"] == 0


@pytest.mark.asyncio
async def test_book_rejects_unknown_fields(client, customer, headers_for, booking):
    response = await _book(client, headers_for(customer.email), booking(status="Delivered"))
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_book_requires_customer_role(client, agent, admin, headers_for, booking):
    for user in (agent, admin):
        response = await _book(client, headers_for(user.email), booking())
        assert response.status_code == 403


@pytest.mark.asyncio
async def test_book_requires_token(client, context, booking):
    response = await client.post("/parcels", json=booking())
    assert response.status_code == 401

    response = await client.post("/parcels", json=booking(), headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_unregistered_identity_is_forbidden(client, context, headers_for, booking):
    response = await _book(client, headers_for("stranger@test.com"), booking())
    assert response.status_code == 403


# --- listing ---

@pytest.mark.asyncio
async def test_list_own_parcels(client, customer, other_customer, admin, headers_for, booking):
    await _book(client, headers_for(customer.email), booking())
    await _book(client, headers_for(customer.email), booking(sender_name="Second"))
    await _book(client, headers_for(other_customer.email), booking())

    mine = await client.get(f"/parcels?email={customer.email}", headers=headers_for(customer.email))
    assert mine.status_code == 200
    assert mine.json()["total"] == 2
    # Newest first
    assert mine.json()["parcels"][0]["sender_name"] == "Second"

    default = await client.get("/parcels", headers=headers_for(customer.email))
    assert default.json()["total"] == 2

    everyone = await client.get("/parcels", headers=headers_for(admin.email))
    assert everyone.json()["total"] == 3

    theirs = await client.get(f"/parcels?email={other_customer.email}", headers=headers_for(admin.email))
    assert theirs.json()["total"] == 1


@pytest.mark.asyncio
async def test_cannot_list_someone_elses_parcels(client, customer, other_customer, headers_for):
    response = await client.get(f"/parcels?email={other_customer.email}", headers=headers_for(customer.email))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_assigned_list_shows_only_open_parcels(client, context, customer, agent, headers_for, booking):
    first = (await _book(client, headers_for(customer.email), booking())).json()
    second = (await _book(client, headers_for(customer.email), booking())).json()
    agent_headers = headers_for(agent.email)

    await _claim(client, first["id"], agent.email, agent_headers)
    await _claim(client, second["id"], agent.email, agent_headers)
    await client.patch(f"/parcels/{first['id']}", json={"status": "Delivered"}, headers=agent_headers)

    response = await client.get(f"/parcels/assigned?email={agent.email}", headers=agent_headers)
    assert response.status_code == 200
    assert [p["id"] for p in response.json()["parcels"]] == [second["id"]]


@pytest.mark.asyncio
async def test_assigned_list_is_agent_only_and_self_only(client, customer, agent, second_agent, headers_for):
    response = await client.get("/parcels/assigned", headers=headers_for(customer.email))
    assert response.status_code == 403

    response = await client.get(f"/parcels/assigned?email={second_agent.email}", headers=headers_for(agent.email))
    assert response.status_code == 403


# --- lifecycle over HTTP ---

@pytest.mark.asyncio
async def test_delivery_frees_agent_emails_owner_and_broadcasts(
    client, context, customer, agent, headers_for, booking, viewer
):
    parcel = (await _book(client, headers_for(customer.email), booking())).json()
    agent_headers = headers_for(agent.email)

    claimed = await _claim(client, parcel["id"], agent.email, agent_headers)
    assert claimed.status_code == 200
    assert claimed.json()["status"] == "Assigned"
    assert claimed.json()["agent_name"] == "Agent One"
    await context.notifier.drain()
    assert await _availability(context, agent.email) == AgentAvailability.BUSY

    context.mailer.sent.clear()
    await context.hub.connect(viewer)

    response = await client.patch(f"/parcels/{parcel['id']}", json={"status": "Delivered"}, headers=agent_headers)
    await context.notifier.drain()

    assert response.status_code == 200
    assert response.json()["status"] == "Delivered"
    assert await _availability(context, agent.email) == AgentAvailability.AVAILABLE
    assert [mail["subject"] for mail in context.mailer.sent] == ["Parcel Status Update: Delivered"]
    assert context.mailer.sent[0]["to"] == customer.email
    assert viewer.messages == [{"event": "status-updated"}]


@pytest.mark.asyncio
async def test_update_after_delivery_is_rejected_and_record_unchanged(
    client, context, customer, agent, headers_for, booking
):
    parcel = (await _book(client, headers_for(customer.email), booking())).json()
    agent_headers = headers_for(agent.email)
    await _claim(client, parcel["id"], agent.email, agent_headers)
    await client.patch(f"/parcels/{parcel['id']}", json={"status": "Delivered"}, headers=agent_headers)

    before = (await client.get(f"/parcels/{parcel['id']}", headers=agent_headers)).json()

    response = await client.patch(f"/parcels/{parcel['id']}", json={"status": "Assigned"}, headers=agent_headers)
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_TRANSITION_001"

    after = (await client.get(f"/parcels/{parcel['id']}", headers=agent_headers)).json()
    assert after == before


@pytest.mark.asyncio
async def test_repeated_delivery_is_rejected(client, context, customer, agent, headers_for, booking):
    parcel = (await _book(client, headers_for(customer.email), booking())).json()
    agent_headers = headers_for(agent.email)
    await _claim(client, parcel["id"], agent.email, agent_headers)

    first = await client.patch(f"/parcels/{parcel['id']}", json={"status": "Delivered"}, headers=agent_headers)
    second = await client.patch(f"/parcels/{parcel['id']}", json={"status": "Delivered"}, headers=agent_headers)

    assert first.status_code == 200
    assert second.status_code == 400


@pytest.mark.asyncio
async def test_agent_cannot_touch_another_agents_parcel(
    client, customer, agent, second_agent, headers_for, booking
):
    parcel = (await _book(client, headers_for(customer.email), booking())).json()
    await _claim(client, parcel["id"], agent.email, headers_for(agent.email))

    response = await client.patch(
        f"/parcels/{parcel['id']}", json={"status": "Failed"}, headers=headers_for(second_agent.email)
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_agent_can_only_claim_for_themselves(client, customer, agent, second_agent, headers_for, booking):
    parcel = (await _book(client, headers_for(customer.email), booking())).json()

    response = await _claim(client, parcel["id"], second_agent.email, headers_for(agent.email))
    assert response.status_code == 403

    # Unassigned parcels cannot be progressed without claiming them
    response = await client.patch(
        f"/parcels/{parcel['id']}", json={"status": "Cancelled"}, headers=headers_for(agent.email)
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_customer_cannot_update_status(client, customer, headers_for, booking):
    parcel = (await _book(client, headers_for(customer.email), booking())).json()

    response = await client.patch(
        f"/parcels/{parcel['id']}", json={"status": "Delivered"}, headers=headers_for(customer.email)
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_update_unknown_parcel(client, agent, headers_for):
    response = await client.patch("/parcels/9999", json={"status": "Delivered"}, headers=headers_for(agent.email))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_rejects_unknown_status(client, customer, agent, headers_for, booking):
    parcel = (await _book(client, headers_for(customer.email), booking())).json()

    response = await client.patch(
        f"/parcels/{parcel['id']}", json={"status": "Lost"}, headers=headers_for(agent.email)
    )
    assert response.status_code == 422


# --- admin assignment and customer cancellation ---

@pytest.mark.asyncio
async def test_admin_assigns_parcel(client, context, customer, agent, admin, headers_for, booking):
    parcel = (await _book(client, headers_for(customer.email), booking())).json()

    response = await client.patch(
        f"/parcels/{parcel['id']}/assign",
        json={"agent_email": agent.email, "agent_phone": "01711111111"},
        headers=headers_for(admin.email),
    )

    assert response.status_code == 200
    assert response.json()["status"] == "Assigned"
    assert response.json()["agent_phone"] == "01711111111"
    assert await _availability(context, agent.email) == AgentAvailability.BUSY


@pytest.mark.asyncio
async def test_assign_requires_admin(client, customer, agent, headers_for, booking):
    parcel = (await _book(client, headers_for(customer.email), booking())).json()

    response = await client.patch(
        f"/parcels/{parcel['id']}/assign", json={"agent_email": agent.email}, headers=headers_for(customer.email)
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_assign_to_unknown_agent(client, customer, admin, headers_for, booking):
    parcel = (await _book(client, headers_for(customer.email), booking())).json()

    response = await client.patch(
        f"/parcels/{parcel['id']}/assign", json={"agent_email": "ghost@test.com"}, headers=headers_for(admin.email)
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_owner_cancels_pending_parcel(client, customer, other_customer, headers_for, booking):
    parcel = (await _book(client, headers_for(customer.email), booking())).json()

    forbidden = await client.patch(f"/parcels/{parcel['id']}/cancel", headers=headers_for(other_customer.email))
    assert forbidden.status_code == 403

    response = await client.patch(f"/parcels/{parcel['id']}/cancel", headers=headers_for(customer.email))
    assert response.status_code == 200
    assert response.json()["status"] == "Cancelled"

    again = await client.patch(f"/parcels/{parcel['id']}/cancel", headers=headers_for(customer.email))
    assert again.status_code == 400


@pytest.mark.asyncio
async def test_cannot_cancel_assigned_parcel(client, customer, agent, headers_for, booking):
    parcel = (await _book(client, headers_for(customer.email), booking())).json()
    await _claim(client, parcel["id"], agent.email, headers_for(agent.email))

    response = await client.patch(f"/parcels/{parcel['id']}/cancel", headers=headers_for(customer.email))
    assert response.status_code == 400


# --- single record and history ---

@pytest.mark.asyncio
async def test_get_parcel_visibility(client, customer, other_customer, agent, admin, headers_for, booking):
    parcel = (await _book(client, headers_for(customer.email), booking())).json()
    url = f"/parcels/{parcel['id']}"

    assert (await client.get(url, headers=headers_for(customer.email))).status_code == 200
    assert (await client.get(url, headers=headers_for(admin.email))).status_code == 200
    assert (await client.get(url, headers=headers_for(other_customer.email))).status_code == 403
    assert (await client.get(url, headers=headers_for(agent.email))).status_code == 403

    await _claim(client, parcel["id"], agent.email, headers_for(agent.email))
    assert (await client.get(url, headers=headers_for(agent.email))).status_code == 200

    assert (await client.get("/parcels/9999", headers=headers_for(admin.email))).status_code == 404


@pytest.mark.asyncio
async def test_parcel_history(client, customer, agent, headers_for, booking):
    parcel = (await _book(client, headers_for(customer.email), booking())).json()
    agent_headers = headers_for(agent.email)
    await _claim(client, parcel["id"], agent.email, agent_headers)
    await client.patch(f"/parcels/{parcel['id']}", json={"status": "InTransit"}, headers=agent_headers)

    response = await client.get(f"/parcels/{parcel['id']}/history", headers=headers_for(customer.email))

    assert response.status_code == 200
    events = response.json()["events"]
    assert [event["action"] for event in events] == [
        "PARCEL_STATUS_CHANGED",
        "PARCEL_STATUS_CHANGED",
        "PARCEL_BOOKED",
    ]
    assert events[0]["metadata"]["new_status"] == "InTransit"
    assert events[0]["actor_email"] == agent.email
