"""
Admin seeding tests.
"""

import pytest

from backend.app.core.exceptions import ValidationError
from backend.app.models.enums import UserRole
from backend.app.models.parcel_enums import ParcelStatus
from backend.app.schemas.parcel import AgentReference, ParcelStatusUpdate
from backend.seed_users import promote_to_admin


@pytest.mark.asyncio
async def test_creates_missing_admin(db_session):
    assert await promote_to_admin(db_session, "Boss@Test.com", "Boss") == "created"
    assert await promote_to_admin(db_session, "boss@test.com") == "exists"


@pytest.mark.asyncio
async def test_promotes_idle_agent(db_session, agent):
    assert await promote_to_admin(db_session, agent.email) == "promoted"

    await db_session.refresh(agent)
    assert agent.role == UserRole.ADMIN
    assert agent.availability is None


@pytest.mark.asyncio
async def test_refuses_agent_with_open_parcels(db_session, coordinator, pending_parcel, agent):
    await coordinator.update_status(
        pending_parcel.id,
        ParcelStatusUpdate(status=ParcelStatus.ASSIGNED, delivery_agent=AgentReference(email=agent.email)),
    )

    with pytest.raises(ValidationError):
        await promote_to_admin(db_session, agent.email)

    await db_session.refresh(agent)
    assert agent.role == UserRole.DELIVERY_AGENT
