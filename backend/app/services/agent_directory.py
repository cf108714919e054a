"""
Agent directory.

Looks up delivery agents and flips their availability flag. Writes are
idempotent conditional updates; a missing agent is logged, never raised.
"""

import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.enums import AgentAvailability, UserRole
from backend.app.models.parcel import Parcel
from backend.app.models.user import User
from backend.app.services.parcel_store import ParcelStore

logger = logging.getLogger("parcel_delivery.agents")


class AgentDirectory:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_agent(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(
                User.email == email.lower(),
                User.role == UserRole.DELIVERY_AGENT,
            )
        )
        return result.scalar_one_or_none()

    async def set_availability(self, email: str, availability: AgentAvailability) -> bool:
        """
        Set the agent's availability flag and commit.

        Returns:
            True if an agent row matched, False if no such agent exists
        """
        result = await self.db.execute(
            update(User)
            .where(User.email == email.lower(), User.role == UserRole.DELIVERY_AGENT)
            .values(availability=availability)
        )
        await self.db.commit()

        if result.rowcount == 0:
            logger.warning("Cannot set availability=%s: no delivery agent %s", availability.value, email)
            return False

        logger.info("Agent %s is now %s", email, availability.value)
        return True

    async def release_if_idle(self, email: str) -> bool:
        """
        Mark the agent available only if it holds no open assignment.

        The open-assignment check and the write are one conditional UPDATE,
        so an assignment committed concurrently keeps the agent busy.

        Returns:
            True if the agent was marked available
        """
        email = email.lower()
        open_parcel = select(Parcel.id).where(*ParcelStore.open_for_agent(email)).exists()

        result = await self.db.execute(
            update(User)
            .where(
                User.email == email,
                User.role == UserRole.DELIVERY_AGENT,
                ~open_parcel,
            )
            .values(availability=AgentAvailability.AVAILABLE)
        )
        await self.db.commit()

        if result.rowcount == 0:
            logger.info("Agent %s not released (open assignments remain or no such agent)", email)
            return False

        logger.info("Agent %s is now %s", email, AgentAvailability.AVAILABLE.value)
        return True

    async def count_open_assignments(self, email: str) -> int:
        return await ParcelStore(self.db).count_open_for_agent(email.lower())
