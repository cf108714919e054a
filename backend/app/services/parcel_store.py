"""
Parcel record store.

Create/read/update access to parcel rows. Updates are single-row
compare-and-set writes keyed on the status the caller validated against.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.domain.lifecycle.transitions import TERMINAL_STATUSES
from backend.app.models.parcel import Parcel
from backend.app.models.parcel_enums import ParcelStatus


class ParcelStore:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, **fields: Any) -> Parcel:
        """Insert a new parcel; the identifier is generated by the database."""
        parcel = Parcel(**fields)
        self.db.add(parcel)
        await self.db.commit()
        await self.db.refresh(parcel)
        return parcel

    async def get(self, parcel_id: int) -> Optional[Parcel]:
        result = await self.db.execute(
            select(Parcel)
            .where(Parcel.id == parcel_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_by_owner(self, owner_email: Optional[str] = None) -> List[Parcel]:
        """List parcels, newest first. `None` lists every parcel."""
        query = select(Parcel)
        if owner_email is not None:
            query = query.where(Parcel.owner_email == owner_email)
        query = query.order_by(Parcel.created_at.desc(), Parcel.id.desc())

        result = await self.db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    def open_for_agent(agent_email: str):
        """Filter clauses matching `agent_email`'s non-terminal parcels."""
        return (
            Parcel.agent_email == agent_email,
            Parcel.status.notin_(TERMINAL_STATUSES),
        )

    async def list_open_for_agent(self, agent_email: str) -> List[Parcel]:
        """Parcels assigned to `agent_email` that are not in a terminal status."""
        result = await self.db.execute(
            select(Parcel)
            .where(*self.open_for_agent(agent_email))
            .order_by(Parcel.created_at.desc(), Parcel.id.desc())
        )
        return list(result.scalars().all())

    async def count_open_for_agent(self, agent_email: str) -> int:
        result = await self.db.execute(
            select(func.count(Parcel.id)).where(*self.open_for_agent(agent_email))
        )
        return result.scalar()

    async def apply_update(
        self,
        parcel_id: int,
        expected_status: ParcelStatus,
        values: Dict[str, Any],
    ) -> Optional[Parcel]:
        """
        Write `values` only if the parcel is still in `expected_status`.

        Returns the refreshed parcel, or None if the row was missing or had
        already moved on (nothing is written in that case).
        """
        result = await self.db.execute(
            update(Parcel)
            .where(Parcel.id == parcel_id, Parcel.status == expected_status)
            .values(**values)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            return None

        await self.db.commit()
        return await self.get(parcel_id)
