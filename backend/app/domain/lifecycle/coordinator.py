"""
Lifecycle Coordinator (Domain Logic).

Sole writer of parcel status and agent availability. Validates every status
change against the transition table before writing, persists first, then runs
side effects (broadcast, availability flip, email) as best-effort steps that
can never roll back or block the committed write.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import (
    InvalidAddressError,
    InvalidTransitionError,
    ResourceNotFoundError,
    ValidationError,
)
from backend.app.domain.lifecycle.transitions import (
    COMPLETION_STATUSES,
    can_transition,
    is_terminal,
)
from backend.app.models.enums import AgentAvailability, UserRole
from backend.app.models.parcel import Parcel
from backend.app.models.user import User
from backend.app.models.parcel_enums import ParcelStatus
from backend.app.schemas.parcel import AgentReference, ParcelBooking, ParcelResponse, ParcelStatusUpdate
from backend.app.services.agent_directory import AgentDirectory
from backend.app.services.notification_service import NotificationDispatcher
from backend.app.services.parcel_store import ParcelStore

logger = logging.getLogger("parcel_delivery.lifecycle")


class LifecycleCoordinator:

    def __init__(self, db: AsyncSession, geocoder, notifier: NotificationDispatcher):
        self.db = db
        self.geocoder = geocoder
        self.notifier = notifier
        self.parcels = ParcelStore(db)
        self.agents = AgentDirectory(db)

    async def book(self, owner_email: str, booking: ParcelBooking) -> Parcel:
        """
        Book a parcel for `owner_email`.

        Flow:
        1. Resolve pickup and delivery addresses
        2. Reject with InvalidAddressError if either misses (nothing persisted)
        3. Persist the parcel in Pending
        4. Schedule the booking confirmation email

        Raises:
            InvalidAddressError: if either address cannot be geocoded
        """
        pickup = await self.geocoder.resolve(booking.pickup_address)
        delivery = await self.geocoder.resolve(booking.delivery_address)

        missing = []
        if pickup is None:
            missing.append("pickup_address")
        if delivery is None:
            missing.append("delivery_address")
        if missing:
            raise InvalidAddressError(missing)

        parcel = await self.parcels.create(
            owner_email=owner_email,
            sender_name=booking.sender_name,
            sender_phone=booking.sender_phone,
            receiver_name=booking.receiver_name,
            receiver_phone=booking.receiver_phone,
            pickup_address=booking.pickup_address,
            delivery_address=booking.delivery_address,
            pickup_lat=pickup.lat,
            pickup_lng=pickup.lng,
            delivery_lat=delivery.lat,
            delivery_lng=delivery.lng,
            parcel_size=booking.parcel_size,
            payment_type=booking.payment_type,
            status=ParcelStatus.PENDING,
        )
        logger.info("Parcel %s booked by %s", parcel.id, owner_email)

        self.notifier.notify_booked(ParcelResponse.model_validate(parcel))
        return parcel

    async def update_status(self, parcel_id: int, update: ParcelStatusUpdate) -> Parcel:
        """
        Apply a status and/or assignment change to a parcel.

        Every check runs before the write; a rejected update leaves the record
        untouched. After the write commits:
        1. A "status-updated" broadcast is scheduled
        2. On Assigned, the agent is marked busy
        3. On Delivered/Failed, the agent is released and the owner is emailed

        Raises:
            ResourceNotFoundError: unknown parcel or agent
            InvalidTransitionError: terminal parcel, self-transition or unlisted edge
            ValidationError: inconsistent assignment fields or empty update
        """
        parcel = await self.parcels.get(parcel_id)
        if parcel is None:
            raise ResourceNotFoundError("Parcel", parcel_id)

        current = parcel.status
        requested = update.status

        if is_terminal(current):
            raise InvalidTransitionError(current.value, requested.value if requested else None)

        if requested is not None and not can_transition(current, requested):
            raise InvalidTransitionError(current.value, requested.value)

        values: Dict[str, Any] = {}
        if requested is not None:
            values["status"] = requested

        agent_values = await self._assignment_values(parcel, requested, update.delivery_agent)
        values.update(agent_values)

        if not values:
            raise ValidationError("No changes supplied")

        updated = await self.parcels.apply_update(parcel_id, current, values)
        if updated is None:
            # Another request moved the parcel between our read and write
            latest = await self.parcels.get(parcel_id)
            if latest is None:
                raise ResourceNotFoundError("Parcel", parcel_id)
            raise InvalidTransitionError(latest.status.value, requested.value if requested else None)

        logger.info(
            "Parcel %s updated: %s -> %s",
            parcel_id, current.value, updated.status.value,
        )

        self.notifier.broadcast_changed()

        if requested == ParcelStatus.ASSIGNED:
            await self._mark_agent(updated.agent_email, AgentAvailability.BUSY)

        if requested in COMPLETION_STATUSES:
            await self._release_agent(updated.agent_email)
            self.notifier.notify_status_changed(ParcelResponse.model_validate(updated), requested)

        return updated

    async def assign(self, parcel_id: int, agent_email: str, agent_phone: Optional[str] = None) -> Parcel:
        """Assign a pending parcel to an agent (Pending → Assigned)."""
        return await self.update_status(
            parcel_id,
            ParcelStatusUpdate(
                status=ParcelStatus.ASSIGNED,
                delivery_agent=AgentReference(email=agent_email, phone=agent_phone),
            ),
        )

    async def cancel(self, parcel_id: int) -> Parcel:
        """Cancel an unassigned parcel (Pending → Cancelled)."""
        return await self.update_status(parcel_id, ParcelStatusUpdate(status=ParcelStatus.CANCELLED))

    async def change_role(
        self,
        user: User,
        role: Optional[UserRole] = None,
        availability: Optional[AgentAvailability] = None,
    ) -> User:
        """
        Change a user's role and/or an agent's availability (admin edit).

        Promoting to delivery agent starts the agent as available, or busy if
        they already hold open parcels. Demoting clears availability. An
        agent with open parcels can be neither demoted nor marked available.

        Raises:
            ValidationError: if the edit would break the availability invariant
        """
        if role is None and availability is None:
            raise ValidationError("Nothing to update: supply role and/or availability")

        new_role = role or user.role

        if new_role != UserRole.DELIVERY_AGENT:
            if availability is not None:
                raise ValidationError("Availability only applies to delivery agents")
            if user.role == UserRole.DELIVERY_AGENT:
                open_count = await self.agents.count_open_assignments(user.email)
                if open_count:
                    raise ValidationError(
                        "Agent still has open assignments",
                        details={"open_assignments": open_count},
                    )
            new_availability = None
        else:
            open_count = await self.agents.count_open_assignments(user.email)
            if availability == AgentAvailability.AVAILABLE and open_count:
                raise ValidationError(
                    "Agent still has open assignments",
                    details={"open_assignments": open_count},
                )
            if availability is not None:
                new_availability = availability
            elif user.availability is not None:
                new_availability = user.availability
            else:
                new_availability = AgentAvailability.BUSY if open_count else AgentAvailability.AVAILABLE

        user.role = new_role
        user.availability = new_availability
        await self.db.commit()
        await self.db.refresh(user)

        logger.info(
            "User %s is now %s (availability=%s)",
            user.email, new_role.value, new_availability.value if new_availability else None,
        )
        return user

    async def _assignment_values(
        self,
        parcel: Parcel,
        requested: Optional[ParcelStatus],
        reference: Optional[AgentReference],
    ) -> Dict[str, Any]:
        """Validate the agent reference against the parcel and build its column values."""
        if reference is None:
            if requested == ParcelStatus.ASSIGNED and parcel.agent_email is None:
                raise ValidationError("An agent reference is required to assign a parcel")
            return {}

        email = reference.email.lower()

        if parcel.agent_email is None:
            if requested != ParcelStatus.ASSIGNED:
                raise ValidationError(
                    "An agent can only be attached together with a transition to Assigned",
                    details={"current_status": parcel.status.value},
                )
        elif parcel.agent_email != email:
            raise ValidationError(
                "Parcel is already assigned to another agent",
                details={"agent_email": parcel.agent_email},
            )

        agent = await self.agents.find_agent(email)
        if agent is None:
            raise ResourceNotFoundError("Delivery agent", email)

        return {
            "agent_email": email,
            "agent_name": reference.name or agent.name or parcel.agent_name,
            "agent_phone": reference.phone or parcel.agent_phone,
        }

    async def _mark_agent(self, agent_email: Optional[str], availability: AgentAvailability) -> None:
        if not agent_email:
            return
        try:
            await self.agents.set_availability(agent_email, availability)
        except Exception:
            logger.exception("Could not mark agent %s as %s", agent_email, availability.value)
            await self.db.rollback()

    async def _release_agent(self, agent_email: Optional[str]) -> None:
        """Mark the agent available once they hold no other open assignment."""
        if not agent_email:
            return
        try:
            await self.agents.release_if_idle(agent_email)
        except Exception:
            logger.exception("Could not release agent %s", agent_email)
            await self.db.rollback()
