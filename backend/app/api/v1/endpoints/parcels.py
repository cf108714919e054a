"""
Parcel API Endpoints.

Customers book and cancel parcels, delivery agents claim and progress them,
admins assign them. Every status change goes through the lifecycle
coordinator.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.schemas.parcel import (
    ParcelBooking, ParcelStatusUpdate, ParcelAssign,
    ParcelResponse, ParcelListResponse
)
from backend.app.core.dependencies import get_current_user, get_coordinator
from backend.app.core.exceptions import ResourceNotFoundError
from backend.app.core.guards import (
    ParcelAccessGuard, require_admin, require_customer, require_delivery_agent,
    enforce_self, is_admin
)
from backend.app.domain.lifecycle.coordinator import LifecycleCoordinator
from backend.app.services.audit import log_event, get_audit_trail, AuditAction

router = APIRouter(prefix="/parcels", tags=["Parcels"])
parcel_guard = ParcelAccessGuard()


async def _load_parcel(coordinator: LifecycleCoordinator, parcel_id: int):
    parcel = await coordinator.parcels.get(parcel_id)
    if not parcel:
        raise ResourceNotFoundError("Parcel", parcel_id)
    return parcel


@router.post("", response_model=ParcelResponse, status_code=status.HTTP_201_CREATED)
async def book_parcel(
    booking: ParcelBooking,
    current_user: dict = Depends(require_customer),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
    db: AsyncSession = Depends(get_db)
):
    """
    Book a parcel (customer only).

    Both addresses are geocoded first; if either cannot be resolved the
    booking is rejected with 400 and nothing is stored or sent.
    """
    parcel = await coordinator.book(current_user["email"], booking)
    response = ParcelResponse.model_validate(parcel)

    await log_event(
        db=db,
        action=AuditAction.PARCEL_BOOKED,
        actor_email=current_user["email"],
        target=f"parcel:{parcel.id}",
        metadata={
            "pickup_address": parcel.pickup_address,
            "delivery_address": parcel.delivery_address,
        }
    )

    return response


@router.get("", response_model=ParcelListResponse)
async def list_parcels(
    email: Optional[str] = Query(None, description="Owner email"),
    current_user: dict = Depends(get_current_user),
    coordinator: LifecycleCoordinator = Depends(get_coordinator)
):
    """
    List parcels by owner.

    Callers may list their own bookings; admins may list anyone's, or every
    parcel when no email is given.
    """
    if email is not None:
        if not is_admin(current_user):
            enforce_self(email, current_user)
        owner = email.lower()
    elif is_admin(current_user):
        owner = None
    else:
        owner = current_user["email"]

    parcels = await coordinator.parcels.list_by_owner(owner)

    return ParcelListResponse(
        parcels=[ParcelResponse.model_validate(p) for p in parcels],
        total=len(parcels)
    )


@router.get("/assigned", response_model=ParcelListResponse)
async def list_assigned_parcels(
    email: Optional[str] = Query(None, description="Agent email (defaults to caller)"),
    current_user: dict = Depends(require_delivery_agent),
    coordinator: LifecycleCoordinator = Depends(get_coordinator)
):
    """List the calling agent's open (non-terminal) assignments."""
    if email is not None:
        enforce_self(email, current_user)

    parcels = await coordinator.parcels.list_open_for_agent(current_user["email"])

    return ParcelListResponse(
        parcels=[ParcelResponse.model_validate(p) for p in parcels],
        total=len(parcels)
    )


@router.get("/{parcel_id}", response_model=ParcelResponse)
async def get_parcel(
    parcel_id: int = Path(..., description="Parcel ID"),
    current_user: dict = Depends(get_current_user),
    coordinator: LifecycleCoordinator = Depends(get_coordinator)
):
    """Get a single parcel (owner, assigned agent or admin)."""
    parcel = await _load_parcel(coordinator, parcel_id)
    parcel_guard.enforce_viewer(parcel, current_user)

    return ParcelResponse.model_validate(parcel)


@router.get("/{parcel_id}/history")
async def get_parcel_history(
    parcel_id: int = Path(..., description="Parcel ID"),
    current_user: dict = Depends(get_current_user),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
    db: AsyncSession = Depends(get_db)
):
    """Lifecycle events recorded for a parcel, most recent first."""
    parcel = await _load_parcel(coordinator, parcel_id)
    parcel_guard.enforce_viewer(parcel, current_user)

    entries = await get_audit_trail(db, target=f"parcel:{parcel_id}")

    return {
        "parcel_id": parcel_id,
        "events": [
            {
                "action": entry.action,
                "actor_email": entry.actor_email,
                "metadata": entry.meta_data,
                "timestamp": entry.timestamp,
            }
            for entry in entries
        ],
    }


@router.patch("/{parcel_id}", response_model=ParcelResponse)
async def update_parcel_status(
    parcel_id: int = Path(..., description="Parcel ID"),
    update: ParcelStatusUpdate = ...,
    current_user: dict = Depends(require_delivery_agent),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
    db: AsyncSession = Depends(get_db)
):
    """
    Update a parcel's status and/or assignment (delivery agent only).

    Agents claim an unassigned parcel for themselves with
    `{"status": "Assigned", "delivery_agent": {"email": <own email>}}` and
    then move their own parcels along the lifecycle. Reaching Delivered or
    Failed frees the agent and emails the owner.
    """
    parcel = await _load_parcel(coordinator, parcel_id)
    claimed = update.delivery_agent.email if update.delivery_agent else None
    parcel_guard.enforce_agent(parcel, current_user, claimed_email=claimed)

    previous_status = parcel.status
    updated = await coordinator.update_status(parcel_id, update)
    response = ParcelResponse.model_validate(updated)

    await log_event(
        db=db,
        action=AuditAction.PARCEL_STATUS_CHANGED,
        actor_email=current_user["email"],
        target=f"parcel:{parcel_id}",
        metadata={
            "previous_status": previous_status.value,
            "new_status": updated.status.value,
            "agent_email": updated.agent_email,
        }
    )

    return response


@router.patch("/{parcel_id}/assign", response_model=ParcelResponse)
async def assign_parcel(
    parcel_id: int = Path(..., description="Parcel ID"),
    assignment: ParcelAssign = ...,
    admin: dict = Depends(require_admin),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
    db: AsyncSession = Depends(get_db)
):
    """Assign a pending parcel to a delivery agent (admin only)."""
    updated = await coordinator.assign(parcel_id, assignment.agent_email, assignment.agent_phone)
    response = ParcelResponse.model_validate(updated)

    await log_event(
        db=db,
        action=AuditAction.PARCEL_STATUS_CHANGED,
        actor_email=admin["email"],
        target=f"parcel:{parcel_id}",
        metadata={
            "previous_status": "Pending",
            "new_status": updated.status.value,
            "agent_email": updated.agent_email,
        }
    )

    return response


@router.patch("/{parcel_id}/cancel", response_model=ParcelResponse)
async def cancel_parcel(
    parcel_id: int = Path(..., description="Parcel ID"),
    current_user: dict = Depends(require_customer),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
    db: AsyncSession = Depends(get_db)
):
    """
    Cancel a parcel (customer only, own parcels).

    Only parcels that have not been assigned yet can be cancelled.
    """
    parcel = await _load_parcel(coordinator, parcel_id)
    parcel_guard.enforce_owner(parcel, current_user)

    previous_status = parcel.status
    updated = await coordinator.cancel(parcel_id)
    response = ParcelResponse.model_validate(updated)

    await log_event(
        db=db,
        action=AuditAction.PARCEL_CANCELLED,
        actor_email=current_user["email"],
        target=f"parcel:{parcel_id}",
        metadata={"previous_status": previous_status.value}
    )

    return response
