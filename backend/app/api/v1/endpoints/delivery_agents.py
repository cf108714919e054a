"""
Delivery Agent Application Endpoints.

Self-service application (one per email) and admin review.
"""

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from backend.app.db.session import get_db
from backend.app.models.delivery_agent_application import DeliveryAgentApplication
from backend.app.schemas.delivery_agent import (
    AgentApplicationCreate, AgentApplicationResponse,
    AgentApplicationSubmitted, AgentApplicationListResponse
)
from backend.app.core.dependencies import get_identity
from backend.app.core.exceptions import ResourceNotFoundError, ValidationError
from backend.app.core.guards import require_admin
from backend.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/deliveryAgents", tags=["Delivery Agents"])


async def _get_application_by_email(db: AsyncSession, email: str):
    result = await db.execute(
        select(DeliveryAgentApplication).where(DeliveryAgentApplication.email == email)
    )
    return result.scalar_one_or_none()


@router.post("", response_model=AgentApplicationSubmitted, status_code=status.HTTP_201_CREATED)
async def apply_as_delivery_agent(
    application: AgentApplicationCreate,
    identity: dict = Depends(get_identity),
    db: AsyncSession = Depends(get_db)
):
    """
    Apply to become a delivery agent.

    The applicant is the token's identity. Returns 400 if this email has
    already applied.
    """
    email = identity["email"]

    if await _get_application_by_email(db, email):
        raise ValidationError("You have already applied.")

    new_application = DeliveryAgentApplication(
        email=email,
        name=application.name,
        phone=application.phone,
        region=application.region,
        vehicle_type=application.vehicle_type,
    )
    db.add(new_application)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ValidationError("You have already applied.")
    await db.refresh(new_application)

    await log_event(
        db=db,
        action=AuditAction.AGENT_APPLIED,
        actor_email=email,
        target=f"application:{new_application.id}",
    )

    return AgentApplicationSubmitted(
        message="Application submitted successfully.",
        inserted_id=new_application.id
    )


@router.get("", response_model=AgentApplicationListResponse)
async def list_applications(
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """List pending delivery agent applications (admin-only)."""
    result = await db.execute(
        select(DeliveryAgentApplication).order_by(DeliveryAgentApplication.applied_at.asc(), DeliveryAgentApplication.id.asc())
    )
    applications = result.scalars().all()

    return AgentApplicationListResponse(
        applications=[AgentApplicationResponse.model_validate(a) for a in applications],
        total=len(applications)
    )


@router.delete("/{application_id}")
async def delete_application(
    application_id: int = Path(..., description="Application ID"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete an application (admin-only).

    Used both to reject an applicant and to clear an approved application
    after the user's role has been changed.
    """
    application = await db.get(DeliveryAgentApplication, application_id)
    if not application:
        raise ResourceNotFoundError("Application", application_id)

    email = application.email
    await db.delete(application)
    await db.commit()

    await log_event(
        db=db,
        action=AuditAction.AGENT_APPLICATION_DELETED,
        actor_email=admin["email"],
        target=f"application:{application_id}",
        metadata={"email": email}
    )

    return {"deleted": True, "id": application_id}
