"""
Audit logging service for tracking account changes and parcel lifecycle events.

Provides centralized logging for compliance and dispute resolution.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from backend.app.models.audit_log import AuditLog


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    USER_CREATED = "USER_CREATED"
    ROLE_CHANGED = "ROLE_CHANGED"

    # Delivery agent applications
    AGENT_APPLIED = "AGENT_APPLIED"
    AGENT_APPLICATION_DELETED = "AGENT_APPLICATION_DELETED"

    # Parcel lifecycle
    PARCEL_BOOKED = "PARCEL_BOOKED"
    PARCEL_STATUS_CHANGED = "PARCEL_STATUS_CHANGED"
    PARCEL_CANCELLED = "PARCEL_CANCELLED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_email: Optional[str] = None,
    target: Optional[Any] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Log an account or lifecycle event to the audit log.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_email: Email of the user performing the action
        target: Identifier of what was acted upon (email, parcel id, ...)
        metadata: Additional context as JSON

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_email=actor_email,
        action=action,
        target=str(target) if target is not None else None,
        meta_data=metadata,
    )

    db.add(audit_log)
    await db.commit()
    await db.refresh(audit_log)

    return audit_log


async def get_audit_trail(
    db: AsyncSession,
    target: Optional[Any] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering, most recent first.
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if target is not None:
        query = query.where(AuditLog.target == str(target))

    if action:
        query = query.where(AuditLog.action == action)

    query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())
