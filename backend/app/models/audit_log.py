"""
Audit Log Database Model.

Tracks account changes and parcel lifecycle events.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from backend.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model for tracking account and lifecycle events.

    Events logged:
    - USER_CREATED / ROLE_CHANGED
    - AGENT_APPLIED / AGENT_APPLICATION_DELETED
    - PARCEL_BOOKED / PARCEL_STATUS_CHANGED / PARCEL_CANCELLED
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (None for system actions)
    actor_email = Column(String(255), index=True, nullable=True)

    # What action was performed
    action = Column(String(100), nullable=False, index=True)

    # What was acted upon (user email, parcel id, application id)
    target = Column(String(255), index=True, nullable=True)

    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)

    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', actor={self.actor_email}, target={self.target})>"
