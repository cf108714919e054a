"""
User database model.

Accounts are created on first registration; the identity provider owns credentials.
"""

from sqlalchemy import Column, Integer, String, DateTime, Enum
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.enums import UserRole, AgentAvailability


class User(Base):
    """
    User model for customers, delivery agents and admins.

    `availability` is only meaningful for DELIVERY_AGENT users and is
    written exclusively through the agent directory.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=True)
    photo_url = Column(String(1000), nullable=True)

    role = Column(Enum(UserRole), default=UserRole.CUSTOMER, nullable=False, index=True)
    availability = Column(Enum(AgentAvailability), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role.value}')>"
