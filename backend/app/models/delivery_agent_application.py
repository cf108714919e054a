"""
Delivery agent application model.

One application per email; an admin approves it by promoting the user's role.
"""

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from backend.app.db.session import Base


class DeliveryAgentApplication(Base):
    __tablename__ = "delivery_agent_applications"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False)
    region = Column(String(255), nullable=True)
    vehicle_type = Column(String(100), nullable=True)

    applied_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<DeliveryAgentApplication(id={self.id}, email='{self.email}')>"
