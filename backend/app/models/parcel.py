"""
Parcel database model.

Customers book parcels; delivery agents carry them through the lifecycle.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Enum
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.parcel_enums import ParcelStatus, ParcelSize, PaymentType


class Parcel(Base):
    """
    Parcel model for the delivery platform.

    Coordinates are resolved before the row is inserted, so they are never null.
    The agent columns are a denormalized copy of the assigned agent's contact
    details and stay null until the parcel is assigned.
    """
    __tablename__ = "parcels"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Ownership
    owner_email = Column(String(255), nullable=False, index=True)

    # Contacts
    sender_name = Column(String(255), nullable=False)
    sender_phone = Column(String(50), nullable=True)
    receiver_name = Column(String(255), nullable=True)
    receiver_phone = Column(String(50), nullable=True)

    # Addresses
    pickup_address = Column(String(500), nullable=False)
    delivery_address = Column(String(500), nullable=False)
    pickup_lat = Column(Float, nullable=False)
    pickup_lng = Column(Float, nullable=False)
    delivery_lat = Column(Float, nullable=False)
    delivery_lng = Column(Float, nullable=False)

    # Details
    parcel_size = Column(Enum(ParcelSize), nullable=False)
    payment_type = Column(Enum(PaymentType), nullable=False)

    # Assignment
    agent_email = Column(String(255), nullable=True, index=True)
    agent_name = Column(String(255), nullable=True)
    agent_phone = Column(String(50), nullable=True)

    # Status
    status = Column(Enum(ParcelStatus), default=ParcelStatus.PENDING, nullable=False, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Parcel(id={self.id}, owner='{self.owner_email}', status='{self.status.value}')>"
