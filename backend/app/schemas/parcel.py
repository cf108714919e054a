"""
Parcel Pydantic schemas.

Defines request and response models for booking and lifecycle updates.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional, List
from backend.app.models.parcel_enums import ParcelStatus, ParcelSize, PaymentType


class ParcelBooking(BaseModel):
    """Schema for booking a new parcel."""
    sender_name: str = Field(..., min_length=1, max_length=255, description="Sender's name")
    sender_phone: Optional[str] = Field(None, max_length=50)
    receiver_name: Optional[str] = Field(None, max_length=255)
    receiver_phone: Optional[str] = Field(None, max_length=50)
    pickup_address: str = Field(..., min_length=1, max_length=500, description="Free-text pickup address")
    delivery_address: str = Field(..., min_length=1, max_length=500, description="Free-text delivery address")
    parcel_size: ParcelSize = Field(..., description="Parcel size category")
    payment_type: PaymentType = Field(..., description="Payment type")

    class Config:
        extra = "forbid"


class AgentReference(BaseModel):
    """Assigned-agent reference; name and phone default to the agent's profile."""
    email: EmailStr
    name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)


class ParcelStatusUpdate(BaseModel):
    """Schema for agent-driven status and assignment updates."""
    status: Optional[ParcelStatus] = None
    delivery_agent: Optional[AgentReference] = None

    class Config:
        extra = "forbid"


class ParcelAssign(BaseModel):
    """Schema for admin assignment of a pending parcel."""
    agent_email: EmailStr
    agent_phone: Optional[str] = Field(None, max_length=50)


class Coordinates(BaseModel):
    lat: float
    lng: float


class ParcelResponse(BaseModel):
    """Schema for parcel response."""
    id: int
    owner_email: str
    sender_name: str
    sender_phone: Optional[str]
    receiver_name: Optional[str]
    receiver_phone: Optional[str]
    pickup_address: str
    delivery_address: str
    pickup_lat: float
    pickup_lng: float
    delivery_lat: float
    delivery_lng: float
    parcel_size: ParcelSize
    payment_type: PaymentType
    agent_email: Optional[str]
    agent_name: Optional[str]
    agent_phone: Optional[str]
    status: ParcelStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ParcelListResponse(BaseModel):
    """Schema for parcel list."""
    parcels: List[ParcelResponse]
    total: int
