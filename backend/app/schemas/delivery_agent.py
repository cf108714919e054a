"""
Delivery agent application schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List


class AgentApplicationCreate(BaseModel):
    """Schema for applying as a delivery agent. The email comes from the caller's token."""
    name: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=3, max_length=50)
    region: Optional[str] = Field(None, max_length=255)
    vehicle_type: Optional[str] = Field(None, max_length=100)


class AgentApplicationResponse(BaseModel):
    id: int
    email: str
    name: str
    phone: str
    region: Optional[str]
    vehicle_type: Optional[str]
    applied_at: datetime

    class Config:
        from_attributes = True


class AgentApplicationSubmitted(BaseModel):
    message: str
    inserted_id: int


class AgentApplicationListResponse(BaseModel):
    applications: List[AgentApplicationResponse]
    total: int
