"""
User Pydantic schemas.

Defines request and response schemas for registration and role management.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional, List
from backend.app.models.enums import UserRole, AgentAvailability


class UserRegister(BaseModel):
    """
    Schema for user registration.

    Used by POST /users. Every new account starts as a customer.
    """
    email: EmailStr = Field(..., description="User email address")
    name: Optional[str] = Field(None, max_length=255, description="Display name")
    photo_url: Optional[str] = Field(None, max_length=1000, description="Profile photo URL")


class RoleUpdate(BaseModel):
    """
    Schema for admin role/availability edits.

    Used by PATCH /users/role/{email}. At least one field must be set.
    """
    role: Optional[UserRole] = None
    availability: Optional[AgentAvailability] = None


class UserResponse(BaseModel):
    id: int
    email: str
    name: Optional[str] = None
    photo_url: Optional[str] = None
    role: UserRole
    availability: Optional[AgentAvailability] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    users: List[UserResponse]
    total: int


class RoleResponse(BaseModel):
    role: UserRole
