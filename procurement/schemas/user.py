"""
Pydantic schemas for users.

This module defines the request and response schemas for user-related
API endpoints. Responses never include the password hash.
"""

from typing import List, Optional
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from procurement.schemas.role import Role


class UserBase(BaseModel):
    """Base schema for user data."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr = Field(..., description="Valid email address")
    department_id: Optional[UUID] = None


class UserCreate(UserBase):
    """Schema for creating a user directly, without an invitation."""

    password: str = Field(..., description="Password must be at least 8 characters")
    role_ids: List[UUID] = Field(default_factory=list)


class UserRolesUpdate(BaseModel):
    role_ids: List[UUID]


class User(UserBase):
    """Schema for user response data."""

    id: UUID
    is_active: bool
    roles: List[Role] = []
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserSummary(BaseModel):
    """Requester fields shown alongside a purchase request."""

    id: UUID
    first_name: str
    last_name: str
    email: str

    class Config:
        from_attributes = True
