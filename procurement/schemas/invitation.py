"""
Pydantic schemas for invitations.

Only the response to ``issue`` carries the token; every other representation
leaves it out.
"""

from typing import List, Optional
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from procurement.models.invitation import InvitationStatus


class InvitationCreate(BaseModel):
    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    department_id: UUID
    role_ids: List[UUID] = Field(default_factory=list)


class InvitationRedeem(BaseModel):
    """Credential chosen by the invitee."""

    password: str


class Invitation(BaseModel):
    """Schema for invitation response data."""

    id: UUID
    email: str
    first_name: str
    last_name: str
    department_id: UUID
    role_ids: List[UUID]
    invited_by: UUID
    status: InvitationStatus
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class IssuedInvitation(Invitation):
    token: str


class ExpiredInvitations(BaseModel):
    expired: int
