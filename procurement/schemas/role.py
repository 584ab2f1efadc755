"""
Pydantic schemas for roles.
"""

from typing import Optional
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class RoleBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = None
    max_budget_limit: Decimal = Field(Decimal("0.00"), ge=0, max_digits=15, decimal_places=2)
    can_approve: bool = False


class RoleCreate(RoleBase):
    pass


class Role(RoleBase):
    """Schema for role response data."""

    id: UUID
    created_at: datetime

    class Config:
        from_attributes = True
