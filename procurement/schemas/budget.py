"""
Pydantic schemas for budgets.

Amounts are Decimals on input and serialize as strings, so no money value
ever passes through a float.
"""

from typing import Optional
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class BudgetBase(BaseModel):
    """Base schema for budget data."""

    department_id: UUID
    fiscal_year: int = Field(..., ge=1900, le=9999, description="Fiscal year, e.g. 2024")
    total_amount: Decimal = Field(..., max_digits=15, decimal_places=2)
    description: Optional[str] = Field(None, max_length=255)


class BudgetCreate(BudgetBase):
    """Schema for creating a new budget."""

    pass


class BudgetUpdate(BaseModel):
    """Schema for updating a budget."""

    total_amount: Optional[Decimal] = Field(None, max_digits=15, decimal_places=2)
    description: Optional[str] = Field(None, max_length=255)


class Budget(BudgetBase):
    """Schema for budget response data."""

    id: UUID
    spent_amount: Decimal
    remaining_amount: Decimal
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BudgetSummary(BaseModel):
    """Budget fields shown alongside a purchase request."""

    id: UUID
    fiscal_year: int
    total_amount: Decimal
    remaining_amount: Decimal

    class Config:
        from_attributes = True


class BudgetReservation(BaseModel):
    id: UUID
    budget_id: UUID
    request_id: UUID
    amount: Decimal
    status: str
    created_at: datetime
    settled_at: Optional[datetime] = None

    class Config:
        from_attributes = True
