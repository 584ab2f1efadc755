"""
Pydantic schemas for purchase requests.

This module defines the draft submitted by a requester, the stored request,
the denormalized view returned by the query layer, the filter it accepts and
the dashboard summary.
"""

from typing import Dict, Optional
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from procurement.models.purchase_request import RequestStatus
from procurement.schemas.budget import BudgetSummary
from procurement.schemas.user import UserSummary


class PurchaseRequestBase(BaseModel):
    """Base schema for purchase request data."""

    budget_id: UUID
    department_id: UUID
    amount: Decimal = Field(..., max_digits=15, decimal_places=2)
    description: Optional[str] = Field(None, max_length=255)
    justification: Optional[str] = None
    funding_source: Optional[str] = Field(None, max_length=100)


class PurchaseRequestCreate(PurchaseRequestBase):
    """Schema for submitting a new purchase request."""

    request_date: Optional[datetime] = None


class PurchaseRequest(PurchaseRequestBase):
    """Schema for purchase request response data."""

    id: UUID
    requester_id: UUID
    status: RequestStatus
    request_date: datetime
    version: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PurchaseRequestView(PurchaseRequest):
    """A purchase request joined with its requester, department and budget."""

    requester: UserSummary
    department_name: str
    budget: BudgetSummary


class RequestFilter(BaseModel):
    """
    Criteria for searching purchase requests.

    Every criterion that is set must match. The date bounds are inclusive
    calendar days on ``request_date``.
    """

    requester_id: Optional[UUID] = None
    department_id: Optional[UUID] = None
    department_name: Optional[str] = None
    status: Optional[RequestStatus] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    @model_validator(mode="after")
    def check_date_range(self):
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to")
        return self


class RequestSummary(BaseModel):
    """Aggregates shown on the dashboard."""

    total_requests: int
    counts_by_status: Dict[str, int]
    pending_count: int
    approved_amount: Decimal
    budget_total: Decimal
    budget_remaining: Decimal


class RequestDecision(BaseModel):
    """Optional note recorded with a rejection."""

    reason: Optional[str] = Field(None, max_length=500)
