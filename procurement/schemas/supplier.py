"""
Pydantic schemas for suppliers.
"""

from typing import Any, Dict, Optional
from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from procurement.models.supplier import SupplierStatus


class SupplierBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    contact_info: Optional[Dict[str, Any]] = None
    certifications: Optional[str] = None
    contract_terms: Optional[str] = None
    onboarding_date: Optional[date] = None


class SupplierCreate(SupplierBase):
    status: SupplierStatus = SupplierStatus.PENDING


class SupplierStatusUpdate(BaseModel):
    status: SupplierStatus


class Supplier(SupplierBase):
    """Schema for supplier response data."""

    id: UUID
    status: SupplierStatus
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
