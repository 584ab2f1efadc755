"""
Supplier model. Read-mostly reference data listed to requesters.
"""

import uuid
from enum import Enum as PyEnum

from sqlalchemy import Column, String, Date, DateTime, Enum, JSON, Text, Uuid

from procurement.models.base import Base
from procurement.utils.dates import utcnow


class SupplierStatus(str, PyEnum):
    PENDING = "Pending"
    APPROVED = "Approved"
    INACTIVE = "Inactive"
    SUSPENDED = "Suspended"


class Supplier(Base):
    __tablename__ = "suppliers"

    id = Column(Uuid, primary_key=True, nullable=False, default=uuid.uuid4)
    name = Column(String(150), nullable=False, unique=True, index=True)
    contact_info = Column(JSON, nullable=True)
    certifications = Column(Text, nullable=True)
    contract_terms = Column(Text, nullable=True)
    onboarding_date = Column(Date, nullable=True)
    status = Column(
        Enum(SupplierStatus, values_callable=lambda e: [m.value for m in e],
             native_enum=False, length=20, name="supplier_status"),
        nullable=False,
        default=SupplierStatus.PENDING,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Supplier(id={self.id}, name='{self.name}', status='{self.status}')>"
