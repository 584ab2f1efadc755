"""
Purchase request model.

Rows are written only by the RequestLifecycleEngine. Every status change is a
compare-and-swap on (id, status) that bumps ``version``.
"""

import uuid
from enum import Enum as PyEnum

from sqlalchemy import (
    Column, Integer, String, DateTime, Numeric, ForeignKey, Enum, Text,
    CheckConstraint, Uuid,
)

from procurement.models.base import Base
from procurement.utils.dates import utcnow


class RequestStatus(str, PyEnum):
    """Enumeration of purchase request statuses."""

    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class PurchaseRequest(Base):
    """A department's request to spend money from one of its budgets."""

    __tablename__ = "purchase_requests"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_request_amount_positive"),
    )

    id = Column(Uuid, primary_key=True, nullable=False, default=uuid.uuid4)
    requester_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    budget_id = Column(Uuid, ForeignKey("budgets.id"), nullable=False, index=True)
    department_id = Column(Uuid, ForeignKey("departments.id"), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    status = Column(
        Enum(RequestStatus, values_callable=lambda e: [m.value for m in e],
             native_enum=False, length=20, name="request_status"),
        nullable=False,
        default=RequestStatus.PENDING,
        index=True,
    )
    description = Column(String(255), nullable=True)
    justification = Column(Text, nullable=True)
    funding_source = Column(String(100), nullable=True)
    request_date = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    def __repr__(self) -> str:
        return (
            f"<PurchaseRequest(id={self.id}, "
            f"budget_id={self.budget_id}, "
            f"amount={self.amount}, "
            f"status='{self.status.value if self.status else 'N/A'}')>"
        )
