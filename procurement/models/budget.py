"""
Budget and reservation models for the procurement system.

A budget is the allocation for one department in one fiscal year. Its
``remaining_amount`` is written only by the BudgetGuard; every approved
request holds a BudgetReservation against it until the request completes
(commit) or is cancelled (release).
"""

import uuid
from decimal import Decimal
from enum import Enum as PyEnum

from sqlalchemy import (
    Column, Integer, String, DateTime, Numeric, ForeignKey, Enum,
    CheckConstraint, UniqueConstraint, Uuid,
)

from procurement.models.base import Base
from procurement.utils.dates import utcnow


class Budget(Base):
    """
    Budget model representing the allocated funds for a department.

    Invariant: 0 <= remaining_amount <= total_amount, enforced in the database
    as well as by the guard.
    """

    __tablename__ = "budgets"
    __table_args__ = (
        UniqueConstraint("department_id", "fiscal_year", name="uq_budget_department_year"),
        CheckConstraint("remaining_amount >= 0", name="ck_budget_remaining_non_negative"),
        CheckConstraint("remaining_amount <= total_amount", name="ck_budget_remaining_within_total"),
        CheckConstraint("total_amount >= 0", name="ck_budget_total_non_negative"),
    )

    id = Column(Uuid, primary_key=True, nullable=False, default=uuid.uuid4)
    department_id = Column(Uuid, ForeignKey("departments.id"), nullable=False, index=True)
    fiscal_year = Column(Integer, nullable=False)
    total_amount = Column(Numeric(15, 2), nullable=False)
    remaining_amount = Column(Numeric(15, 2), nullable=False)
    spent_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    description = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    def __repr__(self) -> str:
        """String representation of the Budget model."""
        return (
            f"<Budget(id={self.id}, "
            f"department_id={self.department_id}, "
            f"fiscal_year={self.fiscal_year}, "
            f"remaining_amount={self.remaining_amount})>"
        )


class ReservationStatus(str, PyEnum):
    """Lifecycle of a budget reservation."""

    ACTIVE = "Active"
    RELEASED = "Released"
    COMMITTED = "Committed"


class BudgetReservation(Base):
    """Funds deducted from a budget for one approved purchase request."""

    __tablename__ = "budget_reservations"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_reservation_amount_positive"),
    )

    id = Column(Uuid, primary_key=True, nullable=False, default=uuid.uuid4)
    budget_id = Column(Uuid, ForeignKey("budgets.id"), nullable=False, index=True)
    request_id = Column(Uuid, ForeignKey("purchase_requests.id"), nullable=False, unique=True)
    amount = Column(Numeric(15, 2), nullable=False)
    status = Column(
        Enum(ReservationStatus, values_callable=lambda e: [m.value for m in e],
             native_enum=False, length=20, name="reservation_status"),
        nullable=False,
        default=ReservationStatus.ACTIVE,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    settled_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<BudgetReservation(id={self.id}, budget_id={self.budget_id}, "
            f"request_id={self.request_id}, amount={self.amount}, status='{self.status}')>"
        )
