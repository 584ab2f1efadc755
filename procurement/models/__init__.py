"""
Models package initialization.

This module imports all models to ensure they are registered with SQLAlchemy.
"""

from procurement.models.base import Base

from procurement.models.department import Department
from procurement.models.budget import Budget, BudgetReservation, ReservationStatus
from procurement.models.user import User, Role, UserRole
from procurement.models.supplier import Supplier, SupplierStatus
from procurement.models.purchase_request import PurchaseRequest, RequestStatus
from procurement.models.invitation import Invitation, InvitationStatus
from procurement.models.audit import AuditLog


__all__ = [
    "Base",
    "Department",
    "Budget",
    "BudgetReservation",
    "ReservationStatus",
    "User",
    "Role",
    "UserRole",
    "Supplier",
    "SupplierStatus",
    "PurchaseRequest",
    "RequestStatus",
    "Invitation",
    "InvitationStatus",
    "AuditLog",
]
