"""
Services package initialization.

This module imports all services to make them available from a single import point.
"""

from procurement.services.budget_guard import BudgetGuard
from procurement.services.lifecycle import RequestLifecycleEngine
from procurement.services.invitation import InvitationService
from procurement.services.query import RequestQuery
from procurement.services.department import DepartmentService
from procurement.services.budget import BudgetService
from procurement.services.user import UserService
from procurement.services.role import RoleService
from procurement.services.supplier import SupplierService
from procurement.services.audit import AuditService

__all__ = [
    "BudgetGuard",
    "RequestLifecycleEngine",
    "InvitationService",
    "RequestQuery",
    "DepartmentService",
    "BudgetService",
    "UserService",
    "RoleService",
    "SupplierService",
    "AuditService",
]
