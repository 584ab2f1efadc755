"""
Read access to the audit trail.
"""

from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from procurement.core.logging import logger
from procurement.db.store import LedgerStore
from procurement.models.audit import AuditLog
from procurement.utils.pagination import PaginatedResponse, PaginationParams, paginate_query


class AuditService:
    """Service class for audit log queries."""

    @staticmethod
    async def get_logs(
        db: AsyncSession,
        pagination: PaginationParams,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        user_id: Optional[UUID] = None,
        action: Optional[str] = None,
    ) -> PaginatedResponse:
        """
        Get audit log entries, newest first.

        Args:
            db: Database session
            pagination: Page and size
            resource_type: Filter by resource type (e.g. PURCHASE_REQUEST)
            resource_id: Filter by resource ID
            user_id: Filter by acting user
            action: Filter by action (e.g. APPROVE)
        """
        logger.debug(
            f"Getting audit logs: resource_type={resource_type}, resource_id={resource_id}, "
            f"user_id={user_id}, action={action}"
        )
        query = select(AuditLog)
        if resource_type:
            query = query.where(AuditLog.resource_type == resource_type.upper())
        if resource_id:
            query = query.where(AuditLog.resource_id == str(resource_id))
        if user_id:
            query = query.where(AuditLog.user_id == user_id)
        if action:
            query = query.where(AuditLog.action == action.upper())
        return await paginate_query(
            LedgerStore(db), query, pagination, model=AuditLog, default_order=[AuditLog.timestamp.desc()]
        )
