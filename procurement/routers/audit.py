"""
Audit log endpoints.
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from procurement.core.deps import get_actor, get_pagination_params
from procurement.core.logging import logger
from procurement.db.session import get_db
from procurement.models.user import User
from procurement.schemas.audit import AuditLogResponse
from procurement.services.audit import AuditService
from procurement.utils.pagination import PaginatedResponse, PaginationParams

router = APIRouter()


@router.get("/", response_model=PaginatedResponse[AuditLogResponse])
async def get_audit_logs(
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_actor),
    pagination: PaginationParams = Depends(get_pagination_params),
    action: Optional[str] = Query(None, description="Filter by action type (CREATE, APPROVE, RESERVE, etc.)"),
    resource_type: Optional[str] = Query(None, description="Filter by resource type"),
    resource_id: Optional[str] = Query(None, description="Filter by resource ID"),
    user_id: Optional[UUID] = Query(None, description="Filter by acting user ID"),
):
    """
    Retrieve audit logs with filtering and pagination, newest first.
    """
    logger.info(
        f"User {actor.id} requesting audit logs | "
        f"Filters: action={action}, resource_type={resource_type}, "
        f"resource_id={resource_id}, user_id={user_id}"
    )
    return await AuditService.get_logs(
        db,
        pagination,
        resource_type=resource_type,
        resource_id=resource_id,
        user_id=user_id,
        action=action,
    )
