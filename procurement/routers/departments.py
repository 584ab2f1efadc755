"""
Department API endpoints.
This module provides CRUD endpoints for departments.
"""
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from procurement.core.deps import get_actor, get_pagination_params, get_request_client
from procurement.core.logging import logger
from procurement.db.session import get_db
from procurement.models.user import User
from procurement.schemas.department import Department, DepartmentCreate, DepartmentUpdate
from procurement.services.department import DepartmentService
from procurement.utils.pagination import PaginatedResponse, PaginationParams

router = APIRouter()


@router.post("/", response_model=Department, status_code=status.HTTP_201_CREATED)
async def create_department(
    department_in: DepartmentCreate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_actor),
    client_info = Depends(get_request_client)
) -> Department:
    """
    Create a new department.

    Args:
        department_in: Department creation data
        db: Database session
        actor: Acting user
        client_info: Client IP and user agent

    Returns:
        Created department
    """
    logger.info(f"Department creation requested by: {actor.id}")
    return await DepartmentService.create(db, department_in, user_id=actor.id, client=client_info)


@router.get("/", response_model=PaginatedResponse[Department])
async def list_departments(
    db: AsyncSession = Depends(get_db),
    pagination: PaginationParams = Depends(get_pagination_params),
):
    """List departments, ordered by name unless another sort field is given."""
    return await DepartmentService.get_all(db, pagination)


@router.get("/{department_id}", response_model=Department)
async def get_department(
    department_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    return await DepartmentService.get_by_id(db, department_id)


@router.put("/{department_id}", response_model=Department)
async def update_department(
    department_id: UUID,
    department_in: DepartmentUpdate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_actor),
    client_info = Depends(get_request_client)
):
    return await DepartmentService.update(db, department_id, department_in, user_id=actor.id, client=client_info)


@router.delete("/{department_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_department(
    department_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_actor),
    client_info = Depends(get_request_client)
) -> None:
    """
    Delete a department.

    Refused with 409 while budgets, users or purchase requests reference it.
    """
    await DepartmentService.delete(db, department_id, user_id=actor.id, client=client_info)
