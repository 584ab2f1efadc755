"""
Role API endpoints.
"""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from procurement.core.deps import get_actor, get_request_client
from procurement.db.session import get_db
from procurement.models.user import User
from procurement.schemas.role import Role, RoleCreate
from procurement.services.role import RoleService

router = APIRouter()


@router.post("/", response_model=Role, status_code=status.HTTP_201_CREATED)
async def create_role(
    role_in: RoleCreate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_actor),
    client_info = Depends(get_request_client)
):
    return await RoleService.create(db, role_in, user_id=actor.id, client=client_info)


@router.get("/", response_model=List[Role])
async def list_roles(
    approvers_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    return await RoleService.get_all(db, approvers_only)


@router.get("/{role_id}", response_model=Role)
async def get_role(role_id: UUID, db: AsyncSession = Depends(get_db)):
    return await RoleService.get_by_id(db, role_id)
