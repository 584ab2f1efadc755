"""
User API endpoints.
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from procurement.core.deps import get_actor, get_request_client
from procurement.core.logging import logger
from procurement.db.session import get_db
from procurement.models.user import User as UserModel
from procurement.schemas.role import Role
from procurement.schemas.user import User, UserCreate, UserRolesUpdate
from procurement.services.user import UserService

router = APIRouter()


@router.get("/me", response_model=User)
async def read_current_user(actor: UserModel = Depends(get_actor)):
    return actor


@router.post("/", response_model=User, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_in: UserCreate,
    db: AsyncSession = Depends(get_db),
    actor: UserModel = Depends(get_actor),
    client_info = Depends(get_request_client)
):
    """
    Create a user directly, without an invitation.

    Args:
        user_in: Names, email, department, password and roles
        db: Database session
        actor: Administrator performing the action
        client_info: Client IP and user agent

    Returns:
        Created user
    """
    logger.info(f"User creation requested by: {actor.id}")
    return await UserService.create(db, user_in, acting_user_id=actor.id, client=client_info)


@router.get("/", response_model=List[User])
async def list_users(
    department_id: Optional[UUID] = Query(None),
    active_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    actor: UserModel = Depends(get_actor),
):
    return await UserService.get_all(db, department_id, active_only)


@router.get("/{user_id}", response_model=User)
async def get_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: UserModel = Depends(get_actor),
):
    return await UserService.get_by_id(db, user_id)


@router.get("/{user_id}/roles", response_model=List[Role])
async def get_user_roles(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: UserModel = Depends(get_actor),
):
    return await UserService.roles(db, user_id)


@router.put("/{user_id}/roles", response_model=List[Role])
async def set_user_roles(
    user_id: UUID,
    roles_in: UserRolesUpdate,
    db: AsyncSession = Depends(get_db),
    actor: UserModel = Depends(get_actor),
    client_info = Depends(get_request_client)
):
    return await UserService.set_roles(db, user_id, roles_in.role_ids, acting_user_id=actor.id, client=client_info)


@router.post("/{user_id}/deactivate", response_model=User)
async def deactivate_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: UserModel = Depends(get_actor),
    client_info = Depends(get_request_client)
):
    return await UserService.deactivate(db, user_id, acting_user_id=actor.id, client=client_info)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: UserModel = Depends(get_actor),
    client_info = Depends(get_request_client)
) -> None:
    """Delete a user. Refused with 409 once the user has raised a purchase request."""
    await UserService.delete(db, user_id, acting_user_id=actor.id, client=client_info)
