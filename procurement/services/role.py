"""
Service layer for role reference data.
"""

from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from procurement.core.exceptions import ConstraintViolation
from procurement.core.logging import logger
from procurement.db.audit import log_action
from procurement.db.store import LedgerStore, with_store_retry
from procurement.models.user import Role
from procurement.schemas.role import RoleCreate

ClientInfo = Optional[Dict[str, Optional[str]]]


class RoleService:
    """Service class for role operations."""

    @staticmethod
    @with_store_retry
    async def create(
        db: AsyncSession,
        role_in: RoleCreate,
        user_id: Optional[UUID] = None,
        client: ClientInfo = None,
    ) -> Role:
        logger.info(f"Creating role: {role_in.name}")
        store = LedgerStore(db)
        async with store.unit_of_work():
            if await store.exists(Role, Role.name == role_in.name):
                logger.warning(f"Role name already exists: {role_in.name}")
                raise ConstraintViolation(f"Role name already exists: {role_in.name}", name=role_in.name)
            role = await store.put(Role(**role_in.model_dump()))
            log_action(
                db,
                action="CREATE",
                resource_type="ROLE",
                resource_id=role.id,
                details=role_in.model_dump(),
                user_id=user_id,
                client=client,
            )
        return role

    @staticmethod
    async def get_by_id(db: AsyncSession, role_id: UUID) -> Role:
        return await LedgerStore(db).get(Role, role_id)

    @staticmethod
    async def get_by_name(db: AsyncSession, name: str) -> Optional[Role]:
        return await LedgerStore(db).find(Role, Role.name == name)

    @staticmethod
    async def get_all(db: AsyncSession, approvers_only: bool = False) -> List[Role]:
        criteria = [Role.can_approve.is_(True)] if approvers_only else []
        return await LedgerStore(db).list(Role, *criteria, order_by=[Role.name])
