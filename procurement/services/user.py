"""
Service layer for user operations.

This module contains the business logic for user-related operations,
abstracting away the database operations from the API endpoints. Users that
have raised purchase requests are deactivated, never deleted.
"""

from typing import Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from procurement.core.config import settings
from procurement.core.exceptions import ConstraintViolation, ValidationFailed
from procurement.core.logging import logger
from procurement.core.rbac import roles_of
from procurement.core.security import PasswordManager
from procurement.db.audit import log_action
from procurement.db.store import LedgerStore, with_store_retry
from procurement.models.department import Department
from procurement.models.purchase_request import PurchaseRequest
from procurement.models.user import Role, User, UserRole
from procurement.schemas.user import UserCreate

ClientInfo = Optional[Dict[str, Optional[str]]]


class UserService:
    """Service class for user operations."""

    @staticmethod
    @with_store_retry
    async def create(
        db: AsyncSession,
        user_in: UserCreate,
        acting_user_id: Optional[UUID] = None,
        client: ClientInfo = None,
    ) -> User:
        """
        Create a user directly and assign roles, without an invitation.

        Args:
            db: Database session
            user_in: User creation data
            acting_user_id: ID of the administrator performing the action
            client: Client IP and user agent

        Returns:
            Created user

        Raises:
            ValidationFailed: The password is too short
            NotFound: The department or one of the roles does not exist
            ConstraintViolation: The email is already registered
        """
        if not PasswordManager.is_acceptable(user_in.password):
            raise ValidationFailed(
                "password", f"Password must be at least {settings.security.password_min_length} characters"
            )

        email = user_in.email.lower()
        logger.info(f"Creating new user: {email}")
        store = LedgerStore(db)
        async with store.unit_of_work():
            if user_in.department_id is not None:
                await store.get(Department, user_in.department_id)
            for role_id in user_in.role_ids:
                await store.get(Role, role_id)
            if await store.exists(User, func.lower(User.email) == email):
                logger.warning(f"Email already registered: {email}")
                raise ConstraintViolation(f"A user with email {email} already exists", email=email)

            user = await store.put(User(
                first_name=user_in.first_name,
                last_name=user_in.last_name,
                email=email,
                hashed_password=PasswordManager.get_password_hash(user_in.password),
                department_id=user_in.department_id,
                is_active=True,
            ))
            await UserService._assign(store, user.id, user_in.role_ids, acting_user_id)
            log_action(
                db,
                action="CREATE",
                resource_type="USER",
                resource_id=user.id,
                details={"email": email, "department_id": user.department_id, "role_ids": user_in.role_ids},
                user_id=acting_user_id,
                client=client,
            )

        await store.refresh(user)
        logger.info(f"Created user with ID: {user.id}")
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: UUID) -> User:
        return await LedgerStore(db).get(User, user_id)

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> Optional[User]:
        return await LedgerStore(db).find(User, func.lower(User.email) == email.lower())

    @staticmethod
    async def get_all(
        db: AsyncSession,
        department_id: Optional[UUID] = None,
        active_only: bool = False,
    ) -> List[User]:
        """List users ordered by first name."""
        criteria = []
        if department_id is not None:
            criteria.append(User.department_id == department_id)
        if active_only:
            criteria.append(User.is_active.is_(True))
        return await LedgerStore(db).list(User, *criteria, order_by=[User.first_name, User.last_name])

    @staticmethod
    async def roles(db: AsyncSession, user_id: UUID) -> List[Role]:
        store = LedgerStore(db)
        await store.get(User, user_id)
        return await roles_of(store, user_id)

    @staticmethod
    @with_store_retry
    async def set_roles(
        db: AsyncSession,
        user_id: UUID,
        role_ids: Sequence[UUID],
        acting_user_id: Optional[UUID] = None,
        client: ClientInfo = None,
    ) -> List[Role]:
        """Replace a user's role assignments."""
        logger.info(f"Setting roles of user {user_id}: {list(role_ids)}")
        store = LedgerStore(db)
        async with store.unit_of_work():
            user = await store.get(User, user_id)
            for role_id in role_ids:
                await store.get(Role, role_id)
            await store.execute(delete(UserRole).where(UserRole.user_id == user_id), "clear roles")
            await UserService._assign(store, user_id, role_ids, acting_user_id)
            log_action(
                db,
                action="ASSIGN_ROLES",
                resource_type="USER",
                resource_id=user_id,
                details={"role_ids": list(role_ids)},
                user_id=acting_user_id,
                client=client,
            )
        await store.refresh(user)
        return await roles_of(store, user_id)

    @staticmethod
    @with_store_retry
    async def deactivate(
        db: AsyncSession,
        user_id: UUID,
        acting_user_id: Optional[UUID] = None,
        client: ClientInfo = None,
    ) -> User:
        logger.info(f"Deactivating user {user_id}")
        store = LedgerStore(db)
        async with store.unit_of_work():
            user = await store.get(User, user_id, for_update=True)
            if user.is_active:
                user.is_active = False
                await store.put(user)
                log_action(
                    db,
                    action="DEACTIVATE",
                    resource_type="USER",
                    resource_id=user_id,
                    user_id=acting_user_id,
                    client=client,
                )
        await store.refresh(user)
        return user

    @staticmethod
    @with_store_retry
    async def delete(
        db: AsyncSession,
        user_id: UUID,
        acting_user_id: Optional[UUID] = None,
        client: ClientInfo = None,
    ) -> None:
        """
        Delete a user who never raised a purchase request.

        Raises:
            NotFound: No user has this ID
            ConstraintViolation: The user is referenced by a purchase request;
                deactivate instead
        """
        logger.info(f"Deleting user {user_id}")
        store = LedgerStore(db)
        async with store.unit_of_work():
            user = await store.get(User, user_id)
            requests = await store.count(PurchaseRequest, PurchaseRequest.requester_id == user_id)
            if requests:
                logger.warning(f"User {user_id} has {requests} purchase request(s), refusing delete")
                raise ConstraintViolation(
                    "User is referenced by purchase requests; deactivate instead",
                    user_id=user_id,
                    purchase_requests=requests,
                )
            await store.execute(delete(UserRole).where(UserRole.user_id == user_id), "clear roles")
            await store.delete(user)
            log_action(
                db,
                action="DELETE",
                resource_type="USER",
                resource_id=user_id,
                details={"email": user.email},
                user_id=acting_user_id,
                client=client,
            )
        logger.info(f"Deleted user {user_id}")

    @staticmethod
    async def _assign(
        store: LedgerStore,
        user_id: UUID,
        role_ids: Sequence[UUID],
        assigned_by: Optional[UUID],
    ) -> None:
        if role_ids:
            await store.put_all([
                UserRole(user_id=user_id, role_id=role_id, assigned_by=assigned_by)
                for role_id in dict.fromkeys(role_ids)
            ])
