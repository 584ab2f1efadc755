"""
Service layer for department operations.

This module contains the business logic for department-related operations,
abstracting away the database operations from the API endpoints.
"""

from typing import Dict, List, Optional, Union
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from procurement.core.exceptions import ConstraintViolation
from procurement.core.logging import logger
from procurement.db.audit import log_action
from procurement.db.store import LedgerStore, with_store_retry
from procurement.models.budget import Budget
from procurement.models.department import Department
from procurement.models.purchase_request import PurchaseRequest
from procurement.models.user import User
from procurement.schemas.department import DepartmentCreate, DepartmentUpdate
from procurement.utils.pagination import PaginatedResponse, PaginationParams, paginate_query

ClientInfo = Optional[Dict[str, Optional[str]]]


class DepartmentService:
    """Service class for department operations."""

    @staticmethod
    @with_store_retry
    async def create(
        db: AsyncSession,
        department_in: DepartmentCreate,
        user_id: Optional[UUID] = None,
        client: ClientInfo = None,
    ) -> Department:
        """
        Create a new department.

        Args:
            db: Database session
            department_in: Department creation data
            user_id: ID of the user performing the action
            client: Client IP and user agent

        Returns:
            Created department

        Raises:
            ConstraintViolation: The name or code is already taken
        """
        logger.info(f"Creating new department: {department_in.name}")
        store = LedgerStore(db)
        async with store.unit_of_work():
            await DepartmentService._ensure_unique(store, department_in.name, department_in.code)
            department = await store.put(Department(**department_in.model_dump()))
            log_action(
                db,
                action="CREATE",
                resource_type="DEPARTMENT",
                resource_id=department.id,
                details={"name": department.name, "code": department.code},
                user_id=user_id,
                client=client,
            )

        logger.info(f"Created department with ID: {department.id}")
        return department

    @staticmethod
    async def get_by_id(db: AsyncSession, department_id: UUID) -> Department:
        """
        Get a department by ID.

        Raises:
            NotFound: No department has this ID
        """
        logger.debug(f"Getting department by ID: {department_id}")
        return await LedgerStore(db).get(Department, department_id)

    @staticmethod
    async def get_by_name(db: AsyncSession, name: str) -> Optional[Department]:
        return await LedgerStore(db).find(Department, Department.name == name)

    @staticmethod
    async def get_all(
        db: AsyncSession,
        pagination: Optional[PaginationParams] = None,
    ) -> Union[List[Department], PaginatedResponse]:
        """
        List departments ordered by name.

        Args:
            db: Database session
            pagination: Page, size and an optional search term matched
                against name and code

        Returns:
            All departments, or one page of them
        """
        store = LedgerStore(db)
        if pagination is None:
            return await store.list(Department, order_by=[Department.name])

        logger.debug(f"Getting departments page={pagination.page}, size={pagination.size}")
        query = select(Department)
        if pagination.search:
            term = f"%{pagination.search}%"
            query = query.where(or_(Department.name.ilike(term), Department.code.ilike(term)))
        return await paginate_query(store, query, pagination, model=Department, default_order=[Department.name])

    @staticmethod
    @with_store_retry
    async def update(
        db: AsyncSession,
        department_id: UUID,
        department_in: DepartmentUpdate,
        user_id: Optional[UUID] = None,
        client: ClientInfo = None,
    ) -> Department:
        """
        Update a department.

        Args:
            db: Database session
            department_id: Department ID
            department_in: Department update data
            user_id: ID of the user performing the action
            client: Client IP and user agent

        Returns:
            Updated department
        """
        logger.info(f"Updating department with ID: {department_id}")
        store = LedgerStore(db)
        async with store.unit_of_work():
            department = await store.get(Department, department_id, for_update=True)
            update_data = department_in.model_dump(exclude_unset=True)

            new_name = update_data.get("name")
            new_code = update_data.get("code")
            await DepartmentService._ensure_unique(
                store,
                new_name if new_name and new_name != department.name else None,
                new_code if new_code and new_code != department.code else None,
            )

            changes = {}
            for field, value in update_data.items():
                old = getattr(department, field)
                if old != value:
                    changes[field] = {"old": old, "new": value}
                    setattr(department, field, value)

            await store.put(department)
            if changes:
                log_action(
                    db,
                    action="UPDATE",
                    resource_type="DEPARTMENT",
                    resource_id=department.id,
                    details=changes,
                    user_id=user_id,
                    client=client,
                )

        await store.refresh(department)
        logger.info(f"Updated department: {department.name}")
        return department

    @staticmethod
    @with_store_retry
    async def delete(
        db: AsyncSession,
        department_id: UUID,
        user_id: Optional[UUID] = None,
        client: ClientInfo = None,
    ) -> None:
        """
        Delete a department nothing refers to.

        Raises:
            NotFound: No department has this ID
            ConstraintViolation: Budgets, users or purchase requests still
                reference the department
        """
        logger.info(f"Deleting department with ID: {department_id}")
        store = LedgerStore(db)
        async with store.unit_of_work():
            department = await store.get(Department, department_id)

            references = {
                "budgets": await store.count(Budget, Budget.department_id == department_id),
                "users": await store.count(User, User.department_id == department_id),
                "purchase_requests": await store.count(
                    PurchaseRequest, PurchaseRequest.department_id == department_id
                ),
            }
            in_use = {name: count for name, count in references.items() if count}
            if in_use:
                logger.warning(f"Department {department_id} still referenced: {in_use}")
                raise ConstraintViolation(
                    f"Department {department.name} is still referenced",
                    department_id=department_id,
                    **in_use,
                )

            await store.delete(department)
            log_action(
                db,
                action="DELETE",
                resource_type="DEPARTMENT",
                resource_id=department_id,
                details={"name": department.name, "code": department.code},
                user_id=user_id,
                client=client,
            )

        logger.info(f"Deleted department: {department.name}")

    @staticmethod
    async def _ensure_unique(store: LedgerStore, name: Optional[str], code: Optional[str]) -> None:
        if name and await store.exists(Department, Department.name == name):
            logger.warning(f"Department name already exists: {name}")
            raise ConstraintViolation(f"Department name already exists: {name}", name=name)
        if code and await store.exists(Department, Department.code == code):
            logger.warning(f"Department code already exists: {code}")
            raise ConstraintViolation(f"Department code already exists: {code}", code=code)
