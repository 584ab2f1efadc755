"""
Service layer for budget administration.

Creating a budget sets remaining_amount to the total. Changing the total goes
through the BudgetGuard so reserved funds stay accounted for.
"""

from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from procurement.core.exceptions import ConstraintViolation, ValidationFailed
from procurement.core.locks import budget_locks
from procurement.core.logging import logger
from procurement.db.audit import log_action
from procurement.db.store import LedgerStore, with_store_retry
from procurement.models.budget import Budget, BudgetReservation
from procurement.models.department import Department
from procurement.models.purchase_request import PurchaseRequest
from procurement.schemas.budget import BudgetCreate, BudgetUpdate
from procurement.services.budget_guard import BudgetGuard

ClientInfo = Optional[Dict[str, Optional[str]]]


class BudgetService:
    """Service class for budget operations."""

    @staticmethod
    @with_store_retry
    async def create(
        db: AsyncSession,
        budget_in: BudgetCreate,
        user_id: Optional[UUID] = None,
        client: ClientInfo = None,
    ) -> Budget:
        """
        Create a new budget for a department and fiscal year.

        Args:
            db: Database session
            budget_in: Budget creation data
            user_id: ID of the user performing the action
            client: Client IP and user agent

        Returns:
            Created budget

        Raises:
            ValidationFailed: total_amount is not positive
            NotFound: The department does not exist
            ConstraintViolation: The department already has a budget for the year
        """
        if budget_in.total_amount <= 0:
            raise ValidationFailed("total_amount", "Budget total must be greater than zero")

        logger.info(f"Creating budget for department {budget_in.department_id}, fiscal year {budget_in.fiscal_year}")
        store = LedgerStore(db)
        async with store.unit_of_work():
            await store.get(Department, budget_in.department_id)
            if await store.exists(
                Budget,
                Budget.department_id == budget_in.department_id,
                Budget.fiscal_year == budget_in.fiscal_year,
            ):
                logger.warning(
                    f"Budget already exists for department {budget_in.department_id}, year {budget_in.fiscal_year}"
                )
                raise ConstraintViolation(
                    "A budget already exists for this department and fiscal year",
                    department_id=budget_in.department_id,
                    fiscal_year=budget_in.fiscal_year,
                )

            budget = await store.put(Budget(
                department_id=budget_in.department_id,
                fiscal_year=budget_in.fiscal_year,
                total_amount=budget_in.total_amount,
                remaining_amount=budget_in.total_amount,
                spent_amount=Decimal("0.00"),
                description=budget_in.description,
            ))
            log_action(
                db,
                action="CREATE",
                resource_type="BUDGET",
                resource_id=budget.id,
                details={
                    "department_id": budget.department_id,
                    "fiscal_year": budget.fiscal_year,
                    "total_amount": budget.total_amount,
                },
                user_id=user_id,
                client=client,
            )

        logger.info(f"Created budget with ID: {budget.id}")
        return budget

    @staticmethod
    async def get_by_id(db: AsyncSession, budget_id: UUID) -> Budget:
        logger.debug(f"Getting budget by ID: {budget_id}")
        return await LedgerStore(db).get(Budget, budget_id)

    @staticmethod
    async def get_all(db: AsyncSession, department_id: Optional[UUID] = None) -> List[Budget]:
        """
        List budgets, newest fiscal year first.

        Args:
            db: Database session
            department_id: Restrict to one department
        """
        criteria = [Budget.department_id == department_id] if department_id else []
        return await LedgerStore(db).list(
            Budget, *criteria, order_by=[Budget.fiscal_year.desc(), Budget.created_at.desc()]
        )

    @staticmethod
    async def reservations(db: AsyncSession, budget_id: UUID) -> List[BudgetReservation]:
        store = LedgerStore(db)
        await store.get(Budget, budget_id)
        return await store.list(
            BudgetReservation,
            BudgetReservation.budget_id == budget_id,
            order_by=[BudgetReservation.created_at.desc()],
        )

    @staticmethod
    @with_store_retry
    async def update(
        db: AsyncSession,
        budget_id: UUID,
        budget_in: BudgetUpdate,
        user_id: Optional[UUID] = None,
        client: ClientInfo = None,
    ) -> Budget:
        """
        Update a budget's total or description.

        Raises:
            NotFound: No budget has this ID
            ConstraintViolation: The new total is below the funds already
                reserved or spent
        """
        logger.info(f"Updating budget with ID: {budget_id}")
        store = LedgerStore(db)
        update_data = budget_in.model_dump(exclude_unset=True)

        async with budget_locks.hold(budget_id):
            async with store.unit_of_work():
                budget = await store.get(Budget, budget_id, for_update=True)
                changes = {}

                new_total = update_data.get("total_amount")
                if new_total is not None and Decimal(new_total) != budget.total_amount:
                    changes["total_amount"] = {"old": budget.total_amount, "new": new_total}
                    await BudgetGuard.adjust_total(db, budget_id, new_total)

                if "description" in update_data and update_data["description"] != budget.description:
                    changes["description"] = {"old": budget.description, "new": update_data["description"]}
                    budget.description = update_data["description"]
                    await store.put(budget)

                if changes:
                    log_action(
                        db,
                        action="UPDATE",
                        resource_type="BUDGET",
                        resource_id=budget_id,
                        details=changes,
                        user_id=user_id,
                        client=client,
                    )

        await store.refresh(budget)
        logger.info(f"Updated budget {budget_id}")
        return budget

    @staticmethod
    @with_store_retry
    async def delete(
        db: AsyncSession,
        budget_id: UUID,
        user_id: Optional[UUID] = None,
        client: ClientInfo = None,
    ) -> None:
        """
        Delete a budget no purchase request refers to.

        Raises:
            NotFound: No budget has this ID
            ConstraintViolation: A purchase request references the budget
        """
        logger.info(f"Deleting budget with ID: {budget_id}")
        store = LedgerStore(db)
        async with budget_locks.hold(budget_id):
            async with store.unit_of_work():
                budget = await store.get(Budget, budget_id)
                referencing = await store.count(PurchaseRequest, PurchaseRequest.budget_id == budget_id)
                if referencing:
                    logger.warning(f"Budget {budget_id} referenced by {referencing} purchase request(s)")
                    raise ConstraintViolation(
                        "Budget is referenced by purchase requests",
                        budget_id=budget_id,
                        purchase_requests=referencing,
                    )
                await store.delete(budget)
                log_action(
                    db,
                    action="DELETE",
                    resource_type="BUDGET",
                    resource_id=budget_id,
                    details={
                        "department_id": budget.department_id,
                        "fiscal_year": budget.fiscal_year,
                        "total_amount": budget.total_amount,
                    },
                    user_id=user_id,
                    client=client,
                )
        logger.info(f"Deleted budget {budget_id}")
