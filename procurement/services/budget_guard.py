"""
Budget guard.

The only code that writes ``Budget.remaining_amount``. Funds move with
guarded conditional UPDATEs, so the invariant
``0 <= remaining_amount <= total_amount`` holds even when two processes race;
inside one process callers also hold ``budget_locks`` for the budget from
their first read to their commit.

None of these operations commit. They run inside the caller's unit of work
so the funds move together with the status change that caused it.
"""

from decimal import Decimal
from typing import Dict, Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from procurement.core.exceptions import (
    ConcurrentModification,
    ConstraintViolation,
    InsufficientFunds,
    InvalidTransition,
    NotFound,
    ValidationFailed,
)
from procurement.core.logging import logger
from procurement.db.audit import log_action
from procurement.db.store import LedgerStore
from procurement.models.budget import Budget, BudgetReservation, ReservationStatus
from procurement.utils.dates import utcnow


class BudgetGuard:
    """Reserve, release and commit funds against budgets."""

    @staticmethod
    async def reserve(
        db: AsyncSession,
        budget_id: UUID,
        amount: Decimal,
        request_id: UUID,
        actor_id: Optional[UUID] = None,
        client: Optional[Dict[str, Optional[str]]] = None,
    ) -> BudgetReservation:
        """
        Deduct ``amount`` from the budget and record the reservation.

        Args:
            db: Database session with an open unit of work
            budget_id: Budget to draw from
            amount: Amount to reserve, must be positive
            request_id: Purchase request the funds are held for
            actor_id: ID of the approving user

        Returns:
            The new Active reservation

        Raises:
            NotFound: The budget does not exist
            InsufficientFunds: remaining_amount is lower than amount
        """
        amount = Decimal(amount)
        if amount <= 0:
            raise ValidationFailed("amount", "Reservation amount must be positive")

        store = LedgerStore(db)
        logger.info(f"Reserving {amount} from budget {budget_id} for request {request_id}")

        result = await store.execute(
            update(Budget)
            .where(Budget.id == budget_id, Budget.remaining_amount >= amount)
            .values(remaining_amount=Budget.remaining_amount - amount, updated_at=utcnow())
            .execution_options(synchronize_session=False),
            "reserve funds",
        )
        if result.rowcount == 0:
            budget = await store.find(Budget, Budget.id == budget_id)
            if budget is None:
                raise NotFound("Budget", budget_id)
            await store.refresh(budget)
            logger.warning(
                f"Insufficient funds in budget {budget_id}: "
                f"requested {amount}, available {budget.remaining_amount}"
            )
            raise InsufficientFunds(budget_id, amount, budget.remaining_amount)

        reservation = await store.put(
            BudgetReservation(budget_id=budget_id, request_id=request_id, amount=amount)
        )
        budget = await store.get(Budget, budget_id, for_update=True)

        log_action(
            db,
            action="RESERVE",
            resource_type="BUDGET",
            resource_id=budget_id,
            details={
                "request_id": request_id,
                "amount": amount,
                "remaining_amount": budget.remaining_amount,
            },
            user_id=actor_id,
            client=client,
        )
        logger.info(f"Reserved {amount} from budget {budget_id}, remaining {budget.remaining_amount}")
        return reservation

    @staticmethod
    async def release(
        db: AsyncSession,
        reservation: BudgetReservation,
        actor_id: Optional[UUID] = None,
        client: Optional[Dict[str, Optional[str]]] = None,
    ) -> BudgetReservation:
        """
        Return a reservation's funds to its budget.

        Raises:
            InvalidTransition: The reservation is not Active
            ConstraintViolation: Restoring would push remaining above total
        """
        store = LedgerStore(db)
        BudgetGuard._ensure_active(reservation, ReservationStatus.RELEASED)
        logger.info(f"Releasing reservation {reservation.id} ({reservation.amount}) to budget {reservation.budget_id}")

        result = await store.execute(
            update(Budget)
            .where(
                Budget.id == reservation.budget_id,
                Budget.remaining_amount + reservation.amount <= Budget.total_amount,
            )
            .values(remaining_amount=Budget.remaining_amount + reservation.amount, updated_at=utcnow())
            .execution_options(synchronize_session=False),
            "release funds",
        )
        if result.rowcount == 0:
            if not await store.exists(Budget, Budget.id == reservation.budget_id):
                raise NotFound("Budget", reservation.budget_id)
            raise ConstraintViolation(
                "Releasing would raise remaining_amount above total_amount",
                budget_id=reservation.budget_id,
                reservation_id=reservation.id,
            )

        await BudgetGuard._settle(store, reservation, ReservationStatus.RELEASED)
        log_action(
            db,
            action="RELEASE",
            resource_type="BUDGET",
            resource_id=reservation.budget_id,
            details={"request_id": reservation.request_id, "amount": reservation.amount},
            user_id=actor_id,
            client=client,
        )
        return reservation

    @staticmethod
    async def commit(
        db: AsyncSession,
        reservation: BudgetReservation,
        actor_id: Optional[UUID] = None,
        client: Optional[Dict[str, Optional[str]]] = None,
    ) -> BudgetReservation:
        """
        Turn a reservation into spend. remaining_amount is unchanged; the
        amount moves into spent_amount.

        Raises:
            InvalidTransition: The reservation is not Active
        """
        store = LedgerStore(db)
        BudgetGuard._ensure_active(reservation, ReservationStatus.COMMITTED)
        logger.info(f"Committing reservation {reservation.id} ({reservation.amount}) on budget {reservation.budget_id}")

        result = await store.execute(
            update(Budget)
            .where(Budget.id == reservation.budget_id)
            .values(spent_amount=Budget.spent_amount + reservation.amount, updated_at=utcnow())
            .execution_options(synchronize_session=False),
            "commit funds",
        )
        if result.rowcount == 0:
            raise NotFound("Budget", reservation.budget_id)

        await BudgetGuard._settle(store, reservation, ReservationStatus.COMMITTED)
        log_action(
            db,
            action="COMMIT",
            resource_type="BUDGET",
            resource_id=reservation.budget_id,
            details={"request_id": reservation.request_id, "amount": reservation.amount},
            user_id=actor_id,
            client=client,
        )
        return reservation

    @staticmethod
    async def adjust_total(
        db: AsyncSession,
        budget_id: UUID,
        new_total: Decimal,
    ) -> Budget:
        """
        Change a budget's total, shifting remaining_amount by the same delta.

        Args:
            db: Database session with an open unit of work
            budget_id: Budget to adjust
            new_total: New total_amount

        Returns:
            The refreshed budget

        Raises:
            ValidationFailed: new_total is negative
            NotFound: The budget does not exist
            ConstraintViolation: More than new_total is already reserved or spent
        """
        new_total = Decimal(new_total)
        if new_total < 0:
            raise ValidationFailed("total_amount", "Budget total must not be negative")

        store = LedgerStore(db)
        delta = new_total - Budget.total_amount
        result = await store.execute(
            update(Budget)
            .where(Budget.id == budget_id, Budget.remaining_amount + delta >= 0)
            .values(
                total_amount=new_total,
                remaining_amount=Budget.remaining_amount + delta,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False),
            "adjust budget total",
        )
        if result.rowcount == 0:
            if not await store.exists(Budget, Budget.id == budget_id):
                raise NotFound("Budget", budget_id)
            logger.warning(f"Refusing to lower total of budget {budget_id} below committed funds")
            raise ConstraintViolation(
                "New total is lower than the funds already reserved or spent",
                budget_id=budget_id,
                total_amount=new_total,
            )

        budget = await store.get(Budget, budget_id, for_update=True)
        logger.info(f"Adjusted budget {budget_id} total to {new_total}, remaining {budget.remaining_amount}")
        return budget

    @staticmethod
    async def active_reservation(db: AsyncSession, request_id: UUID) -> Optional[BudgetReservation]:
        store = LedgerStore(db)
        return await store.find(
            BudgetReservation,
            BudgetReservation.request_id == request_id,
            BudgetReservation.status == ReservationStatus.ACTIVE,
        )

    @staticmethod
    def _ensure_active(reservation: BudgetReservation, target: ReservationStatus) -> None:
        if reservation.status != ReservationStatus.ACTIVE:
            raise InvalidTransition(
                "BudgetReservation", reservation.id, reservation.status.value, target.value
            )

    @staticmethod
    async def _settle(store: LedgerStore, reservation: BudgetReservation, target: ReservationStatus) -> None:
        result = await store.execute(
            update(BudgetReservation)
            .where(
                BudgetReservation.id == reservation.id,
                BudgetReservation.status == ReservationStatus.ACTIVE,
            )
            .values(status=target, settled_at=utcnow())
            .execution_options(synchronize_session=False),
            f"settle reservation as {target.value}",
        )
        if result.rowcount == 0:
            raise ConcurrentModification("BudgetReservation", reservation.id, ReservationStatus.ACTIVE.value)
        await store.refresh(reservation)
