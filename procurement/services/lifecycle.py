"""
Purchase request lifecycle engine.

Owns the request state machine:

    Pending -> Approved | Rejected
    Approved -> In Progress | Cancelled
    In Progress -> Completed | Cancelled

Rejected, Completed and Cancelled are terminal. Each transition is a
compare-and-swap on (id, expected status) that bumps ``version``, executed in
one unit of work together with its budget effect and audit record. Commands
that move funds hold the budget's lock from first read to commit.
"""

from decimal import Decimal
from typing import Dict, FrozenSet, Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from procurement.core.exceptions import (
    ConcurrentModification,
    ConstraintViolation,
    InvalidTransition,
    NotFound,
    Unauthorized,
    ValidationFailed,
)
from procurement.core.locks import budget_locks
from procurement.core.logging import logger
from procurement.core.rbac import ApprovalPolicy, actor_id_of, load_active_actor
from procurement.db.audit import log_action
from procurement.db.store import LedgerStore, with_store_retry
from procurement.models.budget import Budget
from procurement.models.department import Department
from procurement.models.purchase_request import PurchaseRequest, RequestStatus
from procurement.models.user import User
from procurement.schemas.purchase_request import PurchaseRequestCreate
from procurement.services.budget_guard import BudgetGuard
from procurement.utils.dates import as_utc, utcnow

ClientInfo = Optional[Dict[str, Optional[str]]]

ALLOWED_TRANSITIONS: Dict[RequestStatus, FrozenSet[RequestStatus]] = {
    RequestStatus.PENDING: frozenset({RequestStatus.APPROVED, RequestStatus.REJECTED}),
    RequestStatus.APPROVED: frozenset({RequestStatus.IN_PROGRESS, RequestStatus.CANCELLED}),
    RequestStatus.IN_PROGRESS: frozenset({RequestStatus.COMPLETED, RequestStatus.CANCELLED}),
    RequestStatus.REJECTED: frozenset(),
    RequestStatus.COMPLETED: frozenset(),
    RequestStatus.CANCELLED: frozenset(),
}

TERMINAL_STATES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


def can_transition(current: RequestStatus, target: RequestStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


class RequestLifecycleEngine:
    """Commands that create purchase requests and move them through their lifecycle."""

    @staticmethod
    @with_store_retry
    async def create(
        db: AsyncSession,
        draft: PurchaseRequestCreate,
        requester: User,
        client: ClientInfo = None,
    ) -> PurchaseRequest:
        """
        Submit a new purchase request in the Pending state.

        The budget is not touched until approval.

        Args:
            db: Database session
            draft: Request data
            requester: Submitting user

        Returns:
            Created purchase request

        Raises:
            ValidationFailed: amount is not positive
            NotFound: The budget or department does not exist
            ConstraintViolation: The budget belongs to another department
            Unauthorized: The requester is unknown or deactivated
        """
        if draft.amount is None or Decimal(draft.amount) <= 0:
            raise ValidationFailed("amount", "Amount must be greater than zero")

        requester_id = actor_id_of(requester)
        logger.info(f"Creating purchase request for {draft.amount} on budget {draft.budget_id} by user {requester_id}")
        store = LedgerStore(db)
        async with store.unit_of_work():
            user, _ = await load_active_actor(store, requester_id)
            budget = await store.get(Budget, draft.budget_id)
            department = await store.get(Department, draft.department_id)
            if budget.department_id != department.id:
                logger.warning(f"Budget {budget.id} does not belong to department {department.id}")
                raise ConstraintViolation(
                    "Budget does not belong to the request's department",
                    budget_id=budget.id,
                    department_id=department.id,
                )

            request = PurchaseRequest(
                requester_id=user.id,
                budget_id=budget.id,
                department_id=department.id,
                amount=Decimal(draft.amount),
                status=RequestStatus.PENDING,
                description=draft.description,
                justification=draft.justification,
                funding_source=draft.funding_source,
                request_date=as_utc(draft.request_date) if draft.request_date else utcnow(),
            )
            await store.put(request)
            log_action(
                db,
                action="CREATE",
                resource_type="PURCHASE_REQUEST",
                resource_id=request.id,
                details={"amount": request.amount, "budget_id": budget.id, "department_id": department.id},
                user_id=user.id,
                client=client,
            )

        logger.info(f"Created purchase request {request.id}")
        return request

    @staticmethod
    async def get(db: AsyncSession, request_id: UUID) -> PurchaseRequest:
        logger.debug(f"Getting purchase request by ID: {request_id}")
        return await LedgerStore(db).get(PurchaseRequest, request_id)

    @staticmethod
    @with_store_retry
    async def approve(
        db: AsyncSession,
        request_id: UUID,
        approver: User,
        client: ClientInfo = None,
    ) -> PurchaseRequest:
        """
        Approve a Pending request and reserve its amount from the budget.

        Args:
            db: Database session
            request_id: Request to approve
            approver: Acting user

        Returns:
            The Approved request

        Raises:
            InvalidTransition: The request is not Pending
            Unauthorized: No role of the approver can approve this amount
            InsufficientFunds: The budget cannot cover the amount; the
                request stays Pending
        """
        approver_id = actor_id_of(approver)
        logger.info(f"Approving purchase request {request_id} by user {approver_id}")
        store = LedgerStore(db)
        budget_id = (await store.get(PurchaseRequest, request_id)).budget_id

        async with budget_locks.hold(budget_id):
            async with store.unit_of_work():
                request = await store.get(PurchaseRequest, request_id, for_update=True)
                RequestLifecycleEngine._ensure_transition(request, RequestStatus.APPROVED)

                user, roles = await load_active_actor(store, approver_id)
                if not ApprovalPolicy.can_approve_amount(roles, request.amount):
                    logger.warning(f"User {user.id} may not approve {request.amount} on request {request.id}")
                    raise Unauthorized(user.id, f"No approval authority for amount {request.amount}")

                await RequestLifecycleEngine._swap_status(store, request, RequestStatus.APPROVED)
                reservation = await BudgetGuard.reserve(
                    db, request.budget_id, request.amount, request.id, actor_id=user.id, client=client
                )
                log_action(
                    db,
                    action="APPROVE",
                    resource_type="PURCHASE_REQUEST",
                    resource_id=request.id,
                    details={"amount": request.amount, "reservation_id": reservation.id},
                    user_id=user.id,
                    client=client,
                )

        logger.info(f"Approved purchase request {request_id}")
        return request

    @staticmethod
    @with_store_retry
    async def reject(
        db: AsyncSession,
        request_id: UUID,
        approver: User,
        reason: Optional[str] = None,
        client: ClientInfo = None,
    ) -> PurchaseRequest:
        """Reject a Pending request. The budget is not touched."""
        approver_id = actor_id_of(approver)
        logger.info(f"Rejecting purchase request {request_id} by user {approver_id}")
        store = LedgerStore(db)
        async with store.unit_of_work():
            request = await store.get(PurchaseRequest, request_id, for_update=True)
            RequestLifecycleEngine._ensure_transition(request, RequestStatus.REJECTED)

            user, roles = await load_active_actor(store, approver_id)
            if not ApprovalPolicy.is_approver(roles):
                logger.warning(f"User {user.id} may not reject request {request.id}")
                raise Unauthorized(user.id, "No approval authority")

            await RequestLifecycleEngine._swap_status(store, request, RequestStatus.REJECTED)
            log_action(
                db,
                action="REJECT",
                resource_type="PURCHASE_REQUEST",
                resource_id=request.id,
                details={"reason": reason} if reason else None,
                user_id=user.id,
                client=client,
            )

        logger.info(f"Rejected purchase request {request_id}")
        return request

    @staticmethod
    @with_store_retry
    async def start(
        db: AsyncSession,
        request_id: UUID,
        actor: User,
        client: ClientInfo = None,
    ) -> PurchaseRequest:
        """Mark an Approved request as In Progress."""
        actor_id = actor_id_of(actor)
        logger.info(f"Starting purchase request {request_id} by user {actor_id}")
        store = LedgerStore(db)
        async with store.unit_of_work():
            request = await store.get(PurchaseRequest, request_id, for_update=True)
            RequestLifecycleEngine._ensure_transition(request, RequestStatus.IN_PROGRESS)
            user = await RequestLifecycleEngine._authorize_manager(store, actor_id, request)

            await RequestLifecycleEngine._swap_status(store, request, RequestStatus.IN_PROGRESS)
            log_action(
                db,
                action="START",
                resource_type="PURCHASE_REQUEST",
                resource_id=request.id,
                user_id=user.id,
                client=client,
            )
        return request

    @staticmethod
    @with_store_retry
    async def cancel(
        db: AsyncSession,
        request_id: UUID,
        actor: User,
        client: ClientInfo = None,
    ) -> PurchaseRequest:
        """
        Cancel an Approved or In Progress request and release its reservation.

        Raises:
            InvalidTransition: The request is Pending or terminal
            Unauthorized: The actor is neither the requester nor an approver
        """
        actor_id = actor_id_of(actor)
        logger.info(f"Cancelling purchase request {request_id} by user {actor_id}")
        store = LedgerStore(db)
        budget_id = (await store.get(PurchaseRequest, request_id)).budget_id

        async with budget_locks.hold(budget_id):
            async with store.unit_of_work():
                request = await store.get(PurchaseRequest, request_id, for_update=True)
                RequestLifecycleEngine._ensure_transition(request, RequestStatus.CANCELLED)
                user = await RequestLifecycleEngine._authorize_manager(store, actor_id, request)

                await RequestLifecycleEngine._swap_status(store, request, RequestStatus.CANCELLED)
                reservation = await BudgetGuard.active_reservation(db, request.id)
                if reservation is not None:
                    await BudgetGuard.release(db, reservation, actor_id=user.id, client=client)
                else:
                    logger.warning(f"Cancelled request {request.id} had no active reservation")
                log_action(
                    db,
                    action="CANCEL",
                    resource_type="PURCHASE_REQUEST",
                    resource_id=request.id,
                    details={"released": reservation.amount if reservation is not None else None},
                    user_id=user.id,
                    client=client,
                )

        logger.info(f"Cancelled purchase request {request_id}")
        return request

    @staticmethod
    @with_store_retry
    async def complete(
        db: AsyncSession,
        request_id: UUID,
        actor: Optional[User] = None,
        client: ClientInfo = None,
    ) -> PurchaseRequest:
        """Complete an In Progress request, committing its reservation as spend."""
        actor_id = actor_id_of(actor) if actor is not None else None
        logger.info(f"Completing purchase request {request_id}")
        store = LedgerStore(db)
        budget_id = (await store.get(PurchaseRequest, request_id)).budget_id

        async with budget_locks.hold(budget_id):
            async with store.unit_of_work():
                request = await store.get(PurchaseRequest, request_id, for_update=True)
                RequestLifecycleEngine._ensure_transition(request, RequestStatus.COMPLETED)
                if actor_id is not None:
                    await RequestLifecycleEngine._authorize_manager(store, actor_id, request)

                await RequestLifecycleEngine._swap_status(store, request, RequestStatus.COMPLETED)
                reservation = await BudgetGuard.active_reservation(db, request.id)
                if reservation is None:
                    raise NotFound("BudgetReservation", request.id)
                await BudgetGuard.commit(db, reservation, actor_id=actor_id, client=client)
                log_action(
                    db,
                    action="COMPLETE",
                    resource_type="PURCHASE_REQUEST",
                    resource_id=request.id,
                    details={"amount": reservation.amount},
                    user_id=actor_id,
                    client=client,
                )

        logger.info(f"Completed purchase request {request_id}")
        return request

    @staticmethod
    def _ensure_transition(request: PurchaseRequest, target: RequestStatus) -> None:
        if not can_transition(request.status, target):
            logger.warning(f"Refusing {request.status.value} -> {target.value} on request {request.id}")
            raise InvalidTransition("PurchaseRequest", request.id, request.status.value, target.value)

    @staticmethod
    async def _authorize_manager(store: LedgerStore, actor_id: UUID, request: PurchaseRequest) -> User:
        user, roles = await load_active_actor(store, actor_id)
        if not ApprovalPolicy.can_manage_request(user, roles, request):
            logger.warning(f"User {user.id} may not manage request {request.id}")
            raise Unauthorized(user.id, "Only the requester or an approver may do this")
        return user

    @staticmethod
    async def _swap_status(store: LedgerStore, request: PurchaseRequest, target: RequestStatus) -> None:
        expected = request.status
        result = await store.execute(
            update(PurchaseRequest)
            .where(PurchaseRequest.id == request.id, PurchaseRequest.status == expected)
            .values(status=target, version=PurchaseRequest.version + 1, updated_at=utcnow())
            .execution_options(synchronize_session=False),
            f"transition request to {target.value}",
        )
        if result.rowcount == 0:
            logger.warning(f"Request {request.id} left {expected.value} concurrently")
            raise ConcurrentModification("PurchaseRequest", request.id, expected.value)
        await store.refresh(request)
