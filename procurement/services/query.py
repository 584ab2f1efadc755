"""
Read-only queries over purchase requests.

Requests are joined with their requester, department and budget into
PurchaseRequestView rows. Nothing here takes a lock or writes.
"""

from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, List, Optional, Union
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from procurement.core.exceptions import NotFound
from procurement.core.logging import logger
from procurement.db.store import LedgerStore, with_store_retry
from procurement.models.budget import Budget
from procurement.models.department import Department
from procurement.models.purchase_request import PurchaseRequest, RequestStatus
from procurement.models.user import User
from procurement.schemas.budget import BudgetSummary
from procurement.schemas.purchase_request import PurchaseRequestView, RequestFilter, RequestSummary
from procurement.schemas.user import UserSummary
from procurement.utils.pagination import PaginatedResponse, PaginationParams

COMMITTED_STATES = (RequestStatus.APPROVED, RequestStatus.IN_PROGRESS, RequestStatus.COMPLETED)


def _view_query():
    return (
        select(PurchaseRequest, User, Department, Budget)
        .join(User, User.id == PurchaseRequest.requester_id)
        .join(Department, Department.id == PurchaseRequest.department_id)
        .join(Budget, Budget.id == PurchaseRequest.budget_id)
    )


def _day_start(day) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _apply_filter(statement, filters: RequestFilter):
    if filters.requester_id is not None:
        statement = statement.where(PurchaseRequest.requester_id == filters.requester_id)
    if filters.department_id is not None:
        statement = statement.where(PurchaseRequest.department_id == filters.department_id)
    if filters.department_name:
        statement = statement.where(Department.name == filters.department_name)
    if filters.status is not None:
        statement = statement.where(PurchaseRequest.status == filters.status)
    if filters.date_from is not None:
        statement = statement.where(PurchaseRequest.request_date >= _day_start(filters.date_from))
    if filters.date_to is not None:
        statement = statement.where(PurchaseRequest.request_date < _day_start(filters.date_to + timedelta(days=1)))
    return statement


def _to_view(row: Any) -> PurchaseRequestView:
    request, requester, department, budget = row
    return PurchaseRequestView(
        id=request.id,
        requester_id=request.requester_id,
        budget_id=request.budget_id,
        department_id=request.department_id,
        amount=request.amount,
        status=request.status,
        description=request.description,
        justification=request.justification,
        funding_source=request.funding_source,
        request_date=request.request_date,
        version=request.version,
        created_at=request.created_at,
        updated_at=request.updated_at,
        requester=UserSummary.model_validate(requester),
        department_name=department.name,
        budget=BudgetSummary.model_validate(budget),
    )


class RequestQuery:
    """Filtered, denormalized reads of purchase requests."""

    @staticmethod
    @with_store_retry
    async def search(
        db: AsyncSession,
        filters: Optional[RequestFilter] = None,
        pagination: Optional[PaginationParams] = None,
    ) -> Union[List[PurchaseRequestView], PaginatedResponse[PurchaseRequestView]]:
        """
        Search purchase requests.

        Args:
            db: Database session
            filters: Criteria combined with AND; all requests when omitted
            pagination: When given, return one page instead of a list

        Returns:
            Matching views, newest request_date first
        """
        filters = filters or RequestFilter()
        logger.debug(f"Searching purchase requests: {filters.model_dump(exclude_none=True)}")
        store = LedgerStore(db)

        statement = _apply_filter(_view_query(), filters)
        ordered = statement.order_by(PurchaseRequest.request_date.desc(), PurchaseRequest.id)

        if pagination is None:
            result = await store.execute(ordered, "search requests")
            return [_to_view(row) for row in result.all()]

        count = select(func.count()).select_from(statement.subquery())
        total = (await store.execute(count, "count requests")).scalar() or 0
        result = await store.execute(
            ordered.offset(pagination.offset).limit(pagination.size), "search requests page"
        )
        return PaginatedResponse[PurchaseRequestView].build(
            [_to_view(row) for row in result.all()], total, pagination
        )

    @staticmethod
    async def get_view(db: AsyncSession, request_id: UUID) -> PurchaseRequestView:
        result = await LedgerStore(db).execute(
            _view_query().where(PurchaseRequest.id == request_id), "get request view"
        )
        row = result.first()
        if row is None:
            raise NotFound("PurchaseRequest", request_id)
        return _to_view(row)

    @staticmethod
    async def pending_approvals(db: AsyncSession) -> List[PurchaseRequestView]:
        """Approval queue: Pending requests, newest first."""
        return await RequestQuery.search(db, RequestFilter(status=RequestStatus.PENDING))

    @staticmethod
    @with_store_retry
    async def dashboard_summary(db: AsyncSession, requester_id: Optional[UUID] = None) -> RequestSummary:
        """
        Aggregate request counts and amounts for the dashboard.

        Args:
            db: Database session
            requester_id: Restrict request figures to one requester

        Returns:
            Counts per status, approved amount and budget totals
        """
        store = LedgerStore(db)
        criteria = [PurchaseRequest.requester_id == requester_id] if requester_id else []

        counts = await store.execute(
            select(PurchaseRequest.status, func.count())
            .where(*criteria)
            .group_by(PurchaseRequest.status),
            "count requests by status",
        )
        counts_by_status = {status.value: 0 for status in RequestStatus}
        for status, count in counts.all():
            counts_by_status[RequestStatus(status).value] = count

        approved = await store.execute(
            select(func.coalesce(func.sum(PurchaseRequest.amount), 0))
            .where(PurchaseRequest.status.in_(COMMITTED_STATES), *criteria),
            "sum approved amounts",
        )
        budgets = await store.execute(
            select(
                func.coalesce(func.sum(Budget.total_amount), 0),
                func.coalesce(func.sum(Budget.remaining_amount), 0),
            ),
            "sum budgets",
        )
        budget_total, budget_remaining = budgets.one()

        return RequestSummary(
            total_requests=sum(counts_by_status.values()),
            counts_by_status=counts_by_status,
            pending_count=counts_by_status[RequestStatus.PENDING.value],
            approved_amount=Decimal(str(approved.scalar() or 0)),
            budget_total=Decimal(str(budget_total or 0)),
            budget_remaining=Decimal(str(budget_remaining or 0)),
        )
