"""
Purchase request API endpoints.

Submission, filtered listing, the approvals queue, the dashboard summary and
the lifecycle commands (approve, reject, start, cancel, complete).
"""
from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from procurement.core.deps import get_actor, get_pagination_params, get_request_client
from procurement.core.exceptions import ValidationFailed
from procurement.core.logging import logger
from procurement.db.session import get_db
from procurement.models.purchase_request import RequestStatus
from procurement.models.user import User
from procurement.schemas.purchase_request import (
    PurchaseRequest,
    PurchaseRequestCreate,
    PurchaseRequestView,
    RequestDecision,
    RequestFilter,
    RequestSummary,
)
from procurement.services.lifecycle import RequestLifecycleEngine
from procurement.services.query import RequestQuery
from procurement.utils.pagination import PaginatedResponse, PaginationParams

router = APIRouter()


def get_request_filter(
    requester_id: Optional[UUID] = Query(None),
    department_id: Optional[UUID] = Query(None),
    department_name: Optional[str] = Query(None, description="Exact department name, e.g. Finance"),
    status: Optional[RequestStatus] = Query(None),
    date_from: Optional[date] = Query(None, description="First request date, inclusive"),
    date_to: Optional[date] = Query(None, description="Last request date, inclusive"),
) -> RequestFilter:
    if date_from and date_to and date_from > date_to:
        raise ValidationFailed("date_to", "date_from must not be after date_to")
    return RequestFilter(
        requester_id=requester_id,
        department_id=department_id,
        department_name=department_name,
        status=status,
        date_from=date_from,
        date_to=date_to,
    )


@router.post("/", response_model=PurchaseRequest, status_code=status.HTTP_201_CREATED)
async def create_request(
    draft: PurchaseRequestCreate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_actor),
    client_info = Depends(get_request_client)
):
    """
    Submit a purchase request as the acting user.

    Args:
        draft: Budget, department, amount and descriptive fields
        db: Database session
        actor: Requesting user
        client_info: Client IP and user agent

    Returns:
        The Pending request
    """
    logger.info(f"Purchase request submitted by: {actor.id}")
    return await RequestLifecycleEngine.create(db, draft, actor, client=client_info)


@router.get("/", response_model=PaginatedResponse[PurchaseRequestView])
async def search_requests(
    filters: RequestFilter = Depends(get_request_filter),
    pagination: PaginationParams = Depends(get_pagination_params),
    db: AsyncSession = Depends(get_db),
):
    """Filtered requests joined with requester, department and budget, newest first."""
    return await RequestQuery.search(db, filters, pagination)


@router.get("/pending", response_model=List[PurchaseRequestView])
async def pending_approvals(db: AsyncSession = Depends(get_db)):
    return await RequestQuery.pending_approvals(db)


@router.get("/summary", response_model=RequestSummary)
async def dashboard_summary(
    requester_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    return await RequestQuery.dashboard_summary(db, requester_id)


@router.get("/{request_id}", response_model=PurchaseRequestView)
async def get_request(request_id: UUID, db: AsyncSession = Depends(get_db)):
    return await RequestQuery.get_view(db, request_id)


@router.post("/{request_id}/approve", response_model=PurchaseRequest)
async def approve_request(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_actor),
    client_info = Depends(get_request_client)
):
    """
    Approve a Pending request and reserve its amount.

    409 INSUFFICIENT_FUNDS leaves the request Pending.
    """
    return await RequestLifecycleEngine.approve(db, request_id, actor, client=client_info)


@router.post("/{request_id}/reject", response_model=PurchaseRequest)
async def reject_request(
    request_id: UUID,
    decision: Optional[RequestDecision] = Body(None),
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_actor),
    client_info = Depends(get_request_client)
):
    reason = decision.reason if decision else None
    return await RequestLifecycleEngine.reject(db, request_id, actor, reason=reason, client=client_info)


@router.post("/{request_id}/start", response_model=PurchaseRequest)
async def start_request(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_actor),
    client_info = Depends(get_request_client)
):
    return await RequestLifecycleEngine.start(db, request_id, actor, client=client_info)


@router.post("/{request_id}/cancel", response_model=PurchaseRequest)
async def cancel_request(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_actor),
    client_info = Depends(get_request_client)
):
    return await RequestLifecycleEngine.cancel(db, request_id, actor, client=client_info)


@router.post("/{request_id}/complete", response_model=PurchaseRequest)
async def complete_request(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_actor),
    client_info = Depends(get_request_client)
):
    return await RequestLifecycleEngine.complete(db, request_id, actor, client=client_info)
