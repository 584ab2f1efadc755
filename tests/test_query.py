"""
Tests for purchase request queries and the dashboard summary.
"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from procurement.core.exceptions import NotFound
from procurement.models import PurchaseRequest, RequestStatus
from procurement.schemas.purchase_request import RequestFilter
from procurement.services.query import RequestQuery
from procurement.utils.pagination import PaginatedResponse, PaginationParams


def _at(year, month, day, hour=12) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


@pytest.fixture
async def seeded_requests(session_factory, budget, it_budget, requester, limited_approver):
    """Five requests across two departments and several statuses."""
    rows = [
        PurchaseRequest(requester_id=requester.id, budget_id=budget.id, department_id=budget.department_id,
                        amount=Decimal("100.00"), status=RequestStatus.PENDING,
                        description="Paper", request_date=_at(2024, 3, 1)),
        PurchaseRequest(requester_id=requester.id, budget_id=budget.id, department_id=budget.department_id,
                        amount=Decimal("200.00"), status=RequestStatus.PENDING,
                        description="Toner", request_date=_at(2024, 3, 15)),
        PurchaseRequest(requester_id=requester.id, budget_id=budget.id, department_id=budget.department_id,
                        amount=Decimal("300.00"), status=RequestStatus.APPROVED,
                        description="Chairs", request_date=_at(2024, 3, 31, 23)),
        PurchaseRequest(requester_id=limited_approver.id, budget_id=it_budget.id,
                        department_id=it_budget.department_id, amount=Decimal("400.00"),
                        status=RequestStatus.PENDING, description="Switch", request_date=_at(2024, 4, 2)),
        PurchaseRequest(requester_id=limited_approver.id, budget_id=it_budget.id,
                        department_id=it_budget.department_id, amount=Decimal("50.00"),
                        status=RequestStatus.REJECTED, description="Cables", request_date=_at(2024, 2, 10)),
    ]
    async with session_factory() as session:
        session.add_all(rows)
        await session.commit()
    return rows


@pytest.mark.asyncio
async def test_search_by_status_and_department_name(db_session, seeded_requests):
    """Test RequestQuery.search orders newest request_date first."""
    views = await RequestQuery.search(
        db_session, RequestFilter(status=RequestStatus.PENDING, department_name="Finance")
    )

    assert [v.description for v in views] == ["Toner", "Paper"]
    assert all(v.department_name == "Finance" for v in views)
    assert views[0].requester.email == "rita.requester@uni.edu"
    assert views[0].budget.fiscal_year == 2024


@pytest.mark.asyncio
async def test_search_without_filter_returns_everything(db_session, seeded_requests):
    views = await RequestQuery.search(db_session)
    assert [v.description for v in views] == ["Switch", "Chairs", "Toner", "Paper", "Cables"]


@pytest.mark.asyncio
async def test_search_date_range_is_inclusive(db_session, seeded_requests):
    views = await RequestQuery.search(
        db_session, RequestFilter(date_from=date(2024, 3, 1), date_to=date(2024, 3, 31))
    )
    assert [v.description for v in views] == ["Chairs", "Toner", "Paper"]


@pytest.mark.asyncio
async def test_search_by_requester(db_session, seeded_requests, limited_approver):
    views = await RequestQuery.search(db_session, RequestFilter(requester_id=limited_approver.id))
    assert {v.description for v in views} == {"Switch", "Cables"}


@pytest.mark.asyncio
async def test_search_no_matches(db_session, seeded_requests):
    views = await RequestQuery.search(db_session, RequestFilter(department_name="History"))
    assert views == []


def test_filter_rejects_inverted_dates():
    with pytest.raises(ValidationError):
        RequestFilter(date_from=date(2024, 4, 1), date_to=date(2024, 3, 1))


@pytest.mark.asyncio
async def test_search_paginated(db_session, seeded_requests):
    page = await RequestQuery.search(db_session, pagination=PaginationParams(page=2, size=2))

    assert isinstance(page, PaginatedResponse)
    assert page.total == 5
    assert page.pages == 3
    assert [v.description for v in page.items] == ["Toner", "Paper"]
    assert page.has_prev and page.has_next


@pytest.mark.asyncio
async def test_get_view(db_session, seeded_requests):
    target = seeded_requests[3]
    view = await RequestQuery.get_view(db_session, target.id)

    assert view.id == target.id
    assert view.department_name == "Information Technology"
    assert view.amount == Decimal("400.00")

    with pytest.raises(NotFound):
        await RequestQuery.get_view(db_session, uuid.uuid4())


@pytest.mark.asyncio
async def test_pending_approvals(db_session, seeded_requests):
    views = await RequestQuery.pending_approvals(db_session)
    assert [v.description for v in views] == ["Switch", "Toner", "Paper"]
    assert all(v.status == RequestStatus.PENDING for v in views)


@pytest.mark.asyncio
async def test_dashboard_summary(db_session, seeded_requests):
    summary = await RequestQuery.dashboard_summary(db_session)

    assert summary.total_requests == 5
    assert summary.pending_count == 3
    assert summary.counts_by_status["Approved"] == 1
    assert summary.counts_by_status["Rejected"] == 1
    assert summary.counts_by_status["Completed"] == 0
    assert summary.approved_amount == Decimal("300.00")
    assert summary.budget_total == Decimal("6000.00")
    assert summary.budget_remaining == Decimal("6000.00")


@pytest.mark.asyncio
async def test_dashboard_summary_for_requester(db_session, seeded_requests, limited_approver):
    summary = await RequestQuery.dashboard_summary(db_session, requester_id=limited_approver.id)

    assert summary.total_requests == 2
    assert summary.pending_count == 1
    assert summary.approved_amount == Decimal("0")


@pytest.mark.asyncio
async def test_dashboard_summary_empty(db_session):
    summary = await RequestQuery.dashboard_summary(db_session)

    assert summary.total_requests == 0
    assert summary.approved_amount == Decimal("0")
    assert summary.budget_total == Decimal("0")
