"""
Tests for the HTTP surface: actor resolution, error rendering and the
request and invitation flows end to end.
"""

import uuid

import pytest
from fastapi import status


def _as(user):
    return {"X-Actor-Id": str(user.id)}


def _draft(budget, amount):
    return {
        "budget_id": str(budget.id),
        "department_id": str(budget.department_id),
        "amount": amount,
        "description": "Lab equipment",
    }


@pytest.mark.asyncio
async def test_health(async_client):
    """Test health endpoints."""
    response = await async_client.get("/api/health/")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok"}

    response = await async_client.get("/api/health/db")
    assert response.json() == {"status": "ok", "database": "connected"}


@pytest.mark.asyncio
async def test_security_headers(async_client):
    response = await async_client.get("/api/health/")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"


@pytest.mark.asyncio
async def test_actor_header_missing(async_client):
    response = await async_client.get("/api/users/me")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.asyncio
async def test_actor_header_malformed(async_client):
    response = await async_client.get("/api/users/me", headers={"X-Actor-Id": "not-a-uuid"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.asyncio
async def test_actor_header_unknown(async_client):
    response = await async_client.get("/api/users/me", headers={"X-Actor-Id": str(uuid.uuid4())})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.asyncio
async def test_actor_inactive(async_client, departments, make_user):
    former = await make_user("ivan.inactive@uni.edu", departments["it"], is_active=False)
    response = await async_client.get("/api/users/me", headers=_as(former))
    assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.asyncio
async def test_read_current_user(async_client, approver):
    response = await async_client.get("/api/users/me", headers=_as(approver))
    assert response.status_code == status.HTTP_200_OK

    data = response.json()
    assert data["email"] == "alan.approver@uni.edu"
    assert [role["name"] for role in data["roles"]] == ["Finance Officer"]
    assert "hashed_password" not in data


@pytest.mark.asyncio
async def test_request_flow(async_client, budget, requester, approver):
    """Submit, approve, start and complete a request over HTTP."""
    response = await async_client.post("/api/requests/", json=_draft(budget, "250.00"), headers=_as(requester))
    assert response.status_code == status.HTTP_201_CREATED
    created = response.json()
    assert created["status"] == "Pending"
    request_id = created["id"]

    response = await async_client.post(f"/api/requests/{request_id}/approve", headers=_as(approver))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "Approved"

    response = await async_client.get(f"/api/budgets/{budget.id}")
    assert response.json()["remaining_amount"] == "750.00"

    response = await async_client.post(f"/api/requests/{request_id}/start", headers=_as(requester))
    assert response.json()["status"] == "In Progress"

    response = await async_client.post(f"/api/requests/{request_id}/complete", headers=_as(approver))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "Completed"

    response = await async_client.get(f"/api/budgets/{budget.id}/reservations")
    reservations = response.json()
    assert len(reservations) == 1
    assert reservations[0]["status"] == "Committed"

    response = await async_client.get(f"/api/requests/{request_id}")
    view = response.json()
    assert view["department_name"] == "Finance"
    assert view["requester"]["email"] == "rita.requester@uni.edu"


@pytest.mark.asyncio
async def test_approve_insufficient_funds(async_client, budget, requester, approver):
    response = await async_client.post("/api/requests/", json=_draft(budget, "1200.00"), headers=_as(requester))
    request_id = response.json()["id"]

    response = await async_client.post(f"/api/requests/{request_id}/approve", headers=_as(approver))

    assert response.status_code == status.HTTP_409_CONFLICT
    body = response.json()
    assert body["error"] == "INSUFFICIENT_FUNDS"
    assert body["budget_id"] == str(budget.id)

    response = await async_client.get(f"/api/requests/{request_id}")
    assert response.json()["status"] == "Pending"


@pytest.mark.asyncio
async def test_approve_without_authority(async_client, budget, requester):
    response = await async_client.post("/api/requests/", json=_draft(budget, "10.00"), headers=_as(requester))
    request_id = response.json()["id"]

    response = await async_client.post(f"/api/requests/{request_id}/approve", headers=_as(requester))
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["error"] == "UNAUTHORIZED"


@pytest.mark.asyncio
async def test_reject_then_approve_is_invalid(async_client, budget, requester, approver):
    response = await async_client.post("/api/requests/", json=_draft(budget, "10.00"), headers=_as(requester))
    request_id = response.json()["id"]

    response = await async_client.post(
        f"/api/requests/{request_id}/reject", json={"reason": "Duplicate"}, headers=_as(approver)
    )
    assert response.json()["status"] == "Rejected"

    response = await async_client.post(f"/api/requests/{request_id}/approve", headers=_as(approver))
    assert response.status_code == status.HTTP_409_CONFLICT
    body = response.json()
    assert body["error"] == "INVALID_TRANSITION"
    assert body["current"] == "Rejected"


@pytest.mark.asyncio
async def test_create_request_with_zero_amount(async_client, budget, requester):
    response = await async_client.post("/api/requests/", json=_draft(budget, "0"), headers=_as(requester))
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["error"] == "VALIDATION_FAILED"


@pytest.mark.asyncio
async def test_search_requests(async_client, budget, it_budget, requester, limited_approver):
    await async_client.post("/api/requests/", json=_draft(budget, "10.00"), headers=_as(requester))
    await async_client.post("/api/requests/", json=_draft(it_budget, "20.00"), headers=_as(limited_approver))

    response = await async_client.get(
        "/api/requests/", params={"department_name": "Finance", "status": "Pending"}
    )
    assert response.status_code == status.HTTP_200_OK
    page = response.json()
    assert page["total"] == 1
    assert page["items"][0]["amount"] == "10.00"

    response = await async_client.get("/api/requests/pending")
    assert len(response.json()) == 2

    response = await async_client.get("/api/requests/summary")
    summary = response.json()
    assert summary["total_requests"] == 2
    assert summary["pending_count"] == 2


@pytest.mark.asyncio
async def test_search_inverted_dates(async_client):
    response = await async_client.get(
        "/api/requests/", params={"date_from": "2024-05-01", "date_to": "2024-04-01"}
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


@pytest.mark.asyncio
async def test_invitation_flow(async_client, departments, roles, approver):
    """Issue an invitation, look it up by token and redeem it."""
    response = await async_client.post(
        "/api/invitations/",
        json={
            "email": "ines.invited@uni.edu",
            "first_name": "Ines",
            "last_name": "Invited",
            "department_id": str(departments["it"].id),
            "role_ids": [str(roles["requester"].id)],
        },
        headers=_as(approver),
    )
    assert response.status_code == status.HTTP_201_CREATED
    issued = response.json()
    token = issued["token"]
    assert issued["status"] == "Pending"

    response = await async_client.get(f"/api/invitations/token/{token}")
    assert response.status_code == status.HTTP_200_OK
    assert "token" not in response.json()

    response = await async_client.post(f"/api/invitations/token/{token}/redeem", json={"password": "long-enough-1"})
    assert response.status_code == status.HTTP_201_CREATED
    user = response.json()
    assert user["email"] == "ines.invited@uni.edu"
    assert [role["name"] for role in user["roles"]] == ["Requester"]

    response = await async_client.post(f"/api/invitations/token/{token}/redeem", json={"password": "long-enough-1"})
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error"] == "ALREADY_USED"

    response = await async_client.get("/api/users/me", headers={"X-Actor-Id": user["id"]})
    assert response.status_code == status.HTTP_200_OK


@pytest.mark.asyncio
async def test_redeem_unknown_token(async_client):
    response = await async_client.post("/api/invitations/token/nope/redeem", json={"password": "long-enough-1"})
    assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.asyncio
async def test_audit_logs_record_commands(async_client, budget, requester, approver):
    response = await async_client.post("/api/requests/", json=_draft(budget, "15.00"), headers=_as(requester))
    request_id = response.json()["id"]
    await async_client.post(f"/api/requests/{request_id}/approve", headers=_as(approver))

    response = await async_client.get(
        "/api/audit-logs/",
        params={"resource_type": "PURCHASE_REQUEST", "resource_id": request_id},
        headers=_as(approver),
    )
    assert response.status_code == status.HTTP_200_OK
    actions = [entry["action"] for entry in response.json()["items"]]
    assert sorted(actions) == ["APPROVE", "CREATE"]
