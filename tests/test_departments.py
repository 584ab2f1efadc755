"""
Tests for department endpoints and service.
"""

import uuid

import pytest
from fastapi import status

from procurement.core.exceptions import ConstraintViolation, NotFound
from procurement.schemas.department import DepartmentCreate, DepartmentUpdate
from procurement.services.department import DepartmentService
from procurement.utils.pagination import PaginationParams


@pytest.mark.asyncio
async def test_create_department_requires_actor(async_client):
    """Test creating a department without an actor header."""
    department_data = {
        "name": "Computer Science",
        "code": "CS",
        "description": "Computer Science Department"
    }

    response = await async_client.post("/api/departments/", json=department_data)
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.asyncio
async def test_create_department_success(async_client, approver):
    """Test creating a department."""
    department_data = {
        "name": "Computer Science",
        "code": "CS",
        "description": "Computer Science Department"
    }

    headers = {"X-Actor-Id": str(approver.id)}
    response = await async_client.post("/api/departments/", json=department_data, headers=headers)
    assert response.status_code == status.HTTP_201_CREATED

    data = response.json()
    assert data["name"] == "Computer Science"
    assert data["code"] == "CS"
    assert data["is_active"] is True
    assert "id" in data


@pytest.mark.asyncio
async def test_create_department_duplicate_name(async_client, approver):
    """Test that department names are unique."""
    headers = {"X-Actor-Id": str(approver.id)}
    response = await async_client.post("/api/departments/", json={"name": "Finance"}, headers=headers)

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error"] == "CONSTRAINT_VIOLATION"


@pytest.mark.asyncio
async def test_list_departments(async_client, departments):
    """Test listing departments, ordered by name."""
    response = await async_client.get("/api/departments/")
    assert response.status_code == status.HTTP_200_OK

    data = response.json()
    assert data["total"] == 2
    assert [d["name"] for d in data["items"]] == ["Finance", "Information Technology"]


@pytest.mark.asyncio
async def test_list_departments_search(async_client, departments):
    response = await async_client.get("/api/departments/", params={"search": "tech"})
    assert response.status_code == status.HTTP_200_OK
    assert [d["code"] for d in response.json()["items"]] == ["IT"]


@pytest.mark.asyncio
async def test_get_department_not_found(async_client):
    response = await async_client.get(f"/api/departments/{uuid.uuid4()}")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_update_department(async_client, departments, approver):
    headers = {"X-Actor-Id": str(approver.id)}
    response = await async_client.put(
        f"/api/departments/{departments['it'].id}",
        json={"description": "Central IT services"},
        headers=headers,
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["description"] == "Central IT services"
    assert response.json()["name"] == "Information Technology"


@pytest.mark.asyncio
async def test_delete_department_in_use(async_client, departments, budget, approver):
    """A department with budgets cannot be deleted."""
    headers = {"X-Actor-Id": str(approver.id)}
    response = await async_client.delete(f"/api/departments/{departments['finance'].id}", headers=headers)

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error"] == "CONSTRAINT_VIOLATION"


@pytest.mark.asyncio
async def test_delete_unused_department(async_client, approver):
    headers = {"X-Actor-Id": str(approver.id)}
    created = await async_client.post("/api/departments/", json={"name": "Archaeology"}, headers=headers)
    department_id = created.json()["id"]

    response = await async_client.delete(f"/api/departments/{department_id}", headers=headers)
    assert response.status_code == status.HTTP_204_NO_CONTENT

    response = await async_client.get(f"/api/departments/{department_id}")
    assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.asyncio
async def test_service_create_and_update(db_session):
    """Test DepartmentService.create and update."""
    department = await DepartmentService.create(db_session, DepartmentCreate(name="Mathematics", code="MAT"))
    assert department.id is not None

    updated = await DepartmentService.update(db_session, department.id, DepartmentUpdate(code="MATH"))
    assert updated.code == "MATH"
    assert (await DepartmentService.get_by_name(db_session, "Mathematics")).id == department.id


@pytest.mark.asyncio
async def test_service_update_to_taken_code(db_session, departments):
    with pytest.raises(ConstraintViolation):
        await DepartmentService.update(db_session, departments["it"].id, DepartmentUpdate(code="FIN"))


@pytest.mark.asyncio
async def test_service_get_all(db_session, departments):
    listed = await DepartmentService.get_all(db_session)
    assert [d.name for d in listed] == ["Finance", "Information Technology"]

    page = await DepartmentService.get_all(db_session, PaginationParams(page=1, size=1))
    assert page.total == 2
    assert page.has_next is True


@pytest.mark.asyncio
async def test_service_delete_missing(db_session):
    with pytest.raises(NotFound):
        await DepartmentService.delete(db_session, uuid.uuid4())
