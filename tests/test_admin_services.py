"""
Tests for the administrative services: budgets, users, roles, suppliers,
audit queries and reference data seeding.
"""

import uuid
from decimal import Decimal

import pytest

from procurement.core.exceptions import ConstraintViolation, NotFound, ValidationFailed
from procurement.db.seed import DEFAULT_DEPARTMENTS, DEFAULT_ROLES, seed_reference_data
from procurement.models import PurchaseRequest, SupplierStatus
from procurement.schemas.budget import BudgetCreate, BudgetUpdate
from procurement.schemas.role import RoleCreate
from procurement.schemas.supplier import SupplierCreate
from procurement.schemas.user import UserCreate
from procurement.services import (
    AuditService,
    BudgetService,
    RoleService,
    SupplierService,
    UserService,
)
from procurement.utils.pagination import PaginationParams


@pytest.mark.asyncio
async def test_create_budget(db_session, departments):
    """Test BudgetService.create starts with the full amount remaining."""
    budget = await BudgetService.create(
        db_session,
        BudgetCreate(department_id=departments["it"].id, fiscal_year=2025, total_amount=Decimal("2500.00")),
    )

    assert budget.remaining_amount == Decimal("2500.00")
    assert budget.spent_amount == Decimal("0.00")


@pytest.mark.asyncio
async def test_create_budget_duplicate_year(db_session, budget):
    with pytest.raises(ConstraintViolation):
        await BudgetService.create(
            db_session,
            BudgetCreate(department_id=budget.department_id, fiscal_year=2024, total_amount=Decimal("1.00")),
        )


@pytest.mark.asyncio
async def test_create_budget_validation(db_session, departments):
    with pytest.raises(ValidationFailed):
        await BudgetService.create(
            db_session,
            BudgetCreate(department_id=departments["it"].id, fiscal_year=2025, total_amount=Decimal("0")),
        )
    with pytest.raises(NotFound):
        await BudgetService.create(
            db_session,
            BudgetCreate(department_id=uuid.uuid4(), fiscal_year=2025, total_amount=Decimal("10.00")),
        )


@pytest.mark.asyncio
async def test_update_budget_total(db_session, budget):
    updated = await BudgetService.update(
        db_session, budget.id, BudgetUpdate(total_amount=Decimal("1200.00"), description="Top-up")
    )

    assert updated.total_amount == Decimal("1200.00")
    assert updated.remaining_amount == Decimal("1200.00")
    assert updated.description == "Top-up"


@pytest.mark.asyncio
async def test_list_budgets(db_session, budget, it_budget, departments):
    assert len(await BudgetService.get_all(db_session)) == 2
    listed = await BudgetService.get_all(db_session, department_id=departments["it"].id)
    assert [b.id for b in listed] == [it_budget.id]


@pytest.mark.asyncio
async def test_delete_budget_in_use(db_session, session_factory, budget, requester):
    async with session_factory() as session:
        session.add(PurchaseRequest(
            requester_id=requester.id,
            budget_id=budget.id,
            department_id=budget.department_id,
            amount=Decimal("5.00"),
        ))
        await session.commit()

    with pytest.raises(ConstraintViolation):
        await BudgetService.delete(db_session, budget.id)


@pytest.mark.asyncio
async def test_delete_unused_budget(db_session, it_budget):
    await BudgetService.delete(db_session, it_budget.id)
    with pytest.raises(NotFound):
        await BudgetService.get_by_id(db_session, it_budget.id)


@pytest.mark.asyncio
async def test_create_user(db_session, departments, roles, approver):
    """Test UserService.create."""
    user = await UserService.create(
        db_session,
        UserCreate(
            first_name="Paula",
            last_name="Procurement",
            email="Paula.P@uni.edu",
            department_id=departments["finance"].id,
            password="long-enough-1",
            role_ids=[roles["approver"].id],
        ),
        acting_user_id=approver.id,
    )

    assert user.email == "paula.p@uni.edu"
    assert user.hashed_password != "long-enough-1"
    assert [role.name for role in user.roles] == ["Finance Officer"]
    assert (await UserService.get_by_email(db_session, "PAULA.P@uni.edu")).id == user.id


@pytest.mark.asyncio
async def test_create_user_rejects_short_password_and_duplicates(db_session, departments, requester):
    with pytest.raises(ValidationFailed):
        await UserService.create(
            db_session,
            UserCreate(first_name="A", last_name="B", email="ab@uni.edu", password="short"),
        )
    with pytest.raises(ConstraintViolation):
        await UserService.create(
            db_session,
            UserCreate(first_name="R", last_name="R", email=requester.email, password="long-enough-1"),
        )


@pytest.mark.asyncio
async def test_set_roles(db_session, requester, roles, approver):
    assigned = await UserService.set_roles(
        db_session, requester.id, [roles["limited"].id, roles["requester"].id], acting_user_id=approver.id
    )
    assert [role.name for role in assigned] == ["Requester", "Team Lead"]

    assert await UserService.set_roles(db_session, requester.id, []) == []


@pytest.mark.asyncio
async def test_deactivate_user(db_session, requester):
    user = await UserService.deactivate(db_session, requester.id)
    assert user.is_active is False

    active = await UserService.get_all(db_session, active_only=True)
    assert requester.id not in {u.id for u in active}


@pytest.mark.asyncio
async def test_delete_user_with_requests_is_refused(db_session, session_factory, budget, requester):
    async with session_factory() as session:
        session.add(PurchaseRequest(
            requester_id=requester.id,
            budget_id=budget.id,
            department_id=budget.department_id,
            amount=Decimal("5.00"),
        ))
        await session.commit()

    with pytest.raises(ConstraintViolation):
        await UserService.delete(db_session, requester.id)


@pytest.mark.asyncio
async def test_delete_user(db_session, limited_approver):
    await UserService.delete(db_session, limited_approver.id)
    with pytest.raises(NotFound):
        await UserService.get_by_id(db_session, limited_approver.id)


@pytest.mark.asyncio
async def test_roles(db_session, roles):
    role = await RoleService.create(
        db_session, RoleCreate(name="Dean", can_approve=True, max_budget_limit=Decimal("75000.00"))
    )
    assert (await RoleService.get_by_name(db_session, "Dean")).id == role.id

    approvers = await RoleService.get_all(db_session, approvers_only=True)
    assert {r.name for r in approvers} == {"Dean", "Finance Officer", "Team Lead"}

    with pytest.raises(ConstraintViolation):
        await RoleService.create(db_session, RoleCreate(name="Dean"))


@pytest.mark.asyncio
async def test_suppliers(db_session):
    supplier = await SupplierService.create(db_session, SupplierCreate(name="Campus Office Supply"))
    assert supplier.status == SupplierStatus.PENDING
    assert await SupplierService.get_approved(db_session) == []

    approved = await SupplierService.update_status(db_session, supplier.id, SupplierStatus.APPROVED)
    assert approved.status == SupplierStatus.APPROVED
    assert [s.id for s in await SupplierService.get_approved(db_session)] == [supplier.id]

    with pytest.raises(ConstraintViolation):
        await SupplierService.create(db_session, SupplierCreate(name="Campus Office Supply"))


@pytest.mark.asyncio
async def test_audit_log_filters(db_session, approver):
    await SupplierService.create(db_session, SupplierCreate(name="Lab Gases Ltd"), user_id=approver.id)
    await RoleService.create(db_session, RoleCreate(name="Auditor"), user_id=approver.id)

    page = await AuditService.get_logs(db_session, PaginationParams(), resource_type="supplier")
    assert page.total == 1
    assert page.items[0].action == "CREATE"
    assert page.items[0].user_id == approver.id

    page = await AuditService.get_logs(db_session, PaginationParams(), user_id=approver.id)
    assert page.total == 2


@pytest.mark.asyncio
async def test_seed_is_idempotent(db_session):
    first = await seed_reference_data(db_session)
    assert first == {"departments": len(DEFAULT_DEPARTMENTS), "roles": len(DEFAULT_ROLES)}

    second = await seed_reference_data(db_session)
    assert second == {"departments": 0, "roles": 0}
