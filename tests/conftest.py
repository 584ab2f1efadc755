"""
Configuration for pytest.

This module provides fixtures and configuration for running tests. Every test
gets its own SQLite database file, so tests never share state.
"""

import os

os.environ["ENVIRONMENT"] = "testing"
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")

from decimal import Decimal
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import NullPool

from procurement.core.security import get_password_hash
from procurement.db.session import build_engine, build_sessionmaker, get_db
from procurement.main import app
from procurement.models import Base, Budget, Department, Role, User, UserRole

TEST_PASSWORD = "correct-horse-battery"


@pytest.fixture
async def test_engine(tmp_path):
    """Create a fresh database with all tables."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'procurement.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return build_sessionmaker(test_engine)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


async def _persist(session_factory, *records):
    async with session_factory() as session:
        session.add_all(records)
        await session.commit()
    return records


@pytest.fixture
async def departments(session_factory):
    finance = Department(name="Finance", code="FIN")
    it = Department(name="Information Technology", code="IT")
    await _persist(session_factory, finance, it)
    return {"finance": finance, "it": it}


@pytest.fixture
async def budget(session_factory, departments):
    """Finance budget for 2024 with 1000.00 available."""
    record = Budget(
        department_id=departments["finance"].id,
        fiscal_year=2024,
        total_amount=Decimal("1000.00"),
        remaining_amount=Decimal("1000.00"),
        spent_amount=Decimal("0.00"),
    )
    await _persist(session_factory, record)
    return record


@pytest.fixture
async def it_budget(session_factory, departments):
    record = Budget(
        department_id=departments["it"].id,
        fiscal_year=2024,
        total_amount=Decimal("5000.00"),
        remaining_amount=Decimal("5000.00"),
        spent_amount=Decimal("0.00"),
    )
    await _persist(session_factory, record)
    return record


@pytest.fixture
async def roles(session_factory):
    roles = {
        "approver": Role(name="Finance Officer", can_approve=True, max_budget_limit=Decimal("100000.00")),
        "limited": Role(name="Team Lead", can_approve=True, max_budget_limit=Decimal("500.00")),
        "requester": Role(name="Requester", can_approve=False, max_budget_limit=Decimal("0.00")),
    }
    await _persist(session_factory, *roles.values())
    return roles


@pytest.fixture
def make_user(session_factory):
    """Factory fixture: persist a user with the given roles."""
    async def _make_user(email, department, role_ids=(), is_active=True):
        return await _create_user(session_factory, email, department, role_ids, is_active)
    return _make_user


async def _create_user(session_factory, email, department, role_ids=(), is_active=True):
    first, _, last = email.split("@")[0].partition(".")
    user = User(
        first_name=first.capitalize(),
        last_name=(last or "user").capitalize(),
        email=email,
        hashed_password=get_password_hash(TEST_PASSWORD),
        department_id=department.id,
        is_active=is_active,
    )
    await _persist(session_factory, user)
    if role_ids:
        await _persist(session_factory, *[UserRole(user_id=user.id, role_id=role_id) for role_id in role_ids])
    return user


@pytest.fixture
async def requester(session_factory, departments, roles):
    return await _create_user(
        session_factory, "rita.requester@uni.edu", departments["finance"], [roles["requester"].id]
    )


@pytest.fixture
async def approver(session_factory, departments, roles):
    return await _create_user(
        session_factory, "alan.approver@uni.edu", departments["finance"], [roles["approver"].id]
    )


@pytest.fixture
async def limited_approver(session_factory, departments, roles):
    return await _create_user(
        session_factory, "lena.lead@uni.edu", departments["it"], [roles["limited"].id]
    )


@pytest.fixture
async def async_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client bound to the test database."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()