"""
Tests for the ledger store and the store retry policy.
"""

import asyncio
import uuid

import pytest
from sqlalchemy.exc import OperationalError

from procurement.core.config import settings
from procurement.core.exceptions import ConstraintViolation, NotFound, StoreUnavailable
from procurement.db.store import LedgerStore, with_store_retry
from procurement.models import Department


@pytest.mark.asyncio
async def test_get_missing_raises_not_found(db_session):
    with pytest.raises(NotFound) as exc_info:
        await LedgerStore(db_session).get(Department, uuid.uuid4())
    assert exc_info.value.entity == "Department"


@pytest.mark.asyncio
async def test_find_missing_returns_none(db_session):
    assert await LedgerStore(db_session).find(Department, Department.name == "Nowhere") is None


@pytest.mark.asyncio
async def test_put_count_and_list(db_session):
    store = LedgerStore(db_session)
    async with store.unit_of_work():
        await store.put(Department(name="Physics", code="PHY"))
        await store.put_all([Department(name="Chemistry", code="CHE"), Department(name="Biology")])

    assert await store.count(Department) == 3
    assert await store.exists(Department, Department.code == "PHY")
    names = [d.name for d in await store.list(Department, order_by=[Department.name])]
    assert names == ["Biology", "Chemistry", "Physics"]


@pytest.mark.asyncio
async def test_unique_breach_maps_to_constraint_violation(db_session, session_factory, departments):
    store = LedgerStore(db_session)
    with pytest.raises(ConstraintViolation):
        async with store.unit_of_work():
            await store.put(Department(name="Finance", code="FIN2"))

    async with session_factory() as session:
        assert await LedgerStore(session).count(Department) == 2


@pytest.mark.asyncio
async def test_unit_of_work_rolls_back_on_error(db_session, session_factory):
    store = LedgerStore(db_session)
    with pytest.raises(RuntimeError):
        async with store.unit_of_work():
            await store.put(Department(name="Geology"))
            raise RuntimeError("boom")

    async with session_factory() as session:
        assert not await LedgerStore(session).exists(Department, Department.name == "Geology")


@pytest.mark.asyncio
async def test_timeout_maps_to_store_unavailable(db_session):
    store = LedgerStore(db_session, timeout=0.01)
    with pytest.raises(StoreUnavailable):
        await store._call(asyncio.sleep(1), "slow call")


@pytest.mark.asyncio
async def test_operational_error_maps_to_store_unavailable(db_session):
    async def refused():
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    with pytest.raises(StoreUnavailable):
        await LedgerStore(db_session)._call(refused(), "refused call")


@pytest.mark.asyncio
async def test_retry_recovers_after_one_failure():
    calls = []

    @with_store_retry
    async def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise StoreUnavailable("down")
        return "ok"

    assert await flaky() == "ok"
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_retry_gives_up_after_max_retries():
    calls = []

    @with_store_retry
    async def down():
        calls.append(1)
        raise StoreUnavailable("down")

    with pytest.raises(StoreUnavailable):
        await down()
    assert len(calls) == settings.store.max_retries + 1


@pytest.mark.asyncio
async def test_retry_does_not_retry_domain_errors():
    calls = []

    @with_store_retry
    async def missing():
        calls.append(1)
        raise NotFound("Budget", "x")

    with pytest.raises(NotFound):
        await missing()
    assert len(calls) == 1
