"""
Reference data seeding.

Safe to run any number of times: a department or role is inserted only when
no row with its name exists yet.
"""

from decimal import Decimal
from typing import Dict

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from procurement.core.logging import logger
from procurement.db.store import LedgerStore
from procurement.models import Base
from procurement.models.department import Department
from procurement.models.user import Role

DEFAULT_DEPARTMENTS = [
    # name, code
    ("Information Technology", "IT"),
    ("Finance", "FIN"),
    ("Human Resources", "HR"),
    ("Facilities Management", "FAC"),
    ("Academic Affairs", "ACA"),
    ("Research and Development", "RND"),
]

DEFAULT_ROLES = [
    # name, description, can_approve, max_budget_limit
    ("Requester", "Submits purchase requests", False, Decimal("0.00")),
    ("Department Head", "Approves departmental purchases", True, Decimal("50000.00")),
    ("Finance Officer", "Approves purchases across departments", True, Decimal("250000.00")),
    ("Administrator", "Manages reference data and onboarding", True, Decimal("1000000.00")),
]


async def create_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed_reference_data(db: AsyncSession) -> Dict[str, int]:
    """
    Insert the default departments and roles that are missing.

    Returns:
        Number of departments and roles inserted
    """
    store = LedgerStore(db)
    inserted = {"departments": 0, "roles": 0}

    async with store.unit_of_work():
        for name, code in DEFAULT_DEPARTMENTS:
            if not await store.exists(Department, Department.name == name):
                await store.put(Department(name=name, code=code))
                inserted["departments"] += 1

        for name, description, can_approve, limit in DEFAULT_ROLES:
            if not await store.exists(Role, Role.name == name):
                await store.put(Role(
                    name=name,
                    description=description,
                    can_approve=can_approve,
                    max_budget_limit=limit,
                ))
                inserted["roles"] += 1

    if any(inserted.values()):
        logger.info(f"Seeded reference data: {inserted}")
    else:
        logger.info("Reference data already present")
    return inserted
