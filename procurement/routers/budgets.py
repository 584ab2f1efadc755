"""
Budget API endpoints.
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from procurement.core.deps import get_actor, get_request_client
from procurement.core.logging import logger
from procurement.db.session import get_db
from procurement.models.user import User
from procurement.schemas.budget import Budget, BudgetCreate, BudgetReservation, BudgetUpdate
from procurement.services.budget import BudgetService

router = APIRouter()


@router.post("/", response_model=Budget, status_code=status.HTTP_201_CREATED)
async def create_budget(
    budget_in: BudgetCreate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_actor),
    client_info = Depends(get_request_client)
):
    """
    Create a new budget.

    Args:
        budget_in: Budget creation data
        db: Database session
        actor: Acting user
        client_info: Client IP and user agent

    Returns:
        Created budget, with remaining_amount equal to total_amount
    """
    logger.info(f"Budget creation requested by: {actor.id}")
    return await BudgetService.create(db, budget_in, user_id=actor.id, client=client_info)


@router.get("/", response_model=List[Budget])
async def list_budgets(
    department_id: Optional[UUID] = Query(None, description="Filter by department"),
    db: AsyncSession = Depends(get_db),
):
    return await BudgetService.get_all(db, department_id)


@router.get("/{budget_id}", response_model=Budget)
async def get_budget(budget_id: UUID, db: AsyncSession = Depends(get_db)):
    return await BudgetService.get_by_id(db, budget_id)


@router.get("/{budget_id}/reservations", response_model=List[BudgetReservation])
async def list_reservations(budget_id: UUID, db: AsyncSession = Depends(get_db)):
    return await BudgetService.reservations(db, budget_id)


@router.put("/{budget_id}", response_model=Budget)
async def update_budget(
    budget_id: UUID,
    budget_in: BudgetUpdate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_actor),
    client_info = Depends(get_request_client)
):
    return await BudgetService.update(db, budget_id, budget_in, user_id=actor.id, client=client_info)


@router.delete("/{budget_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_budget(
    budget_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_actor),
    client_info = Depends(get_request_client)
) -> None:
    await BudgetService.delete(db, budget_id, user_id=actor.id, client=client_info)
