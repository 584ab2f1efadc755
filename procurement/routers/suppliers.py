"""
Supplier API endpoints.
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from procurement.core.deps import get_actor, get_request_client
from procurement.db.session import get_db
from procurement.models.supplier import SupplierStatus
from procurement.models.user import User
from procurement.schemas.supplier import Supplier, SupplierCreate, SupplierStatusUpdate
from procurement.services.supplier import SupplierService

router = APIRouter()


@router.post("/", response_model=Supplier, status_code=status.HTTP_201_CREATED)
async def create_supplier(
    supplier_in: SupplierCreate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_actor),
    client_info = Depends(get_request_client)
):
    return await SupplierService.create(db, supplier_in, user_id=actor.id, client=client_info)


@router.get("/", response_model=List[Supplier])
async def list_suppliers(
    status: Optional[SupplierStatus] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Suppliers ordered by name, optionally restricted to one status."""
    return await SupplierService.get_all(db, status)


@router.get("/approved", response_model=List[Supplier])
async def list_approved_suppliers(db: AsyncSession = Depends(get_db)):
    return await SupplierService.get_approved(db)


@router.get("/{supplier_id}", response_model=Supplier)
async def get_supplier(supplier_id: UUID, db: AsyncSession = Depends(get_db)):
    return await SupplierService.get_by_id(db, supplier_id)


@router.put("/{supplier_id}/status", response_model=Supplier)
async def update_supplier_status(
    supplier_id: UUID,
    status_in: SupplierStatusUpdate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(get_actor),
    client_info = Depends(get_request_client)
):
    return await SupplierService.update_status(
        db, supplier_id, status_in.status, user_id=actor.id, client=client_info
    )
