"""
Service layer for suppliers.

Suppliers are reference data: requesters browse the approved ones, and an
administrator moves a supplier between Pending, Approved, Inactive and
Suspended.
"""

from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from procurement.core.exceptions import ConstraintViolation
from procurement.core.logging import logger
from procurement.db.audit import log_action
from procurement.db.store import LedgerStore, with_store_retry
from procurement.models.supplier import Supplier, SupplierStatus
from procurement.schemas.supplier import SupplierCreate

ClientInfo = Optional[Dict[str, Optional[str]]]


class SupplierService:
    """Service class for supplier operations."""

    @staticmethod
    @with_store_retry
    async def create(
        db: AsyncSession,
        supplier_in: SupplierCreate,
        user_id: Optional[UUID] = None,
        client: ClientInfo = None,
    ) -> Supplier:
        """
        Register a supplier.

        Raises:
            ConstraintViolation: The supplier name is taken
        """
        logger.info(f"Creating supplier: {supplier_in.name}")
        store = LedgerStore(db)
        async with store.unit_of_work():
            if await store.exists(Supplier, Supplier.name == supplier_in.name):
                logger.warning(f"Supplier name already exists: {supplier_in.name}")
                raise ConstraintViolation(f"Supplier already exists: {supplier_in.name}", name=supplier_in.name)
            supplier = await store.put(Supplier(**supplier_in.model_dump()))
            log_action(
                db,
                action="CREATE",
                resource_type="SUPPLIER",
                resource_id=supplier.id,
                details={"name": supplier.name, "status": supplier.status},
                user_id=user_id,
                client=client,
            )
        return supplier

    @staticmethod
    async def get_by_id(db: AsyncSession, supplier_id: UUID) -> Supplier:
        return await LedgerStore(db).get(Supplier, supplier_id)

    @staticmethod
    async def get_all(db: AsyncSession, status: Optional[SupplierStatus] = None) -> List[Supplier]:
        criteria = [Supplier.status == status] if status is not None else []
        return await LedgerStore(db).list(Supplier, *criteria, order_by=[Supplier.name])

    @staticmethod
    async def get_approved(db: AsyncSession) -> List[Supplier]:
        return await SupplierService.get_all(db, SupplierStatus.APPROVED)

    @staticmethod
    @with_store_retry
    async def update_status(
        db: AsyncSession,
        supplier_id: UUID,
        status: SupplierStatus,
        user_id: Optional[UUID] = None,
        client: ClientInfo = None,
    ) -> Supplier:
        logger.info(f"Setting supplier {supplier_id} status to {status.value}")
        store = LedgerStore(db)
        async with store.unit_of_work():
            supplier = await store.get(Supplier, supplier_id, for_update=True)
            previous = supplier.status
            if previous != status:
                supplier.status = status
                await store.put(supplier)
                log_action(
                    db,
                    action="UPDATE",
                    resource_type="SUPPLIER",
                    resource_id=supplier_id,
                    details={"status": {"old": previous, "new": status}},
                    user_id=user_id,
                    client=client,
                )
        await store.refresh(supplier)
        return supplier
