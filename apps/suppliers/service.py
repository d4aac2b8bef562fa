import logging
from typing import List, Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from apps.suppliers.schemas import SupplierCreate, SupplierUpdate
from common.exceptions import ConflictError, NotFoundError, ValidationError
from constants.roles import ADMIN, MEMBER
from models.inventory_item import InventoryItem
from models.purchase_order import PurchaseOrder
from models.supplier import Supplier
from security.workspace_access import IdLike, authorize_workspace, to_uuid

logger = logging.getLogger(__name__)

LINKED_ORDERS_MESSAGE = "Supplier has linked purchase orders and cannot be deleted."


class SupplierService:
    @staticmethod
    async def list_suppliers(
        db: AsyncSession,
        workspace_id: IdLike,
        user_id: IdLike,
        search: Optional[str] = None,
    ) -> List[Supplier]:
        await authorize_workspace(db, workspace_id, user_id, MEMBER)
        stmt = select(Supplier).where(Supplier.workspace_id == to_uuid(workspace_id, "workspace id"))
        if search and search.strip():
            s = f"%{search.strip().lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(Supplier.company_name).like(s),
                    func.lower(Supplier.email).like(s),
                    func.lower(Supplier.phone).like(s),
                )
            )
        res = await db.execute(stmt.order_by(Supplier.company_name.asc()))
        return list(res.scalars().all())

    @staticmethod
    async def load_supplier(db: AsyncSession, workspace_id: IdLike, supplier_id: IdLike) -> Supplier:
        """Fetch a supplier of the given workspace; suppliers of other workspaces are reported as absent."""
        stmt = select(Supplier).where(
            Supplier.id == to_uuid(supplier_id, "supplier id"),
            Supplier.workspace_id == to_uuid(workspace_id, "workspace id"),
        )
        res = await db.execute(stmt)
        supplier = res.scalar_one_or_none()
        if not supplier:
            raise NotFoundError("Supplier not found.")
        return supplier

    @staticmethod
    async def get_supplier(db: AsyncSession, workspace_id: IdLike, supplier_id: IdLike, user_id: IdLike) -> Supplier:
        await authorize_workspace(db, workspace_id, user_id, MEMBER)
        return await SupplierService.load_supplier(db, workspace_id, supplier_id)

    @staticmethod
    async def create_supplier(
        db: AsyncSession,
        workspace_id: IdLike,
        user_id: IdLike,
        payload: SupplierCreate,
    ) -> Supplier:
        await authorize_workspace(db, workspace_id, user_id, ADMIN)
        supplier = Supplier(
            workspace_id=to_uuid(workspace_id, "workspace id"),
            company_name=payload.company_name,
            email=payload.email,
            phone=payload.phone,
            website=payload.website,
            address=payload.address,
        )
        db.add(supplier)
        await db.commit()
        await db.refresh(supplier)
        logger.info("Supplier %s created in workspace %s", supplier.id, supplier.workspace_id)
        return supplier

    @staticmethod
    async def update_supplier(
        db: AsyncSession,
        workspace_id: IdLike,
        supplier_id: IdLike,
        user_id: IdLike,
        payload: SupplierUpdate,
    ) -> Supplier:
        await authorize_workspace(db, workspace_id, user_id, ADMIN)
        supplier = await SupplierService.load_supplier(db, workspace_id, supplier_id)
        updates = payload.model_dump(exclude_unset=True)
        if "company_name" in updates and not updates["company_name"]:
            raise ValidationError("Company name is required.")
        for field, value in updates.items():
            setattr(supplier, field, value)
        await db.commit()
        await db.refresh(supplier)
        return supplier

    @staticmethod
    async def delete_supplier(db: AsyncSession, workspace_id: IdLike, supplier_id: IdLike, user_id: IdLike) -> None:
        """
        Delete a supplier. Refused while any purchase order references it;
        inventory items that reference it are detached (supplier_id set to null) and kept.
        """
        await authorize_workspace(db, workspace_id, user_id, ADMIN)
        supplier = await SupplierService.load_supplier(db, workspace_id, supplier_id)

        linked = await db.execute(select(PurchaseOrder.id).where(PurchaseOrder.supplier_id == supplier.id).limit(1))
        if linked.scalar_one_or_none() is not None:
            raise ConflictError(LINKED_ORDERS_MESSAGE)

        try:
            await db.execute(
                update(InventoryItem)
                .where(InventoryItem.supplier_id == supplier.id)
                .values(supplier_id=None)
                .execution_options(synchronize_session="fetch")
            )
            await db.delete(supplier)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Supplier %s deleted from workspace %s", supplier_id, workspace_id)
