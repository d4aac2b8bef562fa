import logging
from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from apps.inventory.rules import inventory_summary, is_low_stock
from apps.inventory.schemas import InventoryItemCreate, InventoryItemUpdate
from apps.suppliers.service import SupplierService
from common.exceptions import NotFoundError, ValidationError
from constants.roles import ADMIN, MEMBER
from models.inventory_item import InventoryItem
from models.supplier import Supplier
from security.workspace_access import IdLike, authorize_workspace, to_uuid

logger = logging.getLogger(__name__)


class InventoryService:
    @staticmethod
    async def list_items(
        db: AsyncSession,
        workspace_id: IdLike,
        user_id: IdLike,
        search: Optional[str] = None,
        low_stock_only: bool = False,
    ) -> List[InventoryItem]:
        """
        Items of the workspace sorted by name, each with its supplier loaded.
        ``low_stock_only`` filters with the derived predicate after loading.
        """
        await authorize_workspace(db, workspace_id, user_id, MEMBER)
        stmt = (
            select(InventoryItem)
            .outerjoin(Supplier, Supplier.id == InventoryItem.supplier_id)
            .where(InventoryItem.workspace_id == to_uuid(workspace_id, "workspace id"))
        )
        if search and search.strip():
            s = f"%{search.strip().lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(InventoryItem.name).like(s),
                    func.lower(InventoryItem.sku).like(s),
                    func.lower(Supplier.company_name).like(s),
                )
            )
        res = await db.execute(stmt.order_by(InventoryItem.name.asc()))
        items = list(res.scalars().all())
        if low_stock_only:
            items = [i for i in items if is_low_stock(i)]
        return items

    @staticmethod
    async def _load_item(db: AsyncSession, workspace_id: IdLike, item_id: IdLike) -> InventoryItem:
        stmt = select(InventoryItem).where(
            InventoryItem.id == to_uuid(item_id, "item id"),
            InventoryItem.workspace_id == to_uuid(workspace_id, "workspace id"),
        ).execution_options(populate_existing=True)
        res = await db.execute(stmt)
        item = res.scalar_one_or_none()
        if not item:
            raise NotFoundError("Inventory item not found.")
        return item

    @staticmethod
    async def get_item(db: AsyncSession, workspace_id: IdLike, item_id: IdLike, user_id: IdLike) -> InventoryItem:
        await authorize_workspace(db, workspace_id, user_id, MEMBER)
        return await InventoryService._load_item(db, workspace_id, item_id)

    @staticmethod
    async def _resolve_supplier_id(db: AsyncSession, workspace_id: IdLike, supplier_id: Optional[str]):
        if supplier_id is None:
            return None
        try:
            supplier = await SupplierService.load_supplier(db, workspace_id, supplier_id)
        except NotFoundError as exc:
            raise ValidationError("Supplier does not belong to this workspace.") from exc
        return supplier.id

    @staticmethod
    async def create_item(
        db: AsyncSession,
        workspace_id: IdLike,
        user_id: IdLike,
        payload: InventoryItemCreate,
    ) -> InventoryItem:
        await authorize_workspace(db, workspace_id, user_id, ADMIN)
        item = InventoryItem(
            workspace_id=to_uuid(workspace_id, "workspace id"),
            supplier_id=await InventoryService._resolve_supplier_id(db, workspace_id, payload.supplier_id),
            name=payload.name,
            sku=payload.sku,
            description=payload.description,
            quantity=payload.quantity,
            min_quantity=payload.min_quantity,
            unit_price=payload.unit_price,
        )
        db.add(item)
        await db.commit()
        logger.info("Inventory item %s created in workspace %s", item.id, item.workspace_id)
        return await InventoryService._load_item(db, workspace_id, item.id)

    @staticmethod
    async def update_item(
        db: AsyncSession,
        workspace_id: IdLike,
        item_id: IdLike,
        user_id: IdLike,
        payload: InventoryItemUpdate,
    ) -> InventoryItem:
        """
        Partial update. Quantities are plain overwrites (last writer wins).
        """
        await authorize_workspace(db, workspace_id, user_id, ADMIN)
        item = await InventoryService._load_item(db, workspace_id, item_id)
        updates = payload.model_dump(exclude_unset=True)
        for field in ("name", "quantity", "min_quantity"):
            if field in updates and updates[field] is None:
                raise ValidationError(f"{field} cannot be null.")
        if "supplier_id" in updates:
            updates["supplier_id"] = await InventoryService._resolve_supplier_id(db, workspace_id, updates["supplier_id"])
        for field, value in updates.items():
            setattr(item, field, value)
        await db.commit()
        return await InventoryService._load_item(db, workspace_id, item.id)

    @staticmethod
    async def delete_item(db: AsyncSession, workspace_id: IdLike, item_id: IdLike, user_id: IdLike) -> None:
        """Purchase-order lines copied from the item keep their snapshot; their back-reference is nulled."""
        await authorize_workspace(db, workspace_id, user_id, ADMIN)
        item = await InventoryService._load_item(db, workspace_id, item_id)
        await db.delete(item)
        await db.commit()
        logger.info("Inventory item %s deleted from workspace %s", item_id, workspace_id)

    @staticmethod
    async def summary(db: AsyncSession, workspace_id: IdLike, user_id: IdLike) -> dict:
        items = await InventoryService.list_items(db, workspace_id, user_id)
        count = await db.execute(
            select(func.count()).select_from(Supplier).where(Supplier.workspace_id == to_uuid(workspace_id, "workspace id"))
        )
        return inventory_summary(items, int(count.scalar_one() or 0))
