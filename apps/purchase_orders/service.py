import logging
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from apps.purchase_orders.schemas import PurchaseOrderCreate, PurchaseOrderItemCreate, PurchaseOrderUpdate
from apps.suppliers.service import SupplierService
from common.exceptions import ConflictError, DomainError, NotFoundError, ValidationError
from constants.roles import ADMIN, MEMBER
from constants.statuses import DRAFT
from models.inventory_item import InventoryItem
from models.purchase_order import PurchaseOrder, PurchaseOrderItem
from security.workspace_access import IdLike, authorize_workspace, to_uuid

logger = logging.getLogger(__name__)

LineInput = Union[PurchaseOrderItemCreate, dict]


def order_total(items: Iterable) -> Decimal:
    """Sum of quantity * unit_price over the lines; a missing unit price counts as 0."""
    total = Decimal("0")
    for line in items:
        if line.unit_price is None:
            continue
        price = line.unit_price if isinstance(line.unit_price, Decimal) else Decimal(str(line.unit_price))
        total += line.quantity * price
    return total.quantize(Decimal("0.01"))


def _line_error_message(exc: PydanticValidationError) -> str:
    first = exc.errors()[0]
    field = ".".join(str(p) for p in first.get("loc", ())) or "line"
    return f"Invalid {field}: {first.get('msg', 'invalid value')}"


class PurchaseOrderService:
    @staticmethod
    async def _load_order(db: AsyncSession, workspace_id: IdLike, order_id: IdLike) -> PurchaseOrder:
        stmt = (
            select(PurchaseOrder)
            .where(
                PurchaseOrder.id == to_uuid(order_id, "purchase order id"),
                PurchaseOrder.workspace_id == to_uuid(workspace_id, "workspace id"),
            )
            .execution_options(populate_existing=True)
        )
        res = await db.execute(stmt)
        order = res.scalar_one_or_none()
        if not order:
            raise NotFoundError("Purchase order not found.")
        return order

    @staticmethod
    async def _check_supplier(db: AsyncSession, workspace_id: IdLike, supplier_id: IdLike):
        try:
            supplier = await SupplierService.load_supplier(db, workspace_id, supplier_id)
        except NotFoundError as exc:
            raise ValidationError("Supplier does not belong to this workspace.") from exc
        return supplier.id

    @staticmethod
    async def _check_inventory_item(db: AsyncSession, workspace_id: IdLike, item_id: Optional[str]):
        if item_id is None:
            return None
        stmt = select(InventoryItem.id).where(
            InventoryItem.id == to_uuid(item_id, "inventory item id"),
            InventoryItem.workspace_id == to_uuid(workspace_id, "workspace id"),
        )
        res = await db.execute(stmt)
        found = res.scalar_one_or_none()
        if found is None:
            raise ValidationError("Inventory item does not belong to this workspace.")
        return found

    @staticmethod
    async def list_orders(
        db: AsyncSession,
        workspace_id: IdLike,
        user_id: IdLike,
        status: Optional[str] = None,
    ) -> List[PurchaseOrder]:
        await authorize_workspace(db, workspace_id, user_id, MEMBER)
        stmt = select(PurchaseOrder).where(PurchaseOrder.workspace_id == to_uuid(workspace_id, "workspace id"))
        if status:
            stmt = stmt.where(PurchaseOrder.status == status)
        res = await db.execute(stmt.order_by(PurchaseOrder.created_at.desc()))
        return list(res.scalars().all())

    @staticmethod
    async def get_order(db: AsyncSession, workspace_id: IdLike, order_id: IdLike, user_id: IdLike) -> PurchaseOrder:
        await authorize_workspace(db, workspace_id, user_id, MEMBER)
        return await PurchaseOrderService._load_order(db, workspace_id, order_id)

    @staticmethod
    async def create_order(
        db: AsyncSession,
        workspace_id: IdLike,
        user_id: IdLike,
        payload: PurchaseOrderCreate,
    ) -> PurchaseOrder:
        await authorize_workspace(db, workspace_id, user_id, ADMIN)
        order = PurchaseOrder(
            workspace_id=to_uuid(workspace_id, "workspace id"),
            supplier_id=await PurchaseOrderService._check_supplier(db, workspace_id, payload.supplier_id),
            status=payload.status,
            notes=payload.notes,
            order_date=payload.order_date,
            expected_date=payload.expected_date,
            created_by=to_uuid(user_id, "user id"),
        )
        db.add(order)
        await db.commit()
        logger.info("Purchase order %s created in workspace %s", order.id, order.workspace_id)
        return await PurchaseOrderService._load_order(db, workspace_id, order.id)

    @staticmethod
    async def update_order(
        db: AsyncSession,
        workspace_id: IdLike,
        order_id: IdLike,
        user_id: IdLike,
        payload: PurchaseOrderUpdate,
    ) -> PurchaseOrder:
        await authorize_workspace(db, workspace_id, user_id, ADMIN)
        order = await PurchaseOrderService._load_order(db, workspace_id, order_id)
        updates = payload.model_dump(exclude_unset=True)
        for field in ("supplier_id", "status"):
            if field in updates and updates[field] is None:
                raise ValidationError(f"{field} cannot be null.")
        if "supplier_id" in updates:
            updates["supplier_id"] = await PurchaseOrderService._check_supplier(db, workspace_id, updates["supplier_id"])
        for field, value in updates.items():
            setattr(order, field, value)
        await db.commit()
        return await PurchaseOrderService._load_order(db, workspace_id, order.id)

    @staticmethod
    async def delete_order(db: AsyncSession, workspace_id: IdLike, order_id: IdLike, user_id: IdLike) -> None:
        await authorize_workspace(db, workspace_id, user_id, ADMIN)
        order = await PurchaseOrderService._load_order(db, workspace_id, order_id)
        await db.delete(order)
        await db.commit()
        logger.info("Purchase order %s deleted from workspace %s", order_id, workspace_id)

    @staticmethod
    async def _next_position(db: AsyncSession, order_id) -> int:
        res = await db.execute(
            select(func.max(PurchaseOrderItem.position)).where(PurchaseOrderItem.purchase_order_id == order_id)
        )
        current = res.scalar_one_or_none()
        return 0 if current is None else current + 1

    @staticmethod
    async def add_item(
        db: AsyncSession,
        workspace_id: IdLike,
        order_id: IdLike,
        user_id: IdLike,
        payload: PurchaseOrderItemCreate,
    ) -> PurchaseOrderItem:
        await authorize_workspace(db, workspace_id, user_id, ADMIN)
        order = await PurchaseOrderService._load_order(db, workspace_id, order_id)
        line = PurchaseOrderItem(
            purchase_order_id=order.id,
            inventory_item_id=await PurchaseOrderService._check_inventory_item(db, workspace_id, payload.inventory_item_id),
            item_name=payload.item_name,
            quantity=payload.quantity,
            unit_price=payload.unit_price,
            position=await PurchaseOrderService._next_position(db, order.id),
        )
        db.add(line)
        await db.commit()
        await db.refresh(line)
        return line

    @staticmethod
    async def remove_item(
        db: AsyncSession,
        workspace_id: IdLike,
        order_id: IdLike,
        line_id: IdLike,
        user_id: IdLike,
    ) -> None:
        await authorize_workspace(db, workspace_id, user_id, ADMIN)
        order = await PurchaseOrderService._load_order(db, workspace_id, order_id)
        stmt = select(PurchaseOrderItem).where(
            PurchaseOrderItem.id == to_uuid(line_id, "line id"),
            PurchaseOrderItem.purchase_order_id == order.id,
        )
        res = await db.execute(stmt)
        line = res.scalar_one_or_none()
        if not line:
            raise NotFoundError("Purchase order item not found.")
        await db.delete(line)
        await db.commit()

    @staticmethod
    async def create_reorder_purchase_order(
        db: AsyncSession,
        workspace_id: IdLike,
        supplier_id: IdLike,
        lines: Sequence[LineInput],
        user_id: IdLike,
    ) -> PurchaseOrder:
        """
        Create a draft order and its lines in one transaction.

        Lines are validated and inserted in array order, and ``position`` records that order.
        If any line fails nothing is persisted, and the raised error's ``details`` carry
        ``failed_line`` (zero-based index) and ``succeeded_lines`` (lines accepted before it).
        """
        await authorize_workspace(db, workspace_id, user_id, ADMIN)
        order = PurchaseOrder(
            workspace_id=to_uuid(workspace_id, "workspace id"),
            supplier_id=await PurchaseOrderService._check_supplier(db, workspace_id, supplier_id),
            status=DRAFT,
            created_by=to_uuid(user_id, "user id"),
        )
        db.add(order)
        index = 0
        try:
            await db.flush()
            for index, raw in enumerate(lines):
                try:
                    line = raw if isinstance(raw, PurchaseOrderItemCreate) else PurchaseOrderItemCreate.model_validate(raw)
                except PydanticValidationError as exc:
                    raise ValidationError(_line_error_message(exc)) from exc
                db.add(
                    PurchaseOrderItem(
                        purchase_order_id=order.id,
                        inventory_item_id=await PurchaseOrderService._check_inventory_item(
                            db, workspace_id, line.inventory_item_id
                        ),
                        item_name=line.item_name,
                        quantity=line.quantity,
                        unit_price=line.unit_price,
                        position=index,
                    )
                )
                await db.flush()
            await db.commit()
        except DomainError as exc:
            await db.rollback()
            exc.details = {"failed_line": index, "succeeded_lines": index}
            logger.warning("Reorder for workspace %s rolled back at line %d: %s", workspace_id, index, exc.message)
            raise
        except IntegrityError as exc:
            await db.rollback()
            logger.warning("Reorder for workspace %s rolled back at line %d", workspace_id, index)
            raise ConflictError(
                "Purchase order line could not be saved.",
                details={"failed_line": index, "succeeded_lines": index},
            ) from exc
        except Exception:
            await db.rollback()
            raise

        logger.info("Reorder purchase order %s created with %d line(s)", order.id, len(lines))
        return await PurchaseOrderService._load_order(db, workspace_id, order.id)
