from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from apps.purchase_orders.schemas import (
    PurchaseOrderCreate,
    PurchaseOrderItemCreate,
    PurchaseOrderItemOut,
    PurchaseOrderOut,
    PurchaseOrderUpdate,
    ReorderRequest,
    StatusName,
)
from apps.purchase_orders.service import PurchaseOrderService, order_total
from constants.roles import ADMIN, MEMBER
from models.base import get_db
from models.purchase_order import PurchaseOrder, PurchaseOrderItem
from models.user import User
from security.auth_backend import get_current_active_user
from security.workspace_access import require_workspace_role


router = APIRouter(prefix="/api/workspaces/{workspace_id}/purchase-orders", tags=["Purchase Orders"])


def _serialize_line(line: PurchaseOrderItem) -> PurchaseOrderItemOut:
    return PurchaseOrderItemOut(
        id=str(line.id),
        purchaseOrderId=str(line.purchase_order_id),
        inventoryItemId=str(line.inventory_item_id) if line.inventory_item_id else None,
        itemName=line.item_name,
        quantity=line.quantity,
        unitPrice=line.unit_price,
        position=line.position,
        createdAt=line.created_at,
    )


def _serialize_order(o: PurchaseOrder, include_items: bool = True) -> PurchaseOrderOut:
    return PurchaseOrderOut(
        id=str(o.id),
        workspaceId=str(o.workspace_id),
        supplierId=str(o.supplier_id),
        supplierName=o.supplier.company_name if o.supplier else None,
        status=o.status,
        notes=o.notes,
        orderDate=o.order_date,
        expectedDate=o.expected_date,
        createdBy=str(o.created_by) if o.created_by else None,
        createdAt=o.created_at,
        updatedAt=o.updated_at,
        total=order_total(o.items),
        items=[_serialize_line(line) for line in o.items] if include_items else [],
    )


@router.get("", response_model=List[PurchaseOrderOut], dependencies=[Depends(require_workspace_role(MEMBER))])
async def list_orders(
    workspace_id: str,
    status: Optional[StatusName] = Query(default=None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    orders = await PurchaseOrderService.list_orders(db, workspace_id, current_user.id, status)
    return [_serialize_order(o, include_items=False) for o in orders]


@router.get("/{order_id}", response_model=PurchaseOrderOut, dependencies=[Depends(require_workspace_role(MEMBER))])
async def get_order(
    workspace_id: str,
    order_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    order = await PurchaseOrderService.get_order(db, workspace_id, order_id, current_user.id)
    return _serialize_order(order)


# Create Purchase Order (Admin Only)
@router.post(
    "",
    response_model=PurchaseOrderOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_workspace_role(ADMIN))],
)
async def create_order(
    workspace_id: str,
    payload: PurchaseOrderCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    order = await PurchaseOrderService.create_order(db, workspace_id, current_user.id, payload)
    return _serialize_order(order)


# Reorder: draft order plus all lines, all-or-nothing (Admin Only)
@router.post(
    "/reorder",
    response_model=PurchaseOrderOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_workspace_role(ADMIN))],
)
async def create_reorder(
    workspace_id: str,
    payload: ReorderRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    order = await PurchaseOrderService.create_reorder_purchase_order(
        db, workspace_id, payload.supplier_id, payload.items, current_user.id
    )
    return _serialize_order(order)


# Update Purchase Order (Admin Only)
@router.patch("/{order_id}", response_model=PurchaseOrderOut, dependencies=[Depends(require_workspace_role(ADMIN))])
async def update_order(
    workspace_id: str,
    order_id: str,
    payload: PurchaseOrderUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    order = await PurchaseOrderService.update_order(db, workspace_id, order_id, current_user.id, payload)
    return _serialize_order(order)


# Delete Purchase Order (Admin Only)
@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_workspace_role(ADMIN))])
async def delete_order(
    workspace_id: str,
    order_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    await PurchaseOrderService.delete_order(db, workspace_id, order_id, current_user.id)
    return None


@router.post(
    "/{order_id}/items",
    response_model=PurchaseOrderItemOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_workspace_role(ADMIN))],
)
async def add_item(
    workspace_id: str,
    order_id: str,
    payload: PurchaseOrderItemCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    line = await PurchaseOrderService.add_item(db, workspace_id, order_id, current_user.id, payload)
    return _serialize_line(line)


@router.delete(
    "/{order_id}/items/{line_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_workspace_role(ADMIN))],
)
async def remove_item(
    workspace_id: str,
    order_id: str,
    line_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    await PurchaseOrderService.remove_item(db, workspace_id, order_id, line_id, current_user.id)
    return None
