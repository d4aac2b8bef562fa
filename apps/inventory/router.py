from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from apps.inventory.rules import is_low_stock, suggested_reorder_quantity
from apps.inventory.schemas import InventoryItemCreate, InventoryItemOut, InventoryItemUpdate, InventorySummaryOut
from apps.inventory.service import InventoryService
from constants.roles import ADMIN, MEMBER
from models.base import get_db
from models.inventory_item import InventoryItem
from models.user import User
from security.auth_backend import get_current_active_user
from security.workspace_access import require_workspace_role


router = APIRouter(prefix="/api/workspaces/{workspace_id}/inventory", tags=["Inventory"])


def serialize_item(i: InventoryItem) -> InventoryItemOut:
    return InventoryItemOut(
        id=str(i.id),
        workspaceId=str(i.workspace_id),
        supplierId=str(i.supplier_id) if i.supplier_id else None,
        supplierName=i.supplier.company_name if i.supplier_id and i.supplier else None,
        name=i.name,
        sku=i.sku,
        description=i.description,
        quantity=i.quantity,
        minQuantity=i.min_quantity,
        unitPrice=i.unit_price,
        lowStock=is_low_stock(i),
        suggestedReorderQuantity=suggested_reorder_quantity(i),
        createdAt=i.created_at,
        updatedAt=i.updated_at,
    )


@router.get("", response_model=List[InventoryItemOut], dependencies=[Depends(require_workspace_role(MEMBER))])
async def list_items(
    workspace_id: str,
    search: Optional[str] = Query(default=None, description="Search by name, SKU or supplier"),
    low_stock_only: bool = Query(default=False),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    items = await InventoryService.list_items(db, workspace_id, current_user.id, search, low_stock_only)
    return [serialize_item(i) for i in items]


@router.get("/summary", response_model=InventorySummaryOut, dependencies=[Depends(require_workspace_role(MEMBER))])
async def get_summary(
    workspace_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    summary = await InventoryService.summary(db, workspace_id, current_user.id)
    return InventorySummaryOut(**summary)


@router.get("/{item_id}", response_model=InventoryItemOut, dependencies=[Depends(require_workspace_role(MEMBER))])
async def get_item(
    workspace_id: str,
    item_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    item = await InventoryService.get_item(db, workspace_id, item_id, current_user.id)
    return serialize_item(item)


# Create Item (Admin Only)
@router.post(
    "",
    response_model=InventoryItemOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_workspace_role(ADMIN))],
)
async def create_item(
    workspace_id: str,
    payload: InventoryItemCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    item = await InventoryService.create_item(db, workspace_id, current_user.id, payload)
    return serialize_item(item)


# Update Item (Admin Only)
@router.patch("/{item_id}", response_model=InventoryItemOut, dependencies=[Depends(require_workspace_role(ADMIN))])
async def update_item(
    workspace_id: str,
    item_id: str,
    payload: InventoryItemUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    item = await InventoryService.update_item(db, workspace_id, item_id, current_user.id, payload)
    return serialize_item(item)


# Delete Item (Admin Only)
@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_workspace_role(ADMIN))])
async def delete_item(
    workspace_id: str,
    item_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    await InventoryService.delete_item(db, workspace_id, item_id, current_user.id)
    return None
