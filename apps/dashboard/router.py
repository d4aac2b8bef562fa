from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from apps.inventory.router import serialize_item
from apps.inventory.rules import inventory_summary, low_stock_items
from apps.inventory.schemas import DashboardOut, InventorySummaryOut
from apps.inventory.service import InventoryService
from apps.suppliers.service import SupplierService
from constants.roles import MEMBER
from models.base import get_db
from models.user import User
from security.auth_backend import get_current_active_user
from security.workspace_access import require_workspace_role


router = APIRouter(prefix="/api/workspaces/{workspace_id}/dashboard", tags=["Dashboard"])

LOW_STOCK_PREVIEW = 5


@router.get("", response_model=DashboardOut, dependencies=[Depends(require_workspace_role(MEMBER))])
async def get_dashboard(
    workspace_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """
    Stats computed on read from current quantities, plus the first low-stock items by name.
    """
    items = await InventoryService.list_items(db, workspace_id, current_user.id)
    suppliers = await SupplierService.list_suppliers(db, workspace_id, current_user.id)
    flagged = low_stock_items(items)[:LOW_STOCK_PREVIEW]
    return DashboardOut(
        summary=InventorySummaryOut(**inventory_summary(items, len(suppliers))),
        lowStockItems=[serialize_item(i) for i in flagged],
    )
