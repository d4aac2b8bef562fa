from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from apps.inventory.rules import suggested_draft_quantity
from apps.inventory.service import InventoryService
from apps.reorder_email.schemas import (
    GeneratedEmailOut,
    ItemReorderEmailRequest,
    ReorderEmailDraftOut,
    ReorderEmailRequest,
)
from apps.reorder_email.service import ReorderEmailGenerator, draft_reorder_email, get_reorder_email_generator
from common.exceptions import ValidationError
from constants.roles import MEMBER
from models.base import get_db
from models.user import User
from security.auth_backend import get_current_active_user
from security.workspace_access import require_workspace_role


router = APIRouter(
    prefix="/api/workspaces/{workspace_id}",
    tags=["Reorder Email"],
    dependencies=[Depends(require_workspace_role(MEMBER))],
)


@router.post("/reorder-email", response_model=GeneratedEmailOut)
async def generate_reorder_email(
    workspace_id: str,
    payload: ReorderEmailRequest,
    generator: ReorderEmailGenerator = Depends(get_reorder_email_generator),
):
    """
    Raw generation. Upstream failures surface with their own status (429, 402, 502, 503).
    """
    email = await generator.generate(payload)
    return GeneratedEmailOut(email=email)


@router.post("/reorder-email/draft", response_model=ReorderEmailDraftOut)
async def draft_email(
    workspace_id: str,
    payload: ReorderEmailRequest,
    generator: ReorderEmailGenerator = Depends(get_reorder_email_generator),
):
    draft = await draft_reorder_email(payload, generator)
    return ReorderEmailDraftOut(**draft)


@router.post("/inventory/{item_id}/reorder-email", response_model=ReorderEmailDraftOut)
async def draft_email_for_item(
    workspace_id: str,
    item_id: str,
    payload: ItemReorderEmailRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    generator: ReorderEmailGenerator = Depends(get_reorder_email_generator),
):
    """
    Draft a reorder email for one inventory item, sized by its suggested draft quantity unless overridden.
    """
    item = await InventoryService.get_item(db, workspace_id, item_id, current_user.id)
    if item.supplier is None:
        raise ValidationError("Assign a supplier to this item before drafting a reorder email.")

    request = ReorderEmailRequest(
        itemName=item.name,
        currentQuantity=item.quantity,
        reorderQuantity=payload.reorder_quantity or suggested_draft_quantity(item),
        supplierName=item.supplier.company_name,
        supplierEmail=item.supplier.email,
        sku=item.sku,
        unitPrice=item.unit_price,
        companyName=payload.company_name or "Our Company",
        senderName=payload.sender_name or "Procurement Team",
    )
    draft = await draft_reorder_email(request, generator)
    return ReorderEmailDraftOut(**draft)
