from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from apps.suppliers.schemas import SupplierCreate, SupplierOut, SupplierUpdate
from apps.suppliers.service import SupplierService
from constants.roles import ADMIN, MEMBER
from models.base import get_db
from models.supplier import Supplier
from models.user import User
from security.auth_backend import get_current_active_user
from security.workspace_access import require_workspace_role


router = APIRouter(prefix="/api/workspaces/{workspace_id}/suppliers", tags=["Suppliers"])


def _serialize_supplier(s: Supplier) -> SupplierOut:
    return SupplierOut(
        id=str(s.id),
        workspaceId=str(s.workspace_id),
        companyName=s.company_name,
        email=s.email,
        phone=s.phone,
        website=s.website,
        address=s.address,
        createdAt=s.created_at,
        updatedAt=s.updated_at,
    )


@router.get("", response_model=List[SupplierOut], dependencies=[Depends(require_workspace_role(MEMBER))])
async def list_suppliers(
    workspace_id: str,
    search: Optional[str] = Query(default=None, description="Search by company name, email or phone"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    suppliers = await SupplierService.list_suppliers(db, workspace_id, current_user.id, search)
    return [_serialize_supplier(s) for s in suppliers]


@router.get("/{supplier_id}", response_model=SupplierOut, dependencies=[Depends(require_workspace_role(MEMBER))])
async def get_supplier(
    workspace_id: str,
    supplier_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    supplier = await SupplierService.get_supplier(db, workspace_id, supplier_id, current_user.id)
    return _serialize_supplier(supplier)


# Create Supplier (Admin Only)
@router.post(
    "",
    response_model=SupplierOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_workspace_role(ADMIN))],
)
async def create_supplier(
    workspace_id: str,
    payload: SupplierCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    supplier = await SupplierService.create_supplier(db, workspace_id, current_user.id, payload)
    return _serialize_supplier(supplier)


# Update Supplier (Admin Only)
@router.patch("/{supplier_id}", response_model=SupplierOut, dependencies=[Depends(require_workspace_role(ADMIN))])
async def update_supplier(
    workspace_id: str,
    supplier_id: str,
    payload: SupplierUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    supplier = await SupplierService.update_supplier(db, workspace_id, supplier_id, current_user.id, payload)
    return _serialize_supplier(supplier)


# Delete Supplier (Admin Only); 409 while purchase orders reference it
@router.delete(
    "/{supplier_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_workspace_role(ADMIN))],
)
async def delete_supplier(
    workspace_id: str,
    supplier_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    await SupplierService.delete_supplier(db, workspace_id, supplier_id, current_user.id)
    return None
