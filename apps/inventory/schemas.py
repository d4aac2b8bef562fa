from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, condecimal, conint, constr, field_validator


Quantity = conint(ge=0)
Price = condecimal(ge=0, max_digits=10, decimal_places=2)


def _blank_to_none(v):
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v


class InventoryItemCreate(BaseModel):
    """
    Quantities accept numeric strings (e.g. form input) and must be non-negative integers.
    """
    name: constr(strip_whitespace=True, min_length=1, max_length=255)
    sku: Optional[constr(max_length=100)] = None
    description: Optional[str] = None
    quantity: Quantity = 0
    min_quantity: Quantity = 0
    unit_price: Optional[Price] = None
    supplier_id: Optional[str] = None

    @field_validator("sku", "description", "supplier_id", "unit_price", mode="before")
    @classmethod
    def _blank_optional(cls, v):
        return _blank_to_none(v)


class InventoryItemUpdate(BaseModel):
    name: Optional[constr(strip_whitespace=True, min_length=1, max_length=255)] = None
    sku: Optional[constr(max_length=100)] = None
    description: Optional[str] = None
    quantity: Optional[Quantity] = None
    min_quantity: Optional[Quantity] = None
    unit_price: Optional[Price] = None
    supplier_id: Optional[str] = None

    @field_validator("sku", "description", "supplier_id", "unit_price", mode="before")
    @classmethod
    def _blank_optional(cls, v):
        return _blank_to_none(v)


class InventoryItemOut(BaseModel):
    id: str
    workspace_id: str = Field(alias="workspaceId")
    supplier_id: Optional[str] = Field(default=None, alias="supplierId")
    supplier_name: Optional[str] = Field(default=None, alias="supplierName")
    name: str
    sku: Optional[str] = None
    description: Optional[str] = None
    quantity: int
    min_quantity: int = Field(alias="minQuantity")
    unit_price: Optional[Decimal] = Field(default=None, alias="unitPrice")
    low_stock: bool = Field(alias="lowStock")
    suggested_reorder_quantity: int = Field(alias="suggestedReorderQuantity")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    model_config = {"populate_by_name": True}


class InventorySummaryOut(BaseModel):
    total_items: int = Field(alias="totalItems")
    low_stock_count: int = Field(alias="lowStockCount")
    supplier_count: int = Field(alias="supplierCount")
    total_value: Decimal = Field(alias="totalValue")
    linked_supplier_count: int = Field(alias="linkedSupplierCount")

    model_config = {"populate_by_name": True}


class DashboardOut(BaseModel):
    summary: InventorySummaryOut
    low_stock_items: List[InventoryItemOut] = Field(alias="lowStockItems")

    model_config = {"populate_by_name": True}
