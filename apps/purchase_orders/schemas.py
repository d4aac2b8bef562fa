from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, condecimal, conint, constr, field_validator

from constants.statuses import APPROVED, CANCELLED, DRAFT, ORDERED, RECEIVED, SUBMITTED


StatusName = Literal[DRAFT, SUBMITTED, APPROVED, ORDERED, RECEIVED, CANCELLED]
Price = condecimal(ge=0, max_digits=10, decimal_places=2)


def _blank_to_none(v):
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v


class PurchaseOrderCreate(BaseModel):
    supplier_id: str
    status: StatusName = DRAFT
    notes: Optional[str] = None
    order_date: Optional[datetime] = None
    expected_date: Optional[datetime] = None

    @field_validator("notes", "order_date", "expected_date", mode="before")
    @classmethod
    def _blank_optional(cls, v):
        return _blank_to_none(v)


class PurchaseOrderUpdate(BaseModel):
    """
    Any status may be set from any other; there is no transition graph.
    """
    supplier_id: Optional[str] = None
    status: Optional[StatusName] = None
    notes: Optional[str] = None
    order_date: Optional[datetime] = None
    expected_date: Optional[datetime] = None

    @field_validator("notes", "order_date", "expected_date", mode="before")
    @classmethod
    def _blank_optional(cls, v):
        return _blank_to_none(v)


class PurchaseOrderItemCreate(BaseModel):
    inventory_item_id: Optional[str] = None
    item_name: constr(strip_whitespace=True, min_length=1, max_length=255)
    quantity: conint(ge=1)
    unit_price: Optional[Price] = None

    @field_validator("inventory_item_id", "unit_price", mode="before")
    @classmethod
    def _blank_optional(cls, v):
        return _blank_to_none(v)


class ReorderRequest(BaseModel):
    supplier_id: str
    items: List[PurchaseOrderItemCreate] = Field(min_length=1)


class PurchaseOrderItemOut(BaseModel):
    id: str
    purchase_order_id: str = Field(alias="purchaseOrderId")
    inventory_item_id: Optional[str] = Field(default=None, alias="inventoryItemId")
    item_name: str = Field(alias="itemName")
    quantity: int
    unit_price: Optional[Decimal] = Field(default=None, alias="unitPrice")
    position: int
    created_at: datetime = Field(alias="createdAt")

    model_config = {"populate_by_name": True}


class PurchaseOrderOut(BaseModel):
    id: str
    workspace_id: str = Field(alias="workspaceId")
    supplier_id: str = Field(alias="supplierId")
    supplier_name: Optional[str] = Field(default=None, alias="supplierName")
    status: StatusName
    notes: Optional[str] = None
    order_date: Optional[datetime] = Field(default=None, alias="orderDate")
    expected_date: Optional[datetime] = Field(default=None, alias="expectedDate")
    created_by: Optional[str] = Field(default=None, alias="createdBy")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")
    total: Decimal
    items: List[PurchaseOrderItemOut] = []

    model_config = {"populate_by_name": True}
