from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, condecimal, conint, constr


class ReorderEmailRequest(BaseModel):
    """
    Structured request for drafting a reorder email to a supplier.
    """
    item_name: constr(strip_whitespace=True, min_length=1, max_length=255) = Field(alias="itemName")
    current_quantity: conint(ge=0) = Field(alias="currentQuantity")
    reorder_quantity: conint(ge=1) = Field(alias="reorderQuantity")
    supplier_name: constr(strip_whitespace=True, min_length=1, max_length=255) = Field(alias="supplierName")
    supplier_email: Optional[EmailStr] = Field(default=None, alias="supplierEmail")
    sku: Optional[str] = None
    unit_price: Optional[condecimal(ge=0)] = Field(default=None, alias="unitPrice")
    company_name: str = Field(default="Our Company", alias="companyName")
    sender_name: str = Field(default="Procurement Team", alias="senderName")

    model_config = {"populate_by_name": True}


class ItemReorderEmailRequest(BaseModel):
    """
    Options for drafting an email straight from an inventory item.
    ``reorder_quantity`` defaults to the item's suggested draft quantity.
    """
    reorder_quantity: Optional[conint(ge=1)] = Field(default=None, alias="reorderQuantity")
    company_name: Optional[str] = Field(default=None, alias="companyName")
    sender_name: Optional[str] = Field(default=None, alias="senderName")

    model_config = {"populate_by_name": True}


class GeneratedEmailOut(BaseModel):
    email: str


class ReorderEmailDraftOut(BaseModel):
    email: str
    subject: str
    body: str
    source: Literal["ai", "template"]
    error: Optional[str] = None
    message: Optional[str] = None
    reorder_quantity: int = Field(alias="reorderQuantity")
    estimated_total: Optional[Decimal] = Field(default=None, alias="estimatedTotal")

    model_config = {"populate_by_name": True}
