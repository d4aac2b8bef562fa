"""
Derived catalog state.

Low stock is always computed from the current ``quantity`` and ``min_quantity``;
no count or flag produced here is ever persisted.
"""

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional


def is_low_stock(item) -> bool:
    return item.quantity <= item.min_quantity


def low_stock_items(items: Iterable) -> List:
    """Filter to low-stock items, preserving input order."""
    return [i for i in items if is_low_stock(i)]


def suggested_reorder_quantity(item) -> int:
    """Default quantity when reordering a single flagged item."""
    return max(1, item.min_quantity - item.quantity)


def suggested_draft_quantity(item) -> int:
    """Default quantity when sizing a drafted reorder email; aims for twice the minimum."""
    return max(1, item.min_quantity * 2 - item.quantity)


def _price(value: Optional[Any]) -> Decimal:
    if value is None:
        return Decimal("0")
    return value if isinstance(value, Decimal) else Decimal(str(value))


def stock_value(items: Iterable) -> Decimal:
    return sum((i.quantity * _price(i.unit_price) for i in items), Decimal("0"))


def inventory_summary(items: Iterable, supplier_count: int) -> Dict[str, Any]:
    items = list(items)
    return {
        "total_items": len(items),
        "low_stock_count": len(low_stock_items(items)),
        "supplier_count": supplier_count,
        "total_value": stock_value(items).quantize(Decimal("0.01")),
        "linked_supplier_count": len({i.supplier_id for i in items if i.supplier_id is not None}),
    }
