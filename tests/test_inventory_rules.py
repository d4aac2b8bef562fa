from decimal import Decimal
from types import SimpleNamespace

import pytest

from apps.inventory.rules import (
    inventory_summary,
    is_low_stock,
    low_stock_items,
    suggested_draft_quantity,
    suggested_reorder_quantity,
)


def item(name="Bolt", quantity=0, min_quantity=0, unit_price=None, supplier_id=None):
    return SimpleNamespace(
        name=name, quantity=quantity, min_quantity=min_quantity, unit_price=unit_price, supplier_id=supplier_id
    )


@pytest.mark.parametrize(
    "quantity,min_quantity,expected",
    [(0, 0, True), (5, 5, True), (4, 5, True), (6, 5, False), (10, 0, False)],
)
def test_is_low_stock_is_quantity_at_or_below_minimum(quantity, min_quantity, expected):
    assert is_low_stock(item(quantity=quantity, min_quantity=min_quantity)) is expected


def test_is_low_stock_ignores_supplier_presence():
    assert is_low_stock(item(quantity=1, min_quantity=2, supplier_id="s1"))
    assert is_low_stock(item(quantity=1, min_quantity=2, supplier_id=None))


def test_low_stock_items_preserves_input_order():
    items = [
        item("c", quantity=1, min_quantity=5),
        item("a", quantity=9, min_quantity=5),
        item("b", quantity=0, min_quantity=1),
    ]
    assert [i.name for i in low_stock_items(items)] == ["c", "b"]


def test_suggested_quantities():
    assert suggested_reorder_quantity(item(quantity=2, min_quantity=10)) == 8
    assert suggested_draft_quantity(item(quantity=2, min_quantity=10)) == 18


def test_suggested_quantities_never_below_one():
    assert suggested_reorder_quantity(item(quantity=20, min_quantity=10)) == 1
    assert suggested_draft_quantity(item(quantity=50, min_quantity=10)) == 1


def test_inventory_summary_computes_on_read():
    items = [
        item(quantity=2, min_quantity=5, unit_price=Decimal("1.50"), supplier_id="s1"),
        item(quantity=10, min_quantity=5, unit_price=None, supplier_id="s1"),
        item(quantity=4, min_quantity=4, unit_price=Decimal("2.25"), supplier_id="s2"),
        item(quantity=7, min_quantity=1),
    ]
    summary = inventory_summary(items, supplier_count=3)
    assert summary["total_items"] == 4
    assert summary["low_stock_count"] == 2
    assert summary["supplier_count"] == 3
    assert summary["total_value"] == Decimal("12.00")
    assert summary["linked_supplier_count"] == 2


def test_inventory_summary_empty():
    summary = inventory_summary([], supplier_count=0)
    assert summary["total_items"] == 0
    assert summary["total_value"] == Decimal("0.00")
