import uuid
from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError

from apps.inventory.schemas import InventoryItemCreate, InventoryItemUpdate
from apps.inventory.service import InventoryService
from apps.suppliers.schemas import SupplierCreate
from apps.suppliers.service import SupplierService
from common.exceptions import NotFoundError, ValidationError

from conftest import api_user, make_user


def test_numeric_strings_are_coerced():
    payload = InventoryItemCreate(name="Bolt", quantity="12", min_quantity="3", unit_price="1.50")
    assert payload.quantity == 12
    assert payload.min_quantity == 3
    assert payload.unit_price == Decimal("1.50")


@pytest.mark.parametrize("field", ["quantity", "min_quantity"])
def test_negative_quantities_are_rejected(field):
    with pytest.raises(PydanticValidationError):
        InventoryItemCreate(name="Bolt", **{field: -1})


def test_blank_unit_price_means_unknown():
    assert InventoryItemCreate(name="Bolt", unit_price="").unit_price is None


async def test_create_with_supplier(db):
    user_id, workspace_id = await make_user(db, "owner@example.com")
    supplier = await SupplierService.create_supplier(db, workspace_id, user_id, SupplierCreate(company_name="Acme"))

    item = await InventoryService.create_item(
        db,
        workspace_id,
        user_id,
        InventoryItemCreate(name="Bolt", sku="B-1", quantity=2, min_quantity=5, supplier_id=str(supplier.id)),
    )
    assert item.supplier.company_name == "Acme"
    assert item.quantity == 2


async def test_supplier_from_another_workspace_is_rejected(db):
    user_id, workspace_id = await make_user(db, "owner@example.com")
    other_id, other_workspace_id = await make_user(db, "other@example.com")
    foreign = await SupplierService.create_supplier(db, other_workspace_id, other_id, SupplierCreate(company_name="Foreign"))

    with pytest.raises(ValidationError):
        await InventoryService.create_item(
            db, workspace_id, user_id, InventoryItemCreate(name="Bolt", supplier_id=str(foreign.id))
        )
    assert await InventoryService.list_items(db, workspace_id, user_id) == []


async def test_list_filters(db):
    user_id, workspace_id = await make_user(db, "owner@example.com")
    supplier = await SupplierService.create_supplier(db, workspace_id, user_id, SupplierCreate(company_name="Acme"))
    for name, qty, minimum, sid in (
        ("Washer", 50, 10, None),
        ("Bolt", 1, 5, str(supplier.id)),
        ("Nut", 5, 5, None),
    ):
        await InventoryService.create_item(
            db, workspace_id, user_id, InventoryItemCreate(name=name, quantity=qty, min_quantity=minimum, supplier_id=sid)
        )

    all_items = await InventoryService.list_items(db, workspace_id, user_id)
    assert [i.name for i in all_items] == ["Bolt", "Nut", "Washer"]

    low = await InventoryService.list_items(db, workspace_id, user_id, low_stock_only=True)
    assert [i.name for i in low] == ["Bolt", "Nut"]

    by_supplier = await InventoryService.list_items(db, workspace_id, user_id, search="acme")
    assert [i.name for i in by_supplier] == ["Bolt"]


async def test_update_overwrites_quantity(db):
    user_id, workspace_id = await make_user(db, "owner@example.com")
    item = await InventoryService.create_item(db, workspace_id, user_id, InventoryItemCreate(name="Bolt", quantity=10))

    updated = await InventoryService.update_item(db, workspace_id, item.id, user_id, InventoryItemUpdate(quantity=0))
    assert updated.quantity == 0
    assert updated.name == "Bolt"

    with pytest.raises(ValidationError):
        await InventoryService.update_item(db, workspace_id, item.id, user_id, InventoryItemUpdate(quantity=None))


async def test_delete_item(db):
    user_id, workspace_id = await make_user(db, "owner@example.com")
    item = await InventoryService.create_item(db, workspace_id, user_id, InventoryItemCreate(name="Bolt"))

    await InventoryService.delete_item(db, workspace_id, item.id, user_id)
    with pytest.raises(NotFoundError):
        await InventoryService.get_item(db, workspace_id, item.id, user_id)
    with pytest.raises(NotFoundError):
        await InventoryService.delete_item(db, workspace_id, uuid.uuid4(), user_id)


async def test_summary_counts(db):
    user_id, workspace_id = await make_user(db, "owner@example.com")
    supplier = await SupplierService.create_supplier(db, workspace_id, user_id, SupplierCreate(company_name="Acme"))
    await SupplierService.create_supplier(db, workspace_id, user_id, SupplierCreate(company_name="Unused"))
    await InventoryService.create_item(
        db,
        workspace_id,
        user_id,
        InventoryItemCreate(name="Bolt", quantity=4, min_quantity=5, unit_price="2.50", supplier_id=str(supplier.id)),
    )
    await InventoryService.create_item(db, workspace_id, user_id, InventoryItemCreate(name="Nut", quantity=10))

    summary = await InventoryService.summary(db, workspace_id, user_id)
    assert summary == {
        "total_items": 2,
        "low_stock_count": 1,
        "supplier_count": 2,
        "total_value": Decimal("10.00"),
        "linked_supplier_count": 1,
    }


class TestInventoryRoutes:
    async def test_create_and_list(self, client):
        headers, workspace_id = await api_user(client, "owner@example.com")
        base = f"/api/workspaces/{workspace_id}/inventory"

        res = await client.post(base, json={"name": "Bolt", "quantity": "2", "min_quantity": 5}, headers=headers)
        assert res.status_code == 201
        body = res.json()
        assert body["quantity"] == 2
        assert body["lowStock"] is True
        assert body["suggestedReorderQuantity"] == 3
        assert body["supplierName"] is None

        res = await client.get(base, params={"low_stock_only": "true"}, headers=headers)
        assert [i["name"] for i in res.json()] == ["Bolt"]

    async def test_negative_quantity_is_unprocessable(self, client):
        headers, workspace_id = await api_user(client, "owner@example.com")
        res = await client.post(
            f"/api/workspaces/{workspace_id}/inventory",
            json={"name": "Bolt", "quantity": -3},
            headers=headers,
        )
        assert res.status_code == 422
        body = res.json()
        assert body["error"] == "validation_error"
        assert any(err["loc"][-1] == "quantity" for err in body["details"])

    async def test_dashboard_lists_low_stock_preview(self, client):
        headers, workspace_id = await api_user(client, "owner@example.com")
        base = f"/api/workspaces/{workspace_id}/inventory"
        for n in range(7):
            await client.post(base, json={"name": f"Part {n}", "quantity": 0, "min_quantity": 1}, headers=headers)
        await client.post(base, json={"name": "Plenty", "quantity": 100, "min_quantity": 1}, headers=headers)

        res = await client.get(f"/api/workspaces/{workspace_id}/dashboard", headers=headers)
        assert res.status_code == 200
        body = res.json()
        assert body["summary"]["totalItems"] == 8
        assert body["summary"]["lowStockCount"] == 7
        assert [i["name"] for i in body["lowStockItems"]] == [f"Part {n}" for n in range(5)]
