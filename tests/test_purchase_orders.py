import uuid
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import InvalidRequestError

from apps.inventory.schemas import InventoryItemCreate
from apps.inventory.service import InventoryService
from apps.purchase_orders.schemas import PurchaseOrderCreate, PurchaseOrderItemCreate, PurchaseOrderUpdate
from apps.purchase_orders.service import PurchaseOrderService, order_total
from apps.suppliers.schemas import SupplierCreate
from apps.suppliers.service import SupplierService
from common.exceptions import AuthorizationError, ConflictError, ValidationError
from constants.roles import MEMBER
from constants.statuses import CANCELLED, DRAFT, PURCHASE_ORDER_STATUSES, RECEIVED
from models.purchase_order import PurchaseOrder, PurchaseOrderItem
from models.workspace import WorkspaceMember

from conftest import api_user, failing_insert, make_user


async def _setup(db):
    user_id, workspace_id = await make_user(db, "owner@example.com")
    supplier = await SupplierService.create_supplier(db, workspace_id, user_id, SupplierCreate(company_name="Acme"))
    return user_id, workspace_id, supplier


async def _order_count(db, workspace_id):
    res = await db.execute(select(func.count()).select_from(PurchaseOrder).where(PurchaseOrder.workspace_id == workspace_id))
    return res.scalar_one()


def test_order_total_skips_unknown_prices():
    lines = [
        SimpleNamespace(quantity=5, unit_price=Decimal("2.50")),
        SimpleNamespace(quantity=3, unit_price=None),
        SimpleNamespace(quantity=2, unit_price="0.10"),
    ]
    assert order_total(lines) == Decimal("12.70")
    assert order_total([]) == Decimal("0.00")


async def test_reorder_creates_draft_with_lines(db):
    user_id, workspace_id, supplier = await _setup(db)
    item = await InventoryService.create_item(db, workspace_id, user_id, InventoryItemCreate(name="Widget", quantity=1))

    order = await PurchaseOrderService.create_reorder_purchase_order(
        db,
        workspace_id,
        supplier.id,
        [{"inventory_item_id": str(item.id), "item_name": "Widget", "quantity": 5, "unit_price": "2.50"}],
        user_id,
    )

    assert order.status == DRAFT
    assert order.supplier_id == supplier.id
    assert len(order.items) == 1
    assert order.items[0].inventory_item_id == item.id
    assert order_total(order.items) == Decimal("12.50")


async def test_reorder_keeps_line_order(db):
    user_id, workspace_id, supplier = await _setup(db)
    names = ["Zinc plate", "Anchor", "Mallet"]

    order = await PurchaseOrderService.create_reorder_purchase_order(
        db,
        workspace_id,
        supplier.id,
        [PurchaseOrderItemCreate(item_name=n, quantity=1) for n in names],
        user_id,
    )

    assert [line.item_name for line in order.items] == names
    assert [line.position for line in order.items] == [0, 1, 2]


async def test_line_back_reference_is_never_lazy_loaded(db):
    user_id, workspace_id, supplier = await _setup(db)
    order = await PurchaseOrderService.create_reorder_purchase_order(
        db,
        workspace_id,
        supplier.id,
        [PurchaseOrderItemCreate(item_name=n, quantity=1) for n in ("Anchor", "Mallet")],
        user_id,
    )
    order_id, first_line_id = order.id, order.items[0].id

    await PurchaseOrderService.remove_item(db, workspace_id, order_id, first_line_id, user_id)
    db.expunge_all()

    line = (await db.execute(select(PurchaseOrderItem).where(PurchaseOrderItem.purchase_order_id == order_id))).scalar_one()
    assert line.item_name == "Mallet"
    with pytest.raises(InvalidRequestError):
        line.purchase_order


async def test_reorder_failure_persists_nothing(db):
    user_id, workspace_id, supplier = await _setup(db)
    lines = [
        {"item_name": "Widget", "quantity": 5},
        {"item_name": "Ghost", "quantity": 1, "inventory_item_id": str(uuid.uuid4())},
        {"item_name": "Never reached", "quantity": 1},
    ]

    with pytest.raises(ValidationError) as exc_info:
        await PurchaseOrderService.create_reorder_purchase_order(db, workspace_id, supplier.id, lines, user_id)

    assert exc_info.value.details == {"failed_line": 1, "succeeded_lines": 1}
    assert await _order_count(db, workspace_id) == 0


async def test_reorder_invalid_quantity_reports_line(db):
    user_id, workspace_id, supplier = await _setup(db)
    lines = [{"item_name": "Widget", "quantity": 0}]

    with pytest.raises(ValidationError) as exc_info:
        await PurchaseOrderService.create_reorder_purchase_order(db, workspace_id, supplier.id, lines, user_id)

    assert exc_info.value.details == {"failed_line": 0, "succeeded_lines": 0}
    assert await _order_count(db, workspace_id) == 0


async def test_reorder_insert_failure_rolls_back_order(db):
    user_id, workspace_id, supplier = await _setup(db)

    with failing_insert(PurchaseOrderItem):
        with pytest.raises(RuntimeError):
            await PurchaseOrderService.create_reorder_purchase_order(
                db, workspace_id, supplier.id, [{"item_name": "Widget", "quantity": 1}], user_id
            )

    assert await _order_count(db, workspace_id) == 0


async def test_reorder_requires_workspace_supplier(db):
    user_id, workspace_id, _ = await _setup(db)
    other_id, other_workspace_id = await make_user(db, "other@example.com")
    foreign = await SupplierService.create_supplier(db, other_workspace_id, other_id, SupplierCreate(company_name="Foreign"))

    with pytest.raises(ValidationError):
        await PurchaseOrderService.create_reorder_purchase_order(
            db, workspace_id, foreign.id, [{"item_name": "Widget", "quantity": 1}], user_id
        )


async def test_member_cannot_reorder(db):
    _, workspace_id, supplier = await _setup(db)
    member_id, _ = await make_user(db, "member@example.com")
    db.add(WorkspaceMember(workspace_id=workspace_id, user_id=member_id, role=MEMBER))
    await db.commit()

    with pytest.raises(AuthorizationError):
        await PurchaseOrderService.create_reorder_purchase_order(
            db, workspace_id, supplier.id, [{"item_name": "Widget", "quantity": 1}], member_id
        )


async def test_any_status_can_follow_any_other(db):
    user_id, workspace_id, supplier = await _setup(db)
    order = await PurchaseOrderService.create_order(
        db, workspace_id, user_id, PurchaseOrderCreate(supplier_id=str(supplier.id), status=RECEIVED)
    )

    for status in (CANCELLED, DRAFT) + PURCHASE_ORDER_STATUSES:
        order = await PurchaseOrderService.update_order(
            db, workspace_id, order.id, user_id, PurchaseOrderUpdate(status=status)
        )
        assert order.status == status


async def test_add_and_remove_lines(db):
    user_id, workspace_id, supplier = await _setup(db)
    order = await PurchaseOrderService.create_order(db, workspace_id, user_id, PurchaseOrderCreate(supplier_id=str(supplier.id)))

    first = await PurchaseOrderService.add_item(
        db, workspace_id, order.id, user_id, PurchaseOrderItemCreate(item_name="Bolt", quantity=2, unit_price="1.00")
    )
    second = await PurchaseOrderService.add_item(
        db, workspace_id, order.id, user_id, PurchaseOrderItemCreate(item_name="Nut", quantity=4, unit_price="0.25")
    )
    assert (first.position, second.position) == (0, 1)

    order = await PurchaseOrderService.get_order(db, workspace_id, order.id, user_id)
    assert order_total(order.items) == Decimal("3.00")

    await PurchaseOrderService.remove_item(db, workspace_id, order.id, first.id, user_id)
    order = await PurchaseOrderService.get_order(db, workspace_id, order.id, user_id)
    assert [line.item_name for line in order.items] == ["Nut"]


async def test_deleting_inventory_item_keeps_line_snapshot(db):
    user_id, workspace_id, supplier = await _setup(db)
    item = await InventoryService.create_item(db, workspace_id, user_id, InventoryItemCreate(name="Widget"))
    order = await PurchaseOrderService.create_reorder_purchase_order(
        db, workspace_id, supplier.id, [{"inventory_item_id": str(item.id), "item_name": "Widget", "quantity": 3}], user_id
    )
    order_id = order.id

    await InventoryService.delete_item(db, workspace_id, item.id, user_id)
    db.expire_all()

    order = await PurchaseOrderService.get_order(db, workspace_id, order_id, user_id)
    (line,) = order.items
    assert line.item_name == "Widget"
    assert line.quantity == 3
    assert line.inventory_item_id is None


async def test_list_orders_by_status(db):
    user_id, workspace_id, supplier = await _setup(db)
    draft = await PurchaseOrderService.create_order(db, workspace_id, user_id, PurchaseOrderCreate(supplier_id=str(supplier.id)))
    await PurchaseOrderService.create_order(
        db, workspace_id, user_id, PurchaseOrderCreate(supplier_id=str(supplier.id), status=RECEIVED)
    )

    orders = await PurchaseOrderService.list_orders(db, workspace_id, user_id, DRAFT)
    assert [o.id for o in orders] == [draft.id]
    assert len(await PurchaseOrderService.list_orders(db, workspace_id, user_id)) == 2


class TestPurchaseOrderRoutes:
    async def test_reorder_over_http(self, client):
        headers, workspace_id = await api_user(client, "owner@example.com")
        base = f"/api/workspaces/{workspace_id}"
        supplier = (await client.post(f"{base}/suppliers", json={"company_name": "Acme"}, headers=headers)).json()

        res = await client.post(
            f"{base}/purchase-orders/reorder",
            json={"supplier_id": supplier["id"], "items": [{"item_name": "Widget", "quantity": 5, "unit_price": 2.5}]},
            headers=headers,
        )
        assert res.status_code == 201
        order = res.json()
        assert order["status"] == DRAFT
        assert order["supplierName"] == "Acme"
        assert Decimal(order["total"]) == Decimal("12.50")
        assert [line["itemName"] for line in order["items"]] == ["Widget"]

    async def test_reorder_failure_details_over_http(self, client):
        headers, workspace_id = await api_user(client, "owner@example.com")
        base = f"/api/workspaces/{workspace_id}"
        supplier = (await client.post(f"{base}/suppliers", json={"company_name": "Acme"}, headers=headers)).json()

        res = await client.post(
            f"{base}/purchase-orders/reorder",
            json={
                "supplier_id": supplier["id"],
                "items": [
                    {"item_name": "Widget", "quantity": 1},
                    {"item_name": "Ghost", "quantity": 1, "inventory_item_id": str(uuid.uuid4())},
                ],
            },
            headers=headers,
        )
        assert res.status_code == 400
        assert res.json()["details"] == {"failed_line": 1, "succeeded_lines": 1}

        res = await client.get(f"{base}/purchase-orders", headers=headers)
        assert res.json() == []

    async def test_supplier_delete_blocked_over_http(self, client):
        headers, workspace_id = await api_user(client, "owner@example.com")
        base = f"/api/workspaces/{workspace_id}"
        supplier = (await client.post(f"{base}/suppliers", json={"company_name": "Acme"}, headers=headers)).json()
        await client.post(f"{base}/purchase-orders", json={"supplier_id": supplier["id"]}, headers=headers)

        res = await client.delete(f"{base}/suppliers/{supplier['id']}", headers=headers)
        assert res.status_code == 409
        assert res.json()["error"] == ConflictError.code

    async def test_empty_reorder_is_unprocessable(self, client):
        headers, workspace_id = await api_user(client, "owner@example.com")
        base = f"/api/workspaces/{workspace_id}"
        supplier = (await client.post(f"{base}/suppliers", json={"company_name": "Acme"}, headers=headers)).json()

        res = await client.post(
            f"{base}/purchase-orders/reorder",
            json={"supplier_id": supplier["id"], "items": []},
            headers=headers,
        )
        assert res.status_code == 422
