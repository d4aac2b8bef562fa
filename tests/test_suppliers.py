import pytest
from pydantic import ValidationError as PydanticValidationError

from apps.inventory.schemas import InventoryItemCreate
from apps.inventory.service import InventoryService
from apps.purchase_orders.schemas import PurchaseOrderCreate
from apps.purchase_orders.service import PurchaseOrderService
from apps.suppliers.schemas import SupplierCreate, SupplierUpdate
from apps.suppliers.service import LINKED_ORDERS_MESSAGE, SupplierService
from common.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from constants.roles import MEMBER
from models.workspace import WorkspaceMember

from conftest import api_user, make_user


def test_blank_contact_fields_become_null():
    payload = SupplierCreate(company_name="  Acme  ", email="", phone="  ", website=None)
    assert payload.company_name == "Acme"
    assert payload.email is None
    assert payload.phone is None


def test_website_requires_scheme():
    with pytest.raises(PydanticValidationError):
        SupplierCreate(company_name="Acme", website="acme.example.com")
    assert SupplierCreate(company_name="Acme", website="https://acme.example.com").website == "https://acme.example.com"


def test_invalid_email_is_rejected():
    with pytest.raises(PydanticValidationError):
        SupplierCreate(company_name="Acme", email="not-an-email")


async def test_create_read_and_update(db):
    user_id, workspace_id = await make_user(db, "owner@example.com")
    supplier = await SupplierService.create_supplier(
        db, workspace_id, user_id, SupplierCreate(company_name="Acme", email="sales@acme.com", phone="555-0100")
    )

    fetched = await SupplierService.get_supplier(db, workspace_id, supplier.id, user_id)
    assert fetched.company_name == "Acme"
    assert fetched.email == "sales@acme.com"

    updated = await SupplierService.update_supplier(
        db, workspace_id, supplier.id, user_id, SupplierUpdate(phone="", address="1 Main St")
    )
    assert updated.phone is None
    assert updated.address == "1 Main St"
    assert updated.email == "sales@acme.com"


async def test_contact_fields_are_stored_as_given(db):
    user_id, workspace_id = await make_user(db, "owner@example.com")
    contact = {
        "email": "Sales.Team@ACME.Example.COM",
        "phone": "+1 (555) 010-0199 ext. 7",
        "website": "HTTPS://Acme.Example.com/Orders?Ref=PO",
        "address": "Unit 4B, 12 Harbour Rd\nPortsmouth PO1 2AB",
    }
    supplier = await SupplierService.create_supplier(
        db, workspace_id, user_id, SupplierCreate(company_name="Acme", **contact)
    )

    fetched = await SupplierService.get_supplier(db, workspace_id, supplier.id, user_id)
    assert {field: getattr(fetched, field) for field in contact} == contact

    updated = await SupplierService.update_supplier(
        db, workspace_id, supplier.id, user_id, SupplierUpdate(email="Orders@Acme.Example.COM")
    )
    assert updated.email == "Orders@Acme.Example.COM"


async def test_list_is_sorted_and_searchable(db):
    user_id, workspace_id = await make_user(db, "owner@example.com")
    for name in ("Zenith", "acme", "Midway"):
        await SupplierService.create_supplier(db, workspace_id, user_id, SupplierCreate(company_name=name))

    names = [s.company_name for s in await SupplierService.list_suppliers(db, workspace_id, user_id)]
    assert names == sorted(names)
    assert len(names) == 3

    found = await SupplierService.list_suppliers(db, workspace_id, user_id, search="MID")
    assert [s.company_name for s in found] == ["Midway"]


async def test_suppliers_are_scoped_to_workspace(db):
    user_id, workspace_id = await make_user(db, "owner@example.com")
    other_id, other_workspace_id = await make_user(db, "other@example.com")
    supplier = await SupplierService.create_supplier(db, workspace_id, user_id, SupplierCreate(company_name="Acme"))

    assert await SupplierService.list_suppliers(db, other_workspace_id, other_id) == []
    with pytest.raises(NotFoundError):
        await SupplierService.get_supplier(db, other_workspace_id, supplier.id, other_id)
    with pytest.raises(AuthorizationError):
        await SupplierService.get_supplier(db, workspace_id, supplier.id, other_id)


async def test_delete_detaches_inventory_items(db):
    user_id, workspace_id = await make_user(db, "owner@example.com")
    supplier = await SupplierService.create_supplier(db, workspace_id, user_id, SupplierCreate(company_name="Acme"))
    item = await InventoryService.create_item(
        db, workspace_id, user_id, InventoryItemCreate(name="Bolt", quantity=3, supplier_id=str(supplier.id))
    )
    assert item.supplier_id == supplier.id

    await SupplierService.delete_supplier(db, workspace_id, supplier.id, user_id)

    kept = await InventoryService.get_item(db, workspace_id, item.id, user_id)
    assert kept.supplier_id is None
    assert kept.name == "Bolt"
    with pytest.raises(NotFoundError):
        await SupplierService.get_supplier(db, workspace_id, supplier.id, user_id)


async def test_delete_refused_while_orders_reference_supplier(db):
    user_id, workspace_id = await make_user(db, "owner@example.com")
    supplier = await SupplierService.create_supplier(db, workspace_id, user_id, SupplierCreate(company_name="Acme"))
    await PurchaseOrderService.create_order(db, workspace_id, user_id, PurchaseOrderCreate(supplier_id=str(supplier.id)))

    with pytest.raises(ConflictError) as exc_info:
        await SupplierService.delete_supplier(db, workspace_id, supplier.id, user_id)

    assert exc_info.value.message == LINKED_ORDERS_MESSAGE
    assert (await SupplierService.get_supplier(db, workspace_id, supplier.id, user_id)).company_name == "Acme"


async def test_members_cannot_write(db):
    _, workspace_id = await make_user(db, "owner@example.com")
    member_id, _ = await make_user(db, "member@example.com")
    db.add(WorkspaceMember(workspace_id=workspace_id, user_id=member_id, role=MEMBER))
    await db.commit()

    with pytest.raises(AuthorizationError):
        await SupplierService.create_supplier(db, workspace_id, member_id, SupplierCreate(company_name="Acme"))
    assert await SupplierService.list_suppliers(db, workspace_id, member_id) == []


async def test_blank_company_name_on_update(db):
    user_id, workspace_id = await make_user(db, "owner@example.com")
    supplier = await SupplierService.create_supplier(db, workspace_id, user_id, SupplierCreate(company_name="Acme"))
    with pytest.raises(ValidationError):
        await SupplierService.update_supplier(db, workspace_id, supplier.id, user_id, SupplierUpdate(company_name=None))


class TestSupplierRoutes:
    async def test_crud_over_http(self, client):
        headers, workspace_id = await api_user(client, "owner@example.com")
        base = f"/api/workspaces/{workspace_id}/suppliers"

        res = await client.post(base, json={"company_name": "Acme", "website": "https://acme.example.com"}, headers=headers)
        assert res.status_code == 201
        supplier = res.json()
        assert supplier["companyName"] == "Acme"

        res = await client.patch(f"{base}/{supplier['id']}", json={"email": "sales@acme.com"}, headers=headers)
        assert res.status_code == 200
        assert res.json()["email"] == "sales@acme.com"

        res = await client.delete(f"{base}/{supplier['id']}", headers=headers)
        assert res.status_code == 204
        res = await client.get(f"{base}/{supplier['id']}", headers=headers)
        assert res.status_code == 404

    async def test_bad_website_is_unprocessable(self, client):
        headers, workspace_id = await api_user(client, "owner@example.com")
        res = await client.post(
            f"/api/workspaces/{workspace_id}/suppliers",
            json={"company_name": "Acme", "website": "ftp://acme"},
            headers=headers,
        )
        assert res.status_code == 422
