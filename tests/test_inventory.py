"""Tests for the inventory ledger and the admin inventory endpoints."""
from datetime import timedelta

import pytest

from storefront.errors import InsufficientStockError, ValidationError
from storefront.models import AuditLog, Inventory
from storefront.utils import utcnow


# ---------------------------------------------------------------------------
# Ledger operations
# ---------------------------------------------------------------------------

def test_add_stock_updates_restock_date(catalog):
    inventory = catalog.inventory
    inventory.add_stock(5)
    assert inventory.stock_quantity == 105
    assert inventory.last_restock_date is not None


def test_remove_stock_rejects_overdraw_without_mutating(catalog):
    inventory = catalog.inventory
    with pytest.raises(InsufficientStockError) as exc:
        inventory.remove_stock(101)
    assert "Available: 100, Required: 101" in exc.value.message
    assert inventory.stock_quantity == 100
    assert inventory.last_sold_date is None


def test_negative_quantities_rejected(catalog):
    inventory = catalog.inventory
    for operation in (inventory.add_stock, inventory.remove_stock, inventory.set_stock):
        with pytest.raises(ValidationError):
            operation(-1)
    assert inventory.stock_quantity == 100


def test_non_integer_quantity_rejected(catalog):
    with pytest.raises(ValidationError):
        catalog.inventory.add_stock(True)
    with pytest.raises(ValidationError):
        catalog.inventory.add_stock(2.5)


def test_set_stock_only_restocks_on_increase(catalog):
    inventory = catalog.inventory
    inventory.set_stock(50)
    assert inventory.last_restock_date is None
    inventory.set_stock(80)
    assert inventory.last_restock_date is not None


@pytest.mark.parametrize(
    "stock,minimum,status",
    [(0, 10, "Out of Stock"), (10, 10, "Low Stock"), (20, 10, "Medium Stock"), (21, 10, "High Stock")],
)
def test_stock_status(catalog, stock, minimum, status):
    inventory = catalog.inventory
    inventory.stock_quantity = stock
    inventory.min_stock_level = minimum
    assert inventory.stock_status == status


def test_low_stock_requires_positive_minimum(catalog):
    inventory = catalog.inventory
    inventory.stock_quantity = 0
    inventory.min_stock_level = 0
    assert inventory.is_low_stock is False
    assert inventory.is_out_of_stock is True


def test_days_since_uses_ceiling(catalog):
    inventory = catalog.inventory
    assert inventory.days_since_restock is None
    inventory.last_restock_date = utcnow() - timedelta(days=2, hours=1)
    assert inventory.days_since_restock == 3


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

def test_inventory_requires_admin(client, user, headers):
    assert client.get("/api/v1/inventory").status_code == 401
    assert client.get("/api/v1/inventory", headers=headers(user)).status_code == 403


def test_admin_allowlist_grants_access(app, client, user, headers, monkeypatch):
    monkeypatch.setitem(app.config, "ADMIN_USER_IDS", [user.id])
    assert client.get("/api/v1/inventory", headers=headers(user)).status_code == 200


def test_create_inventory_for_base_unit(client, factory, admin, headers, db):
    product = factory.product()
    variant = factory.variant(product, options=[factory.option("color", "red")])

    resp = client.post(
        "/api/v1/inventory",
        json={"product_variant_id": variant.id, "stock_quantity": 40, "min_stock_level": 5},
        headers=headers(admin),
    )
    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["stock_quantity"] == 40
    assert data["last_restock_date"] is not None

    db.session.expire_all()
    assert AuditLog.query.filter_by(action="CREATE_INVENTORY").count() == 1


def test_create_inventory_rejects_pack_variant(client, catalog, admin, headers):
    resp = client.post(
        "/api/v1/inventory",
        json={"product_variant_id": catalog.pack6.id},
        headers=headers(admin),
    )
    assert resp.status_code == 400
    assert "base unit" in resp.get_json()["message"]


def test_create_inventory_rejects_duplicate(client, catalog, admin, headers):
    resp = client.post(
        "/api/v1/inventory",
        json={"product_variant_id": catalog.base.id},
        headers=headers(admin),
    )
    assert resp.status_code == 400
    assert "already exists" in resp.get_json()["message"]


def test_create_inventory_validates_fields(client, factory, admin, headers):
    variant = factory.variant(factory.product())
    resp = client.post(
        "/api/v1/inventory",
        json={"product_variant_id": variant.id, "stock_quantity": -1, "min_stock_level": 20000},
        headers=headers(admin),
    )
    assert resp.status_code == 400
    errors = resp.get_json()["errors"]
    assert set(errors) == {"stock_quantity", "min_stock_level"}


def test_list_inventory_with_computed_packs(client, catalog, admin, headers):
    resp = client.get(
        "/api/v1/inventory?include_computed_packs=true", headers=headers(admin)
    )
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["pagination"]["total_items"] == 1
    computed = {row["sku_code"]: row for row in body["data"] if row.get("is_computed")}
    assert computed["CHIPS-6"]["computed_stock_quantity"] == 16
    assert computed["CHIPS-12"]["computed_stock_quantity"] == 8
    assert computed["CHIPS-12"]["base_inventory_id"] == catalog.inventory.id


def test_list_inventory_filters(client, catalog, factory, admin, headers):
    other = factory.variant(factory.product(), sku="OTHER-1")
    factory.inventory(other, stock=0)

    def skus(query):
        resp = client.get(f"/api/v1/inventory?{query}", headers=headers(admin))
        return [row["sku_code"] for row in resp.get_json()["data"]]

    assert skus("stock_status=out_of_stock") == ["OTHER-1"]
    assert skus("stock_status=in_stock") == ["CHIPS-1"]
    assert skus("search=chips") == ["CHIPS-1"]
    assert skus(f"product_id={catalog.product.id}") == ["CHIPS-1"]


def test_variant_stock_for_pack(client, catalog, admin, headers):
    resp = client.get(f"/api/v1/inventory/variant/{catalog.pack12.id}", headers=headers(admin))
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["computed_stock_quantity"] == 8
    assert data["pack_details"]["base_unit_variant_id"] == catalog.base.id


def test_variant_stock_without_inventory_is_404(client, factory, admin, headers):
    variant = factory.variant(factory.product())
    resp = client.get(f"/api/v1/inventory/variant/{variant.id}", headers=headers(admin))
    assert resp.status_code == 404


def test_adjust_inventory(client, catalog, admin, headers, db):
    url = f"/api/v1/inventory/{catalog.inventory.id}/adjust"
    resp = client.post(url, json={"operation": "remove", "quantity": 30}, headers=headers(admin))
    assert resp.status_code == 200
    assert resp.get_json()["data"]["stock_quantity"] == 70

    resp = client.post(url, json={"operation": "remove", "quantity": 71}, headers=headers(admin))
    assert resp.status_code == 400

    resp = client.post(url, json={"operation": "double", "quantity": 1}, headers=headers(admin))
    assert resp.status_code == 400
    assert "operation" in resp.get_json()["errors"]

    db.session.expire_all()
    assert db.session.get(Inventory, catalog.inventory.id).stock_quantity == 70


def test_update_cannot_change_variant(client, catalog, admin, headers):
    resp = client.patch(
        f"/api/v1/inventory/{catalog.inventory.id}",
        json={"product_variant_id": catalog.pack6.id},
        headers=headers(admin),
    )
    assert resp.status_code == 400


def test_update_and_soft_delete(client, catalog, admin, headers, db):
    resp = client.patch(
        f"/api/v1/inventory/{catalog.inventory.id}",
        json={"location": "Shelf B", "min_stock_level": 3},
        headers=headers(admin),
    )
    assert resp.status_code == 200
    assert resp.get_json()["data"]["location"] == "Shelf B"

    resp = client.delete(f"/api/v1/inventory/{catalog.inventory.id}", headers=headers(admin))
    assert resp.status_code == 200

    db.session.expire_all()
    inventory = db.session.get(Inventory, catalog.inventory.id)
    assert inventory.status == "ARCHIVED"

    resp = client.post(
        "/api/v1/inventory",
        json={"product_variant_id": catalog.base.id},
        headers=headers(admin),
    )
    assert resp.status_code == 400
    assert "reactivate" in resp.get_json()["message"]
