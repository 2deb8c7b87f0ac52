"""Tests for the cart endpoints."""
from storefront.models import Cart, CartItem

CART = "/api/v1/user/cart"


def add(client, headers, user, variant_id, quantity=1):
    return client.post(
        f"{CART}/items",
        json={"product_variant_id": variant_id, "quantity": quantity},
        headers=headers(user),
    )


def test_cart_requires_login(client):
    assert client.get(CART).status_code == 401
    assert client.get(CART, headers={"X-User-Id": "abc"}).status_code == 401


def test_get_creates_empty_cart(client, user, headers):
    resp = client.get(CART, headers=headers(user))
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["items"] == []
    assert data["cart_total_amount"] == 0.0


def test_add_item_merges_quantities(client, catalog, user, headers, db):
    assert add(client, headers, user, catalog.base.id, 2).status_code == 200
    resp = add(client, headers, user, catalog.base.id, 3)
    assert resp.status_code == 200

    data = resp.get_json()["data"]
    assert len(data["items"]) == 1
    assert data["items"][0]["quantity"] == 5
    assert data["cart_total_amount"] == 100.0

    db.session.expire_all()
    assert CartItem.query.count() == 1


def test_add_item_validation(client, catalog, user, headers):
    resp = client.post(f"{CART}/items", json={"quantity": 1}, headers=headers(user))
    assert resp.status_code == 400
    assert "product_variant_id" in resp.get_json()["errors"]

    for quantity in (0, -2, 1.5, True, "3"):
        assert add(client, headers, user, catalog.base.id, quantity).status_code == 400

    assert add(client, headers, user, 9999).status_code == 404


def test_add_archived_variant_rejected(client, catalog, user, headers, db):
    catalog.base.archive()
    db.session.commit()
    assert add(client, headers, user, catalog.base.id).status_code == 400


def test_pack_stock_checked_in_base_units(client, catalog, user, headers):
    # 100 base units cover 8 packs of 12 but not 9
    assert add(client, headers, user, catalog.pack12.id, 8).status_code == 200
    resp = add(client, headers, user, catalog.pack12.id, 1)
    assert resp.status_code == 400
    assert "Available: 100, Required: 108" in resp.get_json()["message"]


def test_update_quantity_and_remove_by_zero(client, catalog, user, headers):
    add(client, headers, user, catalog.base.id, 1)
    add(client, headers, user, catalog.pack6.id, 1)

    resp = client.patch(f"{CART}/items/{catalog.base.id}", json={"quantity": 4}, headers=headers(user))
    assert resp.status_code == 200
    quantities = {i["sku_code"]: i["quantity"] for i in resp.get_json()["data"]["items"]}
    assert quantities == {"CHIPS-1": 4, "CHIPS-6": 1}

    resp = client.patch(f"{CART}/items/{catalog.base.id}", json={"quantity": 0}, headers=headers(user))
    assert [i["sku_code"] for i in resp.get_json()["data"]["items"]] == ["CHIPS-6"]

    resp = client.patch(f"{CART}/items/{catalog.pack6.id}", json={"quantity": 50}, headers=headers(user))
    assert resp.status_code == 400


def test_remove_missing_item_is_404(client, catalog, user, headers):
    add(client, headers, user, catalog.base.id, 1)
    resp = client.delete(f"{CART}/items/{catalog.pack6.id}", headers=headers(user))
    assert resp.status_code == 404


def test_total_uses_current_price(client, catalog, user, headers, db):
    add(client, headers, user, catalog.base.id, 2)
    catalog.base.price = 25
    db.session.commit()

    data = client.get(CART, headers=headers(user)).get_json()["data"]
    assert data["items"][0]["price_at_addition"] == 20.0
    assert data["cart_total_amount"] == 50.0


def test_apply_percentage_coupon_with_cap(client, catalog, factory, user, headers):
    factory.coupon(user, code="SAVE10", discount_value="10", max_discount_amount="15")
    add(client, headers, user, catalog.base.id, 10)  # subtotal 200

    resp = client.post(f"{CART}/apply-coupon", json={"coupon_code": "save10"}, headers=headers(user))
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["applied_coupon_code"] == "SAVE10"
    assert data["coupon_discount_amount"] == 15.0
    assert data["cart_total_amount"] == 185.0


def test_amount_coupon_capped_at_subtotal(client, catalog, factory, user, headers):
    factory.coupon(user, code="FLAT500", discount_type="AMOUNT", discount_value="500")
    add(client, headers, user, catalog.base.id, 1)

    resp = client.post(f"{CART}/apply-coupon", json={"coupon_code": "FLAT500"}, headers=headers(user))
    data = resp.get_json()["data"]
    assert data["coupon_discount_amount"] == 20.0
    assert data["cart_total_amount"] == 0.0


def test_coupon_rejections(client, catalog, factory, user, headers):
    url = f"{CART}/apply-coupon"
    add(client, headers, user, catalog.base.id, 1)

    resp = client.post(url, json={"coupon_code": "NOPE"}, headers=headers(user))
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Invalid or already used coupon code"

    factory.coupon(user, code="BIG", min_purchase_amount="500")
    resp = client.post(url, json={"coupon_code": "BIG"}, headers=headers(user))
    assert resp.status_code == 400
    assert "Minimum purchase" in resp.get_json()["message"]

    resp = client.post(url, json={}, headers=headers(user))
    assert resp.status_code == 400


def test_remove_coupon(client, catalog, factory, user, headers):
    factory.coupon(user, code="SAVE10")
    add(client, headers, user, catalog.base.id, 5)
    client.post(f"{CART}/apply-coupon", json={"coupon_code": "SAVE10"}, headers=headers(user))

    resp = client.delete(f"{CART}/remove-coupon", headers=headers(user))
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["applied_coupon_code"] is None
    assert data["cart_total_amount"] == 100.0


def test_clear_cart(client, catalog, user, headers, db):
    assert client.delete(CART, headers=headers(user)).status_code == 404

    add(client, headers, user, catalog.base.id, 2)
    resp = client.delete(CART, headers=headers(user))
    assert resp.status_code == 200
    assert resp.get_json()["data"]["items"] == []

    db.session.expire_all()
    assert CartItem.query.count() == 0
    assert Cart.query.count() == 1


def test_admin_cart_views(client, catalog, factory, admin, headers):
    shopper = factory.user()
    factory.cart(shopper, [(catalog.base, 3)])

    resp = client.get("/api/v1/admin/carts?min_total=50", headers=headers(admin))
    assert resp.status_code == 200
    assert [c["user_id"] for c in resp.get_json()["data"]] == [shopper.id]

    resp = client.get("/api/v1/admin/carts?min_total=61", headers=headers(admin))
    assert resp.get_json()["data"] == []

    resp = client.get(f"/api/v1/admin/carts/user/{shopper.id}", headers=headers(admin))
    assert resp.get_json()["data"]["cart"]["items"][0]["quantity"] == 3

    assert client.get("/api/v1/admin/carts/user/999", headers=headers(admin)).status_code == 404


def test_admin_cart_total_filters_reject_non_finite(client, admin, headers):
    for raw in ("inf", "nan", "-inf", "lots"):
        resp = client.get(f"/api/v1/admin/carts?min_total={raw}", headers=headers(admin))
        assert resp.status_code == 400
        assert "min_total" in resp.get_json()["errors"]

    resp = client.get("/api/v1/admin/carts?max_total=nan", headers=headers(admin))
    assert resp.status_code == 400
    assert "max_total" in resp.get_json()["errors"]
