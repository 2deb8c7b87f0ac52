"""Tests for user favorites and their admin view."""
from storefront.models import Favorite

FAVORITES = "/api/v1/user/favorites"


def test_add_list_and_remove(client, db, catalog, user, headers):
    resp = client.post(
        FAVORITES, json={"product_variant_id": catalog.pack6.id, "user_notes": "party"},
        headers=headers(user),
    )
    assert resp.status_code == 201
    assert resp.get_json()["data"]["sku_code"] == "CHIPS-6"

    resp = client.post(FAVORITES, json={"product_variant_id": catalog.pack6.id}, headers=headers(user))
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Product variant is already in favorites"

    resp = client.get(FAVORITES, headers=headers(user))
    assert [f["user_notes"] for f in resp.get_json()["data"]] == ["party"]

    resp = client.patch(
        f"{FAVORITES}/{catalog.pack6.id}", json={"user_notes": "movie night"}, headers=headers(user)
    )
    assert resp.get_json()["data"]["user_notes"] == "movie night"

    assert client.delete(f"{FAVORITES}/{catalog.pack6.id}", headers=headers(user)).status_code == 200
    assert client.get(FAVORITES, headers=headers(user)).get_json()["data"] == []
    assert client.delete(f"{FAVORITES}/{catalog.pack6.id}", headers=headers(user)).status_code == 404


def test_removed_favorite_is_reactivated(client, db, catalog, user, headers):
    client.post(FAVORITES, json={"product_variant_id": catalog.base.id}, headers=headers(user))
    client.delete(f"{FAVORITES}/{catalog.base.id}", headers=headers(user))

    resp = client.post(FAVORITES, json={"product_variant_id": catalog.base.id}, headers=headers(user))
    assert resp.status_code == 201
    db.session.expire_all()
    assert Favorite.query.count() == 1
    assert Favorite.query.one().is_active


def test_add_favorite_checks_variant(client, db, catalog, user, headers):
    assert client.post(FAVORITES, json={"product_variant_id": 9999}, headers=headers(user)).status_code == 404
    resp = client.post(FAVORITES, json={"product_variant_id": "1"}, headers=headers(user))
    assert "product_variant_id" in resp.get_json()["errors"]

    catalog.pack12.archive()
    db.session.commit()
    resp = client.post(FAVORITES, json={"product_variant_id": catalog.pack12.id}, headers=headers(user))
    assert resp.status_code == 400


def test_admin_lists_and_archives_favorites(client, db, catalog, factory, admin, headers):
    shopper = factory.user()
    client.post(FAVORITES, json={"product_variant_id": catalog.base.id}, headers=headers(shopper))

    resp = client.get(f"/api/v1/admin/favorites?user_id={shopper.id}", headers=headers(admin))
    rows = resp.get_json()["data"]
    assert [f["product_variant_id"] for f in rows] == [catalog.base.id]

    resp = client.patch(f"/api/v1/admin/favorites/{rows[0]['id']}", json={}, headers=headers(admin))
    assert resp.status_code == 405

    assert client.delete(f"/api/v1/admin/favorites/{rows[0]['id']}", headers=headers(admin)).status_code == 200
    assert client.get(FAVORITES, headers=headers(shopper)).get_json()["data"] == []
