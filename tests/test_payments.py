"""Tests for stored payment methods."""
from storefront.models import PaymentMethod

METHODS = "/api/v1/user/payment-methods"


def create(client, headers, user, **data):
    payload = {"method_type": "CREDIT_CARD", "last_four": "4242"}
    payload.update(data)
    return client.post(METHODS, json=payload, headers=headers(user))


def test_first_method_becomes_default(client, user, headers):
    resp = create(client, headers, user)
    assert resp.status_code == 201
    assert resp.get_json()["data"]["is_default"] is True

    resp = create(client, headers, user, method_type="UPI", last_four=None)
    assert resp.get_json()["data"]["is_default"] is False


def test_new_default_replaces_old(client, user, headers):
    first = create(client, headers, user).get_json()["data"]["id"]
    second = create(client, headers, user, method_type="WALLET", is_default=True).get_json()["data"]["id"]

    resp = client.get(METHODS, headers=headers(user))
    methods = resp.get_json()["data"]
    assert [m["id"] for m in methods] == [second, first]
    assert [m["is_default"] for m in methods] == [True, False]


def test_validation(client, user, headers):
    resp = create(client, headers, user, method_type="CASH", last_four="12345", is_default="yes")
    assert resp.status_code == 400
    assert set(resp.get_json()["errors"]) == {"method_type", "last_four", "is_default"}


def test_list_only_own_active_methods(client, factory, user, headers):
    factory.payment_method(factory.user())
    create(client, headers, user)
    resp = client.get(METHODS, headers=headers(user))
    assert len(resp.get_json()["data"]) == 1


def test_delete_archives_and_moves_default(client, user, headers, db):
    first = create(client, headers, user).get_json()["data"]["id"]
    second = create(client, headers, user, method_type="UPI", last_four=None).get_json()["data"]["id"]

    resp = client.delete(f"{METHODS}/{first}", headers=headers(user))
    assert resp.status_code == 200

    db.session.expire_all()
    assert db.session.get(PaymentMethod, first).status == "ARCHIVED"
    assert db.session.get(PaymentMethod, second).is_default is True

    assert client.delete(f"{METHODS}/{first}", headers=headers(user)).status_code == 404


def test_delete_other_users_method_is_forbidden(client, factory, user, headers):
    method = factory.payment_method(factory.user())
    resp = client.delete(f"{METHODS}/{method.id}", headers=headers(user))
    assert resp.status_code == 403


def test_payment_methods_require_login(client):
    assert client.get(METHODS).status_code == 401
