"""Tests for health and the shared JSON error handling."""

import storefront.extensions as ext


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code in (200, 503)
    data = resp.get_json()
    assert "status" in data


def test_health_does_not_leak_internal_errors(client, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("database password leaked")

    monkeypatch.setattr(ext.db.session, "execute", boom)

    resp = client.get("/health")
    assert resp.status_code == 503
    data = resp.get_json()
    assert data["db"] == "error"
    assert "password" not in str(data).lower()


def test_unknown_route_returns_json_404(client):
    resp = client.get("/api/v1/nowhere")
    assert resp.status_code == 404
    assert resp.get_json()["success"] is False


def test_malformed_json_body_is_400(client, user, headers):
    resp = client.post(
        "/api/v1/user/cart/items",
        data="{not json",
        content_type="application/json",
        headers=headers(user),
    )
    assert resp.status_code == 400
    assert resp.get_json()["success"] is False


def test_public_categories_list_active_only(client, factory):
    factory.category(name="Visible")
    factory.category(name="Hidden", status="ARCHIVED")

    resp = client.get("/api/v1/categories")
    assert resp.status_code == 200
    assert [c["name"] for c in resp.get_json()["data"]] == ["Visible"]


def test_public_category_detail(client, factory):
    hidden = factory.category(name="Hidden", status="ARCHIVED")
    assert client.get(f"/api/v1/categories/{hidden.id}").status_code == 404


def test_config_is_chosen_by_flask_env_only(monkeypatch):
    from storefront import create_app

    monkeypatch.delenv("FLASK_ENV", raising=False)
    monkeypatch.setenv("RAILWAY_ENVIRONMENT", "production")
    monkeypatch.setenv("PORT", "8080")

    app = create_app()
    assert app.config["DEBUG"] is True
    assert app.config["SQLALCHEMY_ENGINE_OPTIONS"] == {}


def test_database_errors_become_json_500(client):
    from unittest.mock import patch

    from sqlalchemy.exc import OperationalError

    with patch(
        "storefront.services.catalog_service.filter_rows",
        side_effect=OperationalError("SELECT", {}, Exception("socket secret")),
    ):
        resp = client.get("/api/v1/products")

    assert resp.status_code == 500
    body = resp.get_json()
    assert body["success"] is False
    assert "secret" not in str(body)
    assert client.get("/api/v1/categories").status_code == 200
