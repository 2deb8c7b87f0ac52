"""Tests for coupon code generation and the user's coupon list."""
from datetime import timedelta

from storefront.models import AuditLog, CouponCampaign, UserCoupon
from storefront.utils import utcnow


def campaign(factory, **extra):
    values = dict(
        name="Festive",
        code_prefix="FEST",
        discount_type="AMOUNT",
        discount_value=50,
        valid_from=utcnow() - timedelta(days=1),
        valid_until=utcnow() + timedelta(days=10),
    )
    values.update(extra)
    return factory._save(CouponCampaign(**values))


def generate(client, headers, admin, campaign_id, user_ids):
    return client.post(
        f"/api/v1/admin/coupon-campaigns/{campaign_id}/generate-codes",
        json={"user_ids": user_ids},
        headers=headers(admin),
    )


def test_generate_codes_reports_bad_users(client, db, factory, admin, headers):
    festive = campaign(factory)
    first, second = factory.user(), factory.user()
    gone = factory.user()
    gone.archive()
    db.session.commit()

    resp = generate(client, headers, admin, festive.id, [first.id, second.id, gone.id, 9999, first.id])
    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["total_generated"] == 2
    assert data["total_requested"] == 4
    assert {e["user_id"] for e in data["errors"]} == {gone.id, 9999}

    codes = [c["coupon_code"] for c in data["generated_coupons"]]
    assert len(set(codes)) == 2
    assert all(code.startswith("FEST-") for code in codes)
    assert UserCoupon.query.count() == 2
    assert AuditLog.query.filter_by(action="GENERATE_COUPON_CODES").count() == 1


def test_generate_codes_needs_an_active_campaign(client, db, factory, admin, headers):
    user = factory.user()
    assert generate(client, headers, admin, 9999, [user.id]).status_code == 404

    paused = campaign(factory, status="ARCHIVED")
    resp = generate(client, headers, admin, paused.id, [user.id])
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Cannot generate codes for inactive campaign"

    active = campaign(factory, name="Live")
    resp = generate(client, headers, admin, active.id, [])
    assert "user_ids" in resp.get_json()["errors"]


def test_user_sees_only_usable_coupons(client, db, factory, user, headers):
    live = factory.coupon(user, code="LIVE10")
    used = factory.coupon(user, code="USED10")
    used.is_redeemed = True
    factory.coupon(factory.user(), code="OTHER10")
    db.session.commit()

    resp = client.get("/api/v1/user/coupons", headers=headers(user))
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert [c["coupon_code"] for c in data] == [live.coupon_code]
    assert data[0]["campaign"]["discount_type"] == "PERCENTAGE"
