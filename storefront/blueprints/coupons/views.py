"""Coupon code issuing for admins and coupon listing for users."""
from flask import g

from storefront.api import created, json_body, ok
from storefront.auth import admin_required, login_required
from storefront.blueprints.coupons import coupons_bp
from storefront.services import coupon_service


@coupons_bp.route("/user/coupons", methods=["GET"])
@login_required
def my_coupons():
    coupons = coupon_service.user_coupons(g.user.id)
    data = []
    for coupon in coupons:
        row = coupon.to_dict()
        row["campaign"] = coupon.campaign.to_dict()
        data.append(row)
    return ok(data, "Coupons retrieved successfully")


@coupons_bp.route("/admin/coupon-campaigns/<int:campaign_id>/generate-codes", methods=["POST"])
@admin_required
def generate_codes(campaign_id):
    generated, errors, requested = coupon_service.generate_codes(g.user, campaign_id, json_body())
    return created(
        {
            "generated_coupons": [c.to_dict() for c in generated],
            "total_generated": len(generated),
            "total_requested": requested,
            "errors": errors,
        },
        f"Generated {len(generated)} coupon codes",
    )
