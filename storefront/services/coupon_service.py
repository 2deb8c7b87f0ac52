"""Coupon lookup, validation, usage accounting and code generation."""
import logging
import secrets

from storefront import schemas
from storefront.errors import NotFoundError, PersistenceError, ValidationError
from storefront.extensions import db
from storefront.models.coupon import CouponCampaign, UserCoupon
from storefront.models.user import User
from storefront.services import audit_service
from storefront.utils import utcnow

logger = logging.getLogger(__name__)

DEFAULT_CODE_PREFIX = "COUPON"
CODE_ATTEMPTS = 5


def normalize_code(code):
    if not isinstance(code, str) or not code.strip():
        raise ValidationError("Coupon code is required", errors={"coupon_code": "required"})
    return code.strip().upper()


def find_user_coupon(user_id, code):
    """The user's unredeemed coupon with this code, or None."""
    return UserCoupon.query.filter_by(
        user_id=user_id, coupon_code=normalize_code(code), is_redeemed=False
    ).first()


def validate_coupon(user_id, code, subtotal, now=None):
    """Return the applicable UserCoupon or raise ValidationError with the reason."""
    coupon = find_user_coupon(user_id, code)
    if coupon is None:
        raise ValidationError("Invalid or already used coupon code")
    applicable, reason = coupon.check_applicable(subtotal, now)
    if not applicable:
        raise ValidationError(reason)
    return coupon


def redeem(coupon, now=None):
    """Count one use against the coupon and its campaign. Caller commits."""
    now = now or utcnow()
    coupon.current_usage_count += 1
    if coupon.current_usage_count >= coupon.campaign.max_usage_per_user:
        coupon.is_redeemed = True
        coupon.redeemed_at = now
    coupon.campaign.current_global_usage += 1


def reverse_usage(user_id, code):
    """Undo one use of a coupon after an order is cancelled. Caller commits."""
    if not code:
        return None
    coupon = UserCoupon.query.filter_by(user_id=user_id, coupon_code=code).first()
    if coupon is None:
        logger.warning("Coupon %s for user %s not found while reversing usage", code, user_id)
        return None
    coupon.current_usage_count = max(0, coupon.current_usage_count - 1)
    coupon.is_redeemed = False
    coupon.redeemed_at = None
    campaign = coupon.campaign
    campaign.current_global_usage = max(0, campaign.current_global_usage - 1)
    db.session.add(coupon)
    return coupon


def generate_code(campaign=None, taken=()):
    """A fresh code: the campaign prefix (or COUPON), a dash and 8 hex characters."""
    prefix = (campaign.code_prefix if campaign is not None else None) or DEFAULT_CODE_PREFIX
    for _ in range(CODE_ATTEMPTS):
        code = f"{prefix}-{secrets.token_hex(4).upper()}"
        if code in taken:
            continue
        if not db.session.query(UserCoupon.id).filter_by(coupon_code=code).first():
            return code
    raise PersistenceError("Could not allocate a coupon code")


def generate_codes(admin, campaign_id, data):
    """Issue one coupon per requested user under an active campaign.

    Users that are missing or archived are reported in ``errors`` rather
    than failing the whole batch.
    """
    values = schemas.load(schemas.GenerateCodes, data)
    campaign = db.session.get(CouponCampaign, campaign_id)
    if campaign is None:
        raise NotFoundError("Coupon campaign not found")
    if not campaign.is_active:
        raise ValidationError("Cannot generate codes for inactive campaign")

    user_ids = list(dict.fromkeys(values["user_ids"]))
    expires_at = values.get("expires_at") or campaign.valid_until
    generated = []
    errors = []
    for user_id in user_ids:
        user = db.session.get(User, user_id)
        if user is None or not user.is_active:
            errors.append({"user_id": user_id, "error": "User not found or inactive"})
            continue
        coupon = UserCoupon(
            user_id=user_id,
            campaign_id=campaign.id,
            coupon_code=generate_code(campaign, {c.coupon_code for c in generated}),
            expires_at=expires_at,
        )
        db.session.add(coupon)
        generated.append(coupon)
    db.session.commit()
    logger.info("Generated %d codes for campaign %s", len(generated), campaign.name)

    audit_service.log_admin_activity(
        admin.id,
        "GENERATE_COUPON_CODES",
        "coupon_campaign",
        campaign.id,
        {"total_generated": len(generated), "total_requested": len(user_ids)},
    )
    return generated, errors, len(user_ids)


def user_coupons(user_id):
    """The user's active, unredeemed coupons, soonest expiry first."""
    return (
        UserCoupon.active()
        .filter_by(user_id=user_id, is_redeemed=False)
        .order_by(UserCoupon.expires_at, UserCoupon.id)
        .all()
    )
