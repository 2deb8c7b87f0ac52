from decimal import Decimal

from storefront.extensions import db
from storefront.models.lifecycle import LifecycleMixin
from storefront.utils import utcnow, as_utc, isoformat, to_money, money_json

PERCENTAGE = "PERCENTAGE"
AMOUNT = "AMOUNT"
FREE_SHIPPING = "FREE_SHIPPING"


class CouponCampaign(LifecycleMixin, db.Model):
    __tablename__ = "coupon_campaigns"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), unique=True, nullable=False)
    code_prefix = db.Column(db.String(20))
    discount_type = db.Column(db.String(20), nullable=False)
    discount_value = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    min_purchase_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    max_discount_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    valid_from = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    valid_until = db.Column(db.DateTime(timezone=True), nullable=False)
    max_global_usage = db.Column(db.Integer)  # None = unlimited
    current_global_usage = db.Column(db.Integer, nullable=False, default=0)
    max_usage_per_user = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    DISCOUNT_TYPES = {PERCENTAGE, AMOUNT, FREE_SHIPPING}

    def is_valid(self, now=None):
        now = now or utcnow()
        return (
            self.is_active
            and as_utc(self.valid_from) <= now <= as_utc(self.valid_until)
        )

    @property
    def usage_exhausted(self):
        return (
            self.max_global_usage is not None
            and self.current_global_usage >= self.max_global_usage
        )

    @property
    def waives_shipping(self):
        return self.discount_type == FREE_SHIPPING

    def compute_discount(self, subtotal):
        """Cart-level discount for a subtotal. Free shipping discounts nothing here."""
        subtotal = to_money(subtotal)
        if self.discount_type == PERCENTAGE:
            discount = to_money(subtotal * to_money(self.discount_value) / Decimal("100"))
            cap = to_money(self.max_discount_amount)
            if cap > 0:
                discount = min(discount, cap)
            return discount
        if self.discount_type == AMOUNT:
            return min(to_money(self.discount_value), subtotal)
        return Decimal("0.00")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "code_prefix": self.code_prefix,
            "discount_type": self.discount_type,
            "discount_value": money_json(self.discount_value),
            "min_purchase_amount": money_json(self.min_purchase_amount),
            "max_discount_amount": money_json(self.max_discount_amount),
            "valid_from": isoformat(self.valid_from),
            "valid_until": isoformat(self.valid_until),
            "max_global_usage": self.max_global_usage,
            "current_global_usage": self.current_global_usage,
            "max_usage_per_user": self.max_usage_per_user,
            "status": self.status,
        }

    def __repr__(self):
        return f"<CouponCampaign {self.name}>"


class UserCoupon(LifecycleMixin, db.Model):
    """A coupon code issued to one user under a campaign."""

    __tablename__ = "user_coupons"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    campaign_id = db.Column(
        db.Integer, db.ForeignKey("coupon_campaigns.id"), nullable=False, index=True
    )
    coupon_code = db.Column(db.String(50), unique=True, nullable=False, index=True)
    current_usage_count = db.Column(db.Integer, nullable=False, default=0)
    is_redeemed = db.Column(db.Boolean, nullable=False, default=False)
    redeemed_at = db.Column(db.DateTime(timezone=True))
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    campaign = db.relationship("CouponCampaign", lazy="joined")

    def check_applicable(self, subtotal, now=None):
        """Return (ok, reason) for using this coupon against a subtotal."""
        now = now or utcnow()
        if not self.is_active or self.is_redeemed or now > as_utc(self.expires_at):
            return False, "Coupon is not valid or has expired"
        campaign = self.campaign
        if campaign is None or not campaign.is_valid(now):
            return False, "Associated campaign is not valid or active"
        if self.current_usage_count >= campaign.max_usage_per_user:
            return False, "Maximum usage limit reached for this user"
        if campaign.usage_exhausted:
            return False, "Campaign has reached maximum global usage limit"
        if to_money(subtotal) < to_money(campaign.min_purchase_amount):
            return False, (
                f"Minimum purchase amount of {to_money(campaign.min_purchase_amount)} "
                "not reached"
            )
        return True, None

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "campaign_id": self.campaign_id,
            "coupon_code": self.coupon_code,
            "current_usage_count": self.current_usage_count,
            "is_redeemed": self.is_redeemed,
            "redeemed_at": isoformat(self.redeemed_at),
            "expires_at": isoformat(self.expires_at),
        }

    def __repr__(self):
        return f"<UserCoupon {self.coupon_code}>"
