from storefront.extensions import db
from storefront.models.lifecycle import LifecycleMixin
from storefront.utils import utcnow, isoformat, money_json


def _money_or_none(value):
    return None if value is None else money_json(value)


class Listing(LifecycleMixin, db.Model):
    """A variant published on a sales platform, with that platform's price and fees."""

    __tablename__ = "listings"

    id = db.Column(db.Integer, primary_key=True)
    product_variant_id = db.Column(
        db.Integer, db.ForeignKey("product_variants.id"), nullable=False, index=True
    )
    platform_id = db.Column(db.Integer, db.ForeignKey("platforms.id"), nullable=False, index=True)
    platform_sku = db.Column(db.String(100), index=True)
    platform_product_id = db.Column(db.String(150), index=True)
    listing_url = db.Column(db.String(512))
    listing_status = db.Column(db.String(20), nullable=False, default="Draft", index=True)
    platform_price = db.Column(db.Numeric(12, 2))
    platform_commission_percentage = db.Column(db.Numeric(5, 2))
    platform_fixed_fee = db.Column(db.Numeric(12, 2))
    platform_shipping_fee = db.Column(db.Numeric(12, 2))
    is_active_on_platform = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    product_variant = db.relationship("ProductVariant")
    platform = db.relationship("Platform")

    __table_args__ = (
        db.UniqueConstraint("product_variant_id", "platform_id", name="uq_listing_variant_platform"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "product_variant_id": self.product_variant_id,
            "platform_id": self.platform_id,
            "platform_sku": self.platform_sku,
            "platform_product_id": self.platform_product_id,
            "listing_url": self.listing_url,
            "listing_status": self.listing_status,
            "platform_price": _money_or_none(self.platform_price),
            "platform_commission_percentage": _money_or_none(self.platform_commission_percentage),
            "platform_fixed_fee": _money_or_none(self.platform_fixed_fee),
            "platform_shipping_fee": _money_or_none(self.platform_shipping_fee),
            "is_active_on_platform": self.is_active_on_platform,
            "status": self.status,
            "is_active": self.is_active,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<Listing variant={self.product_variant_id} platform={self.platform_id}>"
