from storefront.extensions import db
from storefront.models.lifecycle import LifecycleMixin
from storefront.utils import utcnow, isoformat


class Favorite(LifecycleMixin, db.Model):
    """A variant a user saved for later. Removing it archives the row."""

    __tablename__ = "favorites"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_variant_id = db.Column(
        db.Integer, db.ForeignKey("product_variants.id"), nullable=False, index=True
    )
    user_notes = db.Column(db.String(500))
    added_at = db.Column(db.DateTime(timezone=True), default=utcnow, index=True)

    product_variant = db.relationship("ProductVariant")

    __table_args__ = (
        db.UniqueConstraint("user_id", "product_variant_id", name="uq_favorite_user_variant"),
    )

    def to_dict(self):
        variant = self.product_variant
        return {
            "id": self.id,
            "user_id": self.user_id,
            "product_variant_id": self.product_variant_id,
            "sku_code": variant.sku_code if variant else None,
            "product_id": variant.product_id if variant else None,
            "user_notes": self.user_notes,
            "status": self.status,
            "is_active": self.is_active,
            "added_at": isoformat(self.added_at),
        }

    def __repr__(self):
        return f"<Favorite user={self.user_id} variant={self.product_variant_id}>"
