from storefront.extensions import db
from storefront.models.lifecycle import LifecycleMixin
from storefront.utils import utcnow, isoformat, money_json

variant_option_values = db.Table(
    "variant_option_values",
    db.Column(
        "variant_id",
        db.Integer,
        db.ForeignKey("product_variants.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    db.Column("option_id", db.Integer, db.ForeignKey("options.id"), primary_key=True),
)


class ProductVariant(LifecycleMixin, db.Model):
    """A purchasable SKU: one product in one combination of option values."""

    __tablename__ = "product_variants"

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer, db.ForeignKey("products.id"), nullable=False, index=True
    )
    sku_code = db.Column(db.String(50), unique=True, nullable=False, index=True)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    option_values = db.relationship(
        "Option",
        secondary=variant_option_values,
        lazy="select",
        order_by="Option.option_type",
    )

    __table_args__ = (db.CheckConstraint("price >= 0", name="ck_variant_price"),)

    def option_pairs(self):
        return [
            {"option_type": o.option_type, "option_value": o.option_value}
            for o in self.option_values
        ]

    def to_dict(self):
        return {
            "id": self.id,
            "product_id": self.product_id,
            "sku_code": self.sku_code,
            "price": money_json(self.price),
            "option_values": [o.to_dict() for o in self.option_values],
            "status": self.status,
            "is_active": self.is_active,
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<ProductVariant {self.sku_code}>"
