from decimal import Decimal

from storefront.extensions import db
from storefront.models.lifecycle import LifecycleMixin
from storefront.utils import utcnow, isoformat, to_money, money_json

PLANNED = "Planned"
PENDING = "Pending"
COMPLETED = "Completed"
CANCELLED = "Cancelled"
PARTIALLY_RECEIVED = "Partially Received"

# Moving into one of these puts the purchased units into stock
RECEIVED_STATUSES = {COMPLETED, PARTIALLY_RECEIVED}


def landing_price(unit_price, quantity, packaging_cost, shipping_cost):
    return to_money(
        to_money(unit_price) * quantity + to_money(packaging_cost) + to_money(shipping_cost)
    )


class Purchase(LifecycleMixin, db.Model):
    """Stock bought from a supplier."""

    __tablename__ = "purchases"

    id = db.Column(db.Integer, primary_key=True)
    product_variant_id = db.Column(
        db.Integer, db.ForeignKey("product_variants.id"), nullable=False, index=True
    )
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    purchase_order_number = db.Column(db.String(50), unique=True)
    purchase_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    expected_delivery_date = db.Column(db.DateTime(timezone=True))
    received_date = db.Column(db.DateTime(timezone=True))
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_at_purchase = db.Column(db.Numeric(12, 2), nullable=False)
    packaging_cost = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    shipping_cost = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    landing_price = db.Column(db.Numeric(12, 2), nullable=False)
    purchase_status = db.Column(db.String(20), nullable=False, default=PLANNED, index=True)
    notes = db.Column(db.String(1000))
    inventory_updated_on_completion = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    product_variant = db.relationship("ProductVariant")
    supplier = db.relationship("Supplier")

    PURCHASE_STATUSES = {PLANNED, PENDING, COMPLETED, CANCELLED, PARTIALLY_RECEIVED}

    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_purchase_quantity"),
    )

    def recalculate_landing_price(self):
        self.landing_price = landing_price(
            self.unit_price_at_purchase, self.quantity, self.packaging_cost, self.shipping_cost
        )
        return self.landing_price

    @property
    def unit_landing_cost(self):
        if not self.quantity:
            return Decimal("0.00")
        return to_money(to_money(self.landing_price) / self.quantity)

    def to_dict(self):
        return {
            "id": self.id,
            "product_variant_id": self.product_variant_id,
            "supplier_id": self.supplier_id,
            "purchase_order_number": self.purchase_order_number,
            "purchase_date": isoformat(self.purchase_date),
            "expected_delivery_date": isoformat(self.expected_delivery_date),
            "received_date": isoformat(self.received_date),
            "quantity": self.quantity,
            "unit_price_at_purchase": money_json(self.unit_price_at_purchase),
            "packaging_cost": money_json(self.packaging_cost),
            "shipping_cost": money_json(self.shipping_cost),
            "landing_price": money_json(self.landing_price),
            "unit_landing_cost": money_json(self.unit_landing_cost),
            "purchase_status": self.purchase_status,
            "notes": self.notes,
            "inventory_updated_on_completion": self.inventory_updated_on_completion,
            "status": self.status,
            "is_active": self.is_active,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<Purchase {self.id} [{self.purchase_status}]>"
