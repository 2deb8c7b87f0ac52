import secrets
from decimal import Decimal

from storefront.extensions import db
from storefront.utils import utcnow, isoformat, to_money, money_json

PENDING = "PENDING"
PROCESSING = "PROCESSING"
SHIPPED = "SHIPPED"
DELIVERED = "DELIVERED"
CANCELLED = "CANCELLED"
RETURNED = "RETURNED"
REFUNDED = "REFUNDED"

# Allowed order_status moves. Terminal states map to an empty set.
ORDER_TRANSITIONS = {
    PENDING: {PROCESSING, CANCELLED},
    PROCESSING: {SHIPPED, CANCELLED},
    SHIPPED: {DELIVERED, RETURNED},
    RETURNED: {REFUNDED},
    DELIVERED: set(),
    CANCELLED: set(),
    REFUNDED: set(),
}

PAYMENT_STATUSES = {"PENDING", "PAID", "FAILED", "REFUNDED", "PARTIALLY_REFUNDED"}


def generate_order_number(now=None):
    """YYYYMMDD followed by 6 random upper-case hex characters."""
    now = now or utcnow()
    return f"{now:%Y%m%d}{secrets.token_hex(3).upper()}"


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(20), unique=True, nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    order_status = db.Column(db.String(20), nullable=False, default=PENDING, index=True)
    payment_status = db.Column(db.String(20), nullable=False, default="PENDING", index=True)
    is_cod = db.Column(db.Boolean, nullable=False, default=False)
    payment_method_id = db.Column(
        db.Integer, db.ForeignKey("payment_methods.id"), nullable=True
    )
    shipping_address = db.Column(db.JSON, nullable=False)
    billing_address = db.Column(db.JSON, nullable=False)
    subtotal_amount = db.Column(db.Numeric(12, 2), nullable=False)
    shipping_cost = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False)
    refunded_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    applied_coupon_code = db.Column(db.String(50))
    tracking_number = db.Column(db.String(100))
    shipping_carrier = db.Column(db.String(100))
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy="select",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    payment_method = db.relationship("PaymentMethod")

    VALID_STATUSES = set(ORDER_TRANSITIONS)

    def calculate_totals(self):
        total = (
            to_money(self.subtotal_amount)
            + to_money(self.shipping_cost)
            + to_money(self.tax_amount)
            - to_money(self.discount_amount)
        )
        self.total_amount = max(Decimal("0.00"), total)
        return self.total_amount

    def can_transition_to(self, new_status):
        return new_status in ORDER_TRANSITIONS.get(self.order_status, set())

    def can_be_cancelled(self):
        return CANCELLED in ORDER_TRANSITIONS.get(self.order_status, set())

    def can_be_refunded(self):
        """Refunds follow a completed or returned delivery."""
        return self.order_status in (DELIVERED, RETURNED)

    @property
    def refundable_amount(self):
        return to_money(self.total_amount) - to_money(self.refunded_amount)

    def append_note(self, note):
        self.notes = f"{self.notes}\n\n{note}" if self.notes else note

    def to_dict(self, include_items=True):
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "user_id": self.user_id,
            "order_status": self.order_status,
            "payment_status": self.payment_status,
            "is_cod": self.is_cod,
            "payment_method_id": self.payment_method_id,
            "shipping_address": self.shipping_address,
            "billing_address": self.billing_address,
            "subtotal_amount": money_json(self.subtotal_amount),
            "shipping_cost": money_json(self.shipping_cost),
            "tax_amount": money_json(self.tax_amount),
            "discount_amount": money_json(self.discount_amount),
            "total_amount": money_json(self.total_amount),
            "refunded_amount": money_json(self.refunded_amount),
            "applied_coupon_code": self.applied_coupon_code,
            "tracking_number": self.tracking_number,
            "shipping_carrier": self.shipping_carrier,
            "notes": self.notes,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data

    def __repr__(self):
        return f"<Order {self.order_number} [{self.order_status}]>"


class OrderItem(db.Model):
    """Line snapshot taken at checkout. Never updated afterwards."""

    __tablename__ = "order_items"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(
        db.Integer,
        db.ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_variant_id = db.Column(
        db.Integer, db.ForeignKey("product_variants.id"), nullable=False, index=True
    )
    sku_code = db.Column(db.String(50), nullable=False, index=True)
    product_name = db.Column(db.String(200), nullable=False)
    variant_options = db.Column(db.JSON, default=list)
    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    subtotal = db.Column(db.Numeric(12, 2), nullable=False)

    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_order_item_quantity"),
    )

    def formatted_options(self):
        return ", ".join(
            f"{opt['option_type']}: {opt['option_value']}"
            for opt in (self.variant_options or [])
        )

    def to_dict(self):
        return {
            "id": self.id,
            "product_variant_id": self.product_variant_id,
            "sku_code": self.sku_code,
            "product_name": self.product_name,
            "variant_options": self.variant_options or [],
            "options": self.formatted_options(),
            "quantity": self.quantity,
            "price": money_json(self.price),
            "subtotal": money_json(self.subtotal),
        }

    def __repr__(self):
        return f"<OrderItem {self.sku_code} x{self.quantity}>"
