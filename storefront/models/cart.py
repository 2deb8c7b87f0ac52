from decimal import Decimal

from storefront.extensions import db
from storefront.utils import utcnow, isoformat, to_money, money_json


class Cart(db.Model):
    __tablename__ = "carts"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id"), unique=True, nullable=False, index=True
    )
    applied_coupon_code = db.Column(db.String(50))
    coupon_discount_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    cart_total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "CartItem",
        backref="cart",
        lazy="select",
        cascade="all, delete-orphan",
        order_by="CartItem.added_at",
    )

    def find_item(self, variant_id):
        for item in self.items:
            if item.product_variant_id == variant_id:
                return item
        return None

    def subtotal(self):
        total = sum((item.current_subtotal for item in self.items), Decimal("0"))
        return to_money(total)

    def item_quantity(self):
        return sum(item.quantity for item in self.items)

    def recalculate_total(self):
        discount = to_money(self.coupon_discount_amount)
        self.cart_total_amount = max(Decimal("0.00"), self.subtotal() - discount)
        return self.cart_total_amount

    def apply_coupon(self, coupon_code, discount_amount):
        self.applied_coupon_code = coupon_code
        self.coupon_discount_amount = to_money(discount_amount)

    def clear_coupon(self):
        self.applied_coupon_code = None
        self.coupon_discount_amount = Decimal("0.00")

    def to_dict(self, include_items=True):
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "applied_coupon_code": self.applied_coupon_code,
            "coupon_discount_amount": money_json(self.coupon_discount_amount),
            "subtotal_amount": money_json(self.subtotal()),
            "cart_total_amount": money_json(self.cart_total_amount),
            "item_count": len(self.items),
            "total_quantity": self.item_quantity(),
            "updated_at": isoformat(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data

    def __repr__(self):
        return f"<Cart user={self.user_id} items={len(self.items)}>"


class CartItem(db.Model):
    __tablename__ = "cart_items"

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(
        db.Integer,
        db.ForeignKey("carts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_variant_id = db.Column(
        db.Integer, db.ForeignKey("product_variants.id"), nullable=False, index=True
    )
    quantity = db.Column(db.Integer, nullable=False, default=1)
    price_at_addition = db.Column(db.Numeric(12, 2), nullable=False)
    added_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    product_variant = db.relationship("ProductVariant", lazy="joined")

    __table_args__ = (
        db.UniqueConstraint("cart_id", "product_variant_id", name="uq_cart_variant"),
        db.CheckConstraint("quantity >= 1", name="ck_cart_item_quantity"),
    )

    @property
    def current_price(self):
        if self.product_variant is not None and self.product_variant.price is not None:
            return to_money(self.product_variant.price)
        return to_money(self.price_at_addition)

    @property
    def current_subtotal(self):
        return self.current_price * self.quantity

    def to_dict(self):
        variant = self.product_variant
        return {
            "id": self.id,
            "product_variant_id": self.product_variant_id,
            "sku_code": variant.sku_code if variant else None,
            "quantity": self.quantity,
            "price_at_addition": money_json(self.price_at_addition),
            "current_price": money_json(self.current_price),
            "current_subtotal": money_json(self.current_subtotal),
            "added_at": isoformat(self.added_at),
        }

    def __repr__(self):
        return f"<CartItem variant={self.product_variant_id} x{self.quantity}>"
