import math

from storefront.errors import InsufficientStockError, ValidationError
from storefront.extensions import db
from storefront.models.lifecycle import LifecycleMixin
from storefront.utils import utcnow, as_utc, isoformat

SECONDS_PER_DAY = 24 * 60 * 60


def _days_since(moment):
    if moment is None:
        return None
    elapsed = abs((utcnow() - as_utc(moment)).total_seconds())
    return math.ceil(elapsed / SECONDS_PER_DAY)


def _check_quantity(quantity, message):
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("Stock quantity must be an integer")
    if quantity < 0:
        raise ValidationError(message)


class Inventory(LifecycleMixin, db.Model):
    """Physical stock for one base-unit variant.

    Pack variants have no row of their own; their stock is computed from
    the base unit's row.
    """

    __tablename__ = "inventory"

    id = db.Column(db.Integer, primary_key=True)
    product_variant_id = db.Column(
        db.Integer,
        db.ForeignKey("product_variants.id"),
        unique=True,
        nullable=False,
        index=True,
    )
    stock_quantity = db.Column(db.Integer, nullable=False, default=0, index=True)
    min_stock_level = db.Column(db.Integer, nullable=False, default=0)
    location = db.Column(db.String(200))
    notes = db.Column(db.String(1000))
    last_restock_date = db.Column(db.DateTime(timezone=True), index=True)
    last_sold_date = db.Column(db.DateTime(timezone=True), index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    product_variant = db.relationship(
        "ProductVariant",
        backref=db.backref("inventory", uselist=False),
    )

    __table_args__ = (
        db.CheckConstraint("stock_quantity >= 0", name="ck_inventory_stock"),
        db.CheckConstraint("min_stock_level >= 0", name="ck_inventory_min_level"),
    )

    # ------------------------------------------------------------------
    # Ledger operations. Each validates before touching any field.
    # ------------------------------------------------------------------

    def add_stock(self, quantity, update_restock_date=True):
        _check_quantity(quantity, "Cannot add negative stock quantity")
        self.stock_quantity += quantity
        if update_restock_date:
            self.last_restock_date = utcnow()
        self.updated_at = utcnow()
        return self

    def remove_stock(self, quantity, update_sold_date=True):
        _check_quantity(quantity, "Cannot remove negative stock quantity")
        if self.stock_quantity < quantity:
            raise InsufficientStockError(
                f"Insufficient stock available. Available: {self.stock_quantity}, "
                f"Required: {quantity}"
            )
        self.stock_quantity -= quantity
        if update_sold_date:
            self.last_sold_date = utcnow()
        self.updated_at = utcnow()
        return self

    def set_stock(self, quantity, update_restock_date=True):
        _check_quantity(quantity, "Stock quantity cannot be negative")
        is_increase = quantity > self.stock_quantity
        self.stock_quantity = quantity
        if update_restock_date and is_increase:
            self.last_restock_date = utcnow()
        self.updated_at = utcnow()
        return self

    def soft_delete(self):
        self.archive()
        self.updated_at = utcnow()
        return self

    def activate(self):
        super().activate()
        self.updated_at = utcnow()
        return self

    # ------------------------------------------------------------------
    # Derived fields
    # ------------------------------------------------------------------

    @property
    def stock_status(self):
        if self.stock_quantity <= 0:
            return "Out of Stock"
        if self.stock_quantity <= self.min_stock_level:
            return "Low Stock"
        if self.stock_quantity <= self.min_stock_level * 2:
            return "Medium Stock"
        return "High Stock"

    @property
    def is_low_stock(self):
        return self.min_stock_level > 0 and self.stock_quantity <= self.min_stock_level

    @property
    def is_out_of_stock(self):
        return self.stock_quantity <= 0

    @property
    def days_since_restock(self):
        return _days_since(self.last_restock_date)

    @property
    def days_since_sale(self):
        return _days_since(self.last_sold_date)

    @classmethod
    def low_stock(cls):
        return cls.active().filter(
            cls.min_stock_level > 0,
            cls.stock_quantity <= cls.min_stock_level,
        )

    def to_dict(self):
        variant = self.product_variant
        return {
            "id": self.id,
            "product_variant_id": self.product_variant_id,
            "sku_code": variant.sku_code if variant else None,
            "product_id": variant.product_id if variant else None,
            "stock_quantity": self.stock_quantity,
            "min_stock_level": self.min_stock_level,
            "location": self.location,
            "notes": self.notes,
            "stock_status": self.stock_status,
            "is_low_stock": self.is_low_stock,
            "is_out_of_stock": self.is_out_of_stock,
            "days_since_restock": self.days_since_restock,
            "days_since_sale": self.days_since_sale,
            "last_restock_date": isoformat(self.last_restock_date),
            "last_sold_date": isoformat(self.last_sold_date),
            "status": self.status,
            "is_active": self.is_active,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<Inventory variant={self.product_variant_id} qty={self.stock_quantity}>"
