from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from storefront import create_app
from storefront.extensions import db as _db
from storefront.models import (
    Brand,
    Cart,
    CartItem,
    Category,
    CouponCampaign,
    Inventory,
    Option,
    PaymentMethod,
    Product,
    Supplier,
    ProductVariant,
    User,
    UserCoupon,
)
from storefront.utils import utcnow

ADDRESS = {
    "full_name": "Asha Rao",
    "address_line1": "12 MG Road",
    "city": "Bengaluru",
    "state": "KA",
    "pincode": "560001",
    "country": "India",
    "phone_number": "+919800000000",
}


@pytest.fixture(scope="session")
def app():
    """Create application for testing."""
    app = create_app("testing")
    with app.app_context():
        yield app


@pytest.fixture
def db(app):
    """Fresh schema per test."""
    _db.create_all()
    yield _db
    _db.session.remove()
    _db.drop_all()


@pytest.fixture
def client(app, db):
    return app.test_client()


def auth(user):
    return {"X-User-Id": str(user.id)}


class Factory:
    """Builds committed rows with sensible defaults."""

    def __init__(self, db):
        self.db = db
        self._seq = 0

    def _next(self):
        self._seq += 1
        return self._seq

    def _save(self, row):
        self.db.session.add(row)
        self.db.session.commit()
        return row

    def user(self, role="customer", email=None):
        n = self._next()
        return self._save(User(email=email or f"user{n}@example.com", first_name="Test", role=role))

    def admin(self):
        return self.user(role="admin")

    def category(self, name=None, parent=None, status="ACTIVE"):
        name = name or f"Category {self._next()}"
        slug = name.lower().replace(" ", "-")
        return self._save(Category(name=name, slug=slug, parent=parent, status=status))

    def brand(self, name=None):
        name = name or f"Brand {self._next()}"
        return self._save(Brand(name=name, slug=name.lower().replace(" ", "-")))

    def option(self, option_type, option_value):
        existing = Option.query.filter_by(option_type=option_type, option_value=option_value).first()
        return existing or self._save(Option(option_type=option_type, option_value=option_value))

    def product(self, name=None, category=None, brand=None):
        name = name or f"Product {self._next()}"
        return self._save(Product(
            name=name,
            slug=f"{name.lower().replace(' ', '-')}-{self._next()}",
            category=category or self.category(),
            brand=brand or self.brand(),
        ))

    def variant(self, product, sku=None, price="10.00", options=()):
        return self._save(ProductVariant(
            product=product,
            sku_code=sku or f"SKU-{self._next()}",
            price=Decimal(price),
            option_values=list(options),
        ))

    def inventory(self, variant, stock=0, min_stock_level=0):
        return self._save(Inventory(
            product_variant_id=variant.id,
            stock_quantity=stock,
            min_stock_level=min_stock_level,
        ))

    def supplier(self, name=None):
        return self._save(Supplier(name=name or f"Supplier {self._next()}"))

    def payment_method(self, user, method_type="CREDIT_CARD", is_default=True):
        return self._save(PaymentMethod(
            user_id=user.id, method_type=method_type, last_four="4242", is_default=is_default,
        ))

    def coupon(self, user, code="SAVE10", discount_type="PERCENTAGE", discount_value="10",
               min_purchase_amount="0", max_discount_amount="0", max_usage_per_user=1,
               max_global_usage=None):
        campaign = self._save(CouponCampaign(
            name=f"Campaign {self._next()}",
            discount_type=discount_type,
            discount_value=Decimal(discount_value),
            min_purchase_amount=Decimal(min_purchase_amount),
            max_discount_amount=Decimal(max_discount_amount),
            valid_from=utcnow() - timedelta(days=1),
            valid_until=utcnow() + timedelta(days=30),
            max_usage_per_user=max_usage_per_user,
            max_global_usage=max_global_usage,
        ))
        return self._save(UserCoupon(
            user_id=user.id,
            campaign_id=campaign.id,
            coupon_code=code,
            expires_at=utcnow() + timedelta(days=30),
        ))

    def cart(self, user, lines):
        cart = Cart(user_id=user.id)
        for variant, quantity in lines:
            cart.items.append(CartItem(
                product_variant=variant, quantity=quantity, price_at_addition=variant.price,
            ))
        self._save(cart)
        cart.recalculate_total()
        self.db.session.commit()
        return cart


@pytest.fixture
def factory(db):
    return Factory(db)


@pytest.fixture
def catalog(factory):
    """A product with a base-unit variant holding 100 units and two pack variants."""
    product = factory.product(name="Potato Chips")
    salted = factory.option("flavor", "salted")
    base = factory.variant(product, sku="CHIPS-1", price="20.00", options=[salted])
    pack6 = factory.variant(
        product, sku="CHIPS-6", price="110.00",
        options=[salted, factory.option("pack", "6")],
    )
    pack12 = factory.variant(
        product, sku="CHIPS-12", price="200.00",
        options=[salted, factory.option("pack", "12")],
    )
    inventory = factory.inventory(base, stock=100, min_stock_level=10)
    return SimpleNamespace(
        product=product, base=base, pack6=pack6, pack12=pack12, inventory=inventory,
    )


@pytest.fixture
def user(factory):
    return factory.user()


@pytest.fixture
def admin(factory):
    return factory.admin()


@pytest.fixture
def headers():
    return auth


@pytest.fixture
def address():
    return dict(ADDRESS)
