"""Request body models.

Each endpoint that accepts a JSON body validates it against one of these
models through ``load``. Updates validate the same model with every field
optional, so a PATCH only touches what it sends.
"""
import re
from datetime import datetime
from decimal import Decimal
from functools import lru_cache
from typing import Annotated, List, Literal, Optional

import pydantic
from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    EmailStr,
    Field,
    StrictBool,
    StrictInt,
    create_model,
    field_validator,
)

from storefront.errors import ValidationError
from storefront.utils import to_money, utcnow

SKU_RE = re.compile(r"^[A-Z0-9][A-Z0-9_-]{2,49}$")
MAX_MIN_STOCK_LEVEL = 10000


def _not_bool(value):
    if isinstance(value, bool):
        raise ValueError("Input should be a number")
    return value


Id = Annotated[StrictInt, Field(ge=1)]
Count = Annotated[StrictInt, Field(ge=0)]
Money = Annotated[Decimal, BeforeValidator(_not_bool), Field(ge=0), AfterValidator(to_money)]


class Schema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


@lru_cache(maxsize=None)
def patch_schema(schema):
    """``schema`` with every field optional. Explicit nulls are still rejected."""
    fields = {}
    for name, info in schema.model_fields.items():
        annotation = info.annotation
        if info.metadata:
            annotation = Annotated[(annotation, *info.metadata)]
        fields[name] = (annotation, None)
    return create_model(f"{schema.__name__}Patch", __base__=schema, **fields)


def load(schema, data, partial=False):
    """Validate ``data`` and return the cleaned fields as a dict.

    Raises:
        ValidationError with a field -> message map.
    """
    if partial:
        schema = patch_schema(schema)
    try:
        parsed = schema.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError.from_pydantic(exc) from exc
    return parsed.model_dump(exclude_unset=partial)


# ----------------------------------------------------------------------
# Catalog
# ----------------------------------------------------------------------

class ResourceIn(Schema):
    is_active: Optional[StrictBool] = None


class CategoryIn(ResourceIn):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    parent_id: Optional[Id] = None


class BrandIn(ResourceIn):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class OptionIn(ResourceIn):
    option_type: str = Field(..., min_length=1, max_length=50)
    option_value: str = Field(..., min_length=1, max_length=100)
    sort_order: Count = 0

    @field_validator("option_type")
    @classmethod
    def lower_type(cls, value):
        return value.lower()


class SupplierIn(ResourceIn):
    name: str = Field(..., min_length=1, max_length=150)
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = Field(None, max_length=500)

    @field_validator("email")
    @classmethod
    def lower_email(cls, value):
        return value.lower() if value else value


class PlatformIn(ResourceIn):
    name: str = Field(..., min_length=1, max_length=100)
    base_url: Optional[str] = Field(None, max_length=255, pattern=r"^https?://")


class ProductIn(ResourceIn):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    category_id: Id
    brand_id: Id
    supplier_id: Optional[Id] = None


class VariantIn(ResourceIn):
    product_id: Id
    sku_code: str = Field(..., min_length=1, max_length=50)
    price: Money
    option_values: List[Id] = Field(default_factory=list)

    @field_validator("sku_code")
    @classmethod
    def upper_sku(cls, value):
        value = value.upper()
        if not SKU_RE.match(value):
            raise ValueError("sku_code must be 3 to 50 letters, digits, dashes or underscores")
        return value


class UserIn(ResourceIn):
    email: EmailStr
    first_name: str = Field("", max_length=100)
    last_name: str = Field("", max_length=100)
    role: Literal["customer", "admin"] = "customer"

    @field_validator("email")
    @classmethod
    def lower_email(cls, value):
        return value.lower()


class ListingIn(ResourceIn):
    product_variant_id: Id
    platform_id: Id
    platform_sku: Optional[str] = Field(None, max_length=100)
    platform_product_id: Optional[str] = Field(None, max_length=150)
    listing_url: Optional[str] = Field(None, max_length=512, pattern=r"^https?://")
    listing_status: Literal["Draft", "Pending Review", "Live", "Rejected", "Deactivated"] = "Draft"
    platform_price: Optional[Annotated[Money, Field(le=1000000)]] = None
    platform_commission_percentage: Optional[Annotated[Money, Field(le=100)]] = None
    platform_fixed_fee: Optional[Money] = None
    platform_shipping_fee: Optional[Money] = None
    is_active_on_platform: StrictBool = False


# ----------------------------------------------------------------------
# Coupons
# ----------------------------------------------------------------------

class CouponCampaignIn(ResourceIn):
    name: str = Field(..., min_length=1, max_length=150)
    code_prefix: Optional[str] = Field(None, max_length=20, pattern=r"^[A-Za-z0-9-]+$")
    discount_type: Literal["PERCENTAGE", "AMOUNT", "FREE_SHIPPING"]
    discount_value: Money = Decimal("0.00")
    min_purchase_amount: Money = Decimal("0.00")
    max_discount_amount: Money = Decimal("0.00")
    valid_from: datetime = Field(default_factory=utcnow)
    valid_until: datetime
    max_global_usage: Optional[Id] = None
    max_usage_per_user: Id = 1

    @field_validator("code_prefix")
    @classmethod
    def upper_prefix(cls, value):
        return value.upper() if value else value


class UserCouponIn(ResourceIn):
    user_id: Id
    campaign_id: Id
    coupon_code: Optional[str] = Field(None, min_length=3, max_length=50)
    expires_at: Optional[datetime] = None

    @field_validator("coupon_code")
    @classmethod
    def upper_code(cls, value):
        return value.upper() if value else value


class GenerateCodes(Schema):
    user_ids: List[Id] = Field(..., min_length=1, max_length=1000)
    expires_at: Optional[datetime] = None


class ApplyCoupon(Schema):
    coupon_code: str = Field(..., min_length=1, max_length=50)


# ----------------------------------------------------------------------
# Inventory and purchases
# ----------------------------------------------------------------------

class InventoryUpdate(Schema):
    stock_quantity: Count = 0
    min_stock_level: Annotated[Count, Field(le=MAX_MIN_STOCK_LEVEL)] = 0
    location: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = Field(None, max_length=1000)
    is_active: StrictBool = True


class InventoryCreate(InventoryUpdate):
    product_variant_id: Id


class StockAdjustment(Schema):
    operation: Literal["add", "remove", "set"]
    quantity: Count


class PurchaseIn(ResourceIn):
    product_variant_id: Id
    supplier_id: Id
    purchase_order_number: Optional[str] = Field(None, min_length=1, max_length=50)
    purchase_date: datetime = Field(default_factory=utcnow)
    expected_delivery_date: Optional[datetime] = None
    received_date: Optional[datetime] = None
    quantity: Id
    unit_price_at_purchase: Money
    packaging_cost: Money = Decimal("0.00")
    shipping_cost: Money = Decimal("0.00")
    purchase_status: Literal["Planned", "Pending", "Completed", "Cancelled", "Partially Received"] = "Planned"
    notes: Optional[str] = Field(None, max_length=1000)


# ----------------------------------------------------------------------
# Cart, orders and payments
# ----------------------------------------------------------------------

class AddItem(Schema):
    product_variant_id: Id
    quantity: Id = 1


class UpdateQuantity(Schema):
    quantity: Count


class Address(Schema):
    full_name: str = Field(..., min_length=1, max_length=100)
    address_line1: str = Field(..., min_length=1, max_length=200)
    address_line2: Optional[str] = Field(None, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    pincode: str = Field(..., pattern=r"^\d{6}$")
    country: str = Field(..., min_length=1, max_length=100)
    phone_number: str = Field(..., min_length=1, max_length=20)


class PlaceOrder(Schema):
    shipping_address: Address
    billing_address: Address
    is_cod: StrictBool = False
    payment_method_id: Optional[Id] = None
    notes: Optional[str] = Field(None, max_length=1000)


class CancelOrder(Schema):
    reason: Optional[str] = Field(None, max_length=500)


class StatusUpdate(Schema):
    new_status: str = Field(..., min_length=1, max_length=20)
    tracking_number: Optional[str] = Field(None, max_length=100)
    shipping_carrier: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=1000)


class Refund(Schema):
    amount: Optional[Money] = None
    reason: Optional[str] = Field(None, max_length=500)


class PaymentMethodCreate(Schema):
    method_type: Literal["CREDIT_CARD", "DEBIT_CARD", "UPI", "WALLET", "NETBANKING", "OTHER"]
    last_four: Optional[str] = Field(None, pattern=r"^\d{4}$")
    label: Optional[str] = Field(None, max_length=100)
    is_default: StrictBool = False


# ----------------------------------------------------------------------
# Favorites and reviews
# ----------------------------------------------------------------------

class FavoriteIn(Schema):
    product_variant_id: Id
    user_notes: Optional[str] = Field(None, max_length=500)


class FavoriteNotes(Schema):
    user_notes: Optional[str] = Field(None, max_length=500)


class ReviewUpdate(Schema):
    rating: Annotated[StrictInt, Field(ge=1, le=5)]
    title: Optional[str] = Field(None, max_length=100)
    review_text: Optional[str] = Field(None, max_length=2000)


class ReviewIn(ReviewUpdate):
    product_variant_id: Id


class ReviewModeration(Schema):
    review_status: Literal["PENDING_APPROVAL", "APPROVED", "REJECTED", "FLAGGED"]
