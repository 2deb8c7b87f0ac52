"""Admin maintenance for the catalog and the records hanging off it.

Every resource goes through the same create/update/archive/delete flow; a
``Resource`` describes what differs: the request schema, the checks that
need the database, which fields are unique and what still references a row.
"""
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from storefront import schemas
from storefront.errors import ConflictError, NotFoundError, ValidationError
from storefront.extensions import db
from storefront.models.brand import Brand
from storefront.models.cart import Cart, CartItem
from storefront.models.category import Category
from storefront.models.coupon import CouponCampaign, UserCoupon
from storefront.models.favorite import Favorite
from storefront.models.inventory import Inventory
from storefront.models.lifecycle import ACTIVE, ARCHIVED
from storefront.models.listing import Listing
from storefront.models.option import Option
from storefront.models.order import Order, OrderItem
from storefront.models.payment_method import PaymentMethod
from storefront.models.platform import Platform
from storefront.models.product import Product
from storefront.models.purchase import Purchase
from storefront.models.review import ProductReview
from storefront.models.supplier import Supplier
from storefront.models.user import User
from storefront.models.variant import ProductVariant, variant_option_values
from storefront.services import audit_service, coupon_service
from storefront.services.pack_service import (
    analyze_pack_options,
    is_matching_base_unit,
    is_pack_type,
    parse_option_values,
)
from storefront.utils import as_utc, isoformat, utcnow

logger = logging.getLogger(__name__)


def slugify(text):
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug or "item"


def unique_slug(model, name, exclude_id=None):
    """Slug for ``name``, suffixed -2, -3... until no other row uses it."""
    base = slugify(name)
    candidate = base
    suffix = 2
    while True:
        query = model.query.filter(model.slug == candidate)
        if exclude_id is not None:
            query = query.filter(model.id != exclude_id)
        if not db.session.query(query.exists()).scalar():
            return candidate
        candidate = f"{base}-{suffix}"
        suffix += 1


# ----------------------------------------------------------------------
# Checks that need the database
# ----------------------------------------------------------------------

def _require_active(model, ref_id, label):
    """Load a referenced row that new records may point at."""
    row = db.session.get(model, ref_id)
    if row is None:
        raise ValidationError(f"{label} not found")
    if not row.is_active:
        raise ValidationError(f"{label} is inactive")
    return row


def _current(values, instance, name):
    if name in values:
        return values[name]
    return getattr(instance, name, None)


def _check_category(values, instance):
    parent_id = values.get("parent_id")
    if parent_id is None:
        return
    if instance is not None and parent_id == instance.id:
        raise ValidationError("Category cannot be its own parent")
    parent = db.session.get(Category, parent_id)
    if parent is None:
        raise ValidationError("Parent category not found")
    if not parent.is_active:
        raise ValidationError("Cannot create subcategory under inactive parent category")
    if instance is not None and any(a.id == instance.id for a in parent.ancestors()):
        raise ValidationError("Cannot create circular parent reference")


def _check_option(values, instance):
    option_type = _current(values, instance, "option_type")
    option_value = _current(values, instance, "option_value")
    if is_pack_type(option_type):
        pack = parse_option_values(
            [{"option_type": option_type, "option_value": option_value}]
        )[0]
        values["option_type"] = pack.option_type
        values["option_value"] = pack.option_value


def _check_product(values, instance):
    if "category_id" in values:
        _require_active(Category, values["category_id"], "Category")
    if "brand_id" in values:
        _require_active(Brand, values["brand_id"], "Brand")
    if values.get("supplier_id") is not None:
        _require_active(Supplier, values["supplier_id"], "Supplier")


def resolve_option_values(option_ids):
    """Load option rows for a variant: existing, active, one per option type."""
    options = []
    seen_types = set()
    for option_id in dict.fromkeys(option_ids):
        option = db.session.get(Option, option_id)
        if option is None:
            raise ValidationError(f"Option {option_id} not found")
        if not option.is_active:
            raise ValidationError(f"Option {option_id} is inactive")
        key = option.option_type.strip().lower()
        if key in seen_types:
            raise ValidationError(f"Only one value per option type is allowed ({key})")
        seen_types.add(key)
        options.append(option)
    parse_option_values(options)
    return options


def _guard_option_change(variant, options):
    """A stocked or sold variant keeps its pack size and its other options."""
    if not _stock_refs(variant):
        return
    same_pack = analyze_pack_options(variant.option_values) == analyze_pack_options(options)
    if not same_pack or not is_matching_base_unit(variant.option_values, options):
        raise ValidationError(
            "Cannot change the pack size or options of a variant that has inventory, "
            "cart, order or purchase records",
            errors={"option_values": "locked by existing stock records"},
        )


def _check_variant(values, instance):
    if "product_id" in values:
        if instance is not None and values["product_id"] != instance.product_id:
            raise ValidationError("A variant cannot be moved to another product")
        _require_active(Product, values["product_id"], "Product")
    if "option_values" in values:
        values["option_values"] = resolve_option_values(values["option_values"])
        if instance is not None:
            _guard_option_change(instance, values["option_values"])


def _check_campaign(values, instance):
    valid_from = as_utc(_current(values, instance, "valid_from"))
    valid_until = as_utc(_current(values, instance, "valid_until"))
    if valid_from and valid_until and valid_until <= valid_from:
        raise ValidationError(
            "Validation failed", errors={"valid_until": "valid_until must be after valid_from"}
        )
    discount_type = _current(values, instance, "discount_type")
    discount_value = _current(values, instance, "discount_value")
    if discount_type == "PERCENTAGE" and discount_value is not None and discount_value > 100:
        raise ValidationError(
            "Validation failed", errors={"discount_value": "a percentage cannot exceed 100"}
        )


def _check_user_coupon(values, instance):
    if "user_id" in values:
        _require_active(User, values["user_id"], "User")
    campaign = None
    if "campaign_id" in values:
        campaign = _require_active(CouponCampaign, values["campaign_id"], "Coupon campaign")
    if instance is None:
        if not values.get("coupon_code"):
            values["coupon_code"] = coupon_service.generate_code(campaign)
        if values.get("expires_at") is None:
            values["expires_at"] = campaign.valid_until
    elif values.get("coupon_code", "") is None or values.get("expires_at", "") is None:
        raise ValidationError("coupon_code and expires_at cannot be cleared")


def _check_listing(values, instance):
    if "product_variant_id" in values:
        _require_active(ProductVariant, values["product_variant_id"], "Product variant")
    if "platform_id" in values:
        _require_active(Platform, values["platform_id"], "Platform")


def _stamp_moderation(row, admin):
    row.moderated_at = utcnow()
    row.moderated_by = admin.id


# ----------------------------------------------------------------------
# Reference checks for hard deletes
# ----------------------------------------------------------------------

def _count(query):
    return query.count()


def _category_refs(row):
    return _count(Category.query.filter_by(parent_id=row.id)) + _count(
        Product.query.filter_by(category_id=row.id)
    )


def _option_refs(row):
    return db.session.query(func.count()).select_from(variant_option_values).filter(
        variant_option_values.c.option_id == row.id
    ).scalar()


def _stock_refs(row):
    return (
        _count(Inventory.query.filter_by(product_variant_id=row.id))
        + _count(CartItem.query.filter_by(product_variant_id=row.id))
        + _count(OrderItem.query.filter_by(product_variant_id=row.id))
        + _count(Purchase.query.filter_by(product_variant_id=row.id))
    )


def _variant_refs(row):
    return (
        _stock_refs(row)
        + _count(Listing.query.filter_by(product_variant_id=row.id))
        + _count(Favorite.query.filter_by(product_variant_id=row.id))
        + _count(ProductReview.query.filter_by(product_variant_id=row.id))
    )


def _supplier_refs(row):
    return _count(Product.query.filter_by(supplier_id=row.id)) + _count(
        Purchase.query.filter_by(supplier_id=row.id)
    )


def _user_refs(row):
    return sum(
        _count(model.query.filter_by(user_id=row.id))
        for model in (Order, Cart, PaymentMethod, UserCoupon, Favorite, ProductReview)
    )


@dataclass
class Resource:
    label: str
    resource_type: str
    model: type
    schema: Optional[type]
    check: Optional[Callable] = None
    unique_fields: tuple = ()
    unique_together: tuple = ()
    slug_from: Optional[str] = None
    references: Callable = field(default=lambda row: 0)
    search_fields: tuple = ("name",)
    filters: tuple = ()
    sort_fields: tuple = ("name", "created_at")
    default_sort: str = "name"
    creatable: bool = True
    stamp: Optional[Callable] = None


RESOURCES = {
    "categories": Resource(
        "Category", "category", Category, schemas.CategoryIn, _check_category,
        unique_fields=("name",), slug_from="name", references=_category_refs,
        filters=("parent_id",), sort_fields=("name", "created_at", "updated_at"),
    ),
    "brands": Resource(
        "Brand", "brand", Brand, schemas.BrandIn,
        unique_fields=("name",), slug_from="name",
        references=lambda row: _count(Product.query.filter_by(brand_id=row.id)),
    ),
    "options": Resource(
        "Option", "option", Option, schemas.OptionIn, _check_option,
        unique_together=("option_type", "option_value"),
        references=_option_refs, search_fields=("option_type", "option_value"),
        filters=("option_type",), sort_fields=("option_type", "option_value", "sort_order"),
        default_sort="option_type",
    ),
    "suppliers": Resource(
        "Supplier", "supplier", Supplier, schemas.SupplierIn,
        unique_fields=("name",), references=_supplier_refs,
        search_fields=("name", "email"),
    ),
    "platforms": Resource(
        "Platform", "platform", Platform, schemas.PlatformIn,
        unique_fields=("name",), slug_from="name",
        references=lambda row: _count(Listing.query.filter_by(platform_id=row.id)),
    ),
    "products": Resource(
        "Product", "product", Product, schemas.ProductIn, _check_product,
        slug_from="name",
        references=lambda row: _count(ProductVariant.query.filter_by(product_id=row.id)),
        search_fields=("name", "description"),
        filters=("category_id", "brand_id", "supplier_id"),
        sort_fields=("name", "created_at", "updated_at"),
    ),
    "product-variants": Resource(
        "Product variant", "product_variant", ProductVariant, schemas.VariantIn, _check_variant,
        unique_fields=("sku_code",), references=_variant_refs,
        search_fields=("sku_code",), filters=("product_id",),
        sort_fields=("sku_code", "price", "created_at"), default_sort="sku_code",
    ),
    "coupon-campaigns": Resource(
        "Coupon campaign", "coupon_campaign", CouponCampaign, schemas.CouponCampaignIn,
        _check_campaign, unique_fields=("name",),
        references=lambda row: _count(UserCoupon.query.filter_by(campaign_id=row.id)),
        filters=("discount_type",),
        sort_fields=("name", "valid_from", "valid_until", "created_at"),
    ),
    "user-coupons": Resource(
        "User coupon", "user_coupon", UserCoupon, schemas.UserCouponIn, _check_user_coupon,
        unique_fields=("coupon_code",), search_fields=("coupon_code",),
        filters=("user_id", "campaign_id"),
        sort_fields=("coupon_code", "expires_at", "created_at"), default_sort="created_at",
    ),
    "listings": Resource(
        "Listing", "listing", Listing, schemas.ListingIn, _check_listing,
        unique_together=("product_variant_id", "platform_id"),
        search_fields=("platform_sku", "platform_product_id"),
        filters=("product_variant_id", "platform_id", "listing_status"),
        sort_fields=("created_at", "updated_at", "platform_price", "listing_status"),
        default_sort="created_at",
    ),
    "users": Resource(
        "User", "user", User, schemas.UserIn,
        unique_fields=("email",), references=_user_refs,
        search_fields=("email", "first_name", "last_name"), filters=("role",),
        sort_fields=("email", "first_name", "last_name", "created_at"), default_sort="email",
    ),
    "favorites": Resource(
        "Favorite", "favorite", Favorite, None,
        search_fields=("user_notes",), filters=("user_id", "product_variant_id"),
        sort_fields=("added_at",), default_sort="added_at", creatable=False,
    ),
    "reviews": Resource(
        "Review", "review", ProductReview, schemas.ReviewModeration,
        search_fields=("title", "review_text"),
        filters=("user_id", "product_variant_id", "review_status"),
        sort_fields=("created_at", "rating", "review_status"), default_sort="created_at",
        creatable=False, stamp=_stamp_moderation,
    ),
}


def get_resource(name):
    resource = RESOURCES.get(name)
    if resource is None:
        raise NotFoundError(f"Unknown catalog resource {name}")
    return resource


def get_row(resource, row_id):
    row = db.session.get(resource.model, row_id)
    if row is None:
        raise NotFoundError(f"{resource.label} not found")
    return row


def _check_unique(resource, values, instance):
    model = resource.model
    for name in resource.unique_fields:
        if values.get(name) is None:
            continue
        query = model.query.filter(func.lower(getattr(model, name)) == values[name].lower())
        if instance is not None:
            query = query.filter(model.id != instance.id)
        if db.session.query(query.exists()).scalar():
            raise ConflictError(resource.label, name)
    together = resource.unique_together
    if together and any(name in values for name in together):
        query = model.query.filter_by(**{name: _current(values, instance, name) for name in together})
        if instance is not None:
            query = query.filter(model.id != instance.id)
        if db.session.query(query.exists()).scalar():
            raise ConflictError(resource.label, together[-1])


def _commit(resource):
    """Commit, mapping a unique-constraint race onto ConflictError."""
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        detail = str(exc.orig).lower()
        fields = resource.unique_fields + ("slug",) + resource.unique_together
        fallback = (resource.unique_fields or resource.unique_together or ("record",))[-1]
        name = next((f for f in fields if f in detail), fallback)
        logger.warning("Integrity error on %s: %s", resource.resource_type, detail)
        raise ConflictError(resource.label, name) from exc


def _apply(resource, row, values):
    for name, value in values.items():
        setattr(row, name, value)
    if resource.slug_from and resource.slug_from in values:
        row.slug = unique_slug(resource.model, values[resource.slug_from], exclude_id=row.id)


def _audit_changes(values):
    changes = {}
    for name, value in values.items():
        if name == "option_values":
            changes[name] = [o.id for o in value]
        elif isinstance(value, Decimal):
            changes[name] = str(value)
        elif isinstance(value, datetime):
            changes[name] = isoformat(value)
        else:
            changes[name] = value
    return changes


def _set_lifecycle(row, is_active):
    if is_active:
        row.activate()
    else:
        row.archive()


def create(resource, admin, data):
    values = schemas.load(resource.schema, data)
    is_active = values.pop("is_active", None)
    if resource.check:
        resource.check(values, None)
    _check_unique(resource, values, None)

    row = resource.model()
    _apply(resource, row, values)
    if is_active is False:
        row.archive()
    if resource.stamp:
        resource.stamp(row, admin)
    db.session.add(row)
    _commit(resource)
    logger.info("%s %d created", resource.label, row.id)

    audit_service.log_admin_activity(
        admin.id, f"CREATE_{resource.resource_type.upper()}",
        resource.resource_type, row.id, _audit_changes(values),
    )
    return row


def update(resource, admin, row_id, data):
    row = get_row(resource, row_id)
    values = schemas.load(resource.schema, data, partial=True)
    is_active = values.pop("is_active", None)
    if resource.check:
        resource.check(values, row)
    _check_unique(resource, values, row)

    _apply(resource, row, values)
    changes = _audit_changes(values)
    if is_active is not None:
        _set_lifecycle(row, is_active)
        changes["status"] = row.status
    if resource.stamp:
        resource.stamp(row, admin)
    _commit(resource)

    audit_service.log_admin_activity(
        admin.id, f"UPDATE_{resource.resource_type.upper()}",
        resource.resource_type, row.id, changes,
    )
    return row


def delete(resource, admin, row_id, hard_delete=False):
    """Archive a row, or remove it when ``hard_delete`` and nothing references it."""
    row = get_row(resource, row_id)
    if hard_delete:
        if resource.references(row):
            raise ValidationError(
                f"Cannot delete {resource.label.lower()} that is still referenced "
                "by other records; archive it instead"
            )
        db.session.delete(row)
        _commit(resource)
        action = "DELETE"
    else:
        row.archive()
        _commit(resource)
        action = "ARCHIVE"

    audit_service.log_admin_activity(
        admin.id, f"{action}_{resource.resource_type.upper()}",
        resource.resource_type, row_id,
    )
    return row


def filter_rows(resource, is_active=None, search=None, sort_by=None,
                sort_order="asc", **filters):
    model = resource.model
    sort_by = sort_by or resource.default_sort
    if sort_by not in resource.sort_fields:
        raise ValidationError(
            "sort_by must be one of " + ", ".join(resource.sort_fields),
            errors={"sort_by": f"cannot sort {resource.label.lower()} records by {sort_by}"},
        )

    query = model.query
    if is_active is not None:
        query = query.filter(model.status == (ACTIVE if is_active else ARCHIVED))
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(*(getattr(model, f).ilike(pattern) for f in resource.search_fields)))
    for name in resource.filters:
        value = filters.get(name)
        if value is not None:
            query = query.filter(getattr(model, name) == value)
    column = getattr(model, sort_by)
    ordering = column.desc() if sort_order == "desc" else column.asc()
    return query.order_by(ordering, model.id)


def category_tree():
    """Nested active categories. Children of archived parents are omitted."""
    categories = Category.active().order_by(Category.name).all()
    by_parent = {}
    for category in categories:
        by_parent.setdefault(category.parent_id, []).append(category)

    def build(node, seen):
        data = node.to_dict()
        seen = seen | {node.id}
        data["children"] = [
            build(child, seen) for child in by_parent.get(node.id, []) if child.id not in seen
        ]
        return data

    roots = [c for c in categories if c.parent_id is None]
    return [build(root, set()) for root in roots]
