import logging

from sqlalchemy import or_

from storefront import schemas
from storefront.errors import NotFoundError, ValidationError
from storefront.extensions import db
from storefront.models.inventory import Inventory
from storefront.models.lifecycle import ACTIVE, ARCHIVED
from storefront.models.variant import ProductVariant
from storefront.services import audit_service
from storefront.services.pack_service import (
    analyze_pack_options,
    computed_stock,
    get_variant_pack_details,
)
from storefront.utils import utcnow

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "created_at": Inventory.created_at,
    "updated_at": Inventory.updated_at,
    "stock_quantity": Inventory.stock_quantity,
    "min_stock_level": Inventory.min_stock_level,
    "location": Inventory.location,
}

# Computed pack rows at or below this many packs are reported as low.
PACK_LOW_STOCK_THRESHOLD = 5


def get_inventory(inventory_id):
    inventory = db.session.get(Inventory, inventory_id)
    if inventory is None:
        raise NotFoundError("Inventory record not found")
    return inventory


def create_inventory(admin, data):
    """Create the stock record for a base-unit variant."""
    clean = schemas.load(schemas.InventoryCreate, data)
    variant_id = clean["product_variant_id"]

    variant = db.session.get(ProductVariant, variant_id)
    if variant is None:
        raise NotFoundError("Product variant not found")
    if not variant.is_active:
        raise ValidationError("Cannot create inventory for an inactive product variant")

    details = analyze_pack_options(variant.option_values)
    if not details.is_base_unit:
        raise ValidationError(
            "Inventory can only be created for base unit variants. "
            f"This variant is a pack of {details.pack_unit_multiplier}; its stock is "
            "computed from the base unit."
        )

    existing = Inventory.query.filter_by(product_variant_id=variant_id).first()
    if existing is not None:
        if existing.status == ARCHIVED:
            raise ValidationError(
                "An archived inventory record exists for this product variant; "
                "reactivate it instead"
            )
        raise ValidationError("Inventory record already exists for this product variant")

    stock = clean["stock_quantity"]
    inventory = Inventory(
        product_variant_id=variant_id,
        stock_quantity=stock,
        min_stock_level=clean["min_stock_level"],
        location=clean["location"],
        notes=clean["notes"],
        status=ACTIVE if clean["is_active"] else ARCHIVED,
        last_restock_date=utcnow() if stock > 0 else None,
    )
    db.session.add(inventory)
    db.session.commit()
    logger.info("Inventory %d created for %s", inventory.id, variant.sku_code)

    audit_service.log_admin_activity(
        admin.id,
        "CREATE_INVENTORY",
        "inventory",
        inventory.id,
        {"product_variant_id": variant_id, "stock_quantity": stock},
    )
    return inventory


def filter_inventory(is_active=None, stock_status=None, location=None,
                     product_id=None, search=None, sort_by="created_at",
                     sort_order="desc"):
    query = Inventory.query.join(ProductVariant)

    if is_active is not None:
        query = query.filter(Inventory.status == (ACTIVE if is_active else ARCHIVED))
    if location:
        query = query.filter(Inventory.location.ilike(f"%{location}%"))
    if stock_status == "out_of_stock":
        query = query.filter(Inventory.stock_quantity <= 0)
    elif stock_status == "low_stock":
        query = query.filter(
            Inventory.min_stock_level > 0,
            Inventory.stock_quantity <= Inventory.min_stock_level,
        )
    elif stock_status == "in_stock":
        query = query.filter(Inventory.stock_quantity > 0)
    elif stock_status:
        raise ValidationError(
            "stock_status must be one of out_of_stock, low_stock, in_stock"
        )
    if product_id is not None:
        query = query.filter(ProductVariant.product_id == product_id)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                ProductVariant.sku_code.ilike(pattern),
                Inventory.location.ilike(pattern),
                Inventory.notes.ilike(pattern),
            )
        )

    column = SORT_FIELDS.get(sort_by, Inventory.created_at)
    ordering = column.asc() if sort_order == "asc" else column.desc()
    return query.order_by(ordering, Inventory.id)


def _pack_stock_status(packs):
    if packs <= 0:
        return "Out of Stock"
    if packs <= PACK_LOW_STOCK_THRESHOLD:
        return "Low Stock"
    return "In Stock"


def computed_pack_rows(records):
    """Computed, read-only rows for pack variants drawing on ``records``."""
    rows = []
    for inventory in records:
        base = inventory.product_variant
        siblings = ProductVariant.query.filter(
            ProductVariant.product_id == base.product_id,
            ProductVariant.id != base.id,
        ).order_by(ProductVariant.id)
        for variant in siblings:
            details = analyze_pack_options(variant.option_values)
            if details.is_base_unit:
                continue
            try:
                details = get_variant_pack_details(db.session, variant)
            except NotFoundError:
                logger.warning("Pack variant %s has no base unit", variant.sku_code)
                continue
            if details.base_unit_variant_id != base.id:
                continue
            packs = computed_stock(inventory.stock_quantity, details)
            rows.append({
                "id": f"computed_{variant.id}",
                "product_variant_id": variant.id,
                "sku_code": variant.sku_code,
                "product_id": variant.product_id,
                "computed_stock_quantity": packs,
                "pack_unit_multiplier": details.pack_unit_multiplier,
                "base_inventory_id": inventory.id,
                "is_computed": True,
                "stock_status": _pack_stock_status(packs),
            })
    return rows


def _pack_details_dict(details):
    return {
        "is_base_unit": details.is_base_unit,
        "pack_unit_multiplier": details.pack_unit_multiplier,
        "base_unit_variant_id": details.base_unit_variant_id,
    }


def variant_stock(variant_id):
    """Computed stock for any variant, base unit or pack."""
    details = get_variant_pack_details(db.session, variant_id)
    inventory = Inventory.query.filter_by(
        product_variant_id=details.base_unit_variant_id
    ).first()
    if inventory is None:
        raise NotFoundError("No inventory record found for this variant's base unit")
    stock = computed_stock(inventory.stock_quantity, details) if inventory.is_active else 0
    return {
        "product_variant_id": variant_id,
        "computed_stock_quantity": stock,
        "pack_details": _pack_details_dict(details),
        "inventory": inventory.to_dict(),
    }


def inventory_detail(inventory):
    details = get_variant_pack_details(db.session, inventory.product_variant)
    data = inventory.to_dict()
    data["computed_stock_quantity"] = computed_stock(inventory.stock_quantity, details)
    data["pack_details"] = _pack_details_dict(details)
    return data


def update_inventory(admin, inventory_id, data):
    inventory = get_inventory(inventory_id)
    if "product_variant_id" in data and data["product_variant_id"] != inventory.product_variant_id:
        raise ValidationError("Product variant of an inventory record cannot be changed")
    clean = schemas.load(schemas.InventoryUpdate, data, partial=True)

    changes = {}
    if "stock_quantity" in clean:
        inventory.set_stock(clean["stock_quantity"])
        changes["stock_quantity"] = clean["stock_quantity"]
    for field in ("min_stock_level", "location", "notes"):
        if field in clean:
            setattr(inventory, field, clean[field])
            changes[field] = clean[field]
    if "is_active" in clean:
        if clean["is_active"]:
            inventory.activate()
        else:
            inventory.soft_delete()
        changes["status"] = inventory.status
    inventory.updated_at = utcnow()
    db.session.commit()

    audit_service.log_admin_activity(admin.id, "UPDATE_INVENTORY", "inventory", inventory.id, changes)
    return inventory


def adjust_inventory(admin, inventory_id, operation, quantity):
    """Apply one ledger operation (add, remove or set)."""
    inventory = get_inventory(inventory_id)
    if not inventory.is_active:
        raise ValidationError("Cannot adjust stock on an archived inventory record")

    before = inventory.stock_quantity
    if operation == "add":
        inventory.add_stock(quantity)
    elif operation == "remove":
        inventory.remove_stock(quantity)
    else:
        inventory.set_stock(quantity)
    db.session.commit()
    logger.info(
        "Inventory %d %s %s: %d -> %d",
        inventory.id, operation, quantity, before, inventory.stock_quantity,
    )

    audit_service.log_admin_activity(
        admin.id,
        "ADJUST_INVENTORY",
        "inventory",
        inventory.id,
        {"operation": operation, "quantity": quantity,
         "before": before, "after": inventory.stock_quantity},
    )
    return inventory


def delete_inventory(admin, inventory_id):
    inventory = get_inventory(inventory_id)
    inventory.soft_delete()
    db.session.commit()
    audit_service.log_admin_activity(admin.id, "ARCHIVE_INVENTORY", "inventory", inventory.id)
    return inventory


def low_stock_items():
    return Inventory.low_stock().order_by(Inventory.stock_quantity).all()
