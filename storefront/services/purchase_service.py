"""Supplier purchases and the stock they bring in.

A purchase that reaches a received status adds ``quantity`` times its
pack multiplier to the base unit's inventory. That happens once per
purchase, in the same transaction as the status change.
"""
import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from storefront import schemas
from storefront.errors import (
    ConflictError,
    NotFoundError,
    PersistenceError,
    StorefrontError,
    ValidationError,
)
from storefront.extensions import db
from storefront.models.inventory import Inventory
from storefront.models.lifecycle import ACTIVE, ARCHIVED
from storefront.models.purchase import RECEIVED_STATUSES, Purchase
from storefront.models.supplier import Supplier
from storefront.models.variant import ProductVariant
from storefront.services import audit_service
from storefront.services.pack_service import base_units_required, get_variant_pack_details
from storefront.utils import isoformat, utcnow

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "purchase_date": Purchase.purchase_date,
    "created_at": Purchase.created_at,
    "landing_price": Purchase.landing_price,
    "quantity": Purchase.quantity,
    "purchase_status": Purchase.purchase_status,
}


def get_purchase(purchase_id):
    purchase = db.session.get(Purchase, purchase_id)
    if purchase is None:
        raise NotFoundError("Purchase not found")
    return purchase


def _require_active(model, ref_id, label):
    row = db.session.get(model, ref_id)
    if row is None:
        raise NotFoundError(f"{label} not found")
    if not row.is_active:
        raise ValidationError(f"{label} is archived")
    return row


def _check_order_number(number, purchase=None):
    if not number:
        return
    query = Purchase.query.filter(Purchase.purchase_order_number == number)
    if purchase is not None:
        query = query.filter(Purchase.id != purchase.id)
    if db.session.query(query.exists()).scalar():
        raise ConflictError("Purchase", "purchase_order_number")


def _receive_stock(purchase):
    """Add the purchased units to the base unit's inventory row."""
    try:
        details = get_variant_pack_details(db.session, purchase.product_variant_id)
    except NotFoundError:
        raise ValidationError(
            "Cannot receive stock for a pack variant without a base unit variant"
        ) from None

    inventory = (
        Inventory.query.filter_by(product_variant_id=details.base_unit_variant_id)
        .with_for_update()
        .first()
    )
    if inventory is None:
        inventory = Inventory(
            product_variant_id=details.base_unit_variant_id,
            stock_quantity=0,
            notes=f"Initial stock from purchase {purchase.id}",
        )
        db.session.add(inventory)
    elif not inventory.is_active:
        raise ValidationError(
            "Inventory record for the base unit is archived; reactivate it first"
        )

    units = base_units_required(purchase.quantity, details.pack_unit_multiplier)
    inventory.add_stock(units)
    note = f"Received {units} units from purchase {purchase.id}"
    inventory.notes = f"{inventory.notes}\n{note}" if inventory.notes else note
    purchase.inventory_updated_on_completion = True
    if purchase.received_date is None:
        purchase.received_date = utcnow()
    return units


def _audit_values(values):
    changes = {}
    for name, value in values.items():
        if isinstance(value, Decimal):
            changes[name] = str(value)
        elif isinstance(value, datetime):
            changes[name] = isoformat(value)
        else:
            changes[name] = value
    return changes


def _save():
    """Commit the purchase and any stock it received, or neither."""
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Purchase could not be saved")
        raise PersistenceError("Failed to save purchase") from exc


def create_purchase(admin, data):
    values = schemas.load(schemas.PurchaseIn, data)
    is_active = values.pop("is_active", None)
    _require_active(ProductVariant, values["product_variant_id"], "Product variant")
    _require_active(Supplier, values["supplier_id"], "Supplier")
    _check_order_number(values["purchase_order_number"])

    purchase = Purchase(**values)
    if is_active is False:
        purchase.status = ARCHIVED
    purchase.recalculate_landing_price()
    db.session.add(purchase)
    try:
        db.session.flush()
        if purchase.purchase_status in RECEIVED_STATUSES:
            _receive_stock(purchase)
    except StorefrontError:
        db.session.rollback()
        raise
    _save()
    logger.info("Purchase %d created [%s]", purchase.id, purchase.purchase_status)

    audit_service.log_admin_activity(
        admin.id, "CREATE_PURCHASE", "purchase", purchase.id, _audit_values(values)
    )
    return purchase


def update_purchase(admin, purchase_id, data):
    purchase = get_purchase(purchase_id)
    values = schemas.load(schemas.PurchaseIn, data, partial=True)
    is_active = values.pop("is_active", None)

    if purchase.inventory_updated_on_completion:
        locked = {"product_variant_id", "quantity"} & set(values)
        if any(values[name] != getattr(purchase, name) for name in locked):
            raise ValidationError(
                "Stock from this purchase has already been received",
                errors={name: "cannot change after stock was received" for name in locked},
            )
        status = values.get("purchase_status")
        if status is not None and status not in RECEIVED_STATUSES:
            raise ValidationError("Stock from this purchase has already been received")
    if "product_variant_id" in values:
        _require_active(ProductVariant, values["product_variant_id"], "Product variant")
    if "supplier_id" in values:
        _require_active(Supplier, values["supplier_id"], "Supplier")
    if "purchase_order_number" in values:
        _check_order_number(values["purchase_order_number"], purchase)

    old_status = purchase.purchase_status
    for name, value in values.items():
        setattr(purchase, name, value)
    if is_active is not None:
        purchase.status = ACTIVE if is_active else ARCHIVED
    purchase.recalculate_landing_price()

    received = 0
    try:
        if purchase.purchase_status in RECEIVED_STATUSES and not purchase.inventory_updated_on_completion:
            received = _receive_stock(purchase)
    except StorefrontError:
        db.session.rollback()
        raise
    _save()

    changes = _audit_values(values)
    if received:
        changes["received_units"] = received
    changes["old_status"] = old_status
    audit_service.log_admin_activity(
        admin.id, "UPDATE_PURCHASE", "purchase", purchase.id, changes
    )
    return purchase


def delete_purchase(admin, purchase_id):
    """Archive a purchase. Received stock stays in inventory."""
    purchase = get_purchase(purchase_id)
    purchase.archive()
    db.session.commit()
    audit_service.log_admin_activity(admin.id, "ARCHIVE_PURCHASE", "purchase", purchase.id)
    return purchase


def filter_purchases(is_active=None, purchase_status=None, supplier_id=None,
                     product_variant_id=None, date_from=None, date_to=None,
                     search=None, sort_by="purchase_date", sort_order="desc"):
    if sort_by not in SORT_FIELDS:
        raise ValidationError(
            "sort_by must be one of " + ", ".join(SORT_FIELDS),
            errors={"sort_by": f"cannot sort purchases by {sort_by}"},
        )
    query = Purchase.query
    if is_active is not None:
        query = query.filter(Purchase.status == (ACTIVE if is_active else ARCHIVED))
    if purchase_status:
        if purchase_status not in Purchase.PURCHASE_STATUSES:
            raise ValidationError("Invalid purchase status")
        query = query.filter(Purchase.purchase_status == purchase_status)
    if supplier_id is not None:
        query = query.filter(Purchase.supplier_id == supplier_id)
    if product_variant_id is not None:
        query = query.filter(Purchase.product_variant_id == product_variant_id)
    if date_from is not None:
        query = query.filter(Purchase.purchase_date >= date_from)
    if date_to is not None:
        query = query.filter(Purchase.purchase_date <= date_to)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(Purchase.purchase_order_number.ilike(pattern), Purchase.notes.ilike(pattern))
        )
    column = SORT_FIELDS[sort_by]
    ordering = column.asc() if sort_order == "asc" else column.desc()
    return query.order_by(ordering, Purchase.id)
