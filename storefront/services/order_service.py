"""Order placement, history, cancellation, status changes and refunds.

Placement turns a cart into an order in one session transaction: stock is
decremented in base units, line snapshots are written, the coupon is
redeemed and the cart is removed. Either all of it commits or none of it.
"""
import logging
from collections import OrderedDict
from decimal import Decimal

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from storefront import schemas
from storefront.errors import (
    AuthorizationError,
    InsufficientStockError,
    NotFoundError,
    PersistenceError,
    StorefrontError,
    ValidationError,
)
from storefront.extensions import db
from storefront.models.cart import Cart
from storefront.models.inventory import Inventory
from storefront.models.order import (
    CANCELLED,
    REFUNDED,
    SHIPPED,
    Order,
    OrderItem,
    generate_order_number,
)
from storefront.models.payment_method import PaymentMethod
from storefront.services import audit_service, coupon_service
from storefront.services.pack_service import base_units_required, get_variant_pack_details
from storefront.utils import to_money

logger = logging.getLogger(__name__)

ORDER_NUMBER_ATTEMPTS = 5


def shipping_cost_for(item_quantity, waives_shipping=False):
    config = current_app.config
    if waives_shipping or item_quantity >= config["FREE_SHIPPING_MIN_ITEMS"]:
        return Decimal("0.00")
    return to_money(config["SHIPPING_FLAT_RATE"])


def tax_for(subtotal):
    return to_money(to_money(subtotal) * Decimal(str(current_app.config["TAX_RATE"])))


def _resolve_payment_method(session, user, values):
    if values["is_cod"]:
        return True, None
    method_id = values["payment_method_id"]
    if method_id is None:
        raise ValidationError("Payment method is required for non-COD orders")
    method = session.get(PaymentMethod, method_id)
    if method is None or method.user_id != user.id or not method.is_active:
        raise ValidationError("Invalid payment method")
    return False, method


def _required_base_units(session, items):
    """Map base-unit variant id -> (base units required, first product name)."""
    required = OrderedDict()
    for item in items:
        variant = item.product_variant
        if variant is None or not variant.is_active:
            raise ValidationError(
                f"Product variant {variant.sku_code if variant else item.product_variant_id} "
                "is no longer available"
            )
        try:
            details = get_variant_pack_details(session, variant)
        except NotFoundError:
            raise ValidationError(
                f"Product variant {variant.sku_code} has no base unit variant to draw stock from"
            ) from None
        units = base_units_required(item.quantity, details.pack_unit_multiplier)
        total, name = required.get(details.base_unit_variant_id, (0, variant.product.name))
        required[details.base_unit_variant_id] = (total + units, name)
    return required


def _lock_inventory(session, base_variant_ids):
    rows = (
        session.query(Inventory)
        .filter(Inventory.product_variant_id.in_(list(base_variant_ids)))
        .with_for_update()
        .all()
    )
    return {row.product_variant_id: row for row in rows}


def _check_stock(required, inventory_by_variant):
    for base_id, (units, name) in required.items():
        inventory = inventory_by_variant.get(base_id)
        available = inventory.stock_quantity if inventory and inventory.is_active else 0
        if available < units:
            raise InsufficientStockError(
                f"Insufficient stock for {name}. Available: {available}, Required: {units}"
            )


def _applied_coupon(user, cart, subtotal):
    if not cart.applied_coupon_code:
        return None
    coupon = coupon_service.find_user_coupon(user.id, cart.applied_coupon_code)
    if coupon is None:
        raise ValidationError("Applied coupon is no longer valid")
    applicable, reason = coupon.check_applicable(subtotal)
    if not applicable:
        raise ValidationError(f"Coupon validation failed: {reason}")
    return coupon


def _unique_order_number(session):
    for _ in range(ORDER_NUMBER_ATTEMPTS):
        number = generate_order_number()
        if not session.query(Order.id).filter_by(order_number=number).first():
            return number
    raise PersistenceError("Could not allocate an order number")


def _snapshot_items(order, cart_items):
    for item in cart_items:
        variant = item.product_variant
        price = item.current_price
        order.items.append(
            OrderItem(
                product_variant_id=variant.id,
                sku_code=variant.sku_code,
                product_name=variant.product.name,
                variant_options=variant.option_pairs(),
                quantity=item.quantity,
                price=price,
                subtotal=to_money(price * item.quantity),
            )
        )


def place_order(session, user, payload):
    """Convert the user's cart into an order.

    Raises:
        ValidationError, InsufficientStockError on a failed precondition;
        PersistenceError when the transaction cannot be committed.
    """
    if not payload.get("shipping_address") or not payload.get("billing_address"):
        raise ValidationError("Both shipping and billing addresses are required")
    values = schemas.load(schemas.PlaceOrder, payload)

    cart = session.query(Cart).filter_by(user_id=user.id).first()
    if cart is None or not cart.items:
        raise ValidationError("Cart is empty")

    is_cod, payment_method = _resolve_payment_method(session, user, values)

    cart_items = list(cart.items)
    try:
        required = _required_base_units(session, cart_items)
        inventory_by_variant = _lock_inventory(session, required)
        _check_stock(required, inventory_by_variant)

        subtotal = cart.subtotal()
        coupon = _applied_coupon(user, cart, subtotal)
        discount = coupon.campaign.compute_discount(subtotal) if coupon else Decimal("0.00")
        waives_shipping = bool(coupon and coupon.campaign.waives_shipping)

        for base_id, (units, _) in required.items():
            inventory_by_variant[base_id].remove_stock(units)

        order = Order(
            order_number=_unique_order_number(session),
            user_id=user.id,
            is_cod=is_cod,
            payment_method_id=payment_method.id if payment_method else None,
            payment_status="PENDING",
            shipping_address=values["shipping_address"],
            billing_address=values["billing_address"],
            subtotal_amount=subtotal,
            shipping_cost=shipping_cost_for(cart.item_quantity(), waives_shipping),
            tax_amount=tax_for(subtotal),
            discount_amount=discount,
            applied_coupon_code=cart.applied_coupon_code,
            notes=values["notes"] or None,
        )
        order.calculate_totals()
        session.add(order)
        _snapshot_items(order, cart_items)

        if coupon is not None:
            coupon_service.redeem(coupon)

        session.delete(cart)
        session.commit()
    except StorefrontError:
        session.rollback()
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Order placement failed for user %s", user.id)
        raise PersistenceError("Failed to place order") from exc

    logger.info("Order %s placed by user %s", order.order_number, user.id)
    audit_service.log_user_activity(
        user.id,
        "ORDER_PLACED",
        {
            "order_number": order.order_number,
            "total_amount": str(order.total_amount),
            "item_count": len(order.items),
            "payment_method": "COD" if is_cod else "ONLINE",
            "applied_coupon": order.applied_coupon_code,
        },
        "order",
        order.id,
    )
    return order


def filter_orders(user_id=None, order_status=None, payment_status=None,
                  order_number=None, date_from=None, date_to=None):
    query = Order.query
    if user_id is not None:
        query = query.filter(Order.user_id == user_id)
    if order_status:
        if order_status not in Order.VALID_STATUSES:
            raise ValidationError("Invalid order status")
        query = query.filter(Order.order_status == order_status)
    if payment_status:
        query = query.filter(Order.payment_status == payment_status)
    if order_number:
        query = query.filter(Order.order_number.ilike(f"%{order_number}%"))
    if date_from is not None:
        query = query.filter(Order.created_at >= date_from)
    if date_to is not None:
        query = query.filter(Order.created_at <= date_to)
    return query.order_by(Order.created_at.desc(), Order.id.desc())


def get_order(order_id):
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    return order


def get_user_order(user, order_id):
    order = get_order(order_id)
    if order.user_id != user.id:
        raise AuthorizationError("You do not have access to this order")
    return order


def _restore_stock(order):
    for item in order.items:
        try:
            details = get_variant_pack_details(db.session, item.product_variant_id)
        except NotFoundError:
            logger.warning(
                "Cannot restore stock for %s on order %s: base unit missing",
                item.sku_code, order.order_number,
            )
            continue
        inventory = Inventory.query.filter_by(
            product_variant_id=details.base_unit_variant_id
        ).with_for_update().first()
        if inventory is None:
            logger.warning("No inventory to restore %s into", item.sku_code)
            continue
        inventory.add_stock(
            base_units_required(item.quantity, details.pack_unit_multiplier),
            update_restock_date=False,
        )


def _cancel(order, reason):
    _restore_stock(order)
    coupon_service.reverse_usage(order.user_id, order.applied_coupon_code)
    order.append_note(f"Cancelled: {reason}")
    order.order_status = CANCELLED


def cancel_order(user, order_id, reason=None):
    order = get_user_order(user, order_id)
    if not order.can_be_cancelled():
        raise ValidationError(
            "Order cannot be cancelled. Only PENDING and PROCESSING orders can be cancelled."
        )
    reason = reason or "Customer cancellation"
    _cancel(order, reason)
    db.session.commit()

    audit_service.log_user_activity(
        user.id, "ORDER_CANCELLED",
        {"order_number": order.order_number, "reason": reason}, "order", order.id,
    )
    return order


def update_status(admin, order_id, new_status, tracking_number=None,
                  shipping_carrier=None, notes=None):
    order = get_order(order_id)
    if new_status not in Order.VALID_STATUSES:
        raise ValidationError("Invalid order status")
    if not order.can_transition_to(new_status):
        raise ValidationError(
            f"Cannot change order status from {order.order_status} to {new_status}"
        )

    old_status = order.order_status
    if new_status == CANCELLED:
        _cancel(order, notes or "Cancelled by admin")
    else:
        order.order_status = new_status
        if notes:
            order.append_note(notes)
    if new_status == SHIPPED:
        if tracking_number:
            order.tracking_number = tracking_number
        if shipping_carrier:
            order.shipping_carrier = shipping_carrier
    db.session.commit()

    audit_service.log_admin_activity(
        admin.id,
        "ADMIN_ORDER_STATUS_UPDATED",
        "order",
        order.id,
        {"order_number": order.order_number, "old_status": old_status,
         "new_status": new_status, "tracking_number": tracking_number,
         "shipping_carrier": shipping_carrier},
    )
    return order


def process_refund(admin, order_id, amount=None, reason=None):
    order = get_order(order_id)
    if not order.can_be_refunded():
        raise ValidationError(
            "Only DELIVERED or RETURNED orders can be refunded"
        )

    refundable = order.refundable_amount
    try:
        refund = refundable if amount is None else to_money(amount)
    except ValueError:
        raise ValidationError("Invalid refund amount")
    if refund <= 0 or refund > refundable:
        raise ValidationError("Invalid refund amount")

    reason = reason or "Admin refund"
    order.refunded_amount = to_money(order.refunded_amount) + refund
    if order.refunded_amount >= to_money(order.total_amount):
        order.payment_status = "REFUNDED"
        order.order_status = REFUNDED
    else:
        order.payment_status = "PARTIALLY_REFUNDED"
    order.append_note(f"Refund processed: {refund}. Reason: {reason}")
    db.session.commit()

    audit_service.log_admin_activity(
        admin.id,
        "ADMIN_ORDER_REFUND_PROCESSED",
        "order",
        order.id,
        {"order_number": order.order_number, "refund_amount": str(refund), "reason": reason},
    )
    return order, refund


def order_stats():
    """Order counts keyed by order status."""
    rows = (
        db.session.query(Order.order_status, func.count(Order.id))
        .group_by(Order.order_status)
        .all()
    )
    return {status: count for status, count in rows}
