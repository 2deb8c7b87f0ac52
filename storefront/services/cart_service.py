import logging

from storefront.errors import InsufficientStockError, NotFoundError, ValidationError
from storefront.extensions import db
from storefront.models.cart import Cart, CartItem
from storefront.models.inventory import Inventory
from storefront.models.user import User
from storefront.models.variant import ProductVariant
from storefront.services import audit_service, coupon_service
from storefront.services.pack_service import base_units_required, get_variant_pack_details
from storefront.utils import to_money

logger = logging.getLogger(__name__)


def get_cart(user_id):
    return Cart.query.filter_by(user_id=user_id).first()


def get_or_create_cart(user_id):
    cart = get_cart(user_id)
    if cart is None:
        cart = Cart(user_id=user_id)
        db.session.add(cart)
        db.session.flush()
    return cart


def ensure_stock(variant, quantity):
    """Raise InsufficientStockError unless ``quantity`` of the variant is available."""
    details = get_variant_pack_details(db.session, variant)
    required = base_units_required(quantity, details.pack_unit_multiplier)
    inventory = Inventory.query.filter_by(
        product_variant_id=details.base_unit_variant_id
    ).first()
    available = inventory.stock_quantity if inventory and inventory.is_active else 0
    if available < required:
        raise InsufficientStockError(
            f"Insufficient stock. Available: {available}, Required: {required}"
        )


def refresh_totals(cart):
    """Recompute the coupon discount for the current subtotal, then the total.

    A coupon that no longer applies is dropped from the cart.
    """
    if cart.applied_coupon_code:
        subtotal = cart.subtotal()
        coupon = coupon_service.find_user_coupon(cart.user_id, cart.applied_coupon_code)
        applicable = False
        if coupon is not None and cart.items:
            applicable, _ = coupon.check_applicable(subtotal)
        if applicable:
            cart.apply_coupon(coupon.coupon_code, coupon.campaign.compute_discount(subtotal))
        else:
            logger.info("Dropping coupon %s from cart %s", cart.applied_coupon_code, cart.id)
            cart.clear_coupon()
    return cart.recalculate_total()


def load_cart(user_id):
    """The user's cart (created on first access) with fresh totals."""
    cart = get_or_create_cart(user_id)
    refresh_totals(cart)
    db.session.commit()
    return cart


def _active_variant(variant_id):
    variant = db.session.get(ProductVariant, variant_id)
    if variant is None:
        raise NotFoundError("Product variant not found")
    if not variant.is_active:
        raise ValidationError("Product variant is not available")
    return variant


def add_item_to_cart(user_id, variant_id, quantity=1):
    """Add a variant, merging into an existing line by summing quantities."""
    variant = _active_variant(variant_id)

    cart = get_or_create_cart(user_id)
    item = cart.find_item(variant.id)
    new_quantity = quantity + (item.quantity if item else 0)
    ensure_stock(variant, new_quantity)

    if item is None:
        item = CartItem(
            product_variant=variant,
            quantity=quantity,
            price_at_addition=to_money(variant.price),
        )
        cart.items.append(item)
    else:
        item.quantity = new_quantity
    refresh_totals(cart)
    db.session.commit()

    audit_service.log_user_activity(
        user_id,
        "ITEM_ADDED_TO_CART",
        {"cart_id": cart.id, "product_variant_id": variant.id, "quantity": quantity,
         "price": str(to_money(variant.price))},
        "cart",
        cart.id,
    )
    return cart


def _cart_item(user_id, variant_id):
    cart = get_cart(user_id)
    if cart is None:
        raise NotFoundError("Cart not found")
    item = cart.find_item(variant_id)
    if item is None:
        raise NotFoundError("Item not found in cart")
    return cart, item


def update_item_quantity(user_id, variant_id, quantity):
    """Set a line's quantity; zero removes the line."""
    cart, item = _cart_item(user_id, variant_id)

    if quantity == 0:
        cart.items.remove(item)
    else:
        ensure_stock(item.product_variant, quantity)
        item.quantity = quantity
    refresh_totals(cart)
    db.session.commit()

    audit_service.log_user_activity(
        user_id,
        "CART_ITEM_QUANTITY_UPDATED",
        {"cart_id": cart.id, "product_variant_id": variant_id, "quantity": quantity},
        "cart",
        cart.id,
    )
    return cart


def remove_item(user_id, variant_id):
    cart, item = _cart_item(user_id, variant_id)
    cart.items.remove(item)
    refresh_totals(cart)
    db.session.commit()

    audit_service.log_user_activity(
        user_id, "ITEM_REMOVED_FROM_CART",
        {"cart_id": cart.id, "product_variant_id": variant_id}, "cart", cart.id,
    )
    return cart


def apply_coupon(user_id, code):
    code = coupon_service.normalize_code(code)
    cart = get_cart(user_id)
    if cart is None:
        raise NotFoundError("Cart not found")
    if not cart.items:
        raise ValidationError("Cannot apply coupon to empty cart")

    subtotal = cart.subtotal()
    coupon = coupon_service.validate_coupon(user_id, code, subtotal)
    discount = coupon.campaign.compute_discount(subtotal)
    cart.apply_coupon(code, discount)
    cart.recalculate_total()
    db.session.commit()

    audit_service.log_user_activity(
        user_id,
        "COUPON_APPLIED_TO_CART",
        {"cart_id": cart.id, "coupon_code": code, "discount_amount": str(discount),
         "cart_total_before": str(subtotal), "cart_total_after": str(cart.cart_total_amount)},
        "cart",
        cart.id,
    )
    return cart


def remove_coupon(user_id):
    cart = get_cart(user_id)
    if cart is None:
        raise NotFoundError("Cart not found")
    if not cart.applied_coupon_code:
        raise ValidationError("No coupon applied to cart")
    removed = cart.applied_coupon_code
    cart.clear_coupon()
    cart.recalculate_total()
    db.session.commit()

    audit_service.log_user_activity(
        user_id, "COUPON_REMOVED_FROM_CART", {"coupon_code": removed}, "cart", cart.id
    )
    return cart


def clear_cart(user_id):
    """Delete every line and the coupon; the cart itself remains."""
    cart = get_cart(user_id)
    if cart is None:
        raise NotFoundError("Cart not found")
    removed = len(cart.items)
    cart.items.clear()
    cart.clear_coupon()
    cart.recalculate_total()
    db.session.commit()

    audit_service.log_user_activity(
        user_id, "CART_CLEARED", {"items_removed": removed}, "cart", cart.id
    )
    return cart


def _total_arg(name, value):
    try:
        return to_money(value)
    except ValueError:
        raise ValidationError(
            f"Invalid {name}", errors={name: "must be a finite number"}
        ) from None


def filter_carts(user_id=None, has_coupon=None, min_total=None, max_total=None):
    query = Cart.query
    if user_id is not None:
        query = query.filter(Cart.user_id == user_id)
    if has_coupon is True:
        query = query.filter(Cart.applied_coupon_code.isnot(None))
    elif has_coupon is False:
        query = query.filter(Cart.applied_coupon_code.is_(None))
    if min_total is not None:
        query = query.filter(Cart.cart_total_amount >= _total_arg("min_total", min_total))
    if max_total is not None:
        query = query.filter(Cart.cart_total_amount <= _total_arg("max_total", max_total))
    return query.order_by(Cart.updated_at.desc(), Cart.id.desc())


def user_cart_for_admin(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user, get_cart(user_id)
