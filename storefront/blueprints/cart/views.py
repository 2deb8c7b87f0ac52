"""Shopping cart endpoints for users, plus read-only admin views."""
from flask import g, request

from storefront.api import bool_arg, json_body, ok, page_args, paginate
from storefront.auth import admin_required, login_required
from storefront.blueprints.cart import cart_bp
from storefront.schemas import AddItem, ApplyCoupon, UpdateQuantity, load
from storefront.services import cart_service


@cart_bp.route("/user/cart", methods=["GET"])
@login_required
def get_cart():
    cart = cart_service.load_cart(g.user.id)
    return ok(cart.to_dict(), "Cart retrieved successfully")


@cart_bp.route("/user/cart/items", methods=["POST"])
@login_required
def add_item():
    values = load(AddItem, json_body())
    cart = cart_service.add_item_to_cart(
        g.user.id, values["product_variant_id"], values["quantity"]
    )
    return ok(cart.to_dict(), "Item added to cart successfully")


@cart_bp.route("/user/cart/items/<int:variant_id>", methods=["PATCH"])
@login_required
def update_item(variant_id):
    values = load(UpdateQuantity, json_body())
    cart = cart_service.update_item_quantity(g.user.id, variant_id, values["quantity"])
    return ok(cart.to_dict(), "Cart item quantity updated successfully")


@cart_bp.route("/user/cart/items/<int:variant_id>", methods=["DELETE"])
@login_required
def remove_item(variant_id):
    cart = cart_service.remove_item(g.user.id, variant_id)
    return ok(cart.to_dict(), "Item removed from cart successfully")


@cart_bp.route("/user/cart/apply-coupon", methods=["POST"])
@login_required
def apply_coupon():
    values = load(ApplyCoupon, json_body())
    cart = cart_service.apply_coupon(g.user.id, values["coupon_code"])
    return ok(cart.to_dict(), "Coupon applied successfully")


@cart_bp.route("/user/cart/remove-coupon", methods=["DELETE"])
@login_required
def remove_coupon():
    cart = cart_service.remove_coupon(g.user.id)
    return ok(cart.to_dict(), "Coupon removed successfully")


@cart_bp.route("/user/cart", methods=["DELETE"])
@login_required
def clear_cart():
    cart = cart_service.clear_cart(g.user.id)
    return ok(cart.to_dict(), "Cart cleared successfully")


@cart_bp.route("/admin/carts", methods=["GET"])
@admin_required
def list_carts():
    page, limit = page_args()
    query = cart_service.filter_carts(
        user_id=request.args.get("user_id", type=int),
        has_coupon=bool_arg("has_coupon"),
        min_total=request.args.get("min_total") or None,
        max_total=request.args.get("max_total") or None,
    )
    carts, pagination = paginate(query, page, limit)
    return ok(
        [cart.to_dict(include_items=False) for cart in carts],
        "Carts retrieved successfully",
        pagination=pagination,
    )


@cart_bp.route("/admin/carts/user/<int:user_id>", methods=["GET"])
@admin_required
def user_cart(user_id):
    user, cart = cart_service.user_cart_for_admin(user_id)
    return ok(
        {"user": user.to_dict(), "cart": cart.to_dict() if cart else None},
        "User cart retrieved successfully",
    )
