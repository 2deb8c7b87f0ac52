"""Order placement and history for users; order management for admins."""
from flask import g, request

from storefront.api import created, date_arg, json_body, ok, page_args, paginate
from storefront.auth import admin_required, login_required
from storefront.blueprints.orders import orders_bp
from storefront.extensions import db
from storefront.schemas import CancelOrder, Refund, StatusUpdate, load
from storefront.services import order_service
from storefront.utils import money_json


@orders_bp.route("/user/orders", methods=["POST"])
@login_required
def place_order():
    order = order_service.place_order(db.session, g.user, json_body())
    return created(order.to_dict(), "Order placed successfully")


@orders_bp.route("/user/orders", methods=["GET"])
@login_required
def my_orders():
    page, limit = page_args()
    query = order_service.filter_orders(
        user_id=g.user.id,
        order_status=request.args.get("status"),
        date_from=date_arg("date_from"),
        date_to=date_arg("date_to"),
    )
    orders, pagination = paginate(query, page, limit)
    return ok(
        [order.to_dict(include_items=False) for order in orders],
        "Orders retrieved successfully",
        pagination=pagination,
    )


@orders_bp.route("/user/orders/<int:order_id>", methods=["GET"])
@login_required
def order_detail(order_id):
    order = order_service.get_user_order(g.user, order_id)
    return ok(order.to_dict(), "Order details retrieved successfully")


@orders_bp.route("/user/orders/<int:order_id>/cancel", methods=["PATCH"])
@login_required
def cancel_order(order_id):
    values = load(CancelOrder, json_body())
    order = order_service.cancel_order(g.user, order_id, values["reason"])
    return ok(order.to_dict(), "Order cancelled successfully")


@orders_bp.route("/admin/orders", methods=["GET"])
@admin_required
def all_orders():
    page, limit = page_args()
    query = order_service.filter_orders(
        user_id=request.args.get("user_id", type=int),
        order_status=request.args.get("order_status"),
        payment_status=request.args.get("payment_status"),
        order_number=request.args.get("order_number"),
        date_from=date_arg("date_from"),
        date_to=date_arg("date_to"),
    )
    orders, pagination = paginate(query, page, limit)
    return ok(
        [order.to_dict(include_items=False) for order in orders],
        "Orders retrieved successfully",
        pagination=pagination,
    )


@orders_bp.route("/admin/orders/<int:order_id>", methods=["GET"])
@admin_required
def admin_order_detail(order_id):
    order = order_service.get_order(order_id)
    return ok(order.to_dict(), "Order details retrieved successfully")


@orders_bp.route("/admin/orders/<int:order_id>/status", methods=["PATCH"])
@admin_required
def update_status(order_id):
    values = load(StatusUpdate, json_body())
    order = order_service.update_status(g.user, order_id, **values)
    return ok(order.to_dict(), "Order status updated successfully")


@orders_bp.route("/admin/orders/<int:order_id>/refund", methods=["POST"])
@admin_required
def refund(order_id):
    values = load(Refund, json_body())
    order, amount = order_service.process_refund(
        g.user, order_id, values["amount"], values["reason"]
    )
    return ok(
        {
            "order_id": order.id,
            "refund_amount": money_json(amount),
            "new_payment_status": order.payment_status,
            "order": order.to_dict(),
        },
        "Refund processed successfully",
    )
