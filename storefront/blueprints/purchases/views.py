"""Admin purchase endpoints."""
from flask import g, request

from storefront.api import bool_arg, created, date_arg, json_body, ok, page_args, paginate
from storefront.auth import admin_required
from storefront.blueprints.purchases import purchases_bp
from storefront.services import purchase_service


@purchases_bp.route("", methods=["POST"])
@admin_required
def create_purchase():
    purchase = purchase_service.create_purchase(g.user, json_body())
    return created(purchase.to_dict(), "Purchase created successfully")


@purchases_bp.route("", methods=["GET"])
@admin_required
def list_purchases():
    page, limit = page_args()
    query = purchase_service.filter_purchases(
        is_active=bool_arg("is_active"),
        purchase_status=request.args.get("purchase_status"),
        supplier_id=request.args.get("supplier_id", type=int),
        product_variant_id=request.args.get("product_variant_id", type=int),
        date_from=date_arg("date_from"),
        date_to=date_arg("date_to"),
        search=request.args.get("search"),
        sort_by=request.args.get("sort_by", "purchase_date"),
        sort_order=request.args.get("sort_order", "desc"),
    )
    purchases, pagination = paginate(query, page, limit)
    return ok(
        [p.to_dict() for p in purchases],
        "Purchases retrieved successfully",
        pagination=pagination,
    )


@purchases_bp.route("/<int:purchase_id>", methods=["GET"])
@admin_required
def get_purchase(purchase_id):
    purchase = purchase_service.get_purchase(purchase_id)
    return ok(purchase.to_dict(), "Purchase retrieved successfully")


@purchases_bp.route("/<int:purchase_id>", methods=["PATCH"])
@admin_required
def update_purchase(purchase_id):
    purchase = purchase_service.update_purchase(g.user, purchase_id, json_body())
    return ok(purchase.to_dict(), "Purchase updated successfully")


@purchases_bp.route("/<int:purchase_id>", methods=["DELETE"])
@admin_required
def delete_purchase(purchase_id):
    purchase_service.delete_purchase(g.user, purchase_id)
    return ok(message="Purchase archived successfully")
