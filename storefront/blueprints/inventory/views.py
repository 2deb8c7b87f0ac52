"""Admin inventory endpoints."""
from flask import g, request

from storefront.api import bool_arg, created, json_body, ok, page_args, paginate
from storefront.auth import admin_required
from storefront.blueprints.inventory import inventory_bp
from storefront.schemas import StockAdjustment, load
from storefront.services import inventory_service


@inventory_bp.route("", methods=["POST"])
@admin_required
def create_inventory():
    inventory = inventory_service.create_inventory(g.user, json_body())
    return created(inventory.to_dict(), "Inventory record created successfully")


@inventory_bp.route("", methods=["GET"])
@admin_required
def list_inventory():
    page, limit = page_args()
    query = inventory_service.filter_inventory(
        is_active=bool_arg("is_active"),
        stock_status=request.args.get("stock_status"),
        location=request.args.get("location"),
        product_id=request.args.get("product_id", type=int),
        search=request.args.get("search"),
        sort_by=request.args.get("sort_by", "created_at"),
        sort_order=request.args.get("sort_order", "desc"),
    )
    records, pagination = paginate(query, page, limit)
    data = [record.to_dict() for record in records]
    if bool_arg("include_computed_packs"):
        data.extend(inventory_service.computed_pack_rows(records))
    return ok(data, "Inventory records retrieved successfully", pagination=pagination)


@inventory_bp.route("/low-stock", methods=["GET"])
@admin_required
def low_stock():
    records = inventory_service.low_stock_items()
    return ok([r.to_dict() for r in records], "Low stock records retrieved successfully")


@inventory_bp.route("/variant/<int:variant_id>", methods=["GET"])
@admin_required
def variant_stock(variant_id):
    return ok(inventory_service.variant_stock(variant_id), "Variant stock retrieved successfully")


@inventory_bp.route("/<int:inventory_id>", methods=["GET"])
@admin_required
def get_inventory(inventory_id):
    inventory = inventory_service.get_inventory(inventory_id)
    return ok(inventory_service.inventory_detail(inventory), "Inventory record retrieved successfully")


@inventory_bp.route("/<int:inventory_id>", methods=["PATCH"])
@admin_required
def update_inventory(inventory_id):
    inventory = inventory_service.update_inventory(g.user, inventory_id, json_body())
    return ok(inventory.to_dict(), "Inventory record updated successfully")


@inventory_bp.route("/<int:inventory_id>/adjust", methods=["POST"])
@admin_required
def adjust_inventory(inventory_id):
    values = load(StockAdjustment, json_body())
    inventory = inventory_service.adjust_inventory(
        g.user, inventory_id, values["operation"], values["quantity"]
    )
    return ok(inventory.to_dict(), "Stock adjusted successfully")


@inventory_bp.route("/<int:inventory_id>", methods=["DELETE"])
@admin_required
def delete_inventory(inventory_id):
    inventory = inventory_service.delete_inventory(g.user, inventory_id)
    return ok(inventory.to_dict(), "Inventory record archived successfully")
