"""Admin catalog maintenance and public catalog reads."""
from flask import abort, g, request

from storefront.api import bool_arg, created, json_body, ok, page_args, paginate
from storefront.auth import admin_required
from storefront.blueprints.catalog import catalog_bp
from storefront.errors import NotFoundError
from storefront.models.category import Category
from storefront.models.product import Product
from storefront.services import catalog_service
from storefront.services.catalog_service import RESOURCES

RESOURCE = "<any(" + ", ".join(f'"{name}"' for name in RESOURCES) + "):resource>"

# Filters that are not integer foreign keys
TEXT_FILTERS = {"option_type", "listing_status", "role", "review_status", "discount_type"}


def _serialize(row):
    if isinstance(row, Product):
        return row.to_dict(include_variants=True)
    return row.to_dict()


def _filter_args(resource):
    filters = {}
    for name in resource.filters:
        if name in TEXT_FILTERS:
            filters[name] = request.args.get(name) or None
        else:
            filters[name] = request.args.get(name, type=int)
    return filters


@catalog_bp.route(f"/admin/{RESOURCE}", methods=["GET"])
@admin_required
def list_rows(resource):
    kind = catalog_service.get_resource(resource)
    page, limit = page_args()
    query = catalog_service.filter_rows(
        kind,
        is_active=bool_arg("is_active"),
        search=request.args.get("search"),
        sort_by=request.args.get("sort_by"),
        sort_order=request.args.get("sort_order", "asc"),
        **_filter_args(kind),
    )
    rows, pagination = paginate(query, page, limit)
    return ok(
        [row.to_dict() for row in rows],
        f"{kind.label} records retrieved successfully",
        pagination=pagination,
    )


@catalog_bp.route(f"/admin/{RESOURCE}", methods=["POST"])
@admin_required
def create_row(resource):
    kind = catalog_service.get_resource(resource)
    if kind.schema is None or not kind.creatable:
        abort(405)
    row = catalog_service.create(kind, g.user, json_body())
    return created(_serialize(row), f"{kind.label} created successfully")


@catalog_bp.route(f"/admin/{RESOURCE}/<int:row_id>", methods=["GET"])
@admin_required
def get_row(resource, row_id):
    kind = catalog_service.get_resource(resource)
    return ok(_serialize(catalog_service.get_row(kind, row_id)), f"{kind.label} retrieved successfully")


@catalog_bp.route(f"/admin/{RESOURCE}/<int:row_id>", methods=["PATCH"])
@admin_required
def update_row(resource, row_id):
    kind = catalog_service.get_resource(resource)
    if kind.schema is None:
        abort(405)
    row = catalog_service.update(kind, g.user, row_id, json_body())
    return ok(_serialize(row), f"{kind.label} updated successfully")


@catalog_bp.route(f"/admin/{RESOURCE}/<int:row_id>", methods=["DELETE"])
@admin_required
def delete_row(resource, row_id):
    kind = catalog_service.get_resource(resource)
    hard_delete = bool_arg("hard_delete") is True
    catalog_service.delete(kind, g.user, row_id, hard_delete=hard_delete)
    verb = "deleted" if hard_delete else "archived"
    return ok(message=f"{kind.label} {verb} successfully")


@catalog_bp.route("/categories", methods=["GET"])
def public_categories():
    categories = Category.active().order_by(Category.name).all()
    return ok([c.to_dict() for c in categories], "Categories retrieved successfully")


@catalog_bp.route("/categories/tree", methods=["GET"])
def category_tree():
    return ok(catalog_service.category_tree(), "Category tree retrieved successfully")


@catalog_bp.route("/categories/<int:category_id>", methods=["GET"])
def public_category(category_id):
    category = Category.active().filter_by(id=category_id).first()
    if category is None:
        raise NotFoundError("Category not found")
    return ok(category.to_dict(), "Category retrieved successfully")


@catalog_bp.route("/products", methods=["GET"])
def public_products():
    page, limit = page_args()
    query = catalog_service.filter_rows(
        RESOURCES["products"],
        is_active=True,
        search=request.args.get("search"),
        sort_by=request.args.get("sort_by"),
        sort_order=request.args.get("sort_order", "asc"),
        category_id=request.args.get("category_id", type=int),
        brand_id=request.args.get("brand_id", type=int),
    )
    products, pagination = paginate(query, page, limit)
    return ok(
        [p.to_dict() for p in products],
        "Products retrieved successfully",
        pagination=pagination,
    )


@catalog_bp.route("/products/<int:product_id>", methods=["GET"])
def public_product(product_id):
    product = Product.active().filter_by(id=product_id).first()
    if product is None:
        raise NotFoundError("Product not found")
    return ok(product.to_dict(include_variants=True), "Product retrieved successfully")
