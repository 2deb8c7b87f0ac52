from flask import g

from storefront.api import created, json_body, ok, page_args, paginate
from storefront.auth import login_required
from storefront.blueprints.favorites import favorites_bp
from storefront.services import favorite_service


@favorites_bp.route("", methods=["GET"])
@login_required
def list_favorites():
    page, limit = page_args()
    favorites, pagination = paginate(favorite_service.list_favorites(g.user.id), page, limit)
    return ok(
        [f.to_dict() for f in favorites],
        "Favorites retrieved successfully",
        pagination=pagination,
    )


@favorites_bp.route("", methods=["POST"])
@login_required
def add_favorite():
    favorite = favorite_service.add_favorite(g.user, json_body())
    return created(favorite.to_dict(), "Added to favorites")


@favorites_bp.route("/<int:variant_id>", methods=["PATCH"])
@login_required
def update_favorite(variant_id):
    favorite = favorite_service.update_notes(g.user, variant_id, json_body())
    return ok(favorite.to_dict(), "Favorite updated successfully")


@favorites_bp.route("/<int:variant_id>", methods=["DELETE"])
@login_required
def remove_favorite(variant_id):
    favorite_service.remove_favorite(g.user, variant_id)
    return ok(message="Removed from favorites")
