from flask import Blueprint

favorites_bp = Blueprint("favorites", __name__)

from storefront.blueprints.favorites import views  # noqa: F401, E402
