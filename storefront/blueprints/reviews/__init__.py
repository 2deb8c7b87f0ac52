from flask import Blueprint

reviews_bp = Blueprint("reviews", __name__)

from storefront.blueprints.reviews import views  # noqa: F401, E402
