from flask import Blueprint

cart_bp = Blueprint("cart", __name__)

from storefront.blueprints.cart import views  # noqa: F401, E402
