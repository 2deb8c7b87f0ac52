from flask import Blueprint

orders_bp = Blueprint("orders", __name__)

from storefront.blueprints.orders import views  # noqa: F401, E402
