from flask import Blueprint

inventory_bp = Blueprint("inventory", __name__)

from storefront.blueprints.inventory import views  # noqa: F401, E402
