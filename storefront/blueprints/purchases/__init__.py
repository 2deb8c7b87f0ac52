from flask import Blueprint

purchases_bp = Blueprint("purchases", __name__)

from storefront.blueprints.purchases import views  # noqa: F401, E402
