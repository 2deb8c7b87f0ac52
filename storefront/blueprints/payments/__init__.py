from flask import Blueprint

payments_bp = Blueprint("payments", __name__)

from storefront.blueprints.payments import views  # noqa: F401, E402
