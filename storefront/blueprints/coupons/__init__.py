from flask import Blueprint

coupons_bp = Blueprint("coupons", __name__)

from storefront.blueprints.coupons import views  # noqa: F401, E402
