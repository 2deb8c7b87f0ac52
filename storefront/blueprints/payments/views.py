from flask import g

from storefront.api import created, json_body, ok
from storefront.auth import login_required
from storefront.blueprints.payments import payments_bp
from storefront.services import payment_service


@payments_bp.route("", methods=["GET"])
@login_required
def list_methods():
    methods = payment_service.list_methods(g.user.id)
    return ok([m.to_dict() for m in methods], "Payment methods retrieved successfully")


@payments_bp.route("", methods=["POST"])
@login_required
def create_method():
    method = payment_service.create_method(g.user, json_body())
    return created(method.to_dict(), "Payment method added successfully")


@payments_bp.route("/<int:method_id>", methods=["DELETE"])
@login_required
def delete_method(method_id):
    payment_service.delete_method(g.user, method_id)
    return ok(message="Payment method removed successfully")
