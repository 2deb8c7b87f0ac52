import logging

from storefront import schemas
from storefront.errors import AuthorizationError, NotFoundError
from storefront.extensions import db
from storefront.models.payment_method import PaymentMethod
from storefront.services import audit_service

logger = logging.getLogger(__name__)


def list_methods(user_id):
    return (
        PaymentMethod.active()
        .filter_by(user_id=user_id)
        .order_by(PaymentMethod.is_default.desc(), PaymentMethod.created_at)
        .all()
    )


def create_method(user, data):
    values = schemas.load(schemas.PaymentMethodCreate, data)
    method_type = values["method_type"]
    is_default = values["is_default"]

    existing = list_methods(user.id)
    if is_default or not existing:
        for method in existing:
            method.is_default = False
        is_default = True

    method = PaymentMethod(
        user_id=user.id,
        method_type=method_type,
        label=values["label"] or "",
        last_four=values["last_four"],
        is_default=is_default,
    )
    db.session.add(method)
    db.session.commit()

    audit_service.log_user_activity(
        user.id, "PAYMENT_METHOD_ADDED",
        {"method_type": method_type, "is_default": is_default},
        "payment_method", method.id,
    )
    return method


def delete_method(user, method_id):
    """Archive one of the user's payment methods."""
    method = db.session.get(PaymentMethod, method_id)
    if method is None or not method.is_active:
        raise NotFoundError("Payment method not found")
    if method.user_id != user.id:
        raise AuthorizationError("You do not have access to this payment method")

    method.archive()
    if method.is_default:
        method.is_default = False
        replacement = (
            PaymentMethod.active()
            .filter(PaymentMethod.user_id == user.id, PaymentMethod.id != method.id)
            .order_by(PaymentMethod.created_at)
            .first()
        )
        if replacement is not None:
            replacement.is_default = True
    db.session.commit()
    logger.info("Payment method %d archived for user %d", method.id, user.id)

    audit_service.log_user_activity(
        user.id, "PAYMENT_METHOD_REMOVED", {"method_type": method.method_type},
        "payment_method", method.id,
    )
    return method
