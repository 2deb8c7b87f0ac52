"""Error taxonomy and the JSON error handlers registered on the app."""
import logging

from flask import jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from storefront.extensions import db

logger = logging.getLogger(__name__)


class StorefrontError(Exception):
    """Base for errors that map onto a JSON error response."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message=None, errors=None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)

    def to_dict(self):
        body = {"success": False, "message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(StorefrontError):
    status_code = 400
    default_message = "Validation failed"

    @classmethod
    def from_pydantic(cls, exc):
        """Flatten a pydantic error list into a field -> message map.

        Nested locations are dotted, e.g. ``shipping_address.pincode``.
        """
        errors = {}
        for error in exc.errors():
            field = ".".join(str(part) for part in error["loc"]) or "body"
            errors.setdefault(field, error["msg"])
        return cls(errors=errors)


class ConflictError(StorefrontError):
    """A unique key is already taken. Reported as 400 with the field name."""

    status_code = 400
    default_message = "Duplicate value"

    def __init__(self, resource, field):
        self.resource = resource
        self.field = field
        super().__init__(
            f"{resource} {field} already exists",
            errors={field: f"{field} already exists"},
        )


class InsufficientStockError(StorefrontError):
    status_code = 400
    default_message = "Insufficient stock"


class AuthenticationError(StorefrontError):
    status_code = 401
    default_message = "Authentication required"


class AuthorizationError(StorefrontError):
    status_code = 403
    default_message = "You do not have access to this resource"


class NotFoundError(StorefrontError):
    status_code = 404
    default_message = "Resource not found"


class PersistenceError(StorefrontError):
    status_code = 500
    default_message = "Internal server error"


def register_error_handlers(app):
    @app.errorhandler(StorefrontError)
    def handle_storefront_error(error):
        if error.status_code >= 500:
            logger.error("Request failed: %s", error.message, exc_info=error.__cause__)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error):
        logger.exception("Unhandled database error")
        db.session.rollback()
        return jsonify({"success": False, "message": "Internal server error"}), 500

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return (
            jsonify({"success": False, "message": error.description or error.name}),
            error.code,
        )
