"""Identity seam.

The gateway authenticates the caller and forwards the user id in the
``X-User-Id`` header. These decorators load that user onto ``g.user``.
"""
from functools import wraps

from flask import current_app, g, request

from storefront.errors import AuthenticationError, AuthorizationError
from storefront.extensions import db
from storefront.models.user import User

USER_HEADER = "X-User-Id"


def load_user():
    raw = request.headers.get(USER_HEADER, "").strip()
    if not raw.isdigit():
        return None
    user = db.session.get(User, int(raw))
    if user is None or not user.is_active:
        return None
    return user


def is_admin(user):
    return user.is_admin or user.id in current_app.config.get("ADMIN_USER_IDS", [])


def login_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        user = load_user()
        if user is None:
            raise AuthenticationError()
        g.user = user
        return view(*args, **kwargs)

    return wrapped


def admin_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        user = load_user()
        if user is None:
            raise AuthenticationError()
        if not is_admin(user):
            raise AuthorizationError("Admin access required")
        g.user = user
        return view(*args, **kwargs)

    return wrapped
