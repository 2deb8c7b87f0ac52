"""Request parsing and JSON envelope helpers shared by the blueprints."""
import math
from datetime import datetime

from flask import current_app, request

from storefront.errors import ValidationError
from storefront.utils import as_utc


def json_body():
    """Return the request JSON object or raise a 400."""
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def ok(data=None, message=None, status=200, **extra):
    body = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body, status


def created(data, message):
    return ok(data, message, status=201)


def page_args():
    """(page, limit) from the query string, clamped to the configured bounds."""
    default = current_app.config["DEFAULT_PAGE_SIZE"]
    maximum = current_app.config["MAX_PAGE_SIZE"]
    page = request.args.get("page", 1, type=int) or 1
    limit = request.args.get("limit", default, type=int) or default
    return max(page, 1), min(max(limit, 1), maximum)


def paginate(query, page, limit):
    """Apply offset/limit to a query and return (items, pagination dict)."""
    total = query.count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    total_pages = math.ceil(total / limit) if total else 0
    return items, {
        "current_page": page,
        "total_pages": total_pages,
        "total_items": total,
        "items_per_page": limit,
        "has_next_page": page < total_pages,
        "has_prev_page": page > 1,
    }


def bool_arg(name):
    """Tri-state boolean query argument: True, False or None when absent."""
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    return raw.strip().lower() in ("1", "true", "yes")


def date_arg(name):
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return as_utc(datetime.fromisoformat(raw.replace("Z", "+00:00")))
    except ValueError:
        raise ValidationError(f"Invalid date for {name}", errors={name: "expected ISO 8601"})
