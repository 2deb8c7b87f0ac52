"""Small helpers for timestamps and money values."""
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")


def utcnow():
    return datetime.now(timezone.utc)


def as_utc(value):
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat(value):
    value = as_utc(value)
    return value.isoformat().replace("+00:00", "Z") if value else None


def to_money(value):
    """Coerce to a Decimal rounded half-up to cents.

    Raises:
        ValueError when the value is not a number.
    """
    if value is None:
        return Decimal("0.00")
    if isinstance(value, bool):
        raise ValueError(f"Not a monetary amount: {value!r}")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"Not a monetary amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def money_json(value):
    return float(to_money(value))
