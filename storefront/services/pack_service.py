"""Pack analysis: base units, pack multipliers and computed stock.

A variant whose options include ``pack=12`` represents twelve base units.
Only base-unit variants hold an inventory row; a pack variant draws on the
row of the base-unit variant of the same product whose remaining options
match.
"""
from dataclasses import dataclass
from typing import NamedTuple, Optional

from storefront.errors import NotFoundError, ValidationError
from storefront.models.variant import ProductVariant

PACK_OPTION_TYPE = "pack"


class PackDetails(NamedTuple):
    is_base_unit: bool
    pack_unit_multiplier: int
    base_unit_variant_id: Optional[int] = None


BASE_UNIT = PackDetails(is_base_unit=True, pack_unit_multiplier=1)


@dataclass(frozen=True)
class PackOption:
    multiplier: int

    kind = "pack"

    @property
    def option_type(self):
        return PACK_OPTION_TYPE

    @property
    def option_value(self):
        return str(self.multiplier)


@dataclass(frozen=True)
class PlainOption:
    option_type: str
    option_value: str

    kind = "plain"


def is_pack_type(option_type):
    """Exact, case-insensitive match on "pack" after trimming."""
    return isinstance(option_type, str) and option_type.strip().lower() == PACK_OPTION_TYPE


def _pair(option):
    if isinstance(option, dict):
        return option.get("option_type"), option.get("option_value")
    return getattr(option, "option_type", None), getattr(option, "option_value", None)


def _parse_multiplier(raw):
    """Positive integer multiplier, or None when the value is not one."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, float):
        if not raw.is_integer():
            return None
        value = int(raw)
    elif isinstance(raw, str):
        text = raw.strip()
        if not text.isdigit():
            return None
        value = int(text)
    else:
        return None
    return value if value >= 1 else None


def parse_option_values(raw_options):
    """Convert raw option pairs into typed options.

    Raises:
        ValidationError when a pack option's value is not a positive integer
        or more than one pack option is present.
    """
    parsed = []
    for option in raw_options or []:
        option_type, option_value = _pair(option)
        if is_pack_type(option_type):
            multiplier = _parse_multiplier(option_value)
            if multiplier is None:
                raise ValidationError(
                    "Pack option value must be a positive whole number",
                    errors={"option_value": f"invalid pack size {option_value!r}"},
                )
            if any(isinstance(p, PackOption) for p in parsed):
                raise ValidationError("A variant can have only one pack option")
            parsed.append(PackOption(multiplier))
        else:
            parsed.append(PlainOption(str(option_type), str(option_value)))
    return parsed


def analyze_pack_options(option_values):
    """Determine base-unit status and pack multiplier.

    Never raises: missing, malformed or non-numeric input degrades to a
    base unit with multiplier 1.
    """
    if not isinstance(option_values, (list, tuple)):
        return BASE_UNIT

    for option in option_values:
        if isinstance(option, PackOption):
            multiplier = option.multiplier
            break
        option_type, option_value = _pair(option)
        if is_pack_type(option_type):
            multiplier = _parse_multiplier(option_value)
            break
    else:
        return BASE_UNIT

    if multiplier is None or multiplier == 1:
        return BASE_UNIT
    return PackDetails(is_base_unit=False, pack_unit_multiplier=multiplier)


def _non_pack_pairs(option_values):
    pairs = set()
    for option in option_values or []:
        option_type, option_value = _pair(option)
        if not is_pack_type(option_type):
            pairs.add((option_type, option_value))
    return pairs


def is_matching_base_unit(pack_options, candidate_options):
    """True when both option lists agree on every non-pack option."""
    return _non_pack_pairs(pack_options) == _non_pack_pairs(candidate_options)


def find_base_unit_variant(session, pack_variant):
    """Return the base-unit variant a pack variant draws stock from."""
    candidates = (
        session.query(ProductVariant)
        .filter(
            ProductVariant.product_id == pack_variant.product_id,
            ProductVariant.id != pack_variant.id,
        )
        .order_by(ProductVariant.id)
        .all()
    )
    for candidate in candidates:
        if not is_matching_base_unit(pack_variant.option_values, candidate.option_values):
            continue
        if analyze_pack_options(candidate.option_values).is_base_unit:
            return candidate
    raise NotFoundError(
        f"Base unit variant not found for pack variant {pack_variant.sku_code}"
    )


def get_variant_pack_details(session, variant_or_id):
    """Pack details for a variant, including the base-unit variant id."""
    variant = variant_or_id
    if not isinstance(variant_or_id, ProductVariant):
        variant = session.get(ProductVariant, variant_or_id)
    if variant is None:
        raise NotFoundError("Product variant not found")

    details = analyze_pack_options(variant.option_values)
    if details.is_base_unit:
        return details._replace(base_unit_variant_id=variant.id)
    base_variant = find_base_unit_variant(session, variant)
    return details._replace(base_unit_variant_id=base_variant.id)


def base_units_required(quantity, pack_unit_multiplier):
    return quantity * pack_unit_multiplier


def computed_stock(base_stock_quantity, details):
    """Stock for a variant expressed in its own units (whole packs for packs)."""
    if details.is_base_unit:
        return base_stock_quantity
    return base_stock_quantity // details.pack_unit_multiplier
