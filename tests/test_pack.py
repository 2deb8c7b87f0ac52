"""Tests for pack detection and base-unit resolution."""
import pytest

from storefront.errors import NotFoundError, ValidationError
from storefront.services.pack_service import (
    PackOption,
    PlainOption,
    analyze_pack_options,
    base_units_required,
    computed_stock,
    find_base_unit_variant,
    get_variant_pack_details,
    is_matching_base_unit,
    parse_option_values,
)


def pack(value):
    return {"option_type": "pack", "option_value": value}


def color(value):
    return {"option_type": "color", "option_value": value}


@pytest.mark.parametrize("options", [None, "pack=12", [], [color("red")]])
def test_missing_or_non_list_input_is_base_unit(options):
    details = analyze_pack_options(options)
    assert details.is_base_unit is True
    assert details.pack_unit_multiplier == 1


def test_pack_option_sets_multiplier():
    details = analyze_pack_options([color("red"), pack("12")])
    assert details.is_base_unit is False
    assert details.pack_unit_multiplier == 12


def test_pack_of_one_is_base_unit():
    assert analyze_pack_options([pack("1")]).is_base_unit is True


@pytest.mark.parametrize("value", ["abc", "0", "-3", "2.5", "", None])
def test_malformed_pack_value_degrades_to_base_unit(value):
    details = analyze_pack_options([pack(value)])
    assert details == (True, 1, None)


def test_pack_type_match_is_trimmed_and_case_insensitive():
    details = analyze_pack_options([{"option_type": "  PACK ", "option_value": "6"}])
    assert details.pack_unit_multiplier == 6


def test_substring_of_pack_is_not_a_pack_option():
    assert analyze_pack_options([{"option_type": "backpack", "option_value": "6"}]).is_base_unit
    assert analyze_pack_options([{"option_type": "package", "option_value": "6"}]).is_base_unit


def test_strict_parser_returns_typed_options():
    parsed = parse_option_values([color("red"), pack("24")])
    assert parsed == [PlainOption("color", "red"), PackOption(24)]
    assert analyze_pack_options(parsed).pack_unit_multiplier == 24


@pytest.mark.parametrize("value", ["twelve", "0", "1.5"])
def test_strict_parser_rejects_malformed_pack(value):
    with pytest.raises(ValidationError):
        parse_option_values([pack(value)])


def test_strict_parser_rejects_two_pack_options():
    with pytest.raises(ValidationError):
        parse_option_values([pack("6"), pack("12")])


def test_matching_ignores_pack_option_and_order():
    assert is_matching_base_unit(
        [pack("6"), color("red"), {"option_type": "size", "option_value": "L"}],
        [{"option_type": "size", "option_value": "L"}, color("red")],
    )
    assert not is_matching_base_unit([pack("6"), color("red")], [color("blue")])


def test_arithmetic_helpers():
    details = analyze_pack_options([pack("12")])
    assert base_units_required(3, details.pack_unit_multiplier) == 36
    assert computed_stock(100, details) == 8
    assert computed_stock(100, analyze_pack_options([])) == 100


def test_find_base_unit_variant(db, catalog):
    assert find_base_unit_variant(db.session, catalog.pack6).id == catalog.base.id


def test_base_unit_must_share_non_pack_options(db, factory, catalog):
    blue = factory.variant(
        catalog.product, sku="CHIPS-BLUE-6",
        options=[factory.option("flavor", "masala"), factory.option("pack", "6")],
    )
    with pytest.raises(NotFoundError):
        find_base_unit_variant(db.session, blue)


def test_variant_pack_details(db, catalog):
    base = get_variant_pack_details(db.session, catalog.base.id)
    assert base == (True, 1, catalog.base.id)

    pack12 = get_variant_pack_details(db.session, catalog.pack12.id)
    assert pack12.is_base_unit is False
    assert pack12.pack_unit_multiplier == 12
    assert pack12.base_unit_variant_id == catalog.base.id


def test_variant_pack_details_unknown_variant(db):
    with pytest.raises(NotFoundError):
        get_variant_pack_details(db.session, 999)
