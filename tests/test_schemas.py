"""Unit tests for request body validation."""
from decimal import Decimal

import pytest

from storefront.errors import ValidationError
from storefront.schemas import AddItem, CategoryIn, PlaceOrder, VariantIn, load


def test_load_returns_clean_values():
    values = load(VariantIn, {"product_id": 1, "sku_code": " tee-01 ", "price": "9.999"})
    assert values["sku_code"] == "TEE-01"
    assert values["price"] == Decimal("10.00")
    assert values["option_values"] == []
    assert values["is_active"] is None


def test_strict_types_reject_coercible_values():
    for quantity in (True, "2", 1.0, 0):
        with pytest.raises(ValidationError) as exc:
            load(AddItem, {"product_variant_id": 1, "quantity": quantity})
        assert set(exc.value.errors) == {"quantity"}


def test_money_rejects_bools_and_non_finite():
    for price in (True, "inf", "NaN", -1):
        with pytest.raises(ValidationError) as exc:
            load(VariantIn, {"product_id": 1, "sku_code": "ABC", "price": price})
        assert "price" in exc.value.errors


def test_partial_load_only_returns_sent_fields():
    assert load(CategoryIn, {"description": "Crisps"}, partial=True) == {"description": "Crisps"}
    assert load(CategoryIn, {"parent_id": None}, partial=True) == {"parent_id": None}

    with pytest.raises(ValidationError) as exc:
        load(CategoryIn, {"name": None}, partial=True)
    assert "name" in exc.value.errors


def test_nested_errors_use_dotted_locations(address):
    with pytest.raises(ValidationError) as exc:
        load(PlaceOrder, {"shipping_address": dict(address, pincode="1234"), "billing_address": {}})
    errors = exc.value.errors
    assert "shipping_address.pincode" in errors
    assert "billing_address.city" in errors
    assert exc.value.status_code == 400
