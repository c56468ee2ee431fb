# tests/test_validation.py
import pytest

from catalog.core import Product, enforce_stock_invariant, normalize_tags, validate_product


def _codes(check):
    return {e.field: e.code for e in check.errors}


def test_valid_input_is_trimmed_and_defaulted():
    check = validate_product({"name": "  Lamp ", "price": "19.99", "tags": "a, b ,c"})
    assert check.ok
    p = check.product
    assert p.name == "Lamp"
    assert p.price == 19.99
    assert p.tags == ["a", "b", "c"]
    assert p.category == "Other"
    assert p.quantity == 0
    assert p.in_stock is True
    assert p.image_url == "default-product.jpg"
    assert p.description is None


def test_tag_string_and_sequence_normalize_alike():
    assert normalize_tags("a, b ,c") == ["a", "b", "c"]
    assert normalize_tags(["a", "b", "c"]) == ["a", "b", "c"]
    assert normalize_tags(" a,, ,b ") == ["a", "b"]
    assert normalize_tags([" a ", ""]) == ["a"]


def test_tags_with_non_strings_are_rejected():
    with pytest.raises(ValueError):
        normalize_tags(["a", 3])
    with pytest.raises(ValueError):
        normalize_tags({"a": 1})


def test_all_field_errors_are_collected():
    check = validate_product({
        "name": "",
        "price": "-1",
        "description": "x" * 1001,
        "category": "Toys",
        "quantity": "2.5",
        "tags": ["a", 3],
    })
    assert check.product is None
    assert _codes(check) == {
        "name": "required",
        "price": "out_of_range",
        "description": "too_long",
        "category": "invalid_enum",
        "quantity": "not_integer",
        "tags": "invalid_format",
    }


def test_missing_name_and_price():
    check = validate_product({})
    assert _codes(check) == {"name": "required", "price": "not_numeric"}


def test_short_name_and_bad_numbers():
    check = validate_product({"name": "A", "price": "abc", "quantity": -1})
    assert _codes(check) == {"name": "too_short", "price": "not_numeric", "quantity": "out_of_range"}


def test_description_is_trimmed_before_length_check():
    check = validate_product({"name": "Lamp", "price": 1, "description": " " + "x" * 1000 + " "})
    assert check.ok
    assert len(check.product.description) == 1000


def test_in_stock_text_values():
    assert validate_product({"name": "Lamp", "price": 1, "inStock": "false"}).product.in_stock is False
    assert validate_product({"name": "Lamp", "price": 1, "inStock": "on"}).product.in_stock is True
    check = validate_product({"name": "Lamp", "price": 1, "inStock": "maybe"})
    assert _codes(check) == {"inStock": "invalid_format"}


def test_empty_optional_fields_use_defaults():
    check = validate_product({"name": "Lamp", "price": 0, "quantity": "", "category": "", "imageUrl": ""})
    assert check.ok
    assert check.product.quantity == 0
    assert check.product.category == "Other"
    assert check.product.image_url == "default-product.jpg"


def test_non_mapping_input():
    check = validate_product(["Lamp"])
    assert _codes(check) == {"body": "invalid_format"}


def test_document_uses_storage_field_names():
    doc = validate_product({"name": "Lamp", "price": 2, "quantity": 4}).product.to_document()
    assert doc == {
        "name": "Lamp",
        "price": 2.0,
        "description": None,
        "category": "Other",
        "inStock": True,
        "quantity": 4,
        "tags": [],
        "imageUrl": "default-product.jpg",
    }


def test_zero_quantity_forces_out_of_stock():
    p = validate_product({"name": "Lamp", "price": 1, "quantity": 0, "inStock": True}).product
    assert enforce_stock_invariant(p).in_stock is False
    stocked = validate_product({"name": "Lamp", "price": 1, "quantity": 3}).product
    assert enforce_stock_invariant(stocked).in_stock is True


def test_formatted_price_and_low_stock():
    lamp = Product(id="1", name="Lamp", price=19.99, quantity=0, in_stock=False)
    assert lamp.formatted_price == "19.99 €"
    # out of stock is not "low" stock
    assert lamp.is_low_stock() is False

    assert Product(id="2", name="Mug", price=5, quantity=3).is_low_stock() is True
    assert Product(id="3", name="Mug", price=5, quantity=5).is_low_stock() is False
    assert Product(id="4", name="Mug", price=5).to_api()["formattedPrice"] == "5.00 €"


def test_numbers_too_large_to_store_are_rejected():
    check = validate_product({"name": "Lamp", "price": 10**400, "quantity": 10**30})
    assert _codes(check) == {"price": "not_numeric", "quantity": "out_of_range"}
    assert validate_product({"name": "Lamp", "price": 1, "quantity": 2**63 - 1}).ok


def test_huge_integers_as_text_fields_are_rejected():
    check = validate_product({"name": 10**5000, "price": 1})
    assert _codes(check) == {"name": "invalid_format"}
