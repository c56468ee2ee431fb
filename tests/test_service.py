# tests/test_service.py
import asyncio

import pytest
from bson import ObjectId
from pymongo.errors import ServerSelectionTimeoutError

from catalog.database import InMemoryProductCollection
from catalog.errors import InvalidId, NotFound, StorageError, ValidationError
from catalog.service import ProductService


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def service():
    return ProductService(InMemoryProductCollection())


def test_create_then_get_round_trip(service):
    created = run(service.create_product({"name": " Desk ", "price": "120", "quantity": "7", "tags": "wood, office"}))
    fetched = run(service.get_product_by_id(created.id))
    assert fetched == created
    assert fetched.name == "Desk"
    assert fetched.price == 120.0
    assert fetched.quantity == 7
    assert fetched.tags == ["wood", "office"]
    assert fetched.category == "Other"
    assert fetched.in_stock is True
    assert fetched.created_at is not None


def test_lamp_scenario(service):
    lamp = run(service.create_product({"name": "Lamp", "price": 19.99, "quantity": 0}))
    assert lamp.in_stock is False
    assert lamp.category == "Other"
    assert lamp.formatted_price == "19.99 €"
    assert lamp.is_low_stock() is False


def test_create_rejects_invalid_data(service):
    with pytest.raises(ValidationError) as exc:
        run(service.create_product({"name": "L", "price": -3}))
    assert {e.field for e in exc.value.errors} == {"name", "price"}
    assert str(exc.value).startswith("Validation failed: ")
    assert run(service.get_all_products()).pagination.total_items == 0


def test_update_reapplies_stock_invariant(service):
    product = run(service.create_product({"name": "Mug", "price": 4, "quantity": 10}))
    assert product.in_stock is True
    updated = run(service.update_product(product.id, {"name": "Mug", "price": 4, "quantity": 0, "inStock": True}))
    assert updated.in_stock is False
    assert updated.id == product.id
    assert updated.updated_at >= product.updated_at


def test_invalid_update_leaves_record_unchanged(service):
    product = run(service.create_product({"name": "Mug", "price": 4, "quantity": 10}))
    with pytest.raises(ValidationError) as exc:
        run(service.update_product(product.id, {"name": "Mug", "price": 4, "category": "InvalidCategory"}))
    assert exc.value.errors[0].code == "invalid_enum"
    assert run(service.get_product_by_id(product.id)) == product


def test_missing_ids(service):
    missing = str(ObjectId())
    with pytest.raises(NotFound):
        run(service.delete_product(missing))
    with pytest.raises(NotFound):
        run(service.get_product_by_id(missing))
    with pytest.raises(NotFound):
        run(service.update_product(missing, {"name": "Mug", "price": 1}))


def test_malformed_ids(service):
    for call in (
        service.get_product_by_id("nope"),
        service.update_product("nope", {"name": "Mug", "price": 1}),
        service.delete_product("nope"),
    ):
        with pytest.raises(InvalidId):
            run(call)


def test_delete_returns_confirmation(service):
    product = run(service.create_product({"name": "Mug", "price": 4}))
    result = run(service.delete_product(product.id))
    assert result.message == "Product deleted successfully"
    assert result.product.id == product.id
    with pytest.raises(NotFound):
        run(service.get_product_by_id(product.id))


def test_pagination_and_past_the_end(service):
    run(service.create_products([{"name": f"Item {i}", "price": i} for i in range(25)]))
    page = run(service.get_all_products({"limit": "10"}))
    assert len(page.products) == 10
    assert page.pagination.total_items == 25
    assert page.pagination.total_pages == 3

    last = run(service.get_all_products({"limit": "10", "page": "3"}))
    assert len(last.products) == 5

    beyond = run(service.get_all_products({"limit": "10", "page": "4"}))
    assert beyond.products == []
    assert beyond.pagination.total_items == 25


def test_empty_catalog(service):
    page = run(service.get_all_products())
    assert page.products == []
    assert page.pagination.total_items == 0
    assert page.pagination.total_pages == 0


def test_price_range_and_search(service):
    run(service.create_products([
        {"name": "Widget", "price": 5},
        {"name": "Big widget", "price": 30},
        {"name": "Gadget", "price": 45, "description": "Works with any WIDget"},
        {"name": "Crate", "price": 80},
    ]))
    in_range = run(service.get_all_products({"minPrice": "10", "maxPrice": "50", "sortBy": "price"})).products
    assert [p.name for p in in_range] == ["Big widget", "Gadget"]
    assert all(10 <= p.price <= 50 for p in in_range)

    found = run(service.get_all_products({"search": "wid"})).products
    assert {p.name for p in found} == {"Widget", "Big widget", "Gadget"}


def test_in_stock_filter(service):
    run(service.create_products([
        {"name": "Stocked", "price": 1, "quantity": 2},
        {"name": "Empty", "price": 1, "quantity": 0},
    ]))
    names = [p.name for p in run(service.get_all_products({"inStock": "true"})).products]
    assert names == ["Stocked"]
    assert run(service.get_all_products({"inStock": "false"})).pagination.total_items == 2


def test_bulk_create_is_all_or_nothing(service):
    with pytest.raises(ValidationError) as exc:
        run(service.create_products([{"name": "Good", "price": 1}, {"name": "", "price": 1}]))
    assert [e.field for e in exc.value.errors] == ["1.name"]
    assert run(service.get_all_products()).pagination.total_items == 0
    assert run(service.create_products([])) == []


def test_products_by_category(service):
    run(service.create_products([
        {"name": "Novel", "price": 9, "category": "Books"},
        {"name": "Atlas", "price": 20, "category": "Books"},
        {"name": "Shirt", "price": 15, "category": "Clothing"},
    ]))
    assert [p.name for p in run(service.get_products_by_category("Books"))] == ["Atlas", "Novel"]
    with pytest.raises(ValidationError):
        run(service.get_products_by_category("Toys"))


class BrokenCollection(InMemoryProductCollection):
    async def find(self, query_filter, sort, skip=0, limit=0):
        raise ServerSelectionTimeoutError("no servers")


def test_driver_failures_become_storage_errors():
    service = ProductService(BrokenCollection())
    with pytest.raises(StorageError) as exc:
        run(service.get_all_products())
    assert isinstance(exc.value.__cause__, ServerSelectionTimeoutError)


def test_quantity_beyond_storage_range(service):
    with pytest.raises(ValidationError) as exc:
        run(service.create_product({"name": "Mug", "price": 1, "quantity": 10**30}))
    assert [(e.field, e.code) for e in exc.value.errors] == [("quantity", "out_of_range")]


class UnencodableCollection(InMemoryProductCollection):
    async def insert_one(self, doc):
        raise OverflowError("MongoDB can only handle up to 8-byte ints")


def test_encoding_failures_become_storage_errors():
    service = ProductService(UnencodableCollection())
    with pytest.raises(StorageError) as exc:
        run(service.create_product({"name": "Mug", "price": 1}))
    assert isinstance(exc.value.__cause__, OverflowError)


def test_listing_options_from_python_values(service):
    run(service.create_products([
        {"name": "Stocked", "price": 1, "quantity": 2},
        {"name": "Empty", "price": 1, "quantity": 0},
    ]))
    page = run(service.get_all_products({"inStock": True, "limit": 5}))
    assert [p.name for p in page.products] == ["Stocked"]
    assert page.pagination.limit == 5

    with pytest.raises(ValidationError) as exc:
        run(service.get_all_products({"search": ["wid"]}))
    assert exc.value.errors[0].field == "search"
