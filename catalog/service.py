import logging
from contextlib import contextmanager
from typing import Any, List, Mapping, NamedTuple, Optional, Sequence, Union

from bson import ObjectId
from bson.errors import BSONError
from pydantic import ValidationError as PydanticValidationError
from pymongo.errors import PyMongoError

from .config import CATEGORIES
from .core import Product, ProductIn, enforce_stock_invariant, field_errors, validate_product
from .database import ProductCollection, is_valid_id
from .errors import FieldError, InvalidId, NotFound, StorageError, ValidationError
from .query import ListOptions, Pagination, build_pagination, build_query

logger = logging.getLogger(__name__)


class ProductPage(NamedTuple):
    products: List[Product]
    pagination: Pagination


class DeleteResult(NamedTuple):
    message: str
    product: Product


@contextmanager
def _storage_errors(action: str):
    # driver failures never leave the service in their own shape
    try:
        yield
    except (PyMongoError, BSONError, OverflowError) as exc:
        logger.error("Storage failure while %s: %s", action, exc)
        raise StorageError(f"Storage failure while {action}") from exc


def _object_id(product_id: Any) -> ObjectId:
    if not is_valid_id(product_id):
        raise InvalidId(product_id)
    return ObjectId(product_id)


def _prepare(data: Any) -> ProductIn:
    check = validate_product(data)
    if not check.ok:
        raise ValidationError(check.errors)
    return enforce_stock_invariant(check.product)


class ProductService:
    """Product operations over an injected collection handle."""

    def __init__(self, collection: ProductCollection):
        self.collection = collection

    async def create_product(self, data: Mapping[str, Any]) -> Product:
        product = _prepare(data)
        with _storage_errors("creating a product"):
            doc = await self.collection.insert_one(product.to_document())
        logger.info("Product saved: %s", doc["name"])
        return Product.from_document(doc)

    async def create_products(self, items: Sequence[Mapping[str, Any]]) -> List[Product]:
        """Create several products at once; nothing is written if any item is invalid."""
        prepared = []
        errors: List[FieldError] = []
        for index, item in enumerate(items):
            check = validate_product(item)
            if not check.ok:
                errors.extend(FieldError(f"{index}.{e.field}", e.code, e.message) for e in check.errors)
                continue
            prepared.append(enforce_stock_invariant(check.product))
        if errors:
            raise ValidationError(errors)
        if not prepared:
            return []

        with _storage_errors("creating products"):
            docs = await self.collection.insert_many([p.to_document() for p in prepared])
        logger.info("Saved %d products", len(docs))
        return [Product.from_document(doc) for doc in docs]

    async def get_all_products(self, options: Union[ListOptions, Mapping[str, Any], None] = None) -> ProductPage:
        if options is None:
            options = ListOptions()
        elif not isinstance(options, ListOptions):
            try:
                options = ListOptions.model_validate(dict(options))
            except PydanticValidationError as exc:
                raise ValidationError(field_errors(exc)) from exc
        query = build_query(options)

        # count and page are two reads; they may see different snapshots
        with _storage_errors("listing products"):
            docs = await self.collection.find(query.filter, query.sort, query.skip, query.limit)
            total_items = await self.collection.count(query.filter)
        return ProductPage(
            products=[Product.from_document(doc) for doc in docs],
            pagination=build_pagination(query, total_items),
        )

    async def get_products_by_category(self, category: str) -> List[Product]:
        if category not in CATEGORIES:
            raise ValidationError([FieldError("category", "invalid_enum", f"{category} is not a valid category")])
        with _storage_errors("listing a category"):
            docs = await self.collection.find({"category": category}, [("name", 1)])
        return [Product.from_document(doc) for doc in docs]

    async def get_product_by_id(self, product_id: Any) -> Product:
        oid = _object_id(product_id)
        with _storage_errors("reading a product"):
            doc = await self.collection.find_by_id(oid)
        if doc is None:
            raise NotFound(product_id)
        return Product.from_document(doc)

    async def update_product(self, product_id: Any, data: Mapping[str, Any]) -> Product:
        oid = _object_id(product_id)
        product = _prepare(data)
        with _storage_errors("updating a product"):
            doc = await self.collection.update_by_id(oid, product.to_document())
        if doc is None:
            raise NotFound(product_id)
        logger.info("Product updated: %s", doc["name"])
        return Product.from_document(doc)

    async def delete_product(self, product_id: Any) -> DeleteResult:
        oid = _object_id(product_id)
        with _storage_errors("deleting a product"):
            doc: Optional[dict] = await self.collection.delete_by_id(oid)
        if doc is None:
            raise NotFound(product_id)
        logger.info("Product deleted: %s", doc["name"])
        return DeleteResult("Product deleted successfully", Product.from_document(doc))
