import copy
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from bson import ObjectId
from pymongo import ASCENDING, AsyncMongoClient, ReturnDocument

from .config import STORAGE

logger = logging.getLogger(__name__)

Document = Dict[str, Any]
Sort = Sequence[Tuple[str, int]]

# Indexes backing the frequent listing filters and sorts
INDEXED_FIELDS = ["name", "category", "tags", "price"]


def is_valid_id(product_id: Any) -> bool:
    return isinstance(product_id, (str, ObjectId)) and ObjectId.is_valid(product_id)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ProductCollection(Protocol):
    """The document storage capability the product service relies on."""

    async def insert_one(self, doc: Document) -> Document: ...

    async def insert_many(self, docs: Sequence[Document]) -> List[Document]: ...

    async def find_by_id(self, product_id: ObjectId) -> Optional[Document]: ...

    async def find(self, query_filter: Mapping[str, Any], sort: Sort, skip: int = 0, limit: int = 0) -> List[Document]: ...

    async def count(self, query_filter: Mapping[str, Any]) -> int: ...

    async def update_by_id(self, product_id: ObjectId, fields: Document) -> Optional[Document]: ...

    async def delete_by_id(self, product_id: ObjectId) -> Optional[Document]: ...


# ---------------------------
# In-memory collection
# ---------------------------
def _matches_condition(value: Any, condition: Any) -> bool:
    if not isinstance(condition, Mapping):
        return value == condition
    for op, operand in condition.items():
        if op == "$gte":
            if value is None or not value >= operand:
                return False
        elif op == "$lte":
            if value is None or not value <= operand:
                return False
        elif op == "$regex":
            flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
            if not isinstance(value, str) or not re.search(operand, value, flags):
                return False
        elif op == "$options":
            continue
        else:
            raise ValueError(f"unsupported filter operator: {op}")
    return True


def matches(doc: Mapping[str, Any], query_filter: Mapping[str, Any]) -> bool:
    """Evaluate the subset of MongoDB filter syntax the query builder emits."""
    for key, condition in query_filter.items():
        if key == "$or":
            if not any(matches(doc, branch) for branch in condition):
                return False
        elif not _matches_condition(doc.get(key), condition):
            return False
    return True


def _sort_key(field: str):
    # missing values sort first ascending, like MongoDB nulls
    def key(doc: Mapping[str, Any]):
        value = doc.get(field)
        return (value is not None, value)
    return key


class InMemoryProductCollection:
    """Process-local collection keyed by ObjectId, for development and tests."""

    def __init__(self):
        self._docs: Dict[ObjectId, Document] = {}

    def clear(self) -> None:
        self._docs.clear()

    def _stamp_new(self, doc: Document) -> Document:
        now = _now()
        stored = copy.deepcopy(dict(doc))
        stored["_id"] = ObjectId()
        stored["createdAt"] = now
        stored["updatedAt"] = now
        return stored

    async def insert_one(self, doc: Document) -> Document:
        stored = self._stamp_new(doc)
        self._docs[stored["_id"]] = stored
        return copy.deepcopy(stored)

    async def insert_many(self, docs: Sequence[Document]) -> List[Document]:
        stored = [self._stamp_new(doc) for doc in docs]
        for doc in stored:
            self._docs[doc["_id"]] = doc
        return copy.deepcopy(stored)

    async def find_by_id(self, product_id: ObjectId) -> Optional[Document]:
        doc = self._docs.get(ObjectId(product_id))
        return copy.deepcopy(doc) if doc is not None else None

    async def find(self, query_filter, sort, skip=0, limit=0):
        found = [doc for doc in self._docs.values() if matches(doc, query_filter)]
        # apply keys from least to most significant; sorted() is stable
        for field, direction in reversed(list(sort)):
            found = sorted(found, key=_sort_key(field), reverse=direction < 0)
        found = found[skip:]
        if limit:
            found = found[:limit]
        return copy.deepcopy(found)

    async def count(self, query_filter) -> int:
        return sum(1 for doc in self._docs.values() if matches(doc, query_filter))

    async def update_by_id(self, product_id: ObjectId, fields: Document) -> Optional[Document]:
        doc = self._docs.get(ObjectId(product_id))
        if doc is None:
            return None
        doc.update(copy.deepcopy(fields))
        doc["updatedAt"] = _now()
        return copy.deepcopy(doc)

    async def delete_by_id(self, product_id: ObjectId) -> Optional[Document]:
        return self._docs.pop(ObjectId(product_id), None)


# ---------------------------
# MongoDB collection
# ---------------------------
class MongoProductCollection:
    """Product collection on a MongoDB server through pymongo's asyncio driver."""

    def __init__(self, client: AsyncMongoClient, database: str, collection: str = "products"):
        self._client = client
        self._collection = client.get_database(database).get_collection(collection)

    async def ensure_indexes(self) -> None:
        for field in INDEXED_FIELDS:
            await self._collection.create_index([(field, ASCENDING)])

    async def insert_one(self, doc: Document) -> Document:
        now = _now()
        stored = {**doc, "createdAt": now, "updatedAt": now}
        result = await self._collection.insert_one(stored)
        stored["_id"] = result.inserted_id
        return stored

    async def insert_many(self, docs: Sequence[Document]) -> List[Document]:
        now = _now()
        stored = [{**doc, "createdAt": now, "updatedAt": now} for doc in docs]
        # all products are written or none are
        async with self._client.start_session() as session:
            async with await session.start_transaction():
                result = await self._collection.insert_many(stored, session=session)
        for doc, inserted_id in zip(stored, result.inserted_ids):
            doc["_id"] = inserted_id
        return stored

    async def find_by_id(self, product_id: ObjectId) -> Optional[Document]:
        return await self._collection.find_one({"_id": ObjectId(product_id)})

    async def find(self, query_filter, sort, skip=0, limit=0):
        cursor = self._collection.find(query_filter)
        if sort:
            cursor = cursor.sort(list(sort))
        cursor = cursor.skip(skip).limit(limit)
        return await cursor.to_list(length=None)

    async def count(self, query_filter) -> int:
        return await self._collection.count_documents(query_filter)

    async def update_by_id(self, product_id: ObjectId, fields: Document) -> Optional[Document]:
        return await self._collection.find_one_and_update(
            {"_id": ObjectId(product_id)},
            {"$set": {**fields, "updatedAt": _now()}},
            return_document=ReturnDocument.AFTER,
        )

    async def delete_by_id(self, product_id: ObjectId) -> Optional[Document]:
        return await self._collection.find_one_and_delete({"_id": ObjectId(product_id)})


async def open_storage() -> Tuple[Optional[AsyncMongoClient], ProductCollection]:
    """Build the configured collection; the client is returned so it can be closed."""
    if STORAGE["BACKEND"] == "memory":
        logger.info("Using in-memory product storage")
        return None, InMemoryProductCollection()

    client = AsyncMongoClient(STORAGE["MONGODB_URI"])
    database = client.get_default_database(default=STORAGE["DATABASE"]).name
    collection = MongoProductCollection(client, database, STORAGE["COLLECTION"])
    await collection.ensure_indexes()
    logger.info("Connected to MongoDB database %s", database)
    return client, collection
