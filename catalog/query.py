import math
import re
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import MAX_INTEGER, PAGINATION

ASCENDING = 1
DESCENDING = -1

_LEADING_INT = re.compile(r"^\s*[+-]?\d+")


class ListOptions(BaseModel):
    """Flat listing options as they arrive from a query string."""

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    page: Optional[str] = None
    limit: Optional[str] = None
    sort_by: Optional[str] = Field(None, alias="sortBy")
    sort_order: Optional[str] = Field(None, alias="sortOrder")
    category: Optional[str] = None
    in_stock: Optional[str] = Field(None, alias="inStock")
    min_price: Optional[str] = Field(None, alias="minPrice")
    max_price: Optional[str] = Field(None, alias="maxPrice")
    search: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _as_text(cls, value):
        # booleans arrive from Python callers; the query string only has "true"/"false"
        if isinstance(value, bool):
            return "true" if value else "false"
        return value


class ProductQuery(BaseModel):
    filter: Dict[str, Any] = Field(default_factory=dict)
    sort: List[Tuple[str, int]] = Field(default_factory=list)
    page: int
    skip: int
    limit: int


class Pagination(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page: int
    limit: int
    total_pages: int = Field(alias="totalPages")
    total_items: int = Field(alias="totalItems")


def _parse_int(value: Optional[str], default: int) -> int:
    # leading digits count, like "3rd" -> 3; anything below 1 falls back
    match = _LEADING_INT.match(str(value)) if value is not None else None
    if not match:
        return default
    try:
        number = int(match.group())
    except ValueError:
        # digit runs past the interpreter's conversion limit
        return default
    return number if 1 <= number <= MAX_INTEGER else default


def _parse_float(value: Optional[str]) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _page_window(options: ListOptions) -> Tuple[int, int]:
    page = _parse_int(options.page, PAGINATION["DEFAULT_PAGE"])
    limit = _parse_int(options.limit, PAGINATION["DEFAULT_LIMIT"])
    if PAGINATION["MAX_LIMIT"] > 0:
        limit = min(limit, PAGINATION["MAX_LIMIT"])
    return page, limit


def _build_filter(options: ListOptions) -> Dict[str, Any]:
    query_filter: Dict[str, Any] = {}

    if options.category:
        query_filter["category"] = options.category

    # only the literal "true" selects in-stock products
    if options.in_stock == "true":
        query_filter["inStock"] = True

    price_range = {}
    min_price = _parse_float(options.min_price) if options.min_price else None
    if min_price is not None:
        price_range["$gte"] = min_price
    max_price = _parse_float(options.max_price) if options.max_price else None
    if max_price is not None:
        price_range["$lte"] = max_price
    if price_range:
        query_filter["price"] = price_range

    if options.search:
        pattern = re.escape(options.search)
        query_filter["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
        ]

    return query_filter


def _build_sort(options: ListOptions) -> List[Tuple[str, int]]:
    if options.sort_by:
        direction = DESCENDING if options.sort_order == "desc" else ASCENDING
        return [(options.sort_by, direction)]
    return [("createdAt", DESCENDING)]


def build_query(options: ListOptions) -> ProductQuery:
    """Translate listing options into a filter, a sort order and a page window."""
    page, limit = _page_window(options)
    return ProductQuery(
        filter=_build_filter(options),
        sort=_build_sort(options),
        page=page,
        skip=min((page - 1) * limit, MAX_INTEGER),
        limit=limit,
    )


def build_pagination(query: ProductQuery, total_items: int) -> Pagination:
    return Pagination(
        page=query.page,
        limit=query.limit,
        total_pages=math.ceil(total_items / query.limit),
        total_items=total_items,
    )
