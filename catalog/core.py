import math
from datetime import datetime
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticCustomError

from .config import (
    CATEGORIES,
    CURRENCY_SUFFIX,
    DEFAULT_CATEGORY,
    DEFAULT_IMAGE_URL,
    LOW_STOCK_THRESHOLD,
    MAX_INTEGER,
)
from .errors import FieldError

NAME_MIN_LENGTH = 2
DESCRIPTION_MAX_LENGTH = 1000

ERROR_CODES = {
    "required",
    "too_short",
    "not_numeric",
    "out_of_range",
    "too_long",
    "invalid_enum",
    "not_integer",
    "invalid_format",
}

# pydantic's own error types that can still surface after our checks
_PYDANTIC_CODES = {
    "bool_parsing": "invalid_format",
    "bool_type": "invalid_format",
    "int_parsing": "not_integer",
    "int_type": "not_integer",
    "float_parsing": "not_numeric",
    "float_type": "not_numeric",
    "missing": "required",
}

_TRUE_TEXT = {"true", "1", "yes", "on"}
_FALSE_TEXT = {"false", "0", "no", "off"}

RawTags = Union[str, Sequence[str]]


def normalize_tags(raw: RawTags) -> List[str]:
    """Turn a comma-delimited string or a sequence of strings into a tag list.

    Entries are trimmed and empty ones dropped, so ``"a, b ,c"`` and
    ``["a", "b", "c"]`` give the same result. Any other shape raises ValueError.
    """
    if isinstance(raw, str):
        parts = raw.split(",")
    elif isinstance(raw, (list, tuple)) and all(isinstance(tag, str) for tag in raw):
        parts = raw
    else:
        raise ValueError("tags must be a string or a list of strings")
    return [tag.strip() for tag in parts if tag.strip()]


def _absent(value: Any) -> bool:
    return value is None or value == ""


def _text(value: Any, field: str) -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise PydanticCustomError("invalid_format", "{field} must be text", {"field": field})
    try:
        return str(value).strip()
    except ValueError:
        # ints past the interpreter's digit limit cannot be rendered
        raise PydanticCustomError("invalid_format", "{field} must be text", {"field": field})


# ---------------------------
# Pydantic schemas
# ---------------------------
class ProductIn(BaseModel):
    """Validated, normalized product input ready to be written."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field("", validate_default=True)
    price: float = Field(None, validate_default=True)
    description: Optional[str] = None
    category: str = DEFAULT_CATEGORY
    in_stock: bool = Field(True, alias="inStock")
    quantity: int = 0
    tags: List[str] = Field(default_factory=list)
    image_url: str = Field(DEFAULT_IMAGE_URL, alias="imageUrl")

    @field_validator("name", mode="before")
    @classmethod
    def _check_name(cls, value):
        name = "" if value is None else _text(value, "name")
        if not name:
            raise PydanticCustomError("required", "Product name is required")
        if len(name) < NAME_MIN_LENGTH:
            raise PydanticCustomError(
                "too_short",
                "Name must be at least {min_length} characters",
                {"min_length": NAME_MIN_LENGTH},
            )
        return name

    @field_validator("price", mode="before")
    @classmethod
    def _check_price(cls, value):
        if isinstance(value, bool) or _absent(value):
            raise PydanticCustomError("not_numeric", "Price must be a number")
        try:
            price = float(value.strip() if isinstance(value, str) else value)
        except (TypeError, ValueError, OverflowError):
            raise PydanticCustomError("not_numeric", "Price must be a number")
        if not math.isfinite(price):
            raise PydanticCustomError("not_numeric", "Price must be a number")
        if price < 0:
            raise PydanticCustomError("out_of_range", "Price cannot be negative")
        return price

    @field_validator("description", mode="before")
    @classmethod
    def _check_description(cls, value):
        if value is None:
            return None
        description = _text(value, "description")
        if len(description) > DESCRIPTION_MAX_LENGTH:
            raise PydanticCustomError(
                "too_long",
                "Description cannot exceed {max_length} characters",
                {"max_length": DESCRIPTION_MAX_LENGTH},
            )
        return description or None

    @field_validator("category", mode="before")
    @classmethod
    def _check_category(cls, value):
        if _absent(value):
            return DEFAULT_CATEGORY
        category = _text(value, "category")
        if category not in CATEGORIES:
            raise PydanticCustomError(
                "invalid_enum",
                "{value} is not a valid category",
                {"value": category},
            )
        return category

    @field_validator("in_stock", mode="before")
    @classmethod
    def _check_in_stock(cls, value):
        if _absent(value):
            return True
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        if isinstance(value, str):
            text = value.strip().lower()
            if text in _TRUE_TEXT:
                return True
            if text in _FALSE_TEXT:
                return False
        raise PydanticCustomError("invalid_format", "inStock must be a boolean")

    @field_validator("quantity", mode="before")
    @classmethod
    def _check_quantity(cls, value):
        if _absent(value):
            return 0
        if isinstance(value, bool):
            raise PydanticCustomError("not_integer", "Quantity must be a whole number")
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if isinstance(value, str):
            try:
                value = int(value.strip())
            except ValueError:
                raise PydanticCustomError("not_integer", "Quantity must be a whole number")
        if not isinstance(value, int):
            raise PydanticCustomError("not_integer", "Quantity must be a whole number")
        if value < 0:
            raise PydanticCustomError("out_of_range", "Quantity cannot be negative")
        if value > MAX_INTEGER:
            raise PydanticCustomError("out_of_range", "Quantity is too large")
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _check_tags(cls, value):
        if value is None:
            return []
        try:
            return normalize_tags(value)
        except ValueError:
            raise PydanticCustomError("invalid_format", "Invalid tags format")

    @field_validator("image_url", mode="before")
    @classmethod
    def _check_image_url(cls, value):
        if _absent(value):
            return DEFAULT_IMAGE_URL
        return _text(value, "imageUrl") or DEFAULT_IMAGE_URL

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class Product(BaseModel):
    """A stored product as returned by the service."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    price: float
    description: Optional[str] = None
    category: str = DEFAULT_CATEGORY
    in_stock: bool = Field(True, alias="inStock")
    quantity: int = 0
    tags: List[str] = Field(default_factory=list)
    image_url: str = Field(DEFAULT_IMAGE_URL, alias="imageUrl")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    @computed_field(alias="formattedPrice")
    @property
    def formatted_price(self) -> str:
        return f"{self.price:.2f}{CURRENCY_SUFFIX}"

    def is_low_stock(self) -> bool:
        return self.quantity < LOW_STOCK_THRESHOLD and self.in_stock

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "Product":
        data = dict(doc)
        data["id"] = str(data.pop("_id"))
        return cls.model_validate(data)

    def to_api(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ProductCheck(NamedTuple):
    product: Optional[ProductIn]
    errors: List[FieldError]

    @property
    def ok(self) -> bool:
        return not self.errors


# ---------------------------
# Helpers
# ---------------------------
def _field_error(error: Dict[str, Any]) -> FieldError:
    field = ".".join(str(part) for part in error.get("loc", ())) or "body"
    code = error["type"]
    if code not in ERROR_CODES:
        code = _PYDANTIC_CODES.get(code, "invalid_format")
    return FieldError(field, code, error["msg"])


def field_errors(exc: PydanticValidationError) -> List[FieldError]:
    return [_field_error(e) for e in exc.errors()]


def validate_product(raw: Any) -> ProductCheck:
    """Check raw request input and collect every field error.

    Never raises for badly shaped input: the result carries either the
    normalized ``ProductIn`` or the list of ``FieldError`` items.
    """
    if not isinstance(raw, Mapping):
        return ProductCheck(None, [FieldError("body", "invalid_format", "Product data must be an object")])
    try:
        return ProductCheck(ProductIn.model_validate(dict(raw)), [])
    except PydanticValidationError as exc:
        return ProductCheck(None, field_errors(exc))


def enforce_stock_invariant(product: ProductIn) -> ProductIn:
    # a product with nothing left is never in stock
    if product.quantity == 0 and product.in_stock:
        return product.model_copy(update={"in_stock": False})
    return product
