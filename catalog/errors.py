from typing import List, NamedTuple


class FieldError(NamedTuple):
    field: str
    code: str
    message: str


class CatalogError(Exception):
    """Base class for every error the product service raises."""


class ValidationError(CatalogError):
    def __init__(self, errors: List[FieldError]):
        self.errors = list(errors)
        super().__init__("Validation failed: " + ", ".join(e.message for e in self.errors))


class InvalidId(CatalogError):
    def __init__(self, product_id):
        self.product_id = product_id
        super().__init__("Invalid product id")


class NotFound(CatalogError):
    def __init__(self, product_id):
        self.product_id = product_id
        super().__init__("Product not found")


class StorageError(CatalogError):
    pass
