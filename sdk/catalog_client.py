# sdk/catalog_client.py
from typing import Any, Dict, List, Optional

import httpx
import requests

# query-string names understood by GET /api/products
FILTER_PARAMS = {
    "page": "page",
    "limit": "limit",
    "sort_by": "sortBy",
    "sort_order": "sortOrder",
    "category": "category",
    "in_stock": "inStock",
    "min_price": "minPrice",
    "max_price": "maxPrice",
    "search": "search",
}


def _params(filters: Dict[str, Any]) -> Dict[str, str]:
    params = {}
    for key, value in filters.items():
        if value is None:
            continue
        if key not in FILTER_PARAMS:
            raise TypeError(f"unknown product filter: {key}")
        if isinstance(value, bool):
            value = "true" if value else "false"
        params[FILTER_PARAMS[key]] = str(value)
    return params


class CatalogClient:
    def __init__(self, base_url: str = "http://localhost:3000", api_key: Optional[str] = None, timeout: int = 10, session=None):
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        if api_key:
            self.session.headers.update({"Authorization": f"Bearer {api_key}"})

    def _url(self, path: str = "") -> str:
        return f"{self.base_url}/api/products{path}"

    # Listing
    def list_products(self, **filters) -> Dict[str, Any]:
        """Return ``{"products": [...], "pagination": {...}}`` for the given filters.

        Filters use Python names (``min_price=10``, ``in_stock=True``) and are
        sent as the API's camelCase query parameters.
        """
        r = self.session.get(self._url(), params=_params(filters), timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def search_products(self, term: str, **filters) -> List[Dict[str, Any]]:
        return self.list_products(search=term, **filters)["products"]

    def products_by_category(self, category: str) -> List[Dict[str, Any]]:
        r = self.session.get(self._url(f"/category/{category}"), timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def get_product(self, product_id: str) -> Dict[str, Any]:
        r = self.session.get(self._url(f"/{product_id}"), timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    # Writes
    def create_product(self, name: str, price: float, **fields) -> Dict[str, Any]:
        r = self.session.post(self._url(), json={"name": name, "price": price, **fields}, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def create_products(self, products: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        r = self.session.post(self._url("/bulk"), json=products, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def update_product(self, product_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        r = self.session.put(self._url(f"/{product_id}"), json=data, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def delete_product(self, product_id: str) -> Dict[str, Any]:
        r = self.session.delete(self._url(f"/{product_id}"), timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    # Async listing (example)
    async def list_products_async(self, **filters) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.get(self._url(), params=_params(filters))
            r.raise_for_status()
            return r.json()
