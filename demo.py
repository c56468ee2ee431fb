#!/usr/bin/env python
import os

from rich import print

from sdk.catalog_client import CatalogClient


def main():
    c = CatalogClient(base_url=os.getenv("CATALOG_API_URL", "http://127.0.0.1:3000"))

    # -----------------------------
    # Create products
    # -----------------------------
    print("\nCreating products...")
    lamp = c.create_product("Lamp", 19.99, quantity=0, tags="home, light")
    print(lamp)
    print(c.create_products([
        {"name": "Widget", "price": 12.5, "quantity": 40, "category": "Electronics"},
        {"name": "Novel", "price": 9.0, "quantity": 3, "category": "Books", "tags": ["fiction"]},
    ]))

    # -----------------------------
    # List, filter, search
    # -----------------------------
    print("\nListing products...")
    print(c.list_products(limit=5))

    print("\nProducts between 10 and 50, cheapest first...")
    print(c.list_products(min_price=10, max_price=50, sort_by="price"))

    print("\nSearching for 'wid'...")
    print(c.search_products("wid"))

    # -----------------------------
    # Edit and delete
    # -----------------------------
    print("\nRestocking the lamp...")
    print(c.update_product(lamp["id"], {**lamp, "quantity": 12, "inStock": True}))

    print("\nDeleting the lamp...")
    print(c.delete_product(lamp["id"]))


if __name__ == "__main__":
    main()
