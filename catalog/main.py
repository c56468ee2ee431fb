# catalog/main.py
import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

import uvicorn
from fastapi import APIRouter, Body, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from .config import SERVER
from .database import ProductCollection, is_valid_id, open_storage
from .errors import FieldError, InvalidId, NotFound, StorageError, ValidationError
from .logs import configure_logging
from .query import ListOptions
from .service import ProductService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/products", tags=["products"])


# ---------------------------
# Dependencies
# ---------------------------
def get_service(request: Request) -> ProductService:
    return request.app.state.service


def valid_product_id(product_id: str) -> str:
    # reject malformed ids before the service is involved
    if not is_valid_id(product_id):
        raise InvalidId(product_id)
    return product_id


# ---------------------------
# Product endpoints
# ---------------------------
@router.get("")
async def list_products(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    category: Optional[str] = None,
    in_stock: Optional[str] = Query(None, alias="inStock"),
    min_price: Optional[str] = Query(None, alias="minPrice"),
    max_price: Optional[str] = Query(None, alias="maxPrice"),
    search: Optional[str] = None,
    service: ProductService = Depends(get_service),
):
    options = ListOptions(
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
        category=category,
        in_stock=in_stock,
        min_price=min_price,
        max_price=max_price,
        search=search,
    )
    result = await service.get_all_products(options)
    return {
        "products": [p.to_api() for p in result.products],
        "pagination": result.pagination.model_dump(by_alias=True),
    }


@router.get("/category/{category}")
async def list_category(category: str, service: ProductService = Depends(get_service)):
    products = await service.get_products_by_category(category)
    return [p.to_api() for p in products]


@router.get("/{product_id}")
async def get_product(product_id: str = Depends(valid_product_id), service: ProductService = Depends(get_service)):
    product = await service.get_product_by_id(product_id)
    return product.to_api()


@router.post("", status_code=201)
async def create_product(payload: Any = Body(...), service: ProductService = Depends(get_service)):
    product = await service.create_product(payload)
    return product.to_api()


@router.post("/bulk", status_code=201)
async def create_products(payload: Any = Body(...), service: ProductService = Depends(get_service)):
    if not isinstance(payload, list):
        raise ValidationError([FieldError("body", "invalid_format", "Expected a list of products")])
    products = await service.create_products(payload)
    return [p.to_api() for p in products]


@router.put("/{product_id}")
async def update_product(
    product_id: str = Depends(valid_product_id),
    payload: Any = Body(...),
    service: ProductService = Depends(get_service),
):
    product = await service.update_product(product_id, payload)
    return product.to_api()


@router.delete("/{product_id}")
async def delete_product(product_id: str = Depends(valid_product_id), service: ProductService = Depends(get_service)):
    result = await service.delete_product(product_id)
    return {"message": result.message, "product": result.product.to_api()}


# ---------------------------
# Error responses
# ---------------------------
async def _validation_error(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"errors": [e._asdict() for e in exc.errors]})


async def _invalid_id(request: Request, exc: InvalidId):
    return JSONResponse(status_code=400, content={"error": str(exc)})


async def _not_found(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"error": str(exc)})


async def _storage_error(request: Request, exc: StorageError):
    logger.error("%s %s failed: %s", request.method, request.url.path, exc.__cause__ or exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# ---------------------------
# Application
# ---------------------------
def create_app(collection: Optional[ProductCollection] = None) -> FastAPI:
    """Build the API; without a collection, storage is opened from config at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = None
        if app.state.service is None:
            client, storage = await open_storage()
            app.state.service = ProductService(storage)
        try:
            yield
        finally:
            if client is not None:
                await client.close()
                logger.info("Storage connection closed")

    app = FastAPI(title="product catalog", lifespan=lifespan)
    app.state.service = ProductService(collection) if collection is not None else None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(InvalidId, _invalid_id)
    app.add_exception_handler(NotFound, _not_found)
    app.add_exception_handler(StorageError, _storage_error)

    @app.get("/", include_in_schema=False)
    async def root():
        return RedirectResponse(url="/api/products")

    app.include_router(router)
    return app


app = create_app()


def main():
    configure_logging()
    uvicorn.run(app, host=SERVER["HOST"], port=SERVER["PORT"], log_config=None)


if __name__ == "__main__":
    main()
