"""Product catalogue endpoints."""

import math

from fastapi import APIRouter, Query, status

from sunsano.api.deps import AdminAccess, DbSession
from sunsano.models.product import Product
from sunsano.schemas.product import (
    ProductCreate,
    ProductListResponse,
    ProductResponse,
    ProductStockUpdate,
    ProductUpdate,
)
from sunsano.services.product_service import product_service

router = APIRouter()


@router.get("/", response_model=ProductListResponse)
async def list_products(
    db: DbSession,
    category: str | None = Query(default=None, max_length=50),
    available: bool | None = Query(default=None),
    sort: str = Query(default="name", pattern="^(name|price|price_desc|newest)$"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> ProductListResponse:
    """List products with optional category and availability filters."""
    products, total = await product_service.list_products(
        db, category=category, available=available, sort=sort, page=page, page_size=page_size
    )
    return ProductListResponse(
        products=[ProductResponse.model_validate(p) for p in products],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size) if total else 0,
    )


@router.get("/categories", response_model=list[str])
async def list_categories(db: DbSession) -> list[str]:
    return await product_service.get_categories(db)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: str, db: DbSession) -> Product:
    return await product_service.get_product(db, product_id)


@router.post(
    "/",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[AdminAccess],
)
async def create_product(data: ProductCreate, db: DbSession) -> Product:
    """Add a product to the catalogue (admin only)."""
    return await product_service.create_product(db, data)


@router.put("/{product_id}", response_model=ProductResponse, dependencies=[AdminAccess])
async def update_product(product_id: str, data: ProductUpdate, db: DbSession) -> Product:
    """Update product fields (admin only)."""
    return await product_service.update_product(db, product_id, data)


@router.put("/{product_id}/stock", response_model=ProductResponse, dependencies=[AdminAccess])
async def update_stock(product_id: str, data: ProductStockUpdate, db: DbSession) -> Product:
    """Set the stock level; zero stock makes the product unavailable."""
    return await product_service.update_stock(db, product_id, data.quantity)


@router.delete("/{product_id}", dependencies=[AdminAccess])
async def delete_product(product_id: str, db: DbSession) -> dict:
    """Remove a product (admin only)."""
    product = await product_service.delete_product(db, product_id)
    return {"message": "Product deleted", "id": product.id}
