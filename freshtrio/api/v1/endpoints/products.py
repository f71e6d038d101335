"""Product catalog endpoints."""

from math import ceil
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from freshtrio.dependencies import CurrentAdmin, get_product_service
from freshtrio.schemas.products import (
    ProductCreate,
    ProductPage,
    ProductResponse,
    ProductUpdate,
)
from freshtrio.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["products"])

ProductServiceDep = Annotated[ProductService, Depends(get_product_service)]


def _to_page(items: list[dict], total: int, page: int, size: int) -> ProductPage:
    return ProductPage(
        items=[ProductResponse.model_validate(p) for p in items],
        total=total,
        page=page,
        size=size,
        pages=ceil(total / size) if total else 0,
    )


@router.get("", response_model=ProductPage)
async def list_products(
    service: ProductServiceDep,
    category: str | None = Query(None, description='Category filter, "all" for any'),
    page: int = Query(0, ge=0, description="Zero-based page number"),
    size: int = Query(20, ge=1, le=100, description="Page size"),
):
    """List active products, optionally filtered by category."""
    items, total = await service.list_products(category=category, page=page, size=size)
    return _to_page(items, total, page, size)


@router.get("/search", response_model=ProductPage)
async def search_products(
    service: ProductServiceDep,
    q: str = Query(..., min_length=1, description="Text to find in name or description"),
    category: str | None = Query(None, description='Category filter, "all" for any'),
    page: int = Query(0, ge=0, description="Zero-based page number"),
    size: int = Query(20, ge=1, le=100, description="Page size"),
):
    """Search active products by name or description."""
    items, total = await service.search_products(q, category=category, page=page, size=size)
    return _to_page(items, total, page, size)


@router.get("/categories", response_model=list[str])
async def get_categories(service: ProductServiceDep):
    """List product categories, starting with "all"."""
    return await service.get_categories()


@router.get("/admin/all", response_model=list[ProductResponse])
async def list_all_products(service: ProductServiceDep, _admin: CurrentAdmin):
    """List every product including inactive ones (admin only)."""
    return [ProductResponse.model_validate(p) for p in await service.list_all_products()]


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: UUID, service: ProductServiceDep):
    """Get a single product."""
    product = await service.get_product(product_id)

    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found",
        )

    return ProductResponse.model_validate(product)


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_data: ProductCreate,
    service: ProductServiceDep,
    _admin: CurrentAdmin,
):
    """Create a product (admin only)."""
    return ProductResponse.model_validate(await service.create_product(product_data))


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: UUID,
    product_data: ProductUpdate,
    service: ProductServiceDep,
    _admin: CurrentAdmin,
):
    """Update a product (admin only)."""
    product = await service.update_product(product_id, product_data)

    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found",
        )

    return ProductResponse.model_validate(product)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: UUID,
    service: ProductServiceDep,
    _admin: CurrentAdmin,
) -> None:
    """Soft delete a product (admin only). Unknown ids are ignored."""
    await service.deactivate_product(product_id)
