"""
Products API Endpoints
Public catalog queries (cached) and catalog management (admin)
"""
import math
import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from app.core.auth import TokenUser, get_current_user_optional, require_admin
from app.core.cache import CacheClient, cached_json_response
from app.core.config import settings
from app.core.dependencies import get_cache, get_catalog_service, get_product_repository
from app.core.exceptions import ProductNotFoundError
from app.domain.catalog import ProductCategory
from app.domain.product import ProductCreate, ProductUpdate
from app.repositories.product_repository import ProductRepository
from app.services.product_catalog_service import ProductCatalogService

router = APIRouter()


def _user_key(user: Optional[TokenUser]) -> Optional[str]:
    return user.id if user else None


@router.get("")
async def get_products(
    request: Request,
    category: Optional[ProductCategory] = Query(None, description="Filter by category"),
    search: Optional[str] = Query(None, description="Search by name or description"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: Optional[TokenUser] = Depends(get_current_user_optional),
    repo: ProductRepository = Depends(get_product_repository),
    cache: CacheClient = Depends(get_cache)
):
    """
    Get active products with optional filters

    Newest first; cached for PRODUCTS_CACHE_TTL seconds.
    """
    def load():
        products, total = repo.find_all(
            category=category.value if category else None,
            search=search,
            is_active=True,
            limit=limit,
            offset=(page - 1) * limit
        )
        return {
            "status": "success",
            "count": len(products),
            "data": [product.to_dict() for product in products],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit) if total else 0,
            }
        }

    return await cached_json_response(
        request, cache, kind="products", ttl=settings.PRODUCTS_CACHE_TTL,
        load=load, user_id=_user_key(user)
    )


@router.post("/seed", status_code=status.HTTP_201_CREATED)
async def seed_products(
    user: TokenUser = Depends(require_admin),
    catalog: ProductCatalogService = Depends(get_catalog_service),
    cache: CacheClient = Depends(get_cache)
):
    """Insert the sample catalog when no products exist (admin only)"""
    created = await asyncio.to_thread(catalog.seed_sample_products)
    if created:
        await cache.invalidate_products()

    return {
        "status": "success",
        "message": f"Seeded {len(created)} products" if created else "Catalog already seeded",
        "count": len(created),
        "data": [product.to_dict() for product in created]
    }


@router.get("/{product_id}")
async def get_product(
    request: Request,
    product_id: int,
    user: Optional[TokenUser] = Depends(get_current_user_optional),
    repo: ProductRepository = Depends(get_product_repository),
    cache: CacheClient = Depends(get_cache)
):
    """Get one active product (cached)"""
    def load():
        product = repo.find_by_id(product_id, active_only=True)
        if not product:
            raise ProductNotFoundError()
        return {"status": "success", "data": product.to_dict()}

    return await cached_json_response(
        request, cache, kind="product", ttl=settings.PRODUCT_CACHE_TTL,
        load=load, user_id=_user_key(user)
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_product(
    data: ProductCreate,
    user: TokenUser = Depends(require_admin),
    repo: ProductRepository = Depends(get_product_repository),
    cache: CacheClient = Depends(get_cache)
):
    """Create a product (admin only)"""
    product = await asyncio.to_thread(repo.create, data)
    await cache.invalidate_products()

    return {
        "status": "success",
        "data": product.to_dict()
    }


@router.put("/{product_id}")
async def update_product(
    product_id: int,
    data: ProductUpdate,
    user: TokenUser = Depends(require_admin),
    repo: ProductRepository = Depends(get_product_repository),
    cache: CacheClient = Depends(get_cache)
):
    """Partial update; only fields present in the body change (admin only)"""
    product = await asyncio.to_thread(repo.update, product_id, data)
    if not product:
        raise ProductNotFoundError()
    await cache.invalidate_products()

    return {
        "status": "success",
        "data": product.to_dict()
    }


@router.delete("/{product_id}")
async def delete_product(
    product_id: int,
    user: TokenUser = Depends(require_admin),
    repo: ProductRepository = Depends(get_product_repository),
    cache: CacheClient = Depends(get_cache)
):
    """Soft delete: the product disappears from the catalog (admin only)"""
    product = await asyncio.to_thread(repo.deactivate, product_id)
    if not product:
        raise ProductNotFoundError()
    await cache.invalidate_products()

    return {
        "status": "success",
        "message": "Product deleted successfully"
    }
