"""
Shared service instances and FastAPI dependency providers

The gate and the scheduler hold per-process state, so there is exactly one of
each. Tests replace the providers with app.dependency_overrides.
"""
from fastapi import Request

from app.core.cache import CacheClient
from app.core.config import settings
from app.core.load_shedding import LoadSheddingGate
from app.repositories.order_repository import OrderRepository
from app.repositories.product_repository import ProductRepository
from app.services.auth_service import AuthService
from app.services.fulfillment_service import FulfillmentScheduler
from app.services.inventory_service import InventoryGuard
from app.services.order_service import OrderService
from app.services.product_catalog_service import ProductCatalogService


load_shedding_gate = LoadSheddingGate.from_settings()
fulfillment_scheduler = FulfillmentScheduler.from_settings()

_disabled_cache = CacheClient(None, prefix=settings.CACHE_KEY_PREFIX)


def get_order_service() -> OrderService:
    return OrderService(
        repository=OrderRepository(),
        inventory=InventoryGuard(ProductRepository()),
        gate=load_shedding_gate,
        scheduler=fulfillment_scheduler,
        estimated_processing_time=settings.ESTIMATED_PROCESSING_TIME,
    )


def get_product_repository() -> ProductRepository:
    return ProductRepository()


def get_catalog_service() -> ProductCatalogService:
    return ProductCatalogService(ProductRepository())


def get_auth_service() -> AuthService:
    return AuthService()


def get_cache(request: Request) -> CacheClient:
    """Cache client created at startup; a disabled client if none is set"""
    return getattr(request.app.state, "cache", None) or _disabled_cache
