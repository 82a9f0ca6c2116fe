"""
HTTP tests for the products API

ProductRepository and the cache are replaced through dependency overrides.
"""
import pytest
from unittest.mock import AsyncMock, MagicMock
from fastapi.testclient import TestClient

from app.main import app
from app.core.auth import create_access_token
from app.core.cache import CacheClient
from app.core.dependencies import get_cache, get_catalog_service, get_product_repository
from app.domain.product import Product


@pytest.fixture
def repo():
    repository = MagicMock()
    app.dependency_overrides[get_product_repository] = lambda: repository
    yield repository
    app.dependency_overrides.clear()


@pytest.fixture
def cache():
    client = CacheClient(AsyncMock(), prefix="cache")
    client.redis.get.return_value = None
    app.dependency_overrides[get_cache] = lambda: client
    return client


@pytest.fixture
def client():
    return TestClient(app)


def admin_header():
    token = create_access_token(1, "admin@example.com", "admin", "Admin")
    return {"Authorization": f"Bearer {token}"}


class TestProductQueries:

    def test_list_products_paginates(self, client, repo, product_row):
        repo.find_all.return_value = ([Product(**product_row)], 45)

        response = client.get("/api/v1/products?page=2&limit=20&category=standard")

        assert response.status_code == 200
        body = response.json()
        assert body["pagination"] == {"page": 2, "limit": 20, "total": 45, "pages": 3}
        assert body["data"][0]["price"] == 24.99
        repo.find_all.assert_called_once_with(
            category="standard", search=None, is_active=True, limit=20, offset=20
        )

    def test_limit_above_100_rejected(self, client, repo):
        assert client.get("/api/v1/products?limit=101").status_code == 400

    def test_missing_product_returns_404(self, client, repo):
        repo.find_by_id.return_value = None

        response = client.get("/api/v1/products/999")

        assert response.status_code == 404
        assert response.json() == {"error": "Product not found"}
        repo.find_by_id.assert_called_once_with(999, active_only=True)

    def test_cache_hit_skips_repository(self, client, repo, cache):
        cache.redis.get.return_value = '{"data":{"id":1},"status":"success"}'

        response = client.get("/api/v1/products/1")

        assert response.status_code == 200
        assert response.headers["X-Cache"] == "HIT"
        assert response.json()["data"]["id"] == 1
        repo.find_by_id.assert_not_called()

    def test_cache_miss_stores_response(self, client, repo, cache, product_row):
        repo.find_by_id.return_value = Product(**product_row)

        response = client.get("/api/v1/products/1")

        assert response.headers["X-Cache"] == "MISS"
        key, _ = cache.redis.set.call_args[0]
        assert key == "cache:product:/api/v1/products/1:anonymous"
        assert cache.redis.set.call_args[1] == {"ex": 60}


class TestProductManagement:

    def test_create_requires_admin(self, client, repo):
        token = create_access_token(2, "user@example.com", "user")

        response = client.post(
            "/api/v1/products",
            json={"name": "X", "description": "Y", "price": 10, "image_url": "https://example.com/x.jpg"},
            headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 403
        repo.create.assert_not_called()

    def test_create_invalidates_cache(self, client, repo, cache, product_row):
        repo.create.return_value = Product(**product_row)

        async def no_keys(match):
            for key in []:
                yield key

        cache.redis.scan_iter = no_keys

        response = client.post(
            "/api/v1/products",
            json={"name": "EcoBottle Classic 500ml", "description": "Bottle", "price": 24.99,
                  "image_url": "https://example.com/classic.jpg"},
            headers=admin_header()
        )

        assert response.status_code == 201
        assert response.json()["data"]["id"] == 1

    def test_delete_missing_product_returns_404(self, client, repo):
        repo.deactivate.return_value = None

        response = client.delete("/api/v1/products/999", headers=admin_header())

        assert response.status_code == 404

    def test_seed_when_catalog_not_empty(self, client, repo):
        catalog = MagicMock()
        catalog.seed_sample_products.return_value = []
        app.dependency_overrides[get_catalog_service] = lambda: catalog

        response = client.post("/api/v1/products/seed", headers=admin_header())

        assert response.status_code == 201
        assert response.json()["count"] == 0
