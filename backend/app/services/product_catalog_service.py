"""
Product Catalog Service
Seeds an empty catalog with the sample bottles
"""
import logging
from typing import List

from app.domain.catalog import SAMPLE_PRODUCTS
from app.domain.product import Product, ProductCreate
from app.repositories.product_repository import ProductRepository

logger = logging.getLogger(__name__)


class ProductCatalogService:
    """Catalog maintenance operations that span more than one product"""

    def __init__(self, repository: ProductRepository = None):
        self.repository = repository or ProductRepository()

    def seed_sample_products(self) -> List[Product]:
        """
        Insert SAMPLE_PRODUCTS when the products table is empty

        Returns:
            Created products; empty list when the catalog already has data
        """
        existing = self.repository.count_all()
        if existing:
            logger.info(f"Catalog already has {existing} products, skipping seed")
            return []

        created = self.repository.bulk_create(
            [ProductCreate(**sample.to_dict()) for sample in SAMPLE_PRODUCTS]
        )
        logger.info(f"Seeded {len(created)} sample products")
        return created
