"""
Product Domain Model

Represents a product entity in the storefront catalog.
This is the single source of truth for product data structure.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from app.domain.catalog import ProductCategory


class Product(BaseModel):
    """
    Product domain model - represents a product in our catalog

    This model matches the database schema and provides type safety
    for all product-related operations.

    Fields:
        id: Internal product ID (primary key)
        name: Product name
        description: Marketing description
        price: Unit price charged at order acceptance
        original_price: Price before discount (optional, shown struck through)
        image_url: Product image
        category: standard, premium or limited-edition
        features: Bullet-point features
        stock: Units available for new orders (never negative)
        capacity: Bottle capacity (e.g., "500ml")
        material: Bottle material
        colors: Available colors
        rating: Average rating (0-5)
        review_count: Number of reviews

        # Metadata
        is_active: Whether product is visible and orderable
        created_at: When product was created
        updated_at: When product was last updated
    """

    # Primary identification
    id: int = Field(..., description="Internal product ID")
    name: str = Field(..., description="Product name")
    description: str = Field("", description="Product description")

    # Pricing
    price: Decimal = Field(..., description="Unit price", ge=0)
    original_price: Optional[Decimal] = Field(None, description="Price before discount", ge=0)

    # Presentation
    image_url: Optional[str] = Field(None, description="Product image URL")
    category: ProductCategory = Field(ProductCategory.STANDARD, description="Product category")
    features: List[str] = Field(default_factory=list, description="Product features")
    capacity: Optional[str] = Field(None, description="Capacity (500ml, 1L, etc.)")
    material: Optional[str] = Field(None, description="Material")
    colors: List[str] = Field(default_factory=list, description="Available colors")
    rating: Decimal = Field(Decimal("4.5"), description="Average rating", ge=0, le=5)
    review_count: int = Field(0, description="Number of reviews", ge=0)

    # Inventory
    stock: int = Field(0, description="Units in stock", ge=0)

    # Metadata
    is_active: bool = Field(True, description="Whether product is active")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    model_config = ConfigDict(from_attributes=True)

    # Computed properties
    @property
    def is_out_of_stock(self) -> bool:
        """Check if product is out of stock"""
        return self.stock <= 0

    @property
    def discount_percent(self) -> Optional[int]:
        """Discount against original_price, rounded to whole percent"""
        if self.original_price and self.original_price > self.price:
            return int(round((1 - self.price / self.original_price) * 100))
        return None

    def to_dict(self) -> dict:
        """
        Convert to dictionary with computed fields

        Returns dict with all fields plus computed properties
        """
        data = self.model_dump(mode="json")

        data['is_out_of_stock'] = self.is_out_of_stock
        data['discount_percent'] = self.discount_percent

        # Decimal to float for JSON compatibility
        for field in ['price', 'original_price', 'rating']:
            if data.get(field) is not None:
                data[field] = float(data[field])

        return data


class ProductCreate(BaseModel):
    """Schema for creating a new product"""
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    price: Decimal = Field(..., ge=0)
    original_price: Optional[Decimal] = Field(None, ge=0)
    image_url: str = Field(..., pattern=r"^https?://")
    category: ProductCategory = ProductCategory.STANDARD
    features: List[str] = Field(default_factory=list)
    stock: int = Field(100, ge=0)
    capacity: str = "500ml"
    material: str = "Recycled Stainless Steel"
    colors: List[str] = Field(default_factory=list)
    rating: Decimal = Field(Decimal("4.5"), ge=0, le=5)
    review_count: int = Field(0, ge=0)
    is_active: bool = True


class ProductUpdate(BaseModel):
    """Schema for updating an existing product (only provided fields change)"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    price: Optional[Decimal] = Field(None, ge=0)
    original_price: Optional[Decimal] = Field(None, ge=0)
    image_url: Optional[str] = Field(None, pattern=r"^https?://")
    category: Optional[ProductCategory] = None
    features: Optional[List[str]] = None
    stock: Optional[int] = Field(None, ge=0)
    capacity: Optional[str] = None
    material: Optional[str] = None
    colors: Optional[List[str]] = None
    rating: Optional[Decimal] = Field(None, ge=0, le=5)
    review_count: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None
