"""
Storefront Product Catalog
Categories and the sample bottles used to seed an empty catalog
"""
from dataclasses import dataclass, asdict, field
from decimal import Decimal
from typing import List, Optional
from enum import Enum


class ProductCategory(str, Enum):
    """Product categories"""
    STANDARD = "standard"
    PREMIUM = "premium"
    LIMITED_EDITION = "limited-edition"


@dataclass
class SampleProduct:
    """Seed definition for a catalog product"""
    name: str
    description: str
    price: Decimal
    image_url: str
    category: ProductCategory
    stock: int
    capacity: str
    material: str
    rating: Decimal
    review_count: int
    original_price: Optional[Decimal] = None
    features: List[str] = field(default_factory=list)
    colors: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for ProductCreate"""
        data = asdict(self)
        data['category'] = self.category.value
        return data


# ================================================================================
# SAMPLE CATALOG
# ================================================================================
# Inserted by POST /api/v1/products/seed and scripts/setup/init_db.py --seed
# only when the products table is empty
# ================================================================================

SAMPLE_PRODUCTS: List[SampleProduct] = [
    SampleProduct(
        name="EcoBottle Classic 500ml",
        description=(
            "Our classic eco-friendly water bottle made from 100% recycled stainless steel. "
            "Perfect for daily hydration with double-wall vacuum insulation."
        ),
        price=Decimal("24.99"),
        original_price=Decimal("34.99"),
        image_url="https://images.unsplash.com/photo-1602143407151-7111542de6e8?w=400",
        category=ProductCategory.STANDARD,
        features=["BPA-Free", "Leak-Proof", "24hr Cold / 12hr Hot", "Recycled Materials"],
        stock=150,
        capacity="500ml",
        material="Recycled Stainless Steel",
        colors=["Ocean Blue", "Forest Green", "Sunset Orange", "Midnight Black"],
        rating=Decimal("4.5"),
        review_count=234,
    ),
    SampleProduct(
        name="EcoBottle Pro 750ml",
        description=(
            "Premium large capacity bottle with advanced temperature retention and ergonomic "
            "design. Ideal for athletes and outdoor enthusiasts."
        ),
        price=Decimal("34.99"),
        original_price=Decimal("44.99"),
        image_url="https://images.unsplash.com/photo-1523362628745-0c100150b504?w=400",
        category=ProductCategory.PREMIUM,
        features=["Triple Insulation", "Sport Cap", "Grip Coating", "Carbon Neutral"],
        stock=100,
        capacity="750ml",
        material="Premium Recycled Steel",
        colors=["Arctic White", "Volcanic Black", "Pacific Blue"],
        rating=Decimal("4.8"),
        review_count=189,
    ),
    SampleProduct(
        name="EcoBottle Kids 350ml",
        description=(
            "Safe and fun water bottle designed specifically for children. "
            "Features easy-grip design and spill-proof straw lid."
        ),
        price=Decimal("19.99"),
        image_url="https://images.unsplash.com/photo-1570831739435-6601aa3fa4fb?w=400",
        category=ProductCategory.STANDARD,
        features=["Kid-Safe Materials", "Straw Lid", "Dishwasher Safe", "Fun Designs"],
        stock=200,
        capacity="350ml",
        material="Food-Grade Recycled Plastic",
        colors=["Rainbow", "Dinosaur Green", "Princess Pink", "Space Blue"],
        rating=Decimal("4.6"),
        review_count=412,
    ),
    SampleProduct(
        name="EcoBottle Limited Earth Day Edition",
        description=(
            "Exclusive limited edition bottle celebrating Earth Day. Features unique artwork "
            "and premium materials with proceeds supporting environmental causes."
        ),
        price=Decimal("49.99"),
        original_price=Decimal("59.99"),
        image_url="https://images.unsplash.com/photo-1536939459926-301728717817?w=400",
        category=ProductCategory.LIMITED_EDITION,
        features=["Limited Edition", "Artist Design", "Charity Partnership", "Premium Packaging"],
        stock=50,
        capacity="600ml",
        material="Ocean-Recovered Plastic & Steel Hybrid",
        colors=["Earth Day Special"],
        rating=Decimal("4.9"),
        review_count=67,
    ),
    SampleProduct(
        name="EcoBottle Travel 1L",
        description=(
            "Extra large capacity bottle perfect for long trips and adventures. "
            "Features integrated carabiner and compass."
        ),
        price=Decimal("39.99"),
        image_url="https://images.unsplash.com/photo-1523367259781-59e0763b0e73?w=400",
        category=ProductCategory.PREMIUM,
        features=["1L Capacity", "Carabiner Clip", "Built-in Compass", "Impact Resistant"],
        stock=75,
        capacity="1000ml",
        material="Military-Grade Recycled Aluminum",
        colors=["Desert Sand", "Jungle Green", "Urban Grey"],
        rating=Decimal("4.7"),
        review_count=145,
    ),
]
