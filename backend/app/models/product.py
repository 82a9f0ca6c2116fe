"""
Modelos del catálogo de productos
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, DECIMAL, CheckConstraint, Index
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base


class Product(Base):
    """
    Productos del catálogo
    """
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")

    # Precios
    price = Column(DECIMAL(12, 2), nullable=False)
    original_price = Column(DECIMAL(12, 2))

    # Presentación
    image_url = Column(Text)
    category = Column(String(30), nullable=False, default="standard")
    features = Column(ARRAY(String), nullable=False, server_default="{}")
    capacity = Column(String(30))
    material = Column(String(100))
    colors = Column(ARRAY(String), nullable=False, server_default="{}")
    rating = Column(DECIMAL(2, 1), nullable=False, default=4.5)
    review_count = Column(Integer, nullable=False, default=0)

    # Inventario
    stock = Column(Integer, nullable=False, default=100)

    # Metadata
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    orders = relationship("Order", back_populates="product")

    __table_args__ = (
        CheckConstraint("stock >= 0", name="products_stock_non_negative"),
        CheckConstraint("price >= 0", name="products_price_non_negative"),
        CheckConstraint(
            "category IN ('standard', 'premium', 'limited-edition')",
            name="products_category_valid",
        ),
        Index("ix_products_category_price", "category", "price"),
        Index("ix_products_is_active", "is_active"),
    )
