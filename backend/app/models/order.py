"""
Modelos relacionados con órdenes/pedidos
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, DECIMAL, ForeignKey, CheckConstraint, Index
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base


class Order(Base):
    """
    Tabla principal de órdenes (leads) - Single Source of Truth

    The row doubles as the durable fulfillment intent: any order left in
    pending/processing is resumed by the startup recovery sweep.
    """
    __tablename__ = "orders"

    id = Column(UUID(as_uuid=True), primary_key=True)

    # Datos del cliente
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    address = Column(JSONB)
    phone_number = Column(String(30))
    notes = Column(Text)

    # Producto
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)

    # Montos
    total_amount = Column(DECIMAL(12, 2), nullable=False)

    # Estados
    status = Column(String(20), nullable=False, default="pending", index=True)

    # Fechas
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    processed_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))

    # Relationships
    product = relationship("Product", back_populates="orders")

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="orders_quantity_positive"),
        CheckConstraint("total_amount >= 0", name="orders_total_non_negative"),
        CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'failed', 'cancelled')",
            name="orders_status_valid",
        ),
        Index("ix_orders_email_status", "email", "status"),
        Index("ix_orders_created_at", created_at.desc()),
    )
