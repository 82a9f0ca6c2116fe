"""
Modelos de usuarios
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, CheckConstraint
from sqlalchemy.sql import func
from app.core.database import Base


class User(Base):
    """
    Cuentas de la tienda (clientes y administradores)
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="user")

    # Refresh token vigente (rotado en cada /auth/refresh)
    refresh_token = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("role IN ('user', 'admin')", name="users_role_valid"),
    )
