"""
Order Domain Models

Represents storefront orders (leads) and their fulfillment lifecycle.
These are the single source of truth for order data structure and for the
allowed status transitions.
"""
from pydantic import BaseModel, Field, ConfigDict, EmailStr, field_validator
from typing import Dict, FrozenSet, List, Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from app.core.exceptions import InvalidTransitionError


class OrderStatus(str, Enum):
    """Order fulfillment status"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES: FrozenSet[OrderStatus] = frozenset({
    OrderStatus.COMPLETED,
    OrderStatus.FAILED,
    OrderStatus.CANCELLED,
})

# Current status -> statuses it may move to. Forward only.
ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.FAILED, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.COMPLETED, OrderStatus.FAILED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.FAILED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# Statuses the fulfillment pipeline has not finished with
UNFINISHED_STATUSES: FrozenSet[OrderStatus] = frozenset({OrderStatus.PENDING, OrderStatus.PROCESSING})


def can_transition(from_status: OrderStatus, to_status: OrderStatus) -> bool:
    """True if to_status is allowed after from_status."""
    return OrderStatus(to_status) in ALLOWED_TRANSITIONS[OrderStatus(from_status)]


def validate_transition(order_id, from_status: OrderStatus, to_status: OrderStatus) -> None:
    if not can_transition(from_status, to_status):
        raise InvalidTransitionError(
            f"Order {order_id} cannot transition from "
            f"'{OrderStatus(from_status).value}' to '{OrderStatus(to_status).value}'"
        )


PHONE_PATTERN = r"^[\d\s\-\+\(\)]+$"


class Address(BaseModel):
    """Shipping address (every part optional, country defaults to USA)"""
    street: Optional[str] = Field(None, max_length=200)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    country: str = Field("USA", max_length=100)

    @field_validator("street", "city", "state", "zip_code", "country")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value


class OrderCreate(BaseModel):
    """Schema for accepting a new order"""
    name: str = Field(..., min_length=1, max_length=100, description="Customer name")
    email: EmailStr = Field(..., description="Customer email")
    product_id: int = Field(..., ge=1, description="Product catalog ID")
    quantity: int = Field(1, ge=1, description="Units ordered")
    address: Optional[Address] = None
    phone_number: Optional[str] = Field(None, pattern=PHONE_PATTERN, max_length=30)
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()


class Order(BaseModel):
    """
    Order domain model - a customer's purchase request

    Fields:
        id: Opaque order ID assigned at creation
        name, email, address, phone_number: Customer intake data (immutable)
        product_id: Ordered product
        quantity: Units ordered (>= 1)
        notes: Free-form customer notes
        total_amount: unit price x quantity, fixed at acceptance

        # Status tracking
        status: pending, processing, completed, failed or cancelled

        # Timestamps
        created_at: Acceptance time
        processed_at: Set on entering processing
        completed_at: Set on entering completed
        updated_at: Set on every mutation, never decreases

        # Related data (optional, from JOIN)
        product_name: Current product name
    """

    id: UUID = Field(..., description="Order ID")

    # Intake data
    name: str = Field(..., description="Customer name")
    email: str = Field(..., description="Customer email")
    product_id: int = Field(..., description="Product ID")
    quantity: int = Field(..., description="Quantity ordered", ge=1)
    address: Optional[Address] = Field(None, description="Shipping address")
    phone_number: Optional[str] = Field(None, description="Customer phone")
    notes: Optional[str] = Field(None, description="Customer notes")

    # Financial information
    total_amount: Decimal = Field(..., description="Total order amount", ge=0)

    # Status tracking
    status: OrderStatus = Field(..., description="Order status")

    # Timestamps
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")
    processed_at: Optional[datetime] = Field(None, description="Processing start timestamp")
    completed_at: Optional[datetime] = Field(None, description="Completion timestamp")

    # Related data (from JOIN - optional)
    product_name: Optional[str] = Field(None, description="Product name (from JOIN)")

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> dict:
        """
        Convert to dictionary with computed fields

        Returns dict with all fields plus computed properties
        """
        data = self.model_dump(mode="json")
        data['is_terminal'] = self.is_terminal
        data['total_amount'] = float(self.total_amount)
        return data


class OrderStatusUpdate(BaseModel):
    """Schema for the administrative status override"""
    status: OrderStatus


class AcceptedOrder(BaseModel):
    """Response for an accepted order; fulfillment continues in the background"""
    message: str = "Order received and is being processed"
    order_id: UUID
    status: OrderStatus = OrderStatus.PENDING
    total_amount: Decimal
    estimated_processing_time: str

    def to_dict(self) -> dict:
        data = self.model_dump(mode="json")
        data['total_amount'] = float(self.total_amount)
        return data


class OrderStatusSummary(BaseModel):
    """Count and revenue for one status"""
    status: OrderStatus
    count: int
    total_amount: Decimal


class OrderStats(BaseModel):
    """Read-only aggregation over the order ledger"""
    by_status: List[OrderStatusSummary]
    total_orders: int
    last_24h: int

    def to_dict(self) -> dict:
        data = self.model_dump(mode="json")
        for row in data['by_status']:
            row['total_amount'] = float(row['total_amount'])
        return data
