"""
Domain errors for the storefront backend

Every error carries the HTTP status it maps to. The API layer converts them
into JSON responses in app.main; services and repositories only raise.
"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base class for errors reported to API callers"""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message}


class InputValidationError(DomainError):
    status_code = 400
    default_message = "Invalid request"


class NotFoundError(DomainError):
    status_code = 404
    default_message = "Resource not found"


class ProductNotFoundError(NotFoundError):
    default_message = "Product not found"


class OrderNotFoundError(NotFoundError):
    default_message = "Order not found"


class ConflictError(DomainError):
    status_code = 409
    default_message = "Resource already exists"


class OutOfStockError(DomainError):
    status_code = 400
    default_message = "Insufficient stock available"


class OverloadedError(DomainError):
    """Intake rejected by admission control; the caller should retry later"""

    status_code = 503
    default_message = "Service temporarily unavailable due to high load"

    def __init__(self, retry_after: int = 60, message: Optional[str] = None):
        super().__init__(message)
        self.retry_after = retry_after

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "retry_after": self.retry_after}


class PersistenceError(DomainError):
    """Storage unavailable. The public message never includes driver details."""

    status_code = 500
    default_message = "Failed to process order"


class InvalidTransitionError(DomainError):
    status_code = 409
    default_message = "Invalid status transition"


class AuthenticationError(DomainError):
    status_code = 401
    default_message = "Invalid email or password"
