"""
Typed error taxonomy for inventory workflows.

Services raise these; each route catches PosError and returns
`e.to_dict()` with `e.status_code`. Every error carries a machine-readable
`details` dict for the caller to display.
"""

from __future__ import annotations

from decimal import Decimal

from .quantity_utils import qty_to_str


class PosError(Exception):
    """Base class for business errors raised by the service layer."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message, "type": type(self).__name__}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(PosError, ValueError):
    """400-level input problem. Raised before any mutation."""
    status_code = 400


class NotFoundError(PosError):
    """Unknown ingredient / product / session / lot / supplier id."""
    status_code = 404


class ConflictError(PosError):
    """409-level state conflict (session already open, lock not acquired, ...)."""
    status_code = 409

    def __init__(self, message: str, details: dict | None = None, *, retryable: bool = False):
        super().__init__(message, details)
        self.retryable = retryable

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["retryable"] = self.retryable
        return payload


class InsufficientStockError(PosError):
    """FIFO consumption cannot be satisfied from the remaining lots."""
    status_code = 409

    def __init__(
        self,
        ingredient_id: int,
        required: Decimal,
        available: Decimal,
        *,
        ingredient_name: str | None = None,
        product_id: int | None = None,
    ):
        self.ingredient_id = ingredient_id
        self.required = required
        self.available = available
        self.ingredient_name = ingredient_name
        self.product_id = product_id
        label = ingredient_name or f"ingredient {ingredient_id}"
        message = (
            f"Insufficient stock for {label}. "
            f"Required: {qty_to_str(required)}, Available: {qty_to_str(available)}"
        )
        details = {
            "ingredient_id": ingredient_id,
            "required": qty_to_str(required),
            "available": qty_to_str(available),
            "shortfall": qty_to_str(required - available),
        }
        if ingredient_name is not None:
            details["ingredient_name"] = ingredient_name
        if product_id is not None:
            details["product_id"] = product_id
        super().__init__(message, details)

    def for_product(self, product_id: int, ingredient_name: str | None) -> "InsufficientStockError":
        """Copy of this error decorated with the sale line that triggered it."""
        return InsufficientStockError(
            self.ingredient_id,
            self.required,
            self.available,
            ingredient_name=ingredient_name or self.ingredient_name,
            product_id=product_id,
        )


class InvariantViolation(PosError):
    """Internal consistency failure. Unreachable for correct callers."""
    status_code = 500
