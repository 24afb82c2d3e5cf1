# Overview: Typed failures raised by the stock services and mapped to HTTP statuses by the routes.

from __future__ import annotations


class StockflowError(Exception):
    """Base error; carries an HTTP-equivalent status and structured details."""

    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": str(self), "details": self.details}


class NotFoundError(StockflowError):
    """Referenced product, location, stock row, variant, sale or loss does not exist."""

    status_code = 404


class ValidationError(StockflowError, ValueError):
    """400-level input problem."""

    status_code = 400


class InsufficientStockError(StockflowError):
    """Requested quantity exceeds the current balance at a location."""

    status_code = 400

    def __init__(
        self,
        *,
        product_id: int,
        location: str,
        requested: int,
        available: int,
        variant: str | None = None,
    ):
        if variant is not None:
            message = (
                f"Insufficient stock for variant {variant!r} of product {product_id} "
                f"at {location}. Available: {available}, requested: {requested}"
            )
        else:
            message = (
                f"Insufficient stock for product {product_id} at {location}. "
                f"Available: {available}, requested: {requested}"
            )
        super().__init__(
            message,
            details={
                "product_id": product_id,
                "location": location,
                "variant": variant,
                "available": available,
                "requested": requested,
            },
        )
        self.product_id = product_id
        self.location = location
        self.variant = variant
        self.available = available
        self.requested = requested


class ConsistencyError(StockflowError):
    """Cached aggregate quantity disagrees with the sum of its variant rows."""

    status_code = 500


class StoreError(StockflowError):
    """Persistence failure; the unit of work has already been rolled back."""

    status_code = 500
