from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional


class StockError(Exception):
    """Base class for stock-core errors."""
    pass


class ValidationError(StockError, ValueError):
    """Raised for malformed requests, before any stock state is touched."""
    pass


class UnknownProductError(ValidationError, KeyError):
    """Raised when a product id has no stock record."""

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Unknown product: {product_id}")

    def __str__(self) -> str:
        return self.args[0]


class ConfigurationError(StockError):
    """Raised when a product's stock configuration is unusable.

    Fatal to that product's operations until the record is corrected.
    """

    def __init__(self, message: str, product_id: Optional[str] = None):
        self.product_id = product_id
        super().__init__(message)


@dataclass
class ProductShortfall:
    """One product that a sale cannot be served from."""
    product_id: str
    required_ml: Decimal
    available_ml: Decimal

    @property
    def missing_ml(self) -> Decimal:
        return self.required_ml - self.available_ml

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "required_ml": str(self.required_ml),
            "available_ml": str(self.available_ml),
            "missing_ml": str(self.missing_ml),
        }


@dataclass
class InsufficientStockError(StockError):
    """Raised at a caller's boundary when stock cannot cover a request.

    Never retried automatically; the shortfalls are meant for user-facing
    messaging.
    """
    shortfalls: List[ProductShortfall] = field(default_factory=list)
    message: str = ""

    def __post_init__(self) -> None:
        if not self.message:
            parts = [
                f"{s.product_id}: need {s.required_ml}ml, have {s.available_ml}ml"
                for s in self.shortfalls
            ]
            self.message = "Insufficient stock. " + "; ".join(parts)
        super().__init__(self.message)


class ConcurrencyTimeoutError(StockError):
    """Raised when commit locks are not acquired in time. Safe to retry."""
    retryable = True

    def __init__(self, product_ids: List[str], timeout_s: float):
        self.product_ids = list(product_ids)
        self.timeout_s = timeout_s
        super().__init__(
            f"Could not lock {', '.join(self.product_ids)} within {timeout_s:.2f}s"
        )
