"""
records.py

Stock data model for the bottle-based inventory:
- StockRecord: sealed containers plus one open container per product
- ConsumptionRequest / ConsumptionResult
- RestockBatch
- ConsumptionLogEntry / RestockAuditEntry (append-only audit rows)

Volumes are Decimal millilitres, quantized to ML_QUANTUM.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from numbers import Number
from typing import Any, Dict, Optional

from salon_os.config import defaults
from salon_os.stock.exceptions import ConfigurationError, ValidationError


ML_QUANTUM = Decimal(defaults.DEFAULT_VOLUME_QUANTUM_ML)
ZERO_ML = Decimal("0").quantize(ML_QUANTUM)


def to_ml(value: Any, name: str = "volume") -> Decimal:
    """Convert a user-supplied volume to a quantized Decimal.

    Floats go through repr() so 0.1 stays 0.1 rather than its binary
    expansion. Volumes finer than ML_QUANTUM are rejected, not rounded.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{name} must be a number, got {value!r}")
    if isinstance(value, Decimal):
        dec = value
    elif isinstance(value, float):
        if not math.isfinite(value):
            raise ValidationError(f"{name} must be finite, got {value!r}")
        dec = Decimal(repr(value))
    elif isinstance(value, (int, str, Number)):
        try:
            dec = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(f"{name} is not a number: {value!r}") from None
    else:
        raise ValidationError(f"{name} must be a number, got {type(value).__name__}")

    if not dec.is_finite():
        raise ValidationError(f"{name} must be finite, got {value!r}")
    try:
        quantized = dec.quantize(ML_QUANTUM)
    except InvalidOperation:
        raise ValidationError(f"{name} is out of range: {value!r}") from None
    if quantized != dec:
        raise ValidationError(f"{name} must be a multiple of {ML_QUANTUM}ml, got {value!r}")
    return quantized


def to_count(value: Any, name: str = "count") -> int:
    """Validate a container count (int, not bool)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer, got {value!r}")
    return value


# ---------------------------------------------------------------------
# Stock record
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class StockRecord:
    """Per-product inventory state.

    Built from repository rows, so construction does not reject a bad
    configuration; operations call check_configuration() instead.
    """
    product_id: str
    sealed_containers: int
    container_capacity_ml: Decimal
    open_remaining_ml: Decimal = ZERO_ML
    min_stock_threshold_ml: Decimal = ZERO_ML
    name: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "sealed_containers", to_count(self.sealed_containers, "sealed_containers"))
        object.__setattr__(self, "container_capacity_ml", to_ml(self.container_capacity_ml, "container_capacity_ml"))
        object.__setattr__(self, "open_remaining_ml", to_ml(self.open_remaining_ml, "open_remaining_ml"))
        object.__setattr__(self, "min_stock_threshold_ml", to_ml(self.min_stock_threshold_ml, "min_stock_threshold_ml"))

    @classmethod
    def empty(
        cls,
        product_id: str,
        container_capacity_ml: Any,
        min_stock_threshold_ml: Any = 0,
        name: Optional[str] = None,
    ) -> "StockRecord":
        """A freshly cataloged product: no sealed containers, nothing open."""
        return cls(
            product_id=product_id,
            sealed_containers=0,
            container_capacity_ml=container_capacity_ml,
            open_remaining_ml=ZERO_ML,
            min_stock_threshold_ml=min_stock_threshold_ml,
            name=name,
        )

    @property
    def total_available_ml(self) -> Decimal:
        return self.sealed_containers * self.container_capacity_ml + self.open_remaining_ml

    @property
    def has_open_container(self) -> bool:
        return self.open_remaining_ml > 0

    def check_configuration(self) -> None:
        """Raise ConfigurationError unless the record can be operated on."""
        if self.container_capacity_ml <= 0:
            raise ConfigurationError(
                f"Product {self.product_id} has non-positive container capacity "
                f"({self.container_capacity_ml}ml)",
                product_id=self.product_id,
            )
        if self.sealed_containers < 0:
            raise ConfigurationError(
                f"Product {self.product_id} has a negative sealed container count "
                f"({self.sealed_containers})",
                product_id=self.product_id,
            )
        if not (0 <= self.open_remaining_ml < self.container_capacity_ml):
            raise ConfigurationError(
                f"Product {self.product_id} open container holds {self.open_remaining_ml}ml, "
                f"outside [0, {self.container_capacity_ml})",
                product_id=self.product_id,
            )
        if self.min_stock_threshold_ml < 0:
            raise ConfigurationError(
                f"Product {self.product_id} has a negative minimum stock threshold",
                product_id=self.product_id,
            )

    def with_stock(self, sealed_containers: int, open_remaining_ml: Decimal) -> "StockRecord":
        return replace(self, sealed_containers=sealed_containers, open_remaining_ml=open_remaining_ml)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "sealed_containers": self.sealed_containers,
            "container_capacity_ml": str(self.container_capacity_ml),
            "open_remaining_ml": str(self.open_remaining_ml),
            "min_stock_threshold_ml": str(self.min_stock_threshold_ml),
            "total_available_ml": str(self.total_available_ml),
        }


# ---------------------------------------------------------------------
# Consumption
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class ConsumptionOrigin:
    """Audit context for a consumption. Has no arithmetic role."""
    sale_id: Optional[str] = None
    service_id: Optional[str] = None
    staff_id: Optional[str] = None


@dataclass(frozen=True)
class ConsumptionRequest:
    product_id: str
    requested_ml: Decimal
    origin: ConsumptionOrigin = field(default_factory=ConsumptionOrigin)

    def __post_init__(self) -> None:
        object.__setattr__(self, "requested_ml", to_ml(self.requested_ml, "requested_ml"))


@dataclass(frozen=True)
class ConsumptionResult:
    requested_ml: Decimal
    consumed_ml: Decimal
    containers_opened: int
    record: StockRecord
    previous_record: StockRecord

    @property
    def shortfall_ml(self) -> Decimal:
        return self.requested_ml - self.consumed_ml if self.requested_ml > 0 else ZERO_ML

    @property
    def satisfied(self) -> bool:
        return self.shortfall_ml == 0

    @property
    def product_id(self) -> str:
        return self.record.product_id


@dataclass(frozen=True)
class ConsumptionLogEntry:
    """One row of the consumption log (per product, per sale line)."""
    product_id: str
    ml_consumed: Decimal
    containers_opened: int
    sealed_before: int
    sealed_after: int
    open_before_ml: Decimal
    open_after_ml: Decimal
    sale_id: Optional[str] = None
    service_id: Optional[str] = None
    staff_id: Optional[str] = None
    consumption_type: str = "service"  # service, manual
    created_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_result(
        cls,
        result: ConsumptionResult,
        origin: ConsumptionOrigin,
        consumption_type: str = "service",
        created_at: Optional[datetime] = None,
    ) -> "ConsumptionLogEntry":
        return cls(
            product_id=result.product_id,
            ml_consumed=result.consumed_ml,
            containers_opened=result.containers_opened,
            sealed_before=result.previous_record.sealed_containers,
            sealed_after=result.record.sealed_containers,
            open_before_ml=result.previous_record.open_remaining_ml,
            open_after_ml=result.record.open_remaining_ml,
            sale_id=origin.sale_id,
            service_id=origin.service_id,
            staff_id=origin.staff_id,
            consumption_type=consumption_type,
            created_at=created_at or datetime.now(),
        )


# ---------------------------------------------------------------------
# Restock
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class RestockBatch:
    """A supplier delivery. Only containers_added affects stock."""
    product_id: str
    containers_added: int
    supplier: Optional[str] = None
    cost_per_container: Optional[Decimal] = None
    invoice_number: Optional[str] = None
    notes: Optional[str] = None
    restocked_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.cost_per_container is not None:
            cost = self.cost_per_container
            if isinstance(cost, bool) or not isinstance(cost, (int, float, str, Decimal)):
                raise ValidationError(f"cost_per_container must be a number, got {cost!r}")
            try:
                cost = Decimal(repr(cost)) if isinstance(cost, float) else Decimal(str(cost))
            except InvalidOperation:
                raise ValidationError(f"cost_per_container is not a number: {cost!r}") from None
            if not cost.is_finite() or cost < 0:
                raise ValidationError(f"cost_per_container must be non-negative, got {cost}")
            object.__setattr__(self, "cost_per_container", cost)


@dataclass(frozen=True)
class RestockAuditEntry:
    """Append-only record of a restock. Never rewrites stock state."""
    product_id: str
    containers_added: int
    sealed_before: int
    sealed_after: int
    restocked_at: datetime
    supplier: Optional[str] = None
    cost_per_container: Optional[Decimal] = None
    invoice_number: Optional[str] = None
    notes: Optional[str] = None

    @property
    def total_cost(self) -> Optional[Decimal]:
        if self.cost_per_container is None:
            return None
        return self.cost_per_container * self.containers_added
