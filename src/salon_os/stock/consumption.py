"""
Consumption Engine.

Pure functions that draw a requested volume from a StockRecord: the open
container first, then sealed containers opened one at a time as the open one
runs dry. Nothing here mutates its inputs or touches a repository, so the
engine is safe to call from any number of threads.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from salon_os.stock.exceptions import ProductShortfall, UnknownProductError
from salon_os.stock.records import (
    ZERO_ML,
    ConsumptionResult,
    StockRecord,
    to_ml,
)


def total_available_ml(record: StockRecord) -> Decimal:
    """Sealed containers' combined capacity plus the open container's remainder."""
    return record.total_available_ml


def consume(record: StockRecord, requested_ml: Any) -> ConsumptionResult:
    """Draw ``requested_ml`` from ``record``.

    Returns the new record together with the volume actually drawn, the
    number of sealed containers opened and the shortfall. A request larger
    than the stock is not an error: whatever could be drawn is drawn and the
    rest is reported as ``shortfall_ml``.

    Raises
    ------
    ConfigurationError
        If the record's capacity is not positive or its state is corrupt.
    ValidationError
        If ``requested_ml`` is not a finite number.
    """
    record.check_configuration()
    requested = to_ml(requested_ml, "requested_ml")

    if requested <= 0:
        return ConsumptionResult(
            requested_ml=requested,
            consumed_ml=ZERO_ML,
            containers_opened=0,
            record=record,
            previous_record=record,
        )

    capacity = record.container_capacity_ml
    sealed = record.sealed_containers
    remaining = requested

    # Open container first
    drawn = min(remaining, record.open_remaining_ml)
    open_ml = record.open_remaining_ml - drawn
    remaining -= drawn

    # Then as many sealed containers as the rest needs. The last one opened
    # stays open with whatever it has left.
    opened = 0
    if remaining > 0 and sealed > 0:
        full, partial = divmod(remaining, capacity)
        needed = int(full) + (1 if partial else 0)
        opened = min(sealed, needed)
        from_sealed = min(remaining, opened * capacity)
        sealed -= opened
        open_ml = opened * capacity - from_sealed
        remaining -= from_sealed

    consumed = requested - remaining
    return ConsumptionResult(
        requested_ml=requested,
        consumed_ml=consumed.quantize(ZERO_ML),
        containers_opened=opened,
        record=record.with_stock(sealed, open_ml),
        previous_record=record,
    )


def aggregate_requirements(requirements: Iterable[Tuple[str, Any]]) -> Dict[str, Decimal]:
    """Sum required volume per product, preserving first-seen order."""
    totals: Dict[str, Decimal] = {}
    for product_id, ml in requirements:
        totals[product_id] = totals.get(product_id, ZERO_ML) + to_ml(ml, f"ml for {product_id}")
    return totals


def simulate(
    records: Mapping[str, StockRecord],
    requirements: Iterable[Tuple[str, Any]],
) -> Tuple[Dict[str, ConsumptionResult], List[ProductShortfall]]:
    """Dry-run a set of requirements against a snapshot of records.

    Requirements for the same product are combined before checking, so a
    product used by two services is validated against the sum. Nothing in
    ``records`` is modified.

    Returns
    -------
    results : Dict[str, ConsumptionResult]
        Simulated consumption per product, keyed by product id.
    shortfalls : List[ProductShortfall]
        One entry per product whose combined requirement exceeds its stock,
        sorted by product id. Empty when everything fits.
    """
    results: Dict[str, ConsumptionResult] = {}
    shortfalls: List[ProductShortfall] = []

    for product_id, required in aggregate_requirements(requirements).items():
        record = records.get(product_id)
        if record is None:
            raise UnknownProductError(product_id)
        result = consume(record, required)
        results[product_id] = result
        if not result.satisfied:
            shortfalls.append(ProductShortfall(
                product_id=product_id,
                required_ml=required,
                available_ml=record.total_available_ml,
            ))

    shortfalls.sort(key=lambda s: s.product_id)
    return results, shortfalls
