"""
Restock Operation.

Adds sealed containers from a supplier delivery. The open container is never
touched, and the audit entry is produced alongside the new record rather than
by mutating anything retroactively.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Tuple

from salon_os.stock.exceptions import ValidationError
from salon_os.stock.records import RestockAuditEntry, RestockBatch, StockRecord, to_count


def restock(record: StockRecord, containers_added: Any) -> StockRecord:
    """Return ``record`` with ``containers_added`` more sealed containers.

    Raises
    ------
    ValidationError
        If ``containers_added`` is not a positive integer.
    ConfigurationError
        If the record itself is unusable.
    """
    count = to_count(containers_added, "containers_added")
    if count <= 0:
        raise ValidationError(f"containers_added must be positive, got {count}")
    record.check_configuration()
    return record.with_stock(record.sealed_containers + count, record.open_remaining_ml)


def apply_restock(record: StockRecord, batch: RestockBatch) -> Tuple[StockRecord, RestockAuditEntry]:
    """Apply a delivery and build its audit entry."""
    if batch.product_id != record.product_id:
        raise ValidationError(
            f"Restock batch for {batch.product_id} applied to {record.product_id}"
        )
    updated = restock(record, batch.containers_added)
    entry = RestockAuditEntry(
        product_id=record.product_id,
        containers_added=batch.containers_added,
        sealed_before=record.sealed_containers,
        sealed_after=updated.sealed_containers,
        restocked_at=batch.restocked_at or datetime.now(),
        supplier=batch.supplier,
        cost_per_container=batch.cost_per_container,
        invoice_number=batch.invoice_number,
        notes=batch.notes,
    )
    return updated, entry
