"""
reporting.py

Read-only views of stock for dashboards: per-product status, products that
need attention, and DataFrame exports. Reads take no locks; a dashboard sees
whatever snapshot the repository returns.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from salon_os.stock.records import ConsumptionLogEntry, StockRecord
from salon_os.stock.status import StatusPolicy, StockStatus, classify_record


@dataclass
class ProductStockStatus:
    product_id: str
    name: Optional[str]
    sealed_containers: int
    open_remaining_ml: Decimal
    container_capacity_ml: Decimal
    total_available_ml: Decimal
    min_stock_threshold_ml: Decimal
    status: StockStatus

    @classmethod
    def from_record(cls, record: StockRecord, policy: Optional[StatusPolicy] = None) -> "ProductStockStatus":
        return cls(
            product_id=record.product_id,
            name=record.name,
            sealed_containers=record.sealed_containers,
            open_remaining_ml=record.open_remaining_ml,
            container_capacity_ml=record.container_capacity_ml,
            total_available_ml=record.total_available_ml,
            min_stock_threshold_ml=record.min_stock_threshold_ml,
            status=classify_record(record, policy),
        )


def inventory_status(
    records: Iterable[StockRecord],
    policy: Optional[StatusPolicy] = None,
) -> List[ProductStockStatus]:
    """Status of every product, ordered by name then id."""
    statuses = [ProductStockStatus.from_record(r, policy) for r in records]
    return sorted(statuses, key=lambda s: ((s.name or "").lower(), s.product_id))


def active_alerts(
    records: Iterable[StockRecord],
    policy: Optional[StatusPolicy] = None,
) -> List[ProductStockStatus]:
    """Products whose status is anything but good, worst first."""
    flagged = [s for s in inventory_status(records, policy) if s.status != StockStatus.GOOD]
    return sorted(flagged, key=lambda s: -s.status.severity)


def status_dataframe(
    records: Iterable[StockRecord],
    policy: Optional[StatusPolicy] = None,
) -> pd.DataFrame:
    """
    Convert stock status to a DataFrame for reporting surfaces.

    Returns
    -------
    df : pd.DataFrame
        Columns: product_id, name, sealed_containers, open_remaining_ml,
        container_capacity_ml, total_available_ml, min_stock_threshold_ml,
        status. Volumes are floats; status is the enum value string.
    """
    rows = []
    for s in inventory_status(records, policy):
        row: Dict[str, Any] = asdict(s)
        for key in ("open_remaining_ml", "container_capacity_ml", "total_available_ml", "min_stock_threshold_ml"):
            row[key] = float(row[key])
        row["status"] = s.status.value
        rows.append(row)
    columns = [
        "product_id", "name", "sealed_containers", "open_remaining_ml",
        "container_capacity_ml", "total_available_ml", "min_stock_threshold_ml", "status",
    ]
    return pd.DataFrame(rows, columns=columns)


def consumption_dataframe(entries: Iterable[ConsumptionLogEntry]) -> pd.DataFrame:
    """Flat export of consumption log entries."""
    rows = []
    for e in entries:
        row = asdict(e)
        for key in ("ml_consumed", "open_before_ml", "open_after_ml"):
            row[key] = float(row[key])
        rows.append(row)
    columns = [
        "product_id", "ml_consumed", "containers_opened", "sealed_before", "sealed_after",
        "open_before_ml", "open_after_ml", "sale_id", "service_id", "staff_id",
        "consumption_type", "created_at",
    ]
    return pd.DataFrame(rows, columns=columns)
