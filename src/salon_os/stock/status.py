"""
Stock Status Classifier.

Derives good / low / critical / out from total available volume and the
product's minimum stock threshold. The status is never stored; every surface
recomputes it on read.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from salon_os.config import defaults
from salon_os.stock.records import StockRecord, to_ml


class StockStatus(str, Enum):
    GOOD = "good"
    LOW = "low"
    CRITICAL = "critical"
    OUT = "out"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    def is_worse_than(self, other: "StockStatus") -> bool:
        return self.severity > other.severity


_SEVERITY = {
    StockStatus.GOOD: 0,
    StockStatus.LOW: 1,
    StockStatus.CRITICAL: 2,
    StockStatus.OUT: 3,
}


@dataclass(frozen=True)
class StatusPolicy:
    """Per-deployment classification tiers.

    critical_ratio is the fraction of the minimum threshold at or below which
    stock is critical rather than low. None collapses the two into "low".
    """
    critical_ratio: Optional[Decimal] = Decimal(defaults.DEFAULT_CRITICAL_RATIO)

    def __post_init__(self) -> None:
        if self.critical_ratio is not None:
            ratio = Decimal(str(self.critical_ratio))
            if not (0 <= ratio <= 1):
                raise ValueError(f"critical_ratio must be within [0, 1], got {ratio}")
            object.__setattr__(self, "critical_ratio", ratio)


DEFAULT_POLICY = StatusPolicy()
SINGLE_TIER_POLICY = StatusPolicy(critical_ratio=None)


def classify(
    total_available_ml: Any,
    min_stock_threshold_ml: Any,
    policy: Optional[StatusPolicy] = None,
) -> StockStatus:
    """Classify a stock level. Pure: same inputs, same status."""
    policy = policy or DEFAULT_POLICY
    total = to_ml(total_available_ml, "total_available_ml")
    threshold = to_ml(min_stock_threshold_ml, "min_stock_threshold_ml")

    if total <= 0:
        return StockStatus.OUT
    if total <= threshold:
        if policy.critical_ratio is not None and total <= threshold * policy.critical_ratio:
            return StockStatus.CRITICAL
        return StockStatus.LOW
    return StockStatus.GOOD


def classify_record(record: StockRecord, policy: Optional[StatusPolicy] = None) -> StockStatus:
    return classify(record.total_available_ml, record.min_stock_threshold_ml, policy)
