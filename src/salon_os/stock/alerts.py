"""
Stock Alert Emitter

Raises stock alerts when a consumption or restock moves a product across a
status boundary, and delivers them to one or more channels.
"""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Set

from salon_os.stock.records import StockRecord
from salon_os.stock.status import StatusPolicy, StockStatus, classify_record

logger = logging.getLogger(__name__)


@dataclass
class StockAlert:
    """Represents a stock status transition worth telling someone about."""
    product_id: str
    previous_status: StockStatus
    new_status: StockStatus
    kind: str = "alert"  # alert, resolved
    total_available_ml: Optional[Decimal] = None
    threshold_ml: Optional[Decimal] = None
    created_at: datetime = field(default_factory=datetime.now)
    alert_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def level(self) -> str:
        if self.kind == "resolved":
            return "info"
        return "error" if self.new_status == StockStatus.OUT else "warning"

    @property
    def message(self) -> str:
        if self.kind == "resolved":
            return f"Stock for {self.product_id} back to {self.new_status.value}"
        return (
            f"Stock for {self.product_id} went {self.previous_status.value} -> "
            f"{self.new_status.value} ({self.total_available_ml}ml left, "
            f"threshold {self.threshold_ml}ml)"
        )


class AlertChannel(ABC):
    """Abstract base class for alert channels."""

    @abstractmethod
    def send(self, alert: StockAlert):
        """Deliver an alert."""
        pass


class LoggingChannel(AlertChannel):
    """Sends alerts to the log."""

    _LEVELS = {"info": logging.INFO, "warning": logging.WARNING, "error": logging.ERROR}

    def send(self, alert: StockAlert):
        logger.log(self._LEVELS[alert.level], alert.message)


class MemoryChannel(AlertChannel):
    """Keeps alerts in process, for dashboards and tests."""

    def __init__(self):
        self.alerts: List[StockAlert] = []
        self._lock = threading.Lock()

    def send(self, alert: StockAlert):
        with self._lock:
            self.alerts.append(alert)

    def active(self) -> List[StockAlert]:
        """Latest alert per product, for products not yet resolved."""
        with self._lock:
            latest: Dict[str, StockAlert] = {}
            for alert in self.alerts:
                latest[alert.product_id] = alert
        return [a for a in latest.values() if a.kind == "alert"]

    def clear(self):
        with self._lock:
            self.alerts.clear()


class AlertEmitter:
    """
    Turns status transitions into alerts.

    Only downward transitions (good -> low, low -> critical, anything -> out)
    raise an alert. Climbing back to good after an alert raises a "resolved"
    event when emit_resolved is set. The emitter remembers the last status it
    announced per product, so re-evaluating an unchanged status never fires
    twice. Callers evaluate under the product's lock so transitions arrive in
    commit order.
    """

    def __init__(self, channels: Optional[Iterable[AlertChannel]] = None, emit_resolved: bool = True):
        self.channels: List[AlertChannel] = list(channels) if channels is not None else [LoggingChannel()]
        self.emit_resolved = emit_resolved
        self._announced: Dict[str, StockStatus] = {}
        self._alerted: Set[str] = set()
        self._lock = threading.Lock()

    def add_channel(self, channel: AlertChannel):
        self.channels.append(channel)

    def on_status_change(
        self,
        product_id: str,
        previous_status: StockStatus,
        new_status: StockStatus,
        record: Optional[StockRecord] = None,
    ) -> Optional[StockAlert]:
        """Fire (at most) one alert for a transition; return it if fired."""
        if previous_status == new_status:
            return None

        with self._lock:
            if self._announced.get(product_id) == new_status:
                return None
            self._announced[product_id] = new_status

            if new_status.is_worse_than(previous_status):
                kind = "alert"
                self._alerted.add(product_id)
            elif new_status == StockStatus.GOOD and product_id in self._alerted:
                # only products that were actually alerted get resolved
                self._alerted.discard(product_id)
                if not self.emit_resolved:
                    return None
                kind = "resolved"
            else:
                return None

        alert = StockAlert(
            product_id=product_id,
            previous_status=previous_status,
            new_status=new_status,
            kind=kind,
            total_available_ml=record.total_available_ml if record else None,
            threshold_ml=record.min_stock_threshold_ml if record else None,
        )
        self._deliver(alert)
        return alert

    def evaluate(
        self,
        before: StockRecord,
        after: StockRecord,
        policy: Optional[StatusPolicy] = None,
    ) -> Optional[StockAlert]:
        """Classify both sides of a mutation and report the transition."""
        return self.on_status_change(
            after.product_id,
            classify_record(before, policy),
            classify_record(after, policy),
            record=after,
        )

    def _deliver(self, alert: StockAlert):
        for channel in self.channels:
            try:
                channel.send(alert)
            except Exception:
                logger.exception(f"Failed to send stock alert to channel {type(channel).__name__}")
