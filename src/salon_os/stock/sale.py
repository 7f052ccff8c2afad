"""
Sale Transaction Coordinator.

A sale is one checkout event: one or more services, each needing volumes of
one or more products. The coordinator commits a sale all-or-nothing:

1. Dry run against a snapshot of the stock records, with every product's
   requirement summed across the whole sale.
2. If any product falls short, the sale is rejected with one shortfall per
   product and nothing is written.
3. Otherwise the products' locks are taken (sorted ids, bounded wait), the
   records are re-read and re-checked, consumption is applied per product in
   id order, and records plus consumption log entries are written in a single
   repository commit.
4. Status transitions of the touched products go to the alert emitter.

A prepared sale can be cancelled at any point before commit; once committed
it can only be reversed by a compensating restock.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from salon_os.stock.alerts import AlertEmitter, StockAlert
from salon_os.stock.consumption import consume, simulate
from salon_os.stock.exceptions import (
    ConfigurationError,
    InsufficientStockError,
    ProductShortfall,
    UnknownProductError,
    ValidationError,
)
from salon_os.stock.locks import ProductLockManager
from salon_os.stock.records import (
    ZERO_ML,
    ConsumptionLogEntry,
    ConsumptionOrigin,
    ConsumptionResult,
    StockRecord,
    to_ml,
)
from salon_os.stock.status import StatusPolicy

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# Sale request
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class ProductRequirement:
    """Volume of one product a service needs."""
    product_id: str
    ml: Decimal

    def __post_init__(self) -> None:
        if not self.product_id:
            raise ValidationError("product_id is required")
        ml = to_ml(self.ml, f"ml for {self.product_id}")
        if ml <= 0:
            raise ValidationError(f"ml for {self.product_id} must be positive, got {ml}")
        object.__setattr__(self, "ml", ml)


@dataclass(frozen=True)
class SaleLine:
    """One service within a sale and the products it consumes."""
    service_id: str
    requirements: Tuple[ProductRequirement, ...] = ()

    def __post_init__(self) -> None:
        reqs = tuple(
            r if isinstance(r, ProductRequirement) else ProductRequirement(*r)
            for r in self.requirements
        )
        object.__setattr__(self, "requirements", reqs)


@dataclass(frozen=True)
class SaleRequest:
    sale_id: str
    lines: Tuple[SaleLine, ...]
    staff_id: Optional[str] = None
    client_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.sale_id:
            raise ValidationError("sale_id is required")
        lines = tuple(self.lines)
        if not lines:
            raise ValidationError(f"Sale {self.sale_id} has no service lines")
        object.__setattr__(self, "lines", lines)

    def iter_requirements(self) -> Iterator[Tuple[SaleLine, ProductRequirement]]:
        for line in self.lines:
            for requirement in line.requirements:
                yield line, requirement

    def product_ids(self) -> List[str]:
        return sorted({req.product_id for _, req in self.iter_requirements()})

    def combined_requirements(self) -> Dict[str, Decimal]:
        """Total ml per product across every line of the sale."""
        totals: Dict[str, Decimal] = {}
        for _, req in self.iter_requirements():
            totals[req.product_id] = totals.get(req.product_id, ZERO_ML) + req.ml
        return totals


# ---------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------

@dataclass
class SaleRejection:
    """Why a sale was not committed, with per-product detail."""
    sale_id: str
    shortfalls: List[ProductShortfall]
    reason: str = "insufficient_stock"

    def to_error(self) -> InsufficientStockError:
        return InsufficientStockError(shortfalls=list(self.shortfalls))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sale_id": self.sale_id,
            "reason": self.reason,
            "shortfalls": [s.to_dict() for s in self.shortfalls],
        }


@dataclass
class SaleOutcome:
    sale_id: str
    status: str  # committed, rejected, cancelled
    results: Dict[str, ConsumptionResult] = field(default_factory=dict)
    log_entries: List[ConsumptionLogEntry] = field(default_factory=list)
    alerts: List[StockAlert] = field(default_factory=list)
    rejection: Optional[SaleRejection] = None

    @property
    def committed(self) -> bool:
        return self.status == "committed"

    @property
    def records(self) -> Dict[str, StockRecord]:
        return {pid: result.record for pid, result in self.results.items()}

    @property
    def containers_opened(self) -> int:
        return sum(r.containers_opened for r in self.results.values())

    def raise_for_rejection(self) -> "SaleOutcome":
        """Raise InsufficientStockError if the sale was rejected."""
        if self.rejection is not None:
            raise self.rejection.to_error()
        return self


class PreparedSale:
    """A validated sale waiting for commit (or cancellation).

    A prepared sale is applied at most once: after a successful commit it
    keeps the committed outcome and can no longer be cancelled.
    """

    def __init__(
        self,
        sale: SaleRequest,
        snapshot: Mapping[str, StockRecord],
        plan: Mapping[str, ConsumptionResult],
        rejection: Optional[SaleRejection] = None,
    ):
        self.sale = sale
        self.snapshot = dict(snapshot)
        self.plan = dict(plan)
        self.rejection = rejection
        self.outcome: Optional["SaleOutcome"] = None
        self._cancelled = False
        self._state_lock = threading.Lock()

    @property
    def feasible(self) -> bool:
        return self.rejection is None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def committed(self) -> bool:
        return self.outcome is not None

    def cancel(self) -> bool:
        """Cancel unless already committed. Returns whether the sale is now cancelled."""
        with self._state_lock:
            if self.outcome is not None:
                return False
            self._cancelled = True
            return True


@dataclass
class ProductAvailability:
    product_id: str
    required_ml: Decimal
    available_ml: Decimal

    @property
    def can_fulfil(self) -> bool:
        return self.available_ml >= self.required_ml


@dataclass
class ServiceAvailability:
    service_id: str
    products: List[ProductAvailability]

    @property
    def available(self) -> bool:
        return all(p.can_fulfil for p in self.products)

    @property
    def missing(self) -> List[ProductAvailability]:
        return [p for p in self.products if not p.can_fulfil]


# ---------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------

class SaleCoordinator:
    """Commits multi-service sales against a stock repository, all-or-nothing."""

    def __init__(
        self,
        repository,
        alert_emitter: Optional[AlertEmitter] = None,
        locks: Optional[ProductLockManager] = None,
        policy: Optional[StatusPolicy] = None,
        lock_timeout_s: Optional[float] = None,
    ):
        self.repository = repository
        self.alert_emitter = alert_emitter
        self.locks = locks or ProductLockManager()
        self.policy = policy
        self.lock_timeout_s = lock_timeout_s

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def process_sale(self, sale: SaleRequest) -> SaleOutcome:
        """Prepare and commit in one call."""
        return self.commit(self.prepare(sale))

    def prepare(self, sale: SaleRequest) -> PreparedSale:
        """
        Dry-run a sale against the current stock without changing anything.

        Raises:
            UnknownProductError: if the sale names a product with no record
            ConfigurationError: if a named product's record is unusable
        """
        snapshot = self._snapshot(sale)
        plan, shortfalls = self._dry_run(snapshot, sale)
        rejection = None
        if shortfalls:
            rejection = SaleRejection(sale_id=sale.sale_id, shortfalls=shortfalls)
            logger.warning(
                f"Sale {sale.sale_id} rejected in dry run: "
                + ", ".join(f"{s.product_id} short {s.missing_ml}ml" for s in shortfalls)
            )
        return PreparedSale(sale, snapshot, plan, rejection)

    def cancel(self, prepared: PreparedSale) -> bool:
        """Cancel a prepared sale. A sale that is already committed is left as it is."""
        if not prepared.cancel():
            logger.warning(f"Sale {prepared.sale.sale_id} is already committed and cannot be cancelled")
            return False
        logger.info(f"Sale {prepared.sale.sale_id} cancelled before commit")
        return True

    def commit(self, prepared: PreparedSale) -> SaleOutcome:
        """
        Commit a prepared sale.

        The stock is re-read and re-checked under the product locks, so a sale
        that was feasible at prepare time can still come back rejected if a
        concurrent sale took the stock first. Committing the same prepared
        sale again returns the first committed outcome without touching stock.

        Raises:
            ConcurrencyTimeoutError: if the product locks are not acquired in
                time; nothing has been written and the call can be retried
        """
        sale = prepared.sale
        if prepared.committed:
            return prepared.outcome
        if prepared.cancelled:
            return SaleOutcome(sale_id=sale.sale_id, status="cancelled")
        if prepared.rejection is not None:
            return SaleOutcome(sale_id=sale.sale_id, status="rejected", rejection=prepared.rejection)

        product_ids = sale.product_ids()
        with self.locks.hold(product_ids, timeout_s=self.lock_timeout_s), prepared._state_lock:
            if prepared.outcome is not None:
                return prepared.outcome
            if prepared.cancelled:
                return SaleOutcome(sale_id=sale.sale_id, status="cancelled")

            current = self._snapshot(sale)
            _, shortfalls = self._dry_run(current, sale)
            if shortfalls:
                rejection = SaleRejection(sale_id=sale.sale_id, shortfalls=shortfalls)
                logger.warning(f"Sale {sale.sale_id} rejected at commit: stock changed since prepare")
                return SaleOutcome(sale_id=sale.sale_id, status="rejected", rejection=rejection)

            results, entries = self._apply(current, sale)
            self.repository.commit([r.record for r in results.values()], log_entries=entries)

            # Emitted under the product locks so transitions arrive in commit order
            alerts = self._emit_transitions(results)
            prepared.outcome = SaleOutcome(
                sale_id=sale.sale_id,
                status="committed",
                results=results,
                log_entries=entries,
                alerts=alerts,
            )

        logger.info(
            f"Sale {sale.sale_id} committed: {len(results)} products, "
            f"{sum(r.containers_opened for r in results.values())} containers opened"
        )
        return prepared.outcome

    def check_service_availability(self, line: SaleLine) -> ServiceAvailability:
        """Read-only check of whether current stock covers one service."""
        combined: Dict[str, Decimal] = {}
        for req in line.requirements:
            combined[req.product_id] = combined.get(req.product_id, ZERO_ML) + req.ml

        products = []
        for product_id, required in combined.items():
            record = self.repository.get(product_id)
            if record is None:
                raise UnknownProductError(product_id)
            products.append(ProductAvailability(
                product_id=product_id,
                required_ml=required,
                available_ml=record.total_available_ml,
            ))
        return ServiceAvailability(service_id=line.service_id, products=products)

    # -----------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------

    def _snapshot(self, sale: SaleRequest) -> Dict[str, StockRecord]:
        product_ids = sale.product_ids()
        snapshot = self.repository.snapshot(product_ids)
        for product_id in product_ids:
            if product_id not in snapshot:
                raise UnknownProductError(product_id)
        return snapshot

    def _dry_run(
        self,
        snapshot: Mapping[str, StockRecord],
        sale: SaleRequest,
    ) -> Tuple[Dict[str, ConsumptionResult], List[ProductShortfall]]:
        requirements = [(req.product_id, req.ml) for _, req in sale.iter_requirements()]
        try:
            return simulate(snapshot, requirements)
        except ConfigurationError as e:
            logger.error(f"Sale {sale.sale_id} blocked by product configuration: {e}")
            raise

    def _apply(
        self,
        current: Mapping[str, StockRecord],
        sale: SaleRequest,
    ) -> Tuple[Dict[str, ConsumptionResult], List[ConsumptionLogEntry]]:
        """Consume line by line, products in id order; one log entry per line."""
        now = datetime.now()
        by_product: Dict[str, List[Tuple[SaleLine, ProductRequirement]]] = {}
        for line, req in sale.iter_requirements():
            by_product.setdefault(req.product_id, []).append((line, req))

        results: Dict[str, ConsumptionResult] = {}
        entries: List[ConsumptionLogEntry] = []
        for product_id in sorted(by_product):
            before = current[product_id]
            record = before
            consumed = ZERO_ML
            opened = 0
            for line, req in by_product[product_id]:
                step = consume(record, req.ml)
                origin = ConsumptionOrigin(sale_id=sale.sale_id, service_id=line.service_id, staff_id=sale.staff_id)
                entries.append(ConsumptionLogEntry.from_result(step, origin, "service", created_at=now))
                consumed += step.consumed_ml
                opened += step.containers_opened
                record = step.record

            results[product_id] = ConsumptionResult(
                requested_ml=consumed,
                consumed_ml=consumed,
                containers_opened=opened,
                record=record,
                previous_record=before,
            )
        return results, entries

    def _emit_transitions(self, results: Mapping[str, ConsumptionResult]) -> List[StockAlert]:
        if self.alert_emitter is None:
            return []
        alerts = []
        for result in results.values():
            alert = self.alert_emitter.evaluate(result.previous_record, result.record, self.policy)
            if alert is not None:
                alerts.append(alert)
        return alerts
