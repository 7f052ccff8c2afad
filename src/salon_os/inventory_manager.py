"""
Inventory Manager

Stateful front door to the stock core: product registration, restocks,
standalone consumption, sale coordination and the read-only views used by
dashboards. Every mutation goes through the shared per-product locks, the
repository and the alert emitter.
"""

import logging
from typing import Any, List, Optional

from salon_os.config.settings import SalonOSSettings, settings as default_settings
from salon_os.database.repositories.stock import StockRepository
from salon_os.stock.alerts import AlertEmitter, LoggingChannel
from salon_os.stock.consumption import consume
from salon_os.stock.exceptions import (
    ConfigurationError,
    InsufficientStockError,
    ProductShortfall,
    UnknownProductError,
    ValidationError,
)
from salon_os.stock.locks import ProductLockManager
from salon_os.stock.records import (
    ConsumptionLogEntry,
    ConsumptionRequest,
    ConsumptionResult,
    RestockAuditEntry,
    RestockBatch,
    StockRecord,
)
from salon_os.stock.reporting import ProductStockStatus, active_alerts, inventory_status, status_dataframe
from salon_os.stock.restock import apply_restock
from salon_os.stock.sale import SaleCoordinator, SaleOutcome, SaleRequest

logger = logging.getLogger(__name__)


class InventoryManager:
    """
    Manages persistent stock state, restocks and consumption.
    """

    def __init__(
        self,
        repository: StockRepository,
        settings: Optional[SalonOSSettings] = None,
        alert_emitter: Optional[AlertEmitter] = None,
        locks: Optional[ProductLockManager] = None,
    ):
        self.settings = settings or default_settings
        self.repository = repository
        self.policy = self.settings.status_policy()
        self.alert_emitter = alert_emitter or AlertEmitter(
            [LoggingChannel()], emit_resolved=self.settings.emit_resolved_alerts
        )
        self.locks = locks or ProductLockManager(timeout_s=self.settings.lock_timeout_s)
        self._coordinator = SaleCoordinator(
            repository,
            alert_emitter=self.alert_emitter,
            locks=self.locks,
            policy=self.policy,
            lock_timeout_s=self.settings.lock_timeout_s,
        )

    # -----------------------------------------------------------------
    # Catalog
    # -----------------------------------------------------------------

    def register_product(
        self,
        product_id: str,
        container_capacity_ml: Any,
        min_stock_threshold_ml: Any = 0,
        name: Optional[str] = None,
    ) -> StockRecord:
        """
        Create the stock record for a newly cataloged product.

        New products start with no sealed containers and nothing open. If the
        product already has a record it is returned unchanged.

        Raises:
            ConfigurationError: if the capacity is not positive
        """
        if not product_id:
            raise ValidationError("product_id is required")
        with self.locks.hold([product_id]):
            existing = self.repository.get(product_id)
            if existing is not None:
                return existing

            record = StockRecord.empty(product_id, container_capacity_ml, min_stock_threshold_ml, name=name)
            try:
                record.check_configuration()
            except ConfigurationError as e:
                logger.error(f"Refusing to register {product_id}: {e}")
                raise
            self.repository.save(record)

        logger.info(f"Registered product {product_id} ({record.container_capacity_ml}ml containers)")
        return record

    def get_record(self, product_id: str) -> StockRecord:
        """Get a product's stock record. Raises UnknownProductError if missing."""
        record = self.repository.get(product_id)
        if record is None:
            raise UnknownProductError(product_id)
        return record

    def records(self) -> List[StockRecord]:
        return self.repository.all_records()

    # -----------------------------------------------------------------
    # Mutations
    # -----------------------------------------------------------------

    def restock(self, batch: RestockBatch) -> StockRecord:
        """
        Add sealed containers from a delivery.

        Args:
            batch: The delivery; only containers_added changes stock

        Returns:
            The updated stock record
        """
        with self.locks.hold([batch.product_id]):
            before = self.get_record(batch.product_id)
            try:
                after, audit = apply_restock(before, batch)
            except ConfigurationError as e:
                logger.error(f"Restock of {batch.product_id} blocked by configuration: {e}")
                raise
            self.repository.commit([after], restock_entries=[audit])
            self.alert_emitter.evaluate(before, after, self.policy)

        logger.info(
            f"Restocked {batch.product_id}: {before.sealed_containers} -> "
            f"{after.sealed_containers} sealed (+{batch.containers_added})"
            + (f" from {batch.supplier}" if batch.supplier else "")
        )
        return after

    def consume(self, request: ConsumptionRequest, allow_partial: bool = False) -> ConsumptionResult:
        """
        Consume one product outside of a sale (e.g. a manual adjustment).

        Args:
            request: Product, volume and audit origin
            allow_partial: Apply whatever can be drawn when stock is short

        Raises:
            ValidationError: if the requested volume is not positive
            InsufficientStockError: if stock is short and allow_partial is False;
                nothing is changed in that case
        """
        if request.requested_ml <= 0:
            raise ValidationError(f"requested_ml must be positive, got {request.requested_ml}")

        with self.locks.hold([request.product_id]):
            before = self.get_record(request.product_id)
            try:
                result = consume(before, request.requested_ml)
            except ConfigurationError as e:
                logger.error(f"Consumption of {request.product_id} blocked by configuration: {e}")
                raise

            if not result.satisfied and not allow_partial:
                raise InsufficientStockError(shortfalls=[ProductShortfall(
                    product_id=request.product_id,
                    required_ml=request.requested_ml,
                    available_ml=before.total_available_ml,
                )])

            entry = ConsumptionLogEntry.from_result(result, request.origin, consumption_type="manual")
            self.repository.commit([result.record], log_entries=[entry])
            self.alert_emitter.evaluate(before, result.record, self.policy)

        if not result.satisfied:
            logger.warning(
                f"Partial consumption of {request.product_id}: drew {result.consumed_ml}ml, "
                f"short {result.shortfall_ml}ml"
            )
        return result

    def coordinator(self) -> SaleCoordinator:
        """Sale coordinator sharing this manager's repository, locks and alerts."""
        return self._coordinator

    def process_sale(self, sale: SaleRequest) -> SaleOutcome:
        return self._coordinator.process_sale(sale)

    # -----------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------

    def inventory_status(self) -> List[ProductStockStatus]:
        return inventory_status(self.records(), self.policy)

    def active_alerts(self) -> List[ProductStockStatus]:
        return active_alerts(self.records(), self.policy)

    def to_dataframe(self):
        """Stock status as a pandas DataFrame."""
        return status_dataframe(self.records(), self.policy)

    def consumption_history(self, product_id: Optional[str] = None, limit: int = 50) -> List[ConsumptionLogEntry]:
        """Get consumption history, newest first."""
        return self.repository.list_logs(product_id=product_id, limit=limit)

    def sale_usage(self, sale_id: str) -> List[ConsumptionLogEntry]:
        """Consumption log entries written by one sale."""
        return self.repository.list_logs(sale_id=sale_id)

    def restock_history(self, product_id: Optional[str] = None) -> List[RestockAuditEntry]:
        return self.repository.list_restocks(product_id=product_id)
