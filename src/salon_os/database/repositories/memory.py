"""
In-memory stock repository, for tests and single-process deployments.
"""
import threading
from typing import Dict, Iterable, List, Optional

from .stock import StockRepository
from salon_os.stock.records import ConsumptionLogEntry, RestockAuditEntry, StockRecord


class InMemoryStockRepository(StockRepository):
    """Keeps records and audit logs in dicts/lists guarded by one lock.

    Records are frozen dataclasses, so handing them out needs no copying.
    """

    def __init__(self, records: Optional[Iterable[StockRecord]] = None):
        self._records: Dict[str, StockRecord] = {}
        self._logs: List[ConsumptionLogEntry] = []
        self._restocks: List[RestockAuditEntry] = []
        self._lock = threading.Lock()
        for record in records or ():
            self._records[record.product_id] = record

    def get(self, product_id: str) -> Optional[StockRecord]:
        with self._lock:
            return self._records.get(product_id)

    def product_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._records)

    def list_logs(
        self,
        product_id: Optional[str] = None,
        sale_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[ConsumptionLogEntry]:
        with self._lock:
            entries = list(reversed(self._logs))
        if product_id:
            entries = [e for e in entries if e.product_id == product_id]
        if sale_id:
            entries = [e for e in entries if e.sale_id == sale_id]
        return entries[:limit] if limit is not None else entries

    def list_restocks(self, product_id: Optional[str] = None) -> List[RestockAuditEntry]:
        with self._lock:
            entries = list(reversed(self._restocks))
        if product_id:
            entries = [e for e in entries if e.product_id == product_id]
        return entries

    def _write(
        self,
        records: List[StockRecord],
        log_entries: List[ConsumptionLogEntry],
        restock_entries: List[RestockAuditEntry],
    ):
        with self._lock:
            for record in records:
                self._records[record.product_id] = record
            self._logs.extend(log_entries)
            self._restocks.extend(restock_entries)
