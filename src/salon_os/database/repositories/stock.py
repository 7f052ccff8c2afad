"""
Stock repositories.

StockRepository is the storage interface the stock core is written against;
SqliteStockRepository persists it in the products / product_consumption_log /
restock_batches tables.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Any

from ..base import BaseRepository
from salon_os.stock.records import ConsumptionLogEntry, RestockAuditEntry, StockRecord

logger = logging.getLogger(__name__)

StockListener = Callable[[List[StockRecord]], None]


class StockRepository(ABC):
    """Storage interface for stock records and their audit logs."""

    @abstractmethod
    def get(self, product_id: str) -> Optional[StockRecord]:
        """Return the product's record, or None if it is not cataloged."""

    @abstractmethod
    def product_ids(self) -> List[str]:
        """All cataloged product ids, sorted."""

    @abstractmethod
    def list_logs(
        self,
        product_id: Optional[str] = None,
        sale_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[ConsumptionLogEntry]:
        """Consumption log entries, newest first."""

    @abstractmethod
    def list_restocks(self, product_id: Optional[str] = None) -> List[RestockAuditEntry]:
        """Restock audit entries, newest first."""

    @abstractmethod
    def _write(
        self,
        records: List[StockRecord],
        log_entries: List[ConsumptionLogEntry],
        restock_entries: List[RestockAuditEntry],
    ):
        """Persist everything in one atomic step."""

    def commit(
        self,
        records: Iterable[StockRecord],
        log_entries: Iterable[ConsumptionLogEntry] = (),
        restock_entries: Iterable[RestockAuditEntry] = (),
    ):
        """Persist records and audit entries together; all or nothing."""
        records = list(records)
        self._write(records, list(log_entries), list(restock_entries))
        if records:
            self._notify(records)

    def save(self, record: StockRecord):
        self.commit([record])

    def append_log(self, entry: ConsumptionLogEntry):
        self.commit([], log_entries=[entry])

    def append_restock(self, entry: RestockAuditEntry):
        self.commit([], restock_entries=[entry])

    def all_records(self) -> List[StockRecord]:
        records = (self.get(pid) for pid in self.product_ids())
        return [r for r in records if r is not None]

    def snapshot(self, product_ids: Iterable[str]) -> Dict[str, StockRecord]:
        """Records for ``product_ids`` that exist, keyed by id."""
        found = {}
        for product_id in product_ids:
            record = self.get(product_id)
            if record is not None:
                found[product_id] = record
        return found

    def register_stock_sync(self, callback: StockListener):
        """Register a callback that receives every batch of updated records."""
        if not hasattr(self, "_listeners"):
            self._listeners: List[StockListener] = []
        self._listeners.append(callback)

    def _notify(self, records: List[StockRecord]):
        for callback in getattr(self, "_listeners", []):
            try:
                callback(records)
            except Exception:
                logger.exception("Stock sync callback failed")


def _dec(value: Any) -> Optional[Decimal]:
    return Decimal(value) if value is not None else None


def _ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class SqliteStockRepository(BaseRepository, StockRepository):
    """SQLite-backed stock repository. Volumes are stored as TEXT to stay exact."""

    def __init__(self, db_path: str = "data/salon_stock.db", busy_timeout_s: float = 5.0):
        super().__init__(db_path, busy_timeout_s=busy_timeout_s)

    def _init_schema(self):
        """Initialize database schema."""
        self._execute_script([
            """
            CREATE TABLE IF NOT EXISTS products (
                product_id TEXT PRIMARY KEY,
                name TEXT,
                sealed_bottles INTEGER NOT NULL DEFAULT 0,
                open_bottle_remaining_ml TEXT NOT NULL DEFAULT '0',
                bottle_capacity_ml TEXT NOT NULL,
                min_threshold_ml TEXT NOT NULL DEFAULT '0',
                updated_at TEXT
            )
            """,
            """
            CREATE TABLE IF NOT EXISTS product_consumption_log (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                product_id TEXT NOT NULL,
                sale_id TEXT,
                service_id TEXT,
                staff_id TEXT,
                consumption_type TEXT NOT NULL,
                ml_consumed TEXT NOT NULL,
                bottles_opened INTEGER NOT NULL,
                sealed_bottles_before INTEGER NOT NULL,
                sealed_bottles_after INTEGER NOT NULL,
                remaining_ml_before TEXT NOT NULL,
                remaining_ml_after TEXT NOT NULL,
                created_at TEXT NOT NULL,
                FOREIGN KEY (product_id) REFERENCES products(product_id)
            )
            """,
            """
            CREATE INDEX IF NOT EXISTS idx_consumption_sale
                ON product_consumption_log(sale_id)
            """,
            """
            CREATE TABLE IF NOT EXISTS restock_batches (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                product_id TEXT NOT NULL,
                bottles_added INTEGER NOT NULL,
                sealed_bottles_before INTEGER NOT NULL,
                sealed_bottles_after INTEGER NOT NULL,
                supplier TEXT,
                cost_per_bottle TEXT,
                invoice_number TEXT,
                notes TEXT,
                restock_date TEXT NOT NULL,
                FOREIGN KEY (product_id) REFERENCES products(product_id)
            )
            """,
        ])

    # -----------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------

    def get(self, product_id: str) -> Optional[StockRecord]:
        row = self._fetch_one("SELECT * FROM products WHERE product_id = ?", (product_id,))
        return self._row_to_record(row) if row else None

    def product_ids(self) -> List[str]:
        rows = self._fetch_all("SELECT product_id FROM products ORDER BY product_id")
        return [r["product_id"] for r in rows]

    def all_records(self) -> List[StockRecord]:
        rows = self._fetch_all("SELECT * FROM products ORDER BY product_id")
        return [self._row_to_record(r) for r in rows]

    def list_logs(
        self,
        product_id: Optional[str] = None,
        sale_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[ConsumptionLogEntry]:
        query = "SELECT * FROM product_consumption_log"
        clauses, params = [], []
        if product_id:
            clauses.append("product_id = ?")
            params.append(product_id)
        if sale_id:
            clauses.append("sale_id = ?")
            params.append(sale_id)
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY created_at DESC, id DESC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        return [
            ConsumptionLogEntry(
                product_id=r["product_id"],
                ml_consumed=Decimal(r["ml_consumed"]),
                containers_opened=r["bottles_opened"],
                sealed_before=r["sealed_bottles_before"],
                sealed_after=r["sealed_bottles_after"],
                open_before_ml=Decimal(r["remaining_ml_before"]),
                open_after_ml=Decimal(r["remaining_ml_after"]),
                sale_id=r["sale_id"],
                service_id=r["service_id"],
                staff_id=r["staff_id"],
                consumption_type=r["consumption_type"],
                created_at=_ts(r["created_at"]),
            )
            for r in self._fetch_all(query, tuple(params))
        ]

    def list_restocks(self, product_id: Optional[str] = None) -> List[RestockAuditEntry]:
        query = "SELECT * FROM restock_batches"
        params = ()
        if product_id:
            query += " WHERE product_id = ?"
            params = (product_id,)
        query += " ORDER BY restock_date DESC, id DESC"

        return [
            RestockAuditEntry(
                product_id=r["product_id"],
                containers_added=r["bottles_added"],
                sealed_before=r["sealed_bottles_before"],
                sealed_after=r["sealed_bottles_after"],
                restocked_at=_ts(r["restock_date"]),
                supplier=r["supplier"],
                cost_per_container=_dec(r["cost_per_bottle"]),
                invoice_number=r["invoice_number"],
                notes=r["notes"],
            )
            for r in self._fetch_all(query, params)
        ]

    # -----------------------------------------------------------------
    # Writes
    # -----------------------------------------------------------------

    def _write(
        self,
        records: List[StockRecord],
        log_entries: List[ConsumptionLogEntry],
        restock_entries: List[RestockAuditEntry],
    ):
        now = datetime.now().isoformat()
        with self._transaction() as conn:
            for record in records:
                self._upsert(conn, "products", {
                    "product_id": record.product_id,
                    "name": record.name,
                    "sealed_bottles": record.sealed_containers,
                    "open_bottle_remaining_ml": str(record.open_remaining_ml),
                    "bottle_capacity_ml": str(record.container_capacity_ml),
                    "min_threshold_ml": str(record.min_stock_threshold_ml),
                    "updated_at": now,
                })
            for entry in log_entries:
                self._insert(conn, "product_consumption_log", {
                    "product_id": entry.product_id,
                    "sale_id": entry.sale_id,
                    "service_id": entry.service_id,
                    "staff_id": entry.staff_id,
                    "consumption_type": entry.consumption_type,
                    "ml_consumed": str(entry.ml_consumed),
                    "bottles_opened": entry.containers_opened,
                    "sealed_bottles_before": entry.sealed_before,
                    "sealed_bottles_after": entry.sealed_after,
                    "remaining_ml_before": str(entry.open_before_ml),
                    "remaining_ml_after": str(entry.open_after_ml),
                    "created_at": entry.created_at.isoformat(),
                })
            for entry in restock_entries:
                self._insert(conn, "restock_batches", {
                    "product_id": entry.product_id,
                    "bottles_added": entry.containers_added,
                    "sealed_bottles_before": entry.sealed_before,
                    "sealed_bottles_after": entry.sealed_after,
                    "supplier": entry.supplier,
                    "cost_per_bottle": str(entry.cost_per_container) if entry.cost_per_container is not None else None,
                    "invoice_number": entry.invoice_number,
                    "notes": entry.notes,
                    "restock_date": entry.restocked_at.isoformat(),
                })

    @staticmethod
    def _row_to_record(row: Dict[str, Any]) -> StockRecord:
        return StockRecord(
            product_id=row["product_id"],
            name=row.get("name"),
            sealed_containers=int(row["sealed_bottles"]),
            container_capacity_ml=Decimal(row["bottle_capacity_ml"]),
            open_remaining_ml=Decimal(row["open_bottle_remaining_ml"]),
            min_stock_threshold_ml=Decimal(row["min_threshold_ml"]),
        )
