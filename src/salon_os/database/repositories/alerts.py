"""
Persisted stock alerts, for in-app display.
"""
from decimal import Decimal
from datetime import datetime
from typing import List

from ..base import BaseRepository
from salon_os.stock.alerts import AlertChannel, StockAlert
from salon_os.stock.status import StockStatus


class SqliteAlertChannel(BaseRepository, AlertChannel):
    """Stores stock alerts in a SQLite table."""

    def __init__(self, db_path: str = "data/salon_stock.db"):
        super().__init__(db_path)

    def _init_schema(self):
        self._execute_script([
            """
            CREATE TABLE IF NOT EXISTS stock_alerts (
                alert_id TEXT PRIMARY KEY,
                product_id TEXT NOT NULL,
                kind TEXT NOT NULL,
                previous_status TEXT NOT NULL,
                new_status TEXT NOT NULL,
                total_available_ml TEXT,
                threshold_ml TEXT,
                created_at TEXT NOT NULL,
                acknowledged INTEGER DEFAULT 0
            )
            """,
        ])

    def send(self, alert: StockAlert):
        with self._transaction() as conn:
            self._insert(conn, "stock_alerts", {
                "alert_id": alert.alert_id,
                "product_id": alert.product_id,
                "kind": alert.kind,
                "previous_status": alert.previous_status.value,
                "new_status": alert.new_status.value,
                "total_available_ml": str(alert.total_available_ml) if alert.total_available_ml is not None else None,
                "threshold_ml": str(alert.threshold_ml) if alert.threshold_ml is not None else None,
                "created_at": alert.created_at.isoformat(),
            })

    def get_unacknowledged(self) -> List[StockAlert]:
        """Unacknowledged alerts, newest first."""
        rows = self._fetch_all(
            "SELECT * FROM stock_alerts WHERE acknowledged = 0 ORDER BY created_at DESC"
        )
        return [self._row_to_alert(r) for r in rows]

    def acknowledge_all(self, product_id: str = None):
        """Mark alerts as seen, optionally only for one product."""
        with self._transaction() as conn:
            if product_id:
                conn.execute(
                    "UPDATE stock_alerts SET acknowledged = 1 WHERE acknowledged = 0 AND product_id = ?",
                    (product_id,),
                )
            else:
                conn.execute("UPDATE stock_alerts SET acknowledged = 1 WHERE acknowledged = 0")

    @staticmethod
    def _row_to_alert(row) -> StockAlert:
        return StockAlert(
            product_id=row["product_id"],
            previous_status=StockStatus(row["previous_status"]),
            new_status=StockStatus(row["new_status"]),
            kind=row["kind"],
            total_available_ml=Decimal(row["total_available_ml"]) if row["total_available_ml"] else None,
            threshold_ml=Decimal(row["threshold_ml"]) if row["threshold_ml"] else None,
            created_at=datetime.fromisoformat(row["created_at"]),
            alert_id=row["alert_id"],
        )
