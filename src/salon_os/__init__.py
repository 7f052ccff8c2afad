"""salon_os - Bottle-based stock core for salon point of sale."""

__version__ = "0.1.0"

from salon_os.stock import (
    StockRecord,
    StockStatus,
    SaleRequest,
    SaleLine,
    SaleCoordinator,
    RestockBatch,
    consume,
    classify,
    restock,
)
from salon_os.inventory_manager import InventoryManager
from salon_os.catalog import Catalog, load_catalog

__all__ = [
    "StockRecord",
    "StockStatus",
    "SaleRequest",
    "SaleLine",
    "SaleCoordinator",
    "RestockBatch",
    "consume",
    "classify",
    "restock",
    "InventoryManager",
    "Catalog",
    "load_catalog",
]
