"""
Bottle-based stock core: records, consumption, restock, status, alerts, sales.
"""
from .exceptions import (
    StockError,
    ValidationError,
    UnknownProductError,
    ConfigurationError,
    InsufficientStockError,
    ConcurrencyTimeoutError,
    ProductShortfall,
)
from .records import (
    StockRecord,
    ConsumptionOrigin,
    ConsumptionRequest,
    ConsumptionResult,
    ConsumptionLogEntry,
    RestockBatch,
    RestockAuditEntry,
    to_ml,
)
from .consumption import consume, simulate, total_available_ml
from .restock import restock, apply_restock
from .status import StockStatus, StatusPolicy, classify, classify_record
from .alerts import AlertEmitter, StockAlert, AlertChannel, LoggingChannel, MemoryChannel
from .locks import ProductLockManager
from .sale import (
    ProductRequirement,
    SaleLine,
    SaleRequest,
    SaleOutcome,
    SaleRejection,
    PreparedSale,
    SaleCoordinator,
    ServiceAvailability,
)

__all__ = [
    'StockError',
    'ValidationError',
    'UnknownProductError',
    'ConfigurationError',
    'InsufficientStockError',
    'ConcurrencyTimeoutError',
    'ProductShortfall',
    'StockRecord',
    'ConsumptionOrigin',
    'ConsumptionRequest',
    'ConsumptionResult',
    'ConsumptionLogEntry',
    'RestockBatch',
    'RestockAuditEntry',
    'to_ml',
    'consume',
    'simulate',
    'total_available_ml',
    'restock',
    'apply_restock',
    'StockStatus',
    'StatusPolicy',
    'classify',
    'classify_record',
    'AlertEmitter',
    'StockAlert',
    'AlertChannel',
    'LoggingChannel',
    'MemoryChannel',
    'ProductLockManager',
    'ProductRequirement',
    'SaleLine',
    'SaleRequest',
    'SaleOutcome',
    'SaleRejection',
    'PreparedSale',
    'SaleCoordinator',
    'ServiceAvailability',
]
