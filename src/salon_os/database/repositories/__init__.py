"""
Repository implementations.
"""
from .stock import StockRepository, SqliteStockRepository
from .memory import InMemoryStockRepository
from .alerts import SqliteAlertChannel

__all__ = [
    'StockRepository',
    'SqliteStockRepository',
    'InMemoryStockRepository',
    'SqliteAlertChannel',
]
