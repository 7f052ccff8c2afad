"""
Database access layer for the salon stock core.
"""
from .base import BaseRepository
from .repositories.stock import StockRepository, SqliteStockRepository
from .repositories.memory import InMemoryStockRepository
from .repositories.alerts import SqliteAlertChannel

__all__ = [
    'BaseRepository',
    'StockRepository',
    'SqliteStockRepository',
    'InMemoryStockRepository',
    'SqliteAlertChannel',
]
