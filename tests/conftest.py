"""
Pytest configuration for salon_os tests.
"""
import sys
import os
import pytest

# Add src directory to Python path so tests can import salon_os modules
src_path = os.path.abspath(os.path.join(os.path.dirname(__file__), "../src"))
sys.path.insert(0, src_path)


# ==============================================================================
# Stock record fixtures
# ==============================================================================

@pytest.fixture
def make_record():
    """
    Factory for stock records.

    Usage in tests:
        def test_something(make_record):
            record = make_record("shampoo", sealed=2, capacity=1000, open_ml=300)
    """
    from salon_os.stock.records import StockRecord

    def _make(product_id="shampoo", sealed=0, capacity=1000, open_ml=0, threshold=0, name=None):
        return StockRecord(
            product_id=product_id,
            sealed_containers=sealed,
            container_capacity_ml=capacity,
            open_remaining_ml=open_ml,
            min_stock_threshold_ml=threshold,
            name=name,
        )

    return _make


@pytest.fixture
def memory_repository():
    """Empty in-memory stock repository."""
    from salon_os.database.repositories.memory import InMemoryStockRepository
    return InMemoryStockRepository()


@pytest.fixture
def sqlite_repository(tmp_path):
    """SQLite stock repository in a throwaway database."""
    from salon_os.database.repositories.stock import SqliteStockRepository
    return SqliteStockRepository(str(tmp_path / "salon_stock.db"))


@pytest.fixture
def memory_channel():
    from salon_os.stock.alerts import MemoryChannel
    return MemoryChannel()


@pytest.fixture
def test_settings(tmp_path):
    """Settings pointing at a temporary directory, with a short lock timeout."""
    from salon_os.config.settings import SalonOSSettings
    return SalonOSSettings(
        db_path=str(tmp_path / "salon_stock.db"),
        catalog_path=str(tmp_path / "catalog.yaml"),
        lock_timeout_s=1.0,
    )


@pytest.fixture
def manager(memory_repository, memory_channel, test_settings):
    """InventoryManager over an in-memory repository, alerts captured in memory."""
    from salon_os.inventory_manager import InventoryManager
    from salon_os.stock.alerts import AlertEmitter

    emitter = AlertEmitter([memory_channel], emit_resolved=True)
    return InventoryManager(memory_repository, settings=test_settings, alert_emitter=emitter)
