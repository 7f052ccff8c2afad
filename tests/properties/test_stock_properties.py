"""
Property-based tests for stock conservation.

Whatever sequence of consumptions and restocks is applied, the ledger has to
balance:

    total_before + restocked - consumed == total_after

and no record may ever hold a negative or over-full open container.
"""

from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from salon_os.database.repositories.memory import InMemoryStockRepository
from salon_os.stock.consumption import consume
from salon_os.stock.locks import ProductLockManager
from salon_os.stock.restock import restock
from salon_os.stock.sale import SaleCoordinator, SaleLine, SaleRequest
from salon_os.stock.status import classify

# Import shared strategies
import sys
sys.path.insert(0, str(__file__).rsplit("/", 2)[0])
from strategies import (
    consumption_sequence,
    ml_volume,
    sale_requirements,
    stock_record,
)


def assert_well_formed(record):
    assert record.sealed_containers >= 0
    assert 0 <= record.open_remaining_ml < record.container_capacity_ml, (
        f"open container out of range: {record.open_remaining_ml} / {record.container_capacity_ml}"
    )


@pytest.mark.hypothesis
class TestConsumptionProperties:

    @given(record=stock_record(), requested=ml_volume("0.001", "30000"))
    @settings(max_examples=200, deadline=None)
    def test_conservation(self, record, requested):
        result = consume(record, requested)

        assert record.total_available_ml - result.consumed_ml == result.record.total_available_ml
        assert result.consumed_ml + result.shortfall_ml == result.requested_ml
        assert_well_formed(result.record)

    @given(record=stock_record(), requested=ml_volume("0.001", "30000"))
    @settings(max_examples=200, deadline=None)
    def test_shortfall_only_when_stock_runs_out(self, record, requested):
        result = consume(record, requested)

        if requested <= record.total_available_ml:
            assert result.satisfied
        else:
            assert result.consumed_ml == record.total_available_ml
            assert result.record.total_available_ml == 0

    @given(record=stock_record())
    @settings(max_examples=100, deadline=None)
    def test_exact_exhaustion(self, record):
        result = consume(record, record.total_available_ml)

        assert result.record.total_available_ml == 0
        assert result.record.sealed_containers == 0
        assert result.record.open_remaining_ml == 0

    @given(record=stock_record(), steps=consumption_sequence(), added=st.integers(min_value=1, max_value=5))
    @settings(max_examples=100, deadline=None)
    def test_sequence_balances(self, record, steps, added):
        start = record.total_available_ml
        consumed = Decimal("0")

        for i, ml in enumerate(steps):
            if i == len(steps) // 2:
                record = restock(record, added)
            result = consume(record, ml)
            consumed += result.consumed_ml
            record = result.record
            assert_well_formed(record)

        assert start + added * record.container_capacity_ml - consumed == record.total_available_ml

    @given(total=ml_volume("0", "10000"), threshold=ml_volume("0", "10000"))
    @settings(max_examples=100, deadline=None)
    def test_classification_is_pure(self, total, threshold):
        assert classify(total, threshold) == classify(total, threshold)


@pytest.mark.hypothesis
class TestSaleProperties:

    @given(
        records=st.tuples(
            stock_record(product_id="color_cream"),
            stock_record(product_id="developer"),
            stock_record(product_id="shampoo"),
        ),
        lines=sale_requirements(),
    )
    @settings(max_examples=100, deadline=None)
    def test_all_or_nothing(self, records, lines):
        repo = InMemoryStockRepository(records)
        coordinator = SaleCoordinator(repo, locks=ProductLockManager(timeout_s=1.0))
        before = {r.product_id: r for r in records}
        sale = SaleRequest(
            sale_id="S-prop",
            lines=tuple(SaleLine(service_id, reqs) for service_id, reqs in lines),
        )

        outcome = coordinator.process_sale(sale)

        after = {r.product_id: r for r in repo.all_records()}
        combined = sale.combined_requirements()
        if outcome.committed:
            for product_id, required in combined.items():
                assert before[product_id].total_available_ml - required == after[product_id].total_available_ml
                assert_well_formed(after[product_id])
            assert sum(e.ml_consumed for e in repo.list_logs()) == sum(combined.values())
        else:
            assert after == before
            assert repo.list_logs() == []
            assert any(
                combined[s.product_id] > before[s.product_id].total_available_ml
                for s in outcome.rejection.shortfalls
            )
