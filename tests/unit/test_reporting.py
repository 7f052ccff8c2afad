"""
Tests for dashboard views and DataFrame exports.
"""
from datetime import datetime
from decimal import Decimal

from salon_os.stock.records import ConsumptionLogEntry
from salon_os.stock.reporting import (
    ProductStockStatus,
    active_alerts,
    consumption_dataframe,
    inventory_status,
    status_dataframe,
)
from salon_os.stock.status import SINGLE_TIER_POLICY, StockStatus


def test_status_from_record(make_record):
    status = ProductStockStatus.from_record(make_record(sealed=1, capacity=500, open_ml=20, threshold=600))

    assert status.total_available_ml == Decimal("520")
    assert status.status == StockStatus.LOW


def test_active_alerts_worst_first(make_record):
    records = [
        make_record("a", sealed=0, open_ml=90, threshold=100, name="A"),
        make_record("b", sealed=0, open_ml=0, threshold=100, name="B"),
        make_record("c", sealed=0, open_ml=40, threshold=100, name="C"),
        make_record("d", sealed=2, threshold=100, name="D"),
    ]

    flagged = active_alerts(records)

    assert [(s.product_id, s.status) for s in flagged] == [
        ("b", StockStatus.OUT),
        ("c", StockStatus.CRITICAL),
        ("a", StockStatus.LOW),
    ]


def test_policy_is_passed_through(make_record):
    records = [make_record("c", sealed=0, open_ml=40, threshold=100)]
    assert inventory_status(records, SINGLE_TIER_POLICY)[0].status == StockStatus.LOW


def test_status_dataframe(make_record):
    df = status_dataframe([make_record("dye", sealed=2, capacity=250, open_ml="12.5", threshold=100)])

    row = df.iloc[0]
    assert row["product_id"] == "dye"
    assert row["total_available_ml"] == 512.5
    assert row["status"] == "good"


def test_empty_dataframes_keep_columns():
    assert "status" in status_dataframe([]).columns
    assert "ml_consumed" in consumption_dataframe([]).columns


def test_consumption_dataframe():
    entry = ConsumptionLogEntry(
        product_id="dye",
        ml_consumed=Decimal("60"),
        containers_opened=1,
        sealed_before=2,
        sealed_after=1,
        open_before_ml=Decimal("0"),
        open_after_ml=Decimal("940"),
        sale_id="S-1",
        service_id="coloration",
        created_at=datetime(2024, 5, 4, 15, 0),
    )

    df = consumption_dataframe([entry, entry])

    assert len(df) == 2
    assert df["ml_consumed"].sum() == 120.0
    assert set(df["service_id"]) == {"coloration"}
