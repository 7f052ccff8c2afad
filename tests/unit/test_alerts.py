"""
Tests for the stock alert emitter and its channels.
"""
import logging

import pytest

from salon_os.stock.alerts import AlertChannel, AlertEmitter, LoggingChannel, MemoryChannel
from salon_os.stock.status import StockStatus


class _BrokenChannel(AlertChannel):
    def send(self, alert):
        raise RuntimeError("smtp down")


class TestAlertEmitter:

    def setup_method(self):
        self.channel = MemoryChannel()
        self.emitter = AlertEmitter([self.channel], emit_resolved=True)

    def test_downward_transition_fires(self):
        alert = self.emitter.on_status_change("dye", StockStatus.GOOD, StockStatus.LOW)

        assert alert is not None
        assert alert.kind == "alert"
        assert alert.level == "warning"
        assert self.channel.alerts == [alert]

    def test_out_is_an_error(self):
        alert = self.emitter.on_status_change("dye", StockStatus.LOW, StockStatus.OUT)
        assert alert.level == "error"

    def test_unchanged_status_is_silent(self):
        assert self.emitter.on_status_change("dye", StockStatus.LOW, StockStatus.LOW) is None
        assert self.channel.alerts == []

    def test_same_transition_fires_once(self):
        self.emitter.on_status_change("dye", StockStatus.GOOD, StockStatus.LOW)
        self.emitter.on_status_change("dye", StockStatus.GOOD, StockStatus.LOW)

        assert len(self.channel.alerts) == 1

    def test_products_are_tracked_separately(self):
        self.emitter.on_status_change("dye", StockStatus.GOOD, StockStatus.LOW)
        self.emitter.on_status_change("mask", StockStatus.GOOD, StockStatus.LOW)

        assert [a.product_id for a in self.channel.alerts] == ["dye", "mask"]

    def test_partial_recovery_is_silent(self):
        self.emitter.on_status_change("dye", StockStatus.LOW, StockStatus.CRITICAL)
        assert self.emitter.on_status_change("dye", StockStatus.CRITICAL, StockStatus.LOW) is None

        # dropping again after the partial recovery is a new alert
        again = self.emitter.on_status_change("dye", StockStatus.LOW, StockStatus.CRITICAL)
        assert again is not None
        assert len(self.channel.alerts) == 2

    def test_return_to_good_resolves(self):
        self.emitter.on_status_change("dye", StockStatus.GOOD, StockStatus.OUT)
        resolved = self.emitter.on_status_change("dye", StockStatus.OUT, StockStatus.GOOD)

        assert resolved.kind == "resolved"
        assert resolved.level == "info"
        assert self.channel.active() == []

    def test_recovery_without_prior_alert_is_silent(self):
        assert self.emitter.on_status_change("dye", StockStatus.OUT, StockStatus.GOOD) is None
        assert self.channel.alerts == []

        # a later drop still alerts
        assert self.emitter.on_status_change("dye", StockStatus.GOOD, StockStatus.LOW) is not None

    def test_stocked_low_then_topped_up_is_silent(self):
        assert self.emitter.on_status_change("dye", StockStatus.OUT, StockStatus.LOW) is None
        assert self.emitter.on_status_change("dye", StockStatus.LOW, StockStatus.GOOD) is None
        assert self.channel.alerts == []

    def test_resolved_events_can_be_switched_off(self):
        emitter = AlertEmitter([self.channel], emit_resolved=False)
        emitter.on_status_change("dye", StockStatus.GOOD, StockStatus.LOW)

        assert emitter.on_status_change("dye", StockStatus.LOW, StockStatus.GOOD) is None
        assert len(self.channel.alerts) == 1

    def test_evaluate_classifies_records(self, make_record):
        before = make_record("dye", sealed=1, capacity=500, threshold=200)
        after = make_record("dye", sealed=0, capacity=500, open_ml=150, threshold=200)

        alert = self.emitter.evaluate(before, after)

        assert alert.previous_status == StockStatus.GOOD
        assert alert.new_status == StockStatus.LOW
        assert alert.total_available_ml == after.total_available_ml
        assert "150" in alert.message

    def test_failing_channel_does_not_block_others(self, caplog):
        emitter = AlertEmitter([_BrokenChannel(), self.channel])

        with caplog.at_level(logging.ERROR, logger="salon_os.stock.alerts"):
            alert = emitter.on_status_change("dye", StockStatus.GOOD, StockStatus.OUT)

        assert self.channel.alerts == [alert]
        assert "_BrokenChannel" in caplog.text


class TestChannels:

    def test_logging_channel_uses_alert_level(self, caplog):
        emitter = AlertEmitter([LoggingChannel()])

        with caplog.at_level(logging.INFO, logger="salon_os.stock.alerts"):
            emitter.on_status_change("dye", StockStatus.LOW, StockStatus.OUT)

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert "dye" in record.getMessage()

    def test_default_channel_is_logging(self):
        emitter = AlertEmitter()
        assert len(emitter.channels) == 1
        assert isinstance(emitter.channels[0], LoggingChannel)

    def test_memory_channel_active_and_clear(self):
        channel = MemoryChannel()
        emitter = AlertEmitter([channel])
        emitter.on_status_change("dye", StockStatus.GOOD, StockStatus.LOW)
        emitter.on_status_change("mask", StockStatus.GOOD, StockStatus.CRITICAL)
        emitter.on_status_change("mask", StockStatus.CRITICAL, StockStatus.GOOD)

        assert [a.product_id for a in channel.active()] == ["dye"]

        channel.clear()
        assert channel.alerts == []


def test_abstract_channel_cannot_be_instantiated():
    with pytest.raises(TypeError):
        AlertChannel()
