"""Tests for the housekeeping sweep, statistics, reset and dispose."""

from __future__ import annotations

import logging

import pytest

from objectbus.config import BusConfig
from objectbus.domain.bus import ObjectEventBus
from objectbus.domain.events import EventType
from objectbus.domain.models import PublishOptions
from objectbus.services.housekeeping import Housekeeper
from objectbus.services.scheduling import VirtualScheduler

CONFIG = BusConfig(housekeeping_interval=60.0, max_pending_windows=3)


class _StuckScheduler(VirtualScheduler):
    """Coalescing timers never come due; everything else behaves normally."""

    def call_later(self, delay, callback):
        if delay == CONFIG.throttle_delay:
            delay = 10_000.0
        return super().call_later(delay, callback)


@pytest.fixture()
def scheduler():
    return VirtualScheduler()


@pytest.fixture()
def bus(scheduler):
    return ObjectEventBus(scheduler, config=CONFIG)


def test_housekeeping_starts_with_bus(bus, scheduler):
    assert bus.housekeeper.running is True
    assert scheduler.pending == 1


def test_sweep_leaves_healthy_windows_alone(bus):
    for i in range(CONFIG.max_pending_windows):
        bus.publish(EventType.TRANSFORM, f"obj-{i}", {}, PublishOptions(throttle=True))

    assert bus.housekeeper.sweep() is False
    assert bus.get_statistics().pending_windows == CONFIG.max_pending_windows


def test_sweep_clears_stuck_windows(caplog):
    scheduler = _StuckScheduler()
    bus = ObjectEventBus(scheduler, config=CONFIG)
    received = []
    bus.subscribe(EventType.TRANSFORM, received.append)

    for i in range(CONFIG.max_pending_windows + 2):
        bus.publish(EventType.TRANSFORM, f"obj-{i}", {}, PublishOptions(throttle=True))
    assert bus.get_statistics().pending_windows == 5

    with caplog.at_level(logging.WARNING, logger="objectbus.services.housekeeping"):
        scheduler.advance(CONFIG.housekeeping_interval)

    assert bus.get_statistics().pending_windows == 0
    assert "Clearing 5 stuck coalescing windows" in caplog.text

    scheduler.advance(20_000.0)
    assert received == []


def test_sweep_repeats_every_interval(bus, scheduler, monkeypatch):
    sweeps = []
    monkeypatch.setattr(bus.housekeeper, "sweep", lambda: sweeps.append(scheduler.now()))

    scheduler.advance(CONFIG.housekeeping_interval * 3)

    assert sweeps == [60.0, 120.0, 180.0]
    assert bus.housekeeper.running is True


def test_housekeeper_start_is_idempotent(scheduler, bus):
    keeper = Housekeeper(scheduler, bus.coalescer, interval=1.0, max_pending=1)
    keeper.start()
    keeper.start()

    assert scheduler.pending == 2  # bus housekeeper + this one
    keeper.stop()
    assert keeper.running is False


def test_statistics_snapshot(bus):
    bus.subscribe(EventType.TRANSFORM, lambda e: None)
    bus.subscribe(EventType.MATERIAL, lambda e: None)
    bus.publish(EventType.TRANSFORM, "obj-1", {}, PublishOptions(throttle=True))
    bus.publish(EventType.TRANSFORM, "obj-1", {}, PublishOptions(throttle=True))
    bus.publish(EventType.MATERIAL, "obj-1", {}, PublishOptions(batch=True))

    stats = bus.get_statistics()

    assert stats.total_events == 3
    assert stats.coalesced_events == 1
    assert stats.batched_events == 1
    assert stats.error_count == 0
    assert stats.subscriber_count == 2
    assert stats.pending_windows == 1
    assert stats.batch_queue_size == 1
    assert stats.batch_scheduled is True
    assert stats.subscribers_by_type == {"object:transform": 1, "object:material": 1}


def test_reset_zeroes_everything(bus, scheduler):
    received = []
    bus.subscribe(EventType.TRANSFORM, received.append)
    bus.subscribe(EventType.TRANSFORM, lambda e: 1 / 0)
    bus.publish(EventType.TRANSFORM, "obj-1", {}, PublishOptions(immediate=True))
    bus.publish(EventType.TRANSFORM, "obj-1", {}, PublishOptions(throttle=True))
    bus.publish(EventType.TRANSFORM, "obj-1", {}, PublishOptions(throttle=True))
    bus.publish(EventType.GEOMETRY, "obj-1", {}, PublishOptions(batch=True))
    bus.publish("", "obj-1")

    bus.reset()

    stats = bus.get_statistics()
    assert stats.total_events == 0
    assert stats.coalesced_events == 0
    assert stats.batched_events == 0
    assert stats.error_count == 0
    assert stats.subscriber_count == 0
    assert stats.pending_windows == 0
    assert stats.batch_queue_size == 0
    assert stats.batch_scheduled is False
    assert stats.subscribers_by_type == {}

    # Cancelled timers never deliver.
    scheduler.advance(1.0)
    assert len(received) == 1


def test_reset_keeps_housekeeping_running(bus):
    bus.reset()

    assert bus.housekeeper.running is True


def test_dispose_stops_housekeeping(bus, scheduler):
    bus.subscribe(EventType.TRANSFORM, lambda e: None)

    bus.dispose()
    bus.dispose()

    assert bus.housekeeper.running is False
    assert scheduler.pending == 0
    assert bus.get_statistics().subscriber_count == 0
