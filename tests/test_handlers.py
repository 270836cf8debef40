"""Tests for collaborator helpers: subscription groups, recorder, notify_*."""

from __future__ import annotations

import pytest

from objectbus.config import BusConfig
from objectbus.domain.bus import ObjectEventBus
from objectbus.domain.events import EventType
from objectbus.domain.handlers import EventRecorder, SubscriptionGroup
from objectbus.domain.models import PublishOptions
from objectbus.services.notifications import (
    event_type_for_transform,
    notify_lifecycle,
    notify_transform,
)
from objectbus.services.scheduling import VirtualScheduler

_WINDOW = BusConfig().throttle_delay


@pytest.fixture()
def scheduler():
    return VirtualScheduler()


@pytest.fixture()
def bus(scheduler):
    return ObjectEventBus(scheduler)


# ---------------------------------------------------------------------------
# SubscriptionGroup
# ---------------------------------------------------------------------------


def test_group_disposes_all_subscriptions(bus):
    group = SubscriptionGroup(bus, owner="PropertyPanelSync")
    for event_type in (EventType.TRANSFORM, EventType.GEOMETRY, EventType.MATERIAL):
        group.subscribe(event_type, lambda e: None)
    assert len(group) == 3
    assert bus.get_statistics().subscriber_count == 3

    group.dispose()
    group.dispose()

    assert len(group) == 0
    assert bus.get_statistics().subscriber_count == 0


def test_group_names_subscriptions_after_owner(bus):
    group = SubscriptionGroup(bus, owner="PropertyPanelSync")
    group.subscribe(EventType.MASTER_CHANGE, lambda e: None)

    [subscription] = bus.registry.list_for_type(EventType.MASTER_CHANGE)
    assert subscription.subscription_id == "PropertyPanelSync_master_change"


def test_group_accepts_external_capabilities(bus):
    group = SubscriptionGroup(bus)
    group.add(bus.subscribe_to_all(lambda e: None))

    group.dispose()

    assert bus.get_statistics().subscriber_count == 0


# ---------------------------------------------------------------------------
# EventRecorder
# ---------------------------------------------------------------------------


def test_recorder_sees_every_type(bus):
    recorder = EventRecorder(bus)

    bus.publish(EventType.SELECTION, "obj-1", {}, PublishOptions(immediate=True))
    bus.publish(EventType.TOOL_STATE, "move", {}, PublishOptions(immediate=True))
    bus.publish(EventType.SELECTION, "obj-2", {}, PublishOptions(immediate=True))

    assert recorder.counts == {"object:selection": 2, "tool:state": 1}
    assert [e.subject_id for e in recorder.for_subject("obj-2")] == ["obj-2"]


def test_recorder_keeps_only_recent_events(bus):
    recorder = EventRecorder(bus, limit=2)

    for i in range(4):
        bus.publish(EventType.METADATA_CHANGE, f"obj-{i}", {}, PublishOptions(immediate=True))

    assert [e.subject_id for e in recorder.events] == ["obj-2", "obj-3"]
    assert recorder.counts["object:metadata"] == 4


def test_recorder_detach(bus):
    recorder = EventRecorder(bus)
    recorder.detach()
    recorder.detach()

    bus.publish(EventType.SELECTION, "obj-1", {}, PublishOptions(immediate=True))

    assert list(recorder.events) == []
    assert bus.get_statistics().subscriber_count == 0


# ---------------------------------------------------------------------------
# Notification helpers
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "transform_type, expected",
    [
        ("position", EventType.TRANSFORM),
        ("rotation", EventType.TRANSFORM),
        ("scale", EventType.TRANSFORM),
        ("batch", EventType.TRANSFORM),
        ("hierarchy", EventType.HIERARCHY),
        ("shear", EventType.TRANSFORM),
    ],
)
def test_event_type_for_transform(transform_type, expected):
    assert event_type_for_transform(transform_type) is expected


def test_notify_transform_is_coalesced(bus, scheduler):
    recorder = EventRecorder(bus)

    notify_transform(bus, "obj-1", "position", (0, 0, 0), (0, 0, 0), (1, 1, 1))
    notify_transform(bus, "obj-1", "position", (5, 0, 0), (0, 0, 0), (1, 1, 1))
    assert list(recorder.events) == []

    scheduler.advance(_WINDOW * 2)

    [event] = recorder.events
    assert event.event_type is EventType.TRANSFORM
    assert event.source == "TransformationManager"
    assert event.payload == {
        "transform_type": "position",
        "position": [5, 0, 0],
        "rotation": [0, 0, 0],
        "scale": [1, 1, 1],
    }


def test_notify_lifecycle_is_immediate(bus):
    recorder = EventRecorder(bus)

    assert notify_lifecycle(bus, "obj-9", "delete", source="DeleteObjectCommand") is True

    [event] = recorder.events
    assert event.event_type is EventType.LIFECYCLE
    assert event.payload == {"operation": "delete"}
    assert event.source == "DeleteObjectCommand"
