"""Standard publish patterns used by editing tools and commands."""

from __future__ import annotations

from typing import Sequence

from objectbus.domain.bus import ObjectEventBus
from objectbus.domain.events import EventType
from objectbus.domain.models import PublishOptions

_TRANSFORM_EVENT_TYPES = {
    "position": EventType.TRANSFORM,
    "rotation": EventType.TRANSFORM,
    "scale": EventType.TRANSFORM,
    "transform": EventType.TRANSFORM,
    "batch": EventType.TRANSFORM,
    "hierarchy": EventType.HIERARCHY,
}


def event_type_for_transform(transform_type: str) -> EventType:
    """Map a tool's transform kind to its event type (TRANSFORM when unknown)."""
    return _TRANSFORM_EVENT_TYPES.get(transform_type, EventType.TRANSFORM)


def notify_transform(
    bus: ObjectEventBus,
    subject_id: str,
    transform_type: str,
    position: Sequence[float],
    rotation: Sequence[float],
    scale: Sequence[float],
    source: str = "TransformationManager",
) -> bool:
    """Publish a completed transform, coalesced for smooth real-time updates."""
    return bus.publish(
        event_type_for_transform(transform_type),
        subject_id,
        {
            "transform_type": transform_type,
            "position": list(position),
            "rotation": list(rotation),
            "scale": list(scale),
        },
        PublishOptions(throttle=True, source=source),
    )


def notify_lifecycle(
    bus: ObjectEventBus,
    subject_id: str,
    operation: str,
    source: str = "unknown",
) -> bool:
    """Publish a create/delete immediately; structural changes are never merged."""
    return bus.publish(
        EventType.LIFECYCLE,
        subject_id,
        {"operation": operation},
        PublishOptions(immediate=True, source=source),
    )
