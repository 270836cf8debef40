"""Notification types and the immutable record delivered to subscribers."""

from __future__ import annotations

from enum import StrEnum
from types import MappingProxyType
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class EventType(StrEnum):
    """Closed set of notification types routed through the bus.

    Adding a member is a contract change for every collaborator.
    """

    # Core editing
    TRANSFORM = "object:transform"  # position, rotation, scale
    GEOMETRY = "object:geometry"  # dimensions, vertices
    MATERIAL = "object:material"  # color, opacity, texture
    HIERARCHY = "object:hierarchy"  # parent/child relationships
    LIFECYCLE = "object:lifecycle"  # create, delete
    SELECTION = "object:selection"
    TOOL_STATE = "tool:state"

    # Parametric design
    PARAMETRIC_UPDATE = "parametric:update"
    CONSTRAINT_CHANGE = "parametric:constraint"
    FORMULA_UPDATE = "parametric:formula"
    DEPENDENCY_UPDATE = "parametric:dependency"

    # Component instancing
    INSTANCE_UPDATE = "component:instance"
    MASTER_CHANGE = "component:master"
    COMPONENT_SYNC = "component:sync"

    # Meta
    METADATA_CHANGE = "object:metadata"
    SYSTEM_STATE = "system:state"


def parse_event_type(value: Any) -> EventType | None:
    """Return the matching EventType, or None for empty/unknown values."""
    if not value:
        return None
    try:
        return EventType(value)
    except ValueError:
        return None


class EventRecord(BaseModel):
    """Fired once per publish call; never mutated after construction.

    The payload is a read-only view over a private copy, so subscribers in
    the same delivery pass all see what the publisher sent.
    """

    model_config = ConfigDict(frozen=True)

    event_type: EventType
    subject_id: str = Field(min_length=1)
    payload: Mapping[Any, Any] = Field(default_factory=dict)
    timestamp: float
    source: str = "unknown"

    @field_validator("payload", mode="after")
    @classmethod
    def _read_only_payload(cls, value: Mapping[Any, Any]) -> Mapping[Any, Any]:
        return MappingProxyType(dict(value))

    @field_serializer("payload")
    def _serialize_payload(self, value: Mapping[Any, Any]) -> dict[Any, Any]:
        return dict(value)

    @property
    def coalescing_key(self) -> tuple[EventType, str]:
        return (self.event_type, self.subject_id)
