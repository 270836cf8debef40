"""Domain models for the notification bus."""

from __future__ import annotations

import uuid
from enum import StrEnum
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field

from objectbus.domain.events import EventRecord, EventType


class DeliveryMode(StrEnum):
    IMMEDIATE = "immediate"
    BATCH = "batch"
    THROTTLE = "throttle"
    DIRECT = "direct"


def _new_subscription_id() -> str:
    return f"sub_{uuid.uuid4().hex[:12]}"


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


class PublishOptions(BaseModel):
    """How a single publish call is routed.

    Only one mode applies per call: immediate > batch > throttle > direct.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    throttle: bool = True
    batch: bool = False
    immediate: bool = False
    source: str = "unknown"

    @property
    def mode(self) -> DeliveryMode:
        if self.immediate:
            return DeliveryMode.IMMEDIATE
        if self.batch:
            return DeliveryMode.BATCH
        if self.throttle:
            return DeliveryMode.THROTTLE
        return DeliveryMode.DIRECT


class SubscribeOptions(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    subscriber_id: str | None = Field(default=None, min_length=1)


# ---------------------------------------------------------------------------
# Registry entries and counters
# ---------------------------------------------------------------------------


class Subscription(BaseModel):
    model_config = ConfigDict(frozen=True)

    callback: Callable[[EventRecord], Any]
    subscription_id: str = Field(default_factory=_new_subscription_id)
    created_at: float = 0.0


class BusCounters(BaseModel):
    """Process-wide counters, zeroed by an explicit reset."""

    total_events: int = 0
    coalesced_events: int = 0
    batched_events: int = 0
    error_count: int = 0
    subscriber_count: int = 0

    def reset(self) -> None:
        for name in type(self).model_fields:
            setattr(self, name, 0)


class BusStatistics(BaseModel):
    """Snapshot returned by ``ObjectEventBus.get_statistics``."""

    total_events: int
    coalesced_events: int
    batched_events: int
    error_count: int
    subscriber_count: int
    pending_windows: int
    batch_queue_size: int
    batch_scheduled: bool
    subscribers_by_type: dict[str, int] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class PublishRequest(BaseModel):
    event_type: EventType
    subject_id: str = Field(min_length=1)
    payload: dict[str, Any] = Field(default_factory=dict)
    throttle: bool = True
    batch: bool = False
    immediate: bool = False
    source: str = "http"

    def options(self) -> PublishOptions:
        return PublishOptions(
            throttle=self.throttle,
            batch=self.batch,
            immediate=self.immediate,
            source=self.source,
        )


class PublishResponse(BaseModel):
    accepted: bool


class TickRequest(BaseModel):
    seconds: float = Field(default=0.0, ge=0)


class TickResponse(BaseModel):
    time: float
    statistics: BusStatistics
