"""Helpers for collaborators that hold bus subscriptions."""

from __future__ import annotations

from collections import Counter, deque
from typing import Callable

from objectbus.domain.bus import Callback, ObjectEventBus, Unsubscribe
from objectbus.domain.events import EventRecord, EventType
from objectbus.domain.models import SubscribeOptions


class SubscriptionGroup:
    """Collects a collaborator's unsubscribe capabilities for one-shot teardown.

    A property panel, for example, subscribes to a handful of event types
    at startup and releases all of them when it closes.
    """

    def __init__(self, bus: ObjectEventBus, owner: str | None = None) -> None:
        self.bus = bus
        self.owner = owner
        self._unsubscribers: list[Unsubscribe] = []

    def subscribe(self, event_type: EventType, callback: Callback) -> Unsubscribe:
        options = None
        if self.owner:
            options = SubscribeOptions(subscriber_id=f"{self.owner}_{event_type.name.lower()}")
        return self.add(self.bus.subscribe(event_type, callback, options))

    def add(self, unsubscribe: Unsubscribe) -> Unsubscribe:
        self._unsubscribers.append(unsubscribe)
        return unsubscribe

    def dispose(self) -> None:
        while self._unsubscribers:
            self._unsubscribers.pop()()

    def __len__(self) -> int:
        return len(self._unsubscribers)


class EventRecorder:
    """Debug subscriber that watches every event type.

    Keeps the most recent *limit* records and a running count per type.
    """

    def __init__(self, bus: ObjectEventBus, limit: int = 100) -> None:
        self.bus = bus
        self.events: deque[EventRecord] = deque(maxlen=limit)
        self.counts: Counter[str] = Counter()
        self._detach: Callable[[], None] | None = bus.subscribe_to_all(self.on_event)

    def on_event(self, event: EventRecord) -> None:
        self.events.append(event)
        self.counts[str(event.event_type)] += 1

    def for_subject(self, subject_id: str) -> list[EventRecord]:
        return [e for e in self.events if e.subject_id == subject_id]

    def detach(self) -> None:
        if self._detach is not None:
            self._detach()
            self._detach = None
