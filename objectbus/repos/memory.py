"""In-memory stores backing the bus: subscriptions, coalescing windows, batches."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

from objectbus.domain.events import EventRecord, EventType
from objectbus.domain.models import Subscription
from objectbus.services.scheduling import TimerHandle

CoalescingKey = tuple[EventType, str]


class SubscriptionRegistry:
    """List-backed buckets of subscriptions, keyed by event type.

    Buckets keep insertion order and are dropped as soon as they empty.
    Liveness is tracked by object identity, so delivery passes working on
    a snapshot can skip entries removed mid-pass in constant time.
    """

    def __init__(self) -> None:
        self._buckets: dict[EventType, list[Subscription]] = {}
        self._live: set[int] = set()

    def add(self, event_type: EventType, subscription: Subscription) -> None:
        self._buckets.setdefault(event_type, []).append(subscription)
        self._live.add(id(subscription))

    def remove(self, event_type: EventType, subscription: Subscription) -> bool:
        """Remove *subscription* by identity. Returns False if it was not live."""
        if id(subscription) not in self._live:
            return False
        bucket = self._buckets[event_type]
        for index, existing in enumerate(bucket):
            if existing is subscription:
                del bucket[index]
                break
        self._live.discard(id(subscription))
        if not bucket:
            del self._buckets[event_type]
        return True

    def is_live(self, subscription: Subscription) -> bool:
        return id(subscription) in self._live

    def list_for_type(self, event_type: EventType) -> list[Subscription]:
        return list(self._buckets.get(event_type, ()))

    def counts_by_type(self) -> dict[str, int]:
        return {str(t): len(bucket) for t, bucket in self._buckets.items()}

    def event_types(self) -> list[EventType]:
        return list(self._buckets)

    def clear(self) -> None:
        self._buckets.clear()
        self._live.clear()

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._buckets.values())


@dataclass
class CoalescingWindow:
    latest: EventRecord
    handle: TimerHandle


class WindowStore:
    """Dict-backed store of open coalescing windows, one per key."""

    def __init__(self) -> None:
        self._windows: dict[CoalescingKey, CoalescingWindow] = {}

    def open(self, key: CoalescingKey, event: EventRecord, handle: TimerHandle) -> None:
        self._windows[key] = CoalescingWindow(latest=event, handle=handle)

    def get(self, key: CoalescingKey) -> CoalescingWindow | None:
        return self._windows.get(key)

    def pop(self, key: CoalescingKey) -> CoalescingWindow | None:
        return self._windows.pop(key, None)

    def list_all(self) -> list[CoalescingWindow]:
        return list(self._windows.values())

    def clear(self) -> None:
        self._windows.clear()

    def __len__(self) -> int:
        return len(self._windows)


class BatchQueueStore:
    """Bounded per-type queues; the oldest entry is evicted on overflow."""

    def __init__(self, max_length: int) -> None:
        self.max_length = max_length
        self._queues: dict[EventType, deque[EventRecord]] = {}

    def append(self, event: EventRecord) -> EventRecord | None:
        """Queue *event*, returning the record evicted to make room, if any."""
        queue = self._queues.get(event.event_type)
        if queue is None:
            queue = self._queues[event.event_type] = deque(maxlen=self.max_length)
        evicted = queue[0] if len(queue) == self.max_length else None
        queue.append(event)
        return evicted

    def list_for_type(self, event_type: EventType) -> list[EventRecord]:
        return list(self._queues.get(event_type, ()))

    def take(self, event_type: EventType) -> list[EventRecord]:
        """Return and clear everything queued for *event_type*."""
        queue = self._queues.get(event_type)
        if queue is None:
            return []
        events = list(queue)
        queue.clear()
        return events

    def event_types(self) -> list[EventType]:
        return [t for t, queue in self._queues.items() if queue]

    def clear(self) -> None:
        self._queues.clear()

    def __len__(self) -> int:
        return sum(len(queue) for queue in self._queues.values())
