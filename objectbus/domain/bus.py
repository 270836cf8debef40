"""Unified notification bus for object mutations.

Every mutation in the editor is published here. High-frequency updates
(drag, resize) are coalesced to one delivery per frame per object,
low-priority updates are batched, and structural changes can bypass both.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from pydantic import ValidationError

from objectbus.config import BusConfig
from objectbus.domain.events import EventRecord, EventType, parse_event_type
from objectbus.domain.models import (
    BusCounters,
    BusStatistics,
    DeliveryMode,
    PublishOptions,
    SubscribeOptions,
    Subscription,
)
from objectbus.repos.memory import BatchQueueStore, SubscriptionRegistry, WindowStore
from objectbus.services.batching import BatchAggregator
from objectbus.services.coalescing import CoalescingScheduler
from objectbus.services.delivery import DeliveryEngine
from objectbus.services.housekeeping import Housekeeper
from objectbus.services.scheduling import Scheduler

logger = logging.getLogger(__name__)

Callback = Callable[[EventRecord], Any]
Unsubscribe = Callable[[], None]


def _noop() -> None:
    return None


class ObjectEventBus:
    """Publish/subscribe bus with immediate, coalesced and batched delivery.

    Everything runs on the caller's thread and on timers from *scheduler*;
    no two deliveries interleave. Construct one per application and pass it
    to collaborators.
    """

    def __init__(self, scheduler: Scheduler, config: BusConfig | None = None) -> None:
        self.config = config or BusConfig()
        self.scheduler = scheduler
        self.counters = BusCounters()

        self.registry = SubscriptionRegistry()
        self._windows = WindowStore()
        self._batches = BatchQueueStore(self.config.max_batch_size)

        self.delivery = DeliveryEngine(self.registry, self.counters)
        self.coalescer = CoalescingScheduler(
            scheduler, self.delivery, self.counters, self._windows, self.config.throttle_delay
        )
        self.batcher = BatchAggregator(
            scheduler, self.delivery, self.counters, self._batches, self.config.batch_delay
        )
        self.housekeeper = Housekeeper(
            scheduler,
            self.coalescer,
            self.config.housekeeping_interval,
            self.config.max_pending_windows,
        )
        self.housekeeper.start()

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def publish(
        self,
        event_type: EventType | str,
        subject_id: str,
        payload: Mapping[Any, Any] | None = None,
        options: PublishOptions | Mapping[str, Any] | None = None,
    ) -> bool:
        """Publish a change to *subject_id*.

        *options* may be a ``PublishOptions`` or a mapping of its fields.
        Returns False for an invalid call (missing or unknown event type,
        missing subject id, malformed payload or options) and when an
        immediate delivery had a failing subscriber. Never raises.
        """
        try:
            options = PublishOptions.model_validate(options if options is not None else {})
        except ValidationError:
            logger.exception(
                "publish: invalid options",
                extra={"event_type": str(event_type), "subject_id": str(subject_id)},
            )
            self.counters.error_count += 1
            return False

        resolved = parse_event_type(event_type)
        if resolved is None or subject_id is None or subject_id == "":
            logger.error(
                "publish: missing or unknown event type / subject id",
                extra={
                    "event_type": str(event_type),
                    "subject_id": str(subject_id),
                    "source": options.source,
                },
            )
            self.counters.error_count += 1
            return False

        try:
            event = EventRecord(
                event_type=resolved,
                subject_id=str(subject_id),
                payload=payload if payload is not None else {},
                timestamp=self.scheduler.now(),
                source=options.source,
            )
        except ValidationError:
            logger.exception(
                "publish: could not build event record",
                extra={"event_type": str(resolved), "source": options.source},
            )
            self.counters.error_count += 1
            return False

        self.counters.total_events += 1

        mode = options.mode
        if mode is DeliveryMode.BATCH:
            return self.batcher.submit(event)
        if mode is DeliveryMode.THROTTLE:
            return self.coalescer.submit(event)
        return self.delivery.deliver(event)

    # ------------------------------------------------------------------
    # Subscribing
    # ------------------------------------------------------------------

    def subscribe(
        self,
        event_type: EventType | str,
        callback: Callback,
        options: SubscribeOptions | Mapping[str, Any] | None = None,
    ) -> Unsubscribe:
        """Register *callback* and return a capability that removes it.

        An invalid call logs and returns a no-op capability. The capability
        is idempotent.
        """
        resolved = parse_event_type(event_type)
        try:
            options = SubscribeOptions.model_validate(options if options is not None else {})
        except ValidationError:
            options = None
        if resolved is None or not callable(callback) or options is None:
            logger.error(
                "subscribe: invalid event type, callback or options",
                extra={"event_type": str(event_type)},
            )
            return _noop

        fields: dict[str, Any] = {"callback": callback, "created_at": self.scheduler.now()}
        if options.subscriber_id:
            fields["subscription_id"] = options.subscriber_id
        subscription = Subscription(**fields)

        self.registry.add(resolved, subscription)
        self.counters.subscriber_count += 1

        def unsubscribe() -> None:
            if self.registry.remove(resolved, subscription):
                self.counters.subscriber_count -= 1

        return unsubscribe

    def subscribe_to_all(self, callback: Callback) -> Unsubscribe:
        """Subscribe to every event type known now; later additions are not covered."""
        unsubscribers = [self.subscribe(event_type, callback) for event_type in EventType]

        def unsubscribe_all() -> None:
            for unsubscribe in unsubscribers:
                unsubscribe()

        return unsubscribe_all

    # ------------------------------------------------------------------
    # Diagnostics and lifecycle
    # ------------------------------------------------------------------

    def get_statistics(self) -> BusStatistics:
        return BusStatistics(
            **self.counters.model_dump(),
            pending_windows=self.coalescer.pending,
            batch_queue_size=self.batcher.queued,
            batch_scheduled=self.batcher.scheduled,
            subscribers_by_type=self.registry.counts_by_type(),
        )

    def reset(self) -> None:
        """Cancel every timer, drop all subscriptions and queues, zero counters."""
        self.coalescer.cancel_all()
        self.batcher.cancel()
        self.registry.clear()
        self._batches.clear()
        self.counters.reset()

    def dispose(self) -> None:
        self.reset()
        self.housekeeper.stop()
