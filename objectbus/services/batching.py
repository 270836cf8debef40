"""Deferred, deduplicated delivery of low-priority events."""

from __future__ import annotations

import logging

from objectbus.domain.events import EventRecord
from objectbus.domain.models import BusCounters
from objectbus.repos.memory import BatchQueueStore
from objectbus.services.delivery import DeliveryEngine
from objectbus.services.scheduling import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


def latest_per_subject(events: list[EventRecord]) -> list[EventRecord]:
    """Keep the last record per subject id.

    Subjects keep the position of their first appearance.
    """
    latest: dict[str, EventRecord] = {}
    for event in events:
        latest[event.subject_id] = event
    return list(latest.values())


class BatchAggregator:
    """Queue events per type and flush them all on one shared timer."""

    def __init__(
        self,
        scheduler: Scheduler,
        delivery: DeliveryEngine,
        counters: BusCounters,
        queues: BatchQueueStore,
        delay: float,
    ) -> None:
        self._scheduler = scheduler
        self._delivery = delivery
        self._counters = counters
        self._queues = queues
        self.delay = delay
        self._handle: TimerHandle | None = None

    @property
    def scheduled(self) -> bool:
        return self._handle is not None

    @property
    def queued(self) -> int:
        return len(self._queues)

    def submit(self, event: EventRecord) -> bool:
        evicted = self._queues.append(event)
        self._counters.batched_events += 1
        if evicted is not None:
            logger.debug(
                "Batch queue full for %s, dropped oldest entry",
                event.event_type,
                extra={"event_type": str(event.event_type), "subject_id": evicted.subject_id},
            )
        self._schedule()
        return True

    def _schedule(self) -> None:
        if self._handle is None:
            self._handle = self._scheduler.call_later(self.delay, self.flush)

    def flush(self) -> int:
        """Deliver every queued event type once per subject. Returns deliveries made."""
        delivered = 0
        failed = False
        try:
            for event_type in self._queues.event_types():
                for event in latest_per_subject(self._queues.take(event_type)):
                    self._delivery.deliver(event)
                    delivered += 1
        except Exception:
            failed = True
            self._counters.error_count += 1
            logger.exception("Batch flush failed")
        finally:
            self._handle = None

        # Events queued by subscribers during this flush get their own cycle.
        if not failed and len(self._queues):
            self._schedule()
        return delivered

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
