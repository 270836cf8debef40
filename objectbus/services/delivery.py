"""Service for invoking subscribers with a resolved event."""

from __future__ import annotations

import logging

from objectbus.domain.events import EventRecord
from objectbus.domain.models import BusCounters
from objectbus.repos.memory import SubscriptionRegistry

logger = logging.getLogger(__name__)


class DeliveryEngine:
    """Calls every live subscriber of an event type in subscription order.

    A subscriber that raises is logged and counted but stays subscribed,
    and the remaining subscribers still run.
    """

    def __init__(self, registry: SubscriptionRegistry, counters: BusCounters) -> None:
        self._registry = registry
        self._counters = counters

    def deliver(self, event: EventRecord) -> bool:
        """Return True when no subscriber failed (including when there are none)."""
        subscriptions = self._registry.list_for_type(event.event_type)
        if not subscriptions:
            return True

        failures = 0
        for subscription in subscriptions:
            # Skip anything unsubscribed by an earlier callback in this pass.
            if not self._registry.is_live(subscription):
                continue
            try:
                subscription.callback(event)
            except Exception:
                failures += 1
                self._counters.error_count += 1
                logger.exception(
                    "Subscriber error for %s",
                    event.event_type,
                    extra={
                        "event_type": str(event.event_type),
                        "subject_id": event.subject_id,
                        "subscriber_id": subscription.subscription_id,
                    },
                )
        return failures == 0
