"""Trailing-edge coalescing of high-frequency events, one window per key."""

from __future__ import annotations

import logging
from functools import partial

from objectbus.domain.events import EventRecord
from objectbus.domain.models import BusCounters
from objectbus.repos.memory import CoalescingKey, WindowStore
from objectbus.services.delivery import DeliveryEngine
from objectbus.services.scheduling import Scheduler

logger = logging.getLogger(__name__)


class CoalescingScheduler:
    """Collapse bursts sharing (event type, subject id) into one delivery.

    The first event of a burst opens a window and schedules its timer;
    later events only replace the retained record. When the timer fires
    the most recent record is delivered, so a drag of N updates inside
    one window produces exactly one notification.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        delivery: DeliveryEngine,
        counters: BusCounters,
        windows: WindowStore,
        delay: float,
    ) -> None:
        self._scheduler = scheduler
        self._delivery = delivery
        self._counters = counters
        self._windows = windows
        self.delay = delay

    @property
    def pending(self) -> int:
        return len(self._windows)

    def submit(self, event: EventRecord) -> bool:
        key = event.coalescing_key
        window = self._windows.get(key)
        if window is not None:
            window.latest = event
            self._counters.coalesced_events += 1
            return True

        handle = self._scheduler.call_later(self.delay, partial(self._fire, key))
        self._windows.open(key, event, handle)
        return True

    def _fire(self, key: CoalescingKey) -> None:
        # Closed before delivery; a subscriber republishing this key opens a new window.
        window = self._windows.pop(key)
        if window is None:
            return
        self._delivery.deliver(window.latest)

    def cancel_all(self) -> int:
        """Drop every open window without delivering. Returns how many were open."""
        windows = self._windows.list_all()
        for window in windows:
            window.handle.cancel()
        self._windows.clear()
        return len(windows)
