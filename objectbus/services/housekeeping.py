"""Periodic safety sweep over outstanding coalescing windows."""

from __future__ import annotations

import logging

from objectbus.services.coalescing import CoalescingScheduler
from objectbus.services.scheduling import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class Housekeeper:
    """Circuit breaker for coalescing timers that never fire.

    Every *interval* seconds, if more than *max_pending* windows are open,
    all of them are dropped undelivered.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        coalescer: CoalescingScheduler,
        interval: float,
        max_pending: int,
    ) -> None:
        self._scheduler = scheduler
        self._coalescer = coalescer
        self.interval = interval
        self.max_pending = max_pending
        self._handle: TimerHandle | None = None

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        if self._handle is None:
            self._handle = self._scheduler.call_later(self.interval, self._tick)

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _tick(self) -> None:
        self._handle = None
        self.sweep()
        self.start()

    def sweep(self) -> bool:
        """Return True when the breaker tripped."""
        pending = self._coalescer.pending
        if pending <= self.max_pending:
            return False
        logger.warning(
            "Clearing %d stuck coalescing windows", pending, extra={"pending": pending}
        )
        self._coalescer.cancel_all()
        return True
