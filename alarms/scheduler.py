from __future__ import annotations

import logging
from threading import Lock
from typing import Callable, Dict, List

from .cron import CronTimer
from .storage import AlarmRecord

logger = logging.getLogger(__name__)


class SchedulerRegistry:
    """Owns the live timers, one per scheduled alarm number."""

    def __init__(self, timer_factory: Callable[..., CronTimer] = CronTimer):
        self.timer_factory = timer_factory
        self._jobs: Dict[int, CronTimer] = {}
        self._lock = Lock()

    def schedule(self, record: AlarmRecord, on_fire: Callable[[AlarmRecord], None]) -> None:
        """Start a timer calling ``on_fire(record)`` on every match.

        An existing entry for the same number is overwritten, not stopped;
        callers unschedule before replacing. Raises ``InvalidSchedule``
        without touching the registry when the cron or zone is bad.
        """
        snapshot = record
        timer = self.timer_factory(
            snapshot.cron,
            snapshot.time_zone,
            lambda: on_fire(snapshot),
            name=f"alarm-{snapshot.number}",
        )
        timer.start()
        with self._lock:
            self._jobs[snapshot.number] = timer
        logger.info(
            "Scheduled alarm #%s (cron=%r, tz=%s)", snapshot.number, snapshot.cron, snapshot.time_zone or "local"
        )

    def unschedule(self, number: int) -> bool:
        with self._lock:
            timer = self._jobs.pop(number, None)
        if timer is None:
            return False
        timer.stop()
        logger.info("Unscheduled alarm #%s", number)
        return True

    def is_scheduled(self, number: int) -> bool:
        with self._lock:
            return number in self._jobs

    def scheduled_numbers(self) -> List[int]:
        with self._lock:
            return sorted(self._jobs)

    def shutdown(self) -> None:
        with self._lock:
            timers = list(self._jobs.values())
            self._jobs.clear()
        for timer in timers:
            timer.stop()
        logger.info("Stopped %s alarm timers", len(timers))
