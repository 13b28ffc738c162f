from __future__ import annotations

import logging
from datetime import datetime
from threading import Event, Thread
from typing import Callable, Optional

from croniter import CroniterError, croniter

from time_utils import format_tz_offset, now_in_tz, resolve_timezone

logger = logging.getLogger(__name__)

CRON_FIELDS = 5


class InvalidSchedule(ValueError):
    """Raised when a cron expression or time zone cannot be scheduled."""


def validate_cron(expression: str) -> str:
    if not isinstance(expression, str):
        raise InvalidSchedule(f"Cron expression must be a string, got {type(expression).__name__}")
    cleaned = " ".join(expression.split())
    if len(cleaned.split(" ")) != CRON_FIELDS or not croniter.is_valid(cleaned):
        raise InvalidSchedule(f"Invalid cron expression: {expression!r}")
    return cleaned


class CronTimer:
    """Calls ``callback`` at every match of a cron expression until stopped.

    Each timer owns one daemon thread that sleeps on a stop event until the
    next fire instant, evaluated in the timer's time zone.
    """

    def __init__(
        self,
        cron: str,
        time_zone: Optional[str],
        callback: Callable[[], None],
        name: str = "cron-timer",
    ):
        self.cron = validate_cron(cron)
        try:
            self.tzinfo = resolve_timezone(time_zone)
        except ValueError as exc:
            raise InvalidSchedule(str(exc)) from exc
        try:
            self.next_fire()
        except CroniterError as exc:
            raise InvalidSchedule(f"Cron expression {cron!r} never matches a real date") from exc
        self.callback = callback
        self.name = name
        self._stop_event = Event()
        self._thread: Optional[Thread] = None

    def next_fire(self, after: Optional[datetime] = None) -> datetime:
        base = after.astimezone(self.tzinfo) if after else now_in_tz(self.tzinfo)
        nxt = croniter(self.cron, base).get_next(datetime)
        if nxt.tzinfo is None:
            return nxt.replace(tzinfo=self.tzinfo)
        return nxt.astimezone(self.tzinfo)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()

    def _loop(self) -> None:
        fire_at = self._next_or_stop()
        while fire_at is not None and not self._stop_event.is_set():
            delay = (fire_at - now_in_tz(self.tzinfo)).total_seconds()
            if delay > 0:
                self._stop_event.wait(delay)
                continue
            self._fire(fire_at)
            # After a long suspend the missed slots collapse into this one fire.
            fire_at = self._next_or_stop(max(fire_at, now_in_tz(self.tzinfo)))

    def _next_or_stop(self, after: Optional[datetime] = None) -> Optional[datetime]:
        try:
            fire_at = self.next_fire(after)
        except CroniterError:
            logger.error("%s has no next fire time, stopping", self.name, exc_info=True)
            self._stop_event.set()
            return None
        logger.debug("%s next fire at %s (UTC%s)", self.name, fire_at.isoformat(), format_tz_offset(self.tzinfo))
        return fire_at

    def _fire(self, fire_at: datetime) -> None:
        logger.debug("%s firing for slot %s", self.name, fire_at.isoformat())
        try:
            self.callback()
        except Exception:
            logger.error("%s callback failed", self.name, exc_info=True)
