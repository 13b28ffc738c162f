from __future__ import annotations

import logging
from dataclasses import replace
from threading import Lock
from typing import List, Optional

import yaml

from .cron import InvalidSchedule
from .notifier import AlarmNotifier
from .scheduler import SchedulerRegistry
from .storage import AlarmRecord, AlarmStore

logger = logging.getLogger(__name__)

NOT_FOUND = "Not found."


def dump_yaml(payload) -> str:
    return yaml.safe_dump(payload, sort_keys=False, allow_unicode=True, default_flow_style=False)


def ringing_message(record: AlarmRecord) -> str:
    return f'Alarm "{record.name}" #{record.number} is ringing!'


class AlarmManager:
    """Keeps the alarm store and the live timers in lockstep.

    Every public operation is serialized by one lock; fire callbacks never
    take it and only read the record snapshot they were scheduled with.
    """

    def __init__(self, store: AlarmStore, registry: SchedulerRegistry, notifier: AlarmNotifier):
        self.store = store
        self.registry = registry
        self.notifier = notifier
        self._lock = Lock()

    def start(self) -> List[AlarmRecord]:
        with self._lock:
            records = self.store.load()
            for record in records:
                try:
                    self.registry.schedule(record, self._on_fire)
                except InvalidSchedule as exc:
                    logger.error("Alarm #%s left unscheduled: %s", record.number, exc)
        logger.info("Startup scheduled %s of %s alarms", len(self.registry.scheduled_numbers()), len(records))
        return records

    def shutdown(self) -> None:
        with self._lock:
            self.registry.shutdown()
        self.notifier.silence()

    def create_alarm(self, cron: str, name: str, time_zone: Optional[str] = None) -> str:
        if not name or not str(name).strip():
            raise ValueError("Alarm name must not be empty.")
        with self._lock:
            record = AlarmRecord(
                number=self.store.next_number(),
                name=str(name).strip(),
                cron=cron,
                time_zone=(time_zone or "").strip() or None,
            )
            self.store.insert(record)
            # Record stays persisted if scheduling fails; the error reaches the caller.
            self.registry.schedule(record, self._on_fire)
        logger.info("Alarm #%s created (name=%s)", record.number, record.name)
        return f'Alarm "{record.name}" #{record.number} has been scheduled.\n{dump_yaml(record.to_dict())}'

    def get_alarms(self) -> str:
        return dump_yaml([r.to_dict() for r in self.store.all_records()]).strip()

    def delete_alarm(self, number: int) -> str:
        with self._lock:
            record = self.store.get(number)
            if record is None:
                return NOT_FOUND
            self.store.remove(number)
            self.registry.unschedule(number)
        logger.info("Alarm #%s deleted", number)
        return f"Alarm #{number} has been deleted."

    def update_alarm(
        self,
        number: int,
        cron: Optional[str] = None,
        name: Optional[str] = None,
        time_zone: Optional[str] = None,
    ) -> str:
        with self._lock:
            existing = self.store.get(number)
            if existing is None:
                return f"Alarm #{number} not found."
            updated = merge_update(existing, cron=cron, name=name, time_zone=time_zone)
            self.store.replace(number, updated)
            self.registry.unschedule(number)
            self.registry.schedule(updated, self._on_fire)
        logger.info("Alarm #%s updated", number)
        return f"Alarm #{number} has been updated.\n{dump_yaml(updated.to_dict())}"

    def _on_fire(self, record: AlarmRecord) -> None:
        logger.info("Alarm #%s fired (name=%s)", record.number, record.name)
        self.notifier.activate()
        self.notifier.send_message(ringing_message(record))


def merge_update(
    record: AlarmRecord,
    cron: Optional[str] = None,
    name: Optional[str] = None,
    time_zone: Optional[str] = None,
) -> AlarmRecord:
    """Overlay supplied fields on ``record``.

    ``None`` keeps a field. Blank ``cron``/``name`` also keep theirs since
    neither may be empty; an empty ``time_zone`` clears it to the local zone.
    """
    changes = {}
    if cron is not None and cron.strip():
        changes["cron"] = cron
    if name is not None and name.strip():
        changes["name"] = name.strip()
    if time_zone is not None:
        changes["time_zone"] = time_zone.strip() or None
    return replace(record, **changes)
