from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AlarmRecord:
    number: int
    name: str
    cron: str
    time_zone: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "number": self.number,
            "cron": self.cron,
            "name": self.name,
        }
        if self.time_zone:
            data["timeZone"] = self.time_zone
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "AlarmRecord":
        number = data.get("number")
        if isinstance(number, bool) or not isinstance(number, int) or number < 1:
            raise ValueError(f"Alarm payload has invalid number: {number!r}")
        cron = data.get("cron")
        if not isinstance(cron, str):
            raise ValueError(f"Alarm #{number} payload missing cron")
        time_zone = data.get("timeZone") or data.get("time_zone")
        return cls(
            number=number,
            name=str(data.get("name") or f"Alarm {number}"),
            cron=cron,
            time_zone=str(time_zone) if time_zone else None,
        )


class JsonRecordStore:
    """Durable record store: a JSON document ``{"alarms": [...]}`` on disk."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> List[AlarmRecord]:
        if not self.path.exists():
            return []
        try:
            with self.path.open("r", encoding="utf-8") as f:
                payload = json.load(f)
        except Exception as exc:  # pragma: no cover - corrupted file
            logger.error("Failed to load alarms from %s: %s", self.path, exc)
            return []
        items = payload.get("alarms") if isinstance(payload, dict) else payload
        records: List[AlarmRecord] = []
        seen = set()
        for item in items or []:
            try:
                record = AlarmRecord.from_dict(item)
            except (ValueError, AttributeError) as exc:
                logger.warning("Skipping alarm item due to parse error: %s", exc)
                continue
            if record.number in seen:
                logger.warning("Skipping duplicate alarm #%s in %s", record.number, self.path)
                continue
            seen.add(record.number)
            records.append(record)
        return records

    def save(self, records: List[AlarmRecord]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        content = json.dumps({"alarms": [r.to_dict() for r in records]}, ensure_ascii=False, indent=2)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_path, str(self.path))
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise


class AlarmStore:
    """Authoritative in-memory alarm list, persisted in full on every change."""

    def __init__(self, record_store: JsonRecordStore):
        self.record_store = record_store
        self._records: List[AlarmRecord] = []

    def load(self) -> List[AlarmRecord]:
        self._records = list(self.record_store.load())
        logger.info("Loaded %s alarms from %s", len(self._records), getattr(self.record_store, "path", "store"))
        return self.all_records()

    def all_records(self) -> List[AlarmRecord]:
        return list(self._records)

    def get(self, number: int) -> Optional[AlarmRecord]:
        for record in self._records:
            if record.number == number:
                return record
        return None

    def next_number(self) -> int:
        number = 1
        for record in self._records:
            if record.number >= number:
                number = record.number + 1
        return number

    def insert(self, record: AlarmRecord) -> None:
        if self.get(record.number) is not None:
            raise ValueError(f"Alarm #{record.number} already exists")
        self._commit(self._records + [record])

    def replace(self, number: int, record: AlarmRecord) -> None:
        for index, existing in enumerate(self._records):
            if existing.number == number:
                updated = list(self._records)
                updated[index] = record
                self._commit(updated)
                return
        raise KeyError(number)

    def remove(self, number: int) -> bool:
        remaining = [r for r in self._records if r.number != number]
        if len(remaining) == len(self._records):
            return False
        self._commit(remaining)
        return True

    def _commit(self, records: List[AlarmRecord]) -> None:
        # Memory only changes once the durable copy has been written.
        self.record_store.save(records)
        self._records = records
        logger.debug("Persisted %s alarms", len(records))
