from typing import Callable, List, Optional

import pytest

from alarms.cron import CronTimer
from alarms.manager import AlarmManager
from alarms.scheduler import SchedulerRegistry
from alarms.storage import AlarmStore, JsonRecordStore


class FakeTimer:
    """Stands in for CronTimer: validates through it, but only fires on demand."""

    created: List["FakeTimer"] = []

    def __init__(self, cron: str, time_zone: Optional[str], callback: Callable[[], None], name: str = ""):
        self.cron = CronTimer(cron, time_zone, callback, name=name).cron
        self.time_zone = time_zone
        self.callback = callback
        self.name = name
        self.started = False
        self.stopped = False
        FakeTimer.created.append(self)

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def fire(self) -> None:
        if self.started and not self.stopped:
            self.callback()


class FakeNotifier:
    def __init__(self):
        self.activations = 0
        self.messages: List[str] = []
        self.silenced = False

    def activate(self) -> None:
        self.activations += 1

    def send_message(self, text: str) -> None:
        self.messages.append(text)

    def silence(self) -> None:
        self.silenced = True


@pytest.fixture
def timers():
    FakeTimer.created = []
    yield FakeTimer.created
    FakeTimer.created = []


@pytest.fixture
def live_timer(timers):
    def _find(number: int) -> FakeTimer:
        matches = [t for t in timers if t.name == f"alarm-{number}" and not t.stopped]
        assert len(matches) == 1
        return matches[0]

    return _find


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "data" / "db.json"


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def registry(timers):
    return SchedulerRegistry(timer_factory=FakeTimer)


@pytest.fixture
def manager(db_path, registry, notifier):
    mgr = AlarmManager(AlarmStore(JsonRecordStore(db_path)), registry, notifier)
    mgr.start()
    return mgr
