"""Recurring cron alarm subsystem."""

from .cron import CronTimer, InvalidSchedule
from .dispatcher import CommandDispatcher, DispatchResult
from .manager import AlarmManager
from .notifier import AlarmNotifier, LocalSpeaker
from .scheduler import SchedulerRegistry
from .storage import AlarmRecord, AlarmStore, JsonRecordStore
