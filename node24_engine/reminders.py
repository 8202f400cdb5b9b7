"""Reminder triggers for nodes, and their sync with schedule changes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional, Protocol

from node24_engine.nodes import generate_id
from node24_engine.schema import DaySchedule, ScheduleNode
from node24_engine.timefmt import parse_date

logger = logging.getLogger(__name__)

REMINDER_TITLE = "Node24 Reminder"


def reminder_time(date_key: str, start_minutes: int, minutes_before: int) -> Optional[datetime]:
    """Trigger instant for a reminder, or None when it would fall on the previous day."""

    offset = start_minutes - minutes_before
    if offset < 0:
        return None
    day = parse_date(date_key)
    return datetime(day.year, day.month, day.day) + timedelta(minutes=offset)


def reminder_message(node: ScheduleNode) -> tuple[str, str]:
    return REMINDER_TITLE, f"{node.name} starts in {node.reminder.minutes_before} minutes"


class ReminderScheduler(Protocol):
    def schedule(self, node: ScheduleNode, date_key: str, start_minutes: int) -> Optional[str]:
        ...

    def cancel(self, handle: str) -> None:
        ...

    def cancel_all(self) -> None:
        ...


@dataclass(frozen=True)
class ScheduledReminder:
    handle: str
    node_id: str
    date: str
    fire_at: datetime
    title: str
    body: str


class InMemoryReminderScheduler:
    """Reminder scheduler that records triggers instead of raising OS alarms."""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or datetime.now
        self.pending: dict[str, ScheduledReminder] = {}

    def schedule(self, node: ScheduleNode, date_key: str, start_minutes: int) -> Optional[str]:
        if not node.reminder.enabled:
            return None
        fire_at = reminder_time(date_key, start_minutes, node.reminder.minutes_before)
        if fire_at is None:
            logger.debug("Reminder for node %s skipped, falls before day start", node.id)
            return None
        if fire_at <= self._clock():
            logger.debug("Reminder for node %s skipped, %s already passed", node.id, fire_at)
            return None

        title, body = reminder_message(node)
        handle = generate_id()
        self.pending[handle] = ScheduledReminder(handle, node.id, date_key, fire_at, title, body)
        return handle

    def cancel(self, handle: str) -> None:
        self.pending.pop(handle, None)

    def cancel_all(self) -> None:
        self.pending.clear()


def _timing_key(node: ScheduleNode) -> tuple:
    return (node.start_minutes, node.name, node.reminder.enabled, node.reminder.minutes_before)


class ReminderSync:
    """Keeps scheduled reminders in step with a ScheduleStore's changes."""

    def __init__(self, store, scheduler: ReminderScheduler) -> None:
        self.store = store
        self.scheduler = scheduler
        self.unsubscribe = store.subscribe(self.on_change)

    def on_change(self, date_key: str, old: Optional[DaySchedule], new: DaySchedule) -> None:
        old_nodes = {node.id: node for node in old.nodes if not node.is_filler} if old else {}
        new_nodes = {node.id: node for node in new.nodes if not node.is_filler}

        for node_id, node in old_nodes.items():
            handle = node.reminder.notification_id
            if handle is None:
                continue
            current = new_nodes.get(node_id)
            if current is None or _timing_key(current) != _timing_key(node):
                self.scheduler.cancel(handle)
                if current is not None:
                    self.store.set_notification_id(date_key, node_id, None)

        for node_id, node in new_nodes.items():
            previous = old_nodes.get(node_id)
            if previous is not None and _timing_key(previous) == _timing_key(node):
                continue
            if not node.reminder.enabled:
                continue
            handle = self.scheduler.schedule(node, date_key, node.start_minutes)
            if handle is not None:
                self.store.set_notification_id(date_key, node_id, handle)

    def sync_all(self) -> int:
        """Reschedule every enabled reminder the store holds, e.g. right after ``load()``.

        Handles recorded on nodes are cancelled first, so repeated calls do not
        stack duplicate triggers. Returns the number of reminders scheduled.
        """

        scheduled = 0
        for date_key, schedule in list(self.store.schedules.items()):
            for node in schedule.nodes:
                if node.is_filler:
                    continue
                if node.reminder.notification_id is not None:
                    self.scheduler.cancel(node.reminder.notification_id)
                handle = None
                if node.reminder.enabled:
                    handle = self.scheduler.schedule(node, date_key, node.start_minutes)
                if handle is not None:
                    scheduled += 1
                if handle != node.reminder.notification_id:
                    self.store.set_notification_id(date_key, node.id, handle)
        logger.info("Synced %d reminders", scheduled)
        return scheduled
