from dataclasses import replace
from datetime import datetime

from node24_engine import engine
from node24_engine.adapters.json_adapter import JsonScheduleStorage
from node24_engine.nodes import NodeUpdate, create_node
from node24_engine.reminders import InMemoryReminderScheduler, ReminderSync, reminder_message, reminder_time
from node24_engine.schema import ReminderSettings
from node24_engine.store import ScheduleStore

NOW = datetime(2026, 1, 29, 8, 0)


def test_reminder_time_rules():
    assert reminder_time("2026-01-29", 540, 10) == datetime(2026, 1, 29, 8, 50)
    assert reminder_time("2026-01-29", 10, 10) == datetime(2026, 1, 29, 0, 0)
    assert reminder_time("2026-01-29", 5, 10) is None


def test_reminder_message():
    node = create_node("Gym", 60, now=NOW)
    assert reminder_message(node) == ("Node24 Reminder", "Gym starts in 10 minutes")


def test_in_memory_scheduler_skips_disabled_past_and_early():
    scheduler = InMemoryReminderScheduler(clock=lambda: NOW)
    enabled = ReminderSettings(enabled=True, minutes_before=10)
    node = create_node("Gym", 60, "blue", 540, now=NOW)

    assert scheduler.schedule(node, "2026-01-29", 540) is None

    node = replace(node, reminder=enabled)
    handle = scheduler.schedule(node, "2026-01-29", 540)
    assert handle is not None
    entry = scheduler.pending[handle]
    assert entry.fire_at == datetime(2026, 1, 29, 8, 50)
    assert entry.body == "Gym starts in 10 minutes"

    assert scheduler.schedule(node, "2026-01-29", 480) is None
    assert scheduler.schedule(node, "2026-01-29", 5) is None

    other = scheduler.schedule(node, "2026-01-30", 60)
    scheduler.cancel(handle)
    assert list(scheduler.pending) == [other]
    scheduler.cancel_all()
    assert scheduler.pending == {}


def test_reminder_sync_follows_store_changes():
    store = ScheduleStore(today="2026-01-29", clock=lambda: NOW)
    scheduler = InMemoryReminderScheduler(clock=lambda: NOW)
    ReminderSync(store, scheduler)

    node = store.add_node("Standup", "blue", 60)
    assert scheduler.pending == {}

    store.update_node(node.id, NodeUpdate(reminder=ReminderSettings(enabled=True, minutes_before=15)))
    _, stored = engine.find_node(store.get_schedule().nodes, node.id)
    first = stored.reminder.notification_id
    assert first in scheduler.pending
    assert scheduler.pending[first].fire_at == datetime(2026, 1, 29, 11, 15)

    store.resize_node(node.id, 600, 60)
    _, stored = engine.find_node(store.get_schedule().nodes, node.id)
    second = stored.reminder.notification_id
    assert first not in scheduler.pending
    assert list(scheduler.pending) == [second]
    assert scheduler.pending[second].fire_at == datetime(2026, 1, 29, 9, 45)

    store.remove_node(node.id)
    assert scheduler.pending == {}


def test_reminder_sync_unsubscribe():
    store = ScheduleStore(today="2026-01-29", clock=lambda: NOW)
    scheduler = InMemoryReminderScheduler(clock=lambda: NOW)
    sync = ReminderSync(store, scheduler)
    sync.unsubscribe()

    node = store.add_node("Lunch", "green", 60)
    store.update_node(node.id, NodeUpdate(reminder=ReminderSettings(enabled=True)))
    assert scheduler.pending == {}


def test_sync_all_schedules_reminders_loaded_from_storage(tmp_path):
    path = tmp_path / "schedules.json"
    first = ScheduleStore(storage=JsonScheduleStorage(path), today="2026-01-29", clock=lambda: NOW)
    node = first.add_node("Standup", "blue", 60)
    first.update_node(node.id, NodeUpdate(reminder=ReminderSettings(enabled=True, minutes_before=15)))
    first.add_node("Quiet", "green", 30)

    store = ScheduleStore(storage=JsonScheduleStorage(path), today="2026-01-29", clock=lambda: NOW)
    store.load()
    scheduler = InMemoryReminderScheduler(clock=lambda: NOW)
    sync = ReminderSync(store, scheduler)

    assert sync.sync_all() == 1
    _, stored = engine.find_node(store.get_schedule().nodes, node.id)
    assert list(scheduler.pending) == [stored.reminder.notification_id]
    assert scheduler.pending[stored.reminder.notification_id].fire_at == datetime(2026, 1, 29, 11, 15)

    assert sync.sync_all() == 1
    assert len(scheduler.pending) == 1
