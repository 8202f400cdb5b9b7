import logging
from datetime import datetime

from node24_engine import engine
from node24_engine.adapters.json_adapter import JsonScheduleStorage, dump
from node24_engine.nodes import NodeUpdate, create_filler_node, create_node
from node24_engine.schema import MINUTES_IN_DAY, DaySchedule, ReminderSettings
from node24_engine.store import ScheduleStore, StoreSettings

NOW = datetime(2026, 1, 29, 8, 0)


def make_store(storage=None, settings=None):
    return ScheduleStore(storage=storage, settings=settings, today="2026-01-29", clock=lambda: NOW)


class FailingStorage:
    def load(self):
        raise OSError("disk gone")

    def save(self, schedules):
        raise OSError("disk full")


def test_get_schedule_creates_whole_day_filler_lazily():
    store = make_store()
    schedule = store.get_schedule()
    assert schedule.date == "2026-01-29"
    assert [(n.is_filler, n.duration_minutes) for n in schedule.nodes] == [(True, MINUTES_IN_DAY)]
    assert store.schedules["2026-01-29"] is schedule
    assert store.get_schedule("2026-01-29") is schedule


def test_add_node_inserts_default_duration():
    store = make_store()
    node = store.add_node("Focus", "purple")
    nodes = store.get_schedule().nodes
    assert node.color == "purple"
    assert [n.duration_minutes for n in nodes] == [600, 240, 600]
    assert nodes[1].id == node.id
    assert nodes[1].start_minutes == 600
    assert store.get_schedule().updated_at == NOW


def test_add_node_requires_free_time():
    store = make_store()
    assert store.add_node("Big", duration_minutes=1400) is not None
    assert store.free_minutes() == 40
    assert store.add_node("More") is None


def test_add_node_declined_by_engine_returns_none():
    store = make_store(settings=StoreSettings(min_free_minutes_to_add=1))
    store.add_node("Morning", duration_minutes=600)
    store.add_node("Evening", duration_minutes=400)
    assert store.free_minutes() == 440
    assert store.add_node("Too long", duration_minutes=500) is None


def test_remove_node_restores_free_day():
    store = make_store()
    node = store.add_node("Gym", "blue", 60)
    assert store.remove_node(node.id)
    nodes = store.get_schedule().nodes
    assert len(nodes) == 1 and nodes[0].is_filler
    assert not store.remove_node(node.id)


def test_toggle_lock_blocks_resize():
    store = make_store()
    node = store.add_node("Meeting", "red", 60)
    assert store.toggle_lock(node.id)
    assert not store.resize_node(node.id, 0, 120)
    assert store.toggle_lock(node.id)
    assert store.resize_node(node.id, 0, 120)
    assert store.get_schedule().nodes[0].duration_minutes == 120


def test_update_node_and_duration():
    store = make_store()
    node = store.add_node("Read", "blue", 60)
    assert store.update_node(node.id, NodeUpdate(name="Read book", color="mint"))
    assert store.update_node_duration(node.id, 90)
    _, updated = engine.find_node(store.get_schedule().nodes, node.id)
    assert (updated.name, updated.color, updated.duration_minutes) == ("Read book", "mint", 90)
    assert engine.is_tiled(store.get_schedule().nodes)


def test_update_node_keeps_existing_notification_handle():
    store = make_store()
    node = store.add_node("Call", "blue", 60)
    store.set_notification_id("2026-01-29", node.id, "handle-1")
    store.update_node(node.id, NodeUpdate(reminder=ReminderSettings(enabled=True, minutes_before=5)))
    _, updated = engine.find_node(store.get_schedule().nodes, node.id)
    assert updated.reminder == ReminderSettings(enabled=True, minutes_before=5, notification_id="handle-1")


def test_max_duration_for():
    store = make_store()
    node = store.add_node("Work", "blue", 480)
    assert store.max_duration_for(node.id) == MINUTES_IN_DAY
    assert store.max_duration_for("missing") is None


def test_listeners_receive_changes_and_failures_are_absorbed(caplog):
    store = make_store()
    events = []

    def broken(date_key, old, new):
        raise RuntimeError("boom")

    store.subscribe(broken)
    unsubscribe = store.subscribe(lambda date_key, old, new: events.append((date_key, old, new)))

    with caplog.at_level(logging.ERROR):
        node = store.add_node("Walk", "green", 30)
    assert node is not None
    assert len(events) == 1
    date_key, old, new = events[0]
    assert date_key == "2026-01-29"
    assert [n.is_filler for n in old.nodes] == [True]
    assert any(n.id == node.id for n in new.nodes)
    assert "listener failed" in caplog.text

    unsubscribe()
    store.remove_node(node.id)
    assert len(events) == 1


def test_noop_mutations_do_not_notify():
    store = make_store()
    events = []
    store.subscribe(lambda *args: events.append(args))
    assert not store.remove_node("missing")
    assert not store.resize_node("missing", 0, 60)
    assert events == []


def test_changes_persist_and_reload(tmp_path):
    path = tmp_path / "schedules.json"
    store = make_store(storage=JsonScheduleStorage(path))
    node = store.add_node("Yoga", "teal", 45)
    store.toggle_lock(node.id)

    reloaded = make_store(storage=JsonScheduleStorage(path))
    reloaded.load()
    assert reloaded.get_schedule().nodes == store.get_schedule().nodes


def test_storage_failures_are_logged_not_raised(caplog):
    store = make_store(storage=FailingStorage())
    with caplog.at_level(logging.ERROR):
        store.load()
        node = store.add_node("Nap", "indigo", 30)
    assert store.schedules["2026-01-29"].nodes[1].id == node.id
    assert "Failed to save schedules" in caplog.text
    assert "Failed to load schedules" in caplog.text


def test_date_navigation():
    store = make_store()
    store.set_current_date("2026-01-31")
    store.go_to_next_day()
    assert store.current_date == "2026-02-01"
    store.go_to_previous_day()
    store.go_to_previous_day()
    assert store.current_date == "2026-01-30"
    store.go_to_today()
    assert store.current_date == "2026-01-29"


def test_mutations_target_explicit_date():
    store = make_store()
    node = store.add_node("Trip", "orange", 120, date_key="2026-02-14")
    assert node is not None
    assert "2026-02-14" in store.schedules
    assert store.get_schedule().nodes[0].duration_minutes == MINUTES_IN_DAY


def test_edit_mode_toggle():
    store = make_store()
    store.toggle_edit_mode()
    assert store.is_edit_mode
    store.set_edit_mode(False)
    assert not store.is_edit_mode


def test_add_node_with_explicit_zero_duration_is_declined():
    store = make_store()
    assert store.add_node("Empty", duration_minutes=0) is None
    assert store.get_schedule().nodes[0].duration_minutes == MINUTES_IN_DAY


def test_load_rebuilds_days_that_do_not_tile(tmp_path, caplog):
    path = tmp_path / "schedules.json"
    work = create_node("Work", 100, "blue", 500, now=NOW)
    dump(
        {
            "2026-01-29": DaySchedule("2026-01-29", [create_filler_node(500, 0, now=NOW), work], NOW),
            "2026-01-30": DaySchedule(
                "2026-01-30",
                [create_node("Long", 1000, "red", 0, now=NOW), create_node("Longer", 1000, "red", 1000, now=NOW)],
                NOW,
            ),
        },
        str(path),
    )

    store = make_store(storage=JsonScheduleStorage(path))
    with caplog.at_level(logging.WARNING):
        store.load()
    assert "did not tile" in caplog.text
    assert "2026-01-30" not in store.schedules

    nodes = store.get_schedule().nodes
    assert engine.is_tiled(nodes)
    assert [(n.is_filler, n.duration_minutes) for n in nodes] == [(True, 500), (False, 100), (True, 840)]

    assert store.add_node("Extra", "green", 60) is not None
    assert engine.is_tiled(store.get_schedule().nodes)
