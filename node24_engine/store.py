"""Date-keyed schedule state that routes actions through the engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Optional, Protocol

from node24_engine import engine
from node24_engine.nodes import NodeUpdate, create_default_day_schedule, create_node, random_node_color
from node24_engine.schema import DEFAULT_NEW_NODE_DURATION, DaySchedule, ScheduleNode
from node24_engine.timefmt import next_day, parse_date, previous_day, today_string

logger = logging.getLogger(__name__)

ChangeListener = Callable[[str, Optional[DaySchedule], DaySchedule], None]


class ScheduleStorage(Protocol):
    def load(self) -> dict[str, DaySchedule]:
        ...

    def save(self, schedules: dict[str, DaySchedule]) -> None:
        ...


@dataclass(frozen=True)
class StoreSettings:
    default_node_minutes: int = DEFAULT_NEW_NODE_DURATION
    # free time required before a new node may be added
    min_free_minutes_to_add: int = 60


class ScheduleStore:
    """Single-writer owner of the date -> DaySchedule map.

    Mutations load (or lazily create) the date's schedule, hand its nodes to an
    engine function, keep the result when it differs, save the whole map and
    notify subscribers. Save and listener failures are logged, never raised.
    """

    def __init__(
        self,
        storage: ScheduleStorage | None = None,
        settings: StoreSettings | None = None,
        today: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.storage = storage
        self.settings = settings or StoreSettings()
        self._clock = clock or datetime.now
        self.current_date = today or today_string(self._clock())
        self.schedules: dict[str, DaySchedule] = {}
        self.is_edit_mode = False
        self._listeners: list[ChangeListener] = []

    def load(self) -> None:
        if self.storage is None:
            return
        try:
            loaded = dict(self.storage.load())
        except (OSError, ValueError) as exc:
            logger.exception("Failed to load schedules, starting empty: %s", exc)
            self.schedules = {}
            return
        self.schedules = {}
        for date_key, schedule in loaded.items():
            repaired = self._repair(schedule)
            if repaired is not None:
                self.schedules[date_key] = repaired
        logger.info("Loaded %d schedules", len(self.schedules))

    def _repair(self, schedule: DaySchedule) -> Optional[DaySchedule]:
        """Rebuild a stored day that does not tile; None when its nodes overflow the day."""

        if engine.is_tiled(schedule.nodes):
            return schedule
        nodes = engine.tile(schedule.nodes, now=self._clock())
        if not engine.is_tiled(nodes):
            logger.error("Dropping stored schedule %s, its nodes do not fit in one day", schedule.date)
            return None
        logger.warning("Stored schedule %s did not tile the day, rebuilt around its user nodes", schedule.date)
        return replace(schedule, nodes=nodes)

    # date cursor

    def set_current_date(self, date_key: str) -> None:
        parse_date(date_key)
        self.current_date = date_key

    def go_to_previous_day(self) -> None:
        self.current_date = previous_day(self.current_date)

    def go_to_next_day(self) -> None:
        self.current_date = next_day(self.current_date)

    def go_to_today(self) -> None:
        self.current_date = today_string(self._clock())

    def toggle_edit_mode(self) -> None:
        self.is_edit_mode = not self.is_edit_mode

    def set_edit_mode(self, is_edit: bool) -> None:
        self.is_edit_mode = is_edit

    # change events

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, date_key: str, old: Optional[DaySchedule], new: DaySchedule) -> None:
        for listener in list(self._listeners):
            try:
                listener(date_key, old, new)
            except Exception:  # noqa: BLE001
                logger.exception("Schedule listener failed for %s", date_key)

    def _persist(self) -> None:
        if self.storage is None:
            return
        try:
            self.storage.save(self.schedules)
        except (OSError, ValueError, TypeError):
            logger.exception("Failed to save schedules")

    # reads

    def get_schedule(self, date_key: str | None = None) -> DaySchedule:
        """Return the date's schedule, creating a whole-day filler schedule on first access."""

        key = date_key or self.current_date
        schedule = self.schedules.get(key)
        if schedule is None:
            parse_date(key)
            schedule = create_default_day_schedule(key, now=self._clock())
            self.schedules[key] = schedule
        return schedule

    def free_minutes(self, date_key: str | None = None) -> int:
        return engine.total_filler_minutes(self.get_schedule(date_key).nodes)

    def max_duration_for(self, node_id: str, date_key: str | None = None) -> Optional[int]:
        """Largest duration the node could take: its own plus all free time."""

        nodes = self.get_schedule(date_key).nodes
        _, node = engine.find_node(nodes, node_id)
        if node is None:
            return None
        return node.duration_minutes + engine.total_filler_minutes(nodes)

    # mutations

    def _commit(self, date_key: str | None, operation: Callable[[list[ScheduleNode]], list[ScheduleNode]]) -> bool:
        key = date_key or self.current_date
        current = self.get_schedule(key)
        new_nodes = operation(current.nodes)
        if new_nodes is current.nodes or new_nodes == current.nodes:
            return False

        updated = DaySchedule(date=key, nodes=list(new_nodes), updated_at=self._clock())
        self.schedules[key] = updated
        self._persist()
        self._notify(key, current, updated)
        return True

    def add_node(
        self,
        name: str = "New Node",
        color: str | None = None,
        duration_minutes: int | None = None,
        date_key: str | None = None,
    ) -> Optional[ScheduleNode]:
        """Insert a new node into the largest free block; None when there is no room."""

        duration = self.settings.default_node_minutes if duration_minutes is None else duration_minutes
        if self.free_minutes(date_key) < max(self.settings.min_free_minutes_to_add, 1):
            logger.info("Not enough free time to add '%s'", name)
            return None

        node = create_node(name, duration, color or random_node_color(), now=self._clock())
        if not self._commit(date_key, lambda nodes: engine.insert_node(nodes, node, now=self._clock())):
            return None
        _, stored = engine.find_node(self.get_schedule(date_key).nodes, node.id)
        return stored

    def remove_node(self, node_id: str, date_key: str | None = None) -> bool:
        return self._commit(date_key, lambda nodes: engine.remove_node(nodes, node_id, now=self._clock()))

    def update_node(self, node_id: str, update: NodeUpdate, date_key: str | None = None) -> bool:
        _, node = engine.find_node(self.get_schedule(date_key).nodes, node_id)
        if node is not None and update.reminder is not None and update.reminder.notification_id is None:
            update = replace(
                update,
                reminder=replace(update.reminder, notification_id=node.reminder.notification_id),
            )
        return self._commit(date_key, lambda nodes: engine.update_node(nodes, node_id, update, now=self._clock()))

    def update_node_duration(self, node_id: str, duration_minutes: int, date_key: str | None = None) -> bool:
        return self._commit(
            date_key,
            lambda nodes: engine.update_duration(nodes, node_id, duration_minutes, now=self._clock()),
        )

    def resize_node(self, node_id: str, new_start: int, new_duration: int, date_key: str | None = None) -> bool:
        return self._commit(
            date_key,
            lambda nodes: engine.resize_node(nodes, node_id, new_start, new_duration, now=self._clock()),
        )

    def toggle_lock(self, node_id: str, date_key: str | None = None) -> bool:
        return self._commit(date_key, lambda nodes: engine.toggle_lock(nodes, node_id, now=self._clock()))

    def set_notification_id(self, date_key: str, node_id: str, handle: Optional[str]) -> None:
        """Record a reminder handle on a node without emitting a change event."""

        schedule = self.schedules.get(date_key)
        if schedule is None:
            return
        index, node = engine.find_node(schedule.nodes, node_id)
        if node is None or node.reminder.notification_id == handle:
            return
        nodes = list(schedule.nodes)
        nodes[index] = replace(node, reminder=replace(node.reminder, notification_id=handle))
        self.schedules[date_key] = replace(schedule, nodes=nodes)
        self._persist()
