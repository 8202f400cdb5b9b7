"""Node constructors and validated field updates."""

from __future__ import annotations

import itertools
import random
import string
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from node24_engine.schema import (
    DEFAULT_NEW_NODE_DURATION,
    MINUTES_IN_DAY,
    NODE_COLORS,
    REPEAT_TYPES,
    DaySchedule,
    ReminderSettings,
    RepeatRule,
    ScheduleNode,
)

_ID_ALPHABET = string.ascii_lowercase + string.digits
_id_counter = itertools.count(1)


def generate_id() -> str:
    """Return an id unique within this process: epoch millis, counter, random suffix."""

    millis = int(datetime.now().timestamp() * 1000)
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{millis}-{next(_id_counter)}{suffix}"


def random_node_color() -> str:
    return random.choice(NODE_COLORS)


def create_node(
    name: str,
    duration_minutes: int = DEFAULT_NEW_NODE_DURATION,
    color: str = "blue",
    start_minutes: int = 0,
    now: datetime | None = None,
) -> ScheduleNode:
    """Create a user node with no repeat and a disabled reminder."""

    stamp = now or datetime.now()
    return ScheduleNode(
        id=generate_id(),
        name=name,
        duration_minutes=duration_minutes,
        start_minutes=start_minutes,
        color=color,
        created_at=stamp,
        updated_at=stamp,
    )


def create_filler_node(duration_minutes: int, start_minutes: int = 0, now: datetime | None = None) -> ScheduleNode:
    """Create an unnamed placeholder for unscheduled time."""

    stamp = now or datetime.now()
    return ScheduleNode(
        id=generate_id(),
        name="",
        duration_minutes=duration_minutes,
        start_minutes=start_minutes,
        # color is irrelevant for filler
        color="blue",
        created_at=stamp,
        updated_at=stamp,
        is_filler=True,
    )


def create_default_day_schedule(date_key: str, now: datetime | None = None) -> DaySchedule:
    stamp = now or datetime.now()
    return DaySchedule(date=date_key, nodes=[create_filler_node(MINUTES_IN_DAY, 0, now=stamp)], updated_at=stamp)


def check_repeat_rule(rule: RepeatRule) -> None:
    if rule.type not in REPEAT_TYPES:
        raise ValueError(f"invalid repeat type '{rule.type}'")
    if rule.day_of_week is not None and not 0 <= rule.day_of_week <= 6:
        raise ValueError(f"day_of_week must be in 0..6, got {rule.day_of_week}")
    if rule.day_of_month is not None and not 1 <= rule.day_of_month <= 31:
        raise ValueError(f"day_of_month must be in 1..31, got {rule.day_of_month}")


@dataclass(frozen=True)
class NodeUpdate:
    """Named optional field changes for a user node, validated on construction."""

    name: Optional[str] = None
    duration_minutes: Optional[int] = None
    color: Optional[str] = None
    notes: Optional[str] = None
    repeat_rule: Optional[RepeatRule] = None
    reminder: Optional[ReminderSettings] = None
    is_locked: Optional[bool] = None

    def __post_init__(self) -> None:
        if self.duration_minutes is not None:
            if isinstance(self.duration_minutes, bool) or not isinstance(self.duration_minutes, int):
                raise ValueError("duration_minutes must be an integer")
            if not 0 < self.duration_minutes <= MINUTES_IN_DAY:
                raise ValueError(f"duration_minutes must be in 1..{MINUTES_IN_DAY}, got {self.duration_minutes}")
        if self.color is not None and self.color not in NODE_COLORS:
            raise ValueError(f"invalid color '{self.color}'")
        if self.repeat_rule is not None:
            check_repeat_rule(self.repeat_rule)
        if self.reminder is not None and self.reminder.minutes_before < 0:
            raise ValueError("reminder minutes_before must not be negative")

    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (
                self.name,
                self.duration_minutes,
                self.color,
                self.notes,
                self.repeat_rule,
                self.reminder,
                self.is_locked,
            )
        )


def apply_update(node: ScheduleNode, update: NodeUpdate, now: datetime | None = None) -> ScheduleNode:
    """Merge every set field except duration, which the engine re-tiles separately."""

    changes = {
        key: value
        for key, value in (
            ("name", update.name),
            ("color", update.color),
            ("notes", update.notes),
            ("repeat_rule", update.repeat_rule),
            ("reminder", update.reminder),
            ("is_locked", update.is_locked),
        )
        if value is not None
    }
    if not changes:
        return node
    return replace(node, updated_at=now or datetime.now(), **changes)
