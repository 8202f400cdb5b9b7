"""Core data schema for day schedules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

MINUTES_IN_DAY = 1440
DEFAULT_NEW_NODE_DURATION = 240
MIN_NODE_MINUTES = 15
DEFAULT_REMINDER_MINUTES = 10

NODE_COLORS = (
    "blue",
    "green",
    "orange",
    "red",
    "purple",
    "pink",
    "teal",
    "yellow",
    "indigo",
    "mint",
)

REPEAT_TYPES = ("none", "daily", "weekdays", "weekends", "weekly", "monthly", "yearly")


@dataclass(frozen=True)
class RepeatRule:
    """Recurrence metadata. Stored only, never expanded."""

    type: str = "none"
    # weekly: 0 = Sunday .. 6 = Saturday
    day_of_week: Optional[int] = None
    # monthly: 1..31
    day_of_month: Optional[int] = None


@dataclass(frozen=True)
class ReminderSettings:
    """Reminder intent for a node."""

    enabled: bool = False
    minutes_before: int = DEFAULT_REMINDER_MINUTES
    notification_id: Optional[str] = None


@dataclass(frozen=True)
class ScheduleNode:
    """A contiguous block of time in a day."""

    id: str
    name: str
    duration_minutes: int
    start_minutes: int
    color: str
    created_at: datetime
    updated_at: datetime
    notes: str = ""
    is_filler: bool = False
    is_locked: bool = False
    repeat_rule: RepeatRule = field(default_factory=RepeatRule)
    reminder: ReminderSettings = field(default_factory=ReminderSettings)

    @property
    def end_minutes(self) -> int:
        return self.start_minutes + self.duration_minutes


@dataclass(frozen=True)
class DaySchedule:
    """One date's full 24-hour layout."""

    date: str
    nodes: list[ScheduleNode]
    updated_at: datetime
