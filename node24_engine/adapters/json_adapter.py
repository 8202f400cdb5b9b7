"""JSON storage for the date -> schedule map."""

from __future__ import annotations

import json
import os
import tempfile
from datetime import datetime
from pathlib import Path

from node24_engine.nodes import check_repeat_rule
from node24_engine.schema import NODE_COLORS, REPEAT_TYPES, DaySchedule, ReminderSettings, RepeatRule, ScheduleNode
from node24_engine.timefmt import parse_date

_REQUIRED_FIELDS = {"id", "duration_minutes", "created_at", "updated_at"}


def _parse_timestamp(value, where: str) -> datetime:
    try:
        return datetime.fromisoformat(str(value))
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"{where}: malformed timestamp") from exc


def _parse_int(value, where: str, field: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{where}: invalid {field}")
    try:
        return int(value)
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"{where}: invalid {field}") from exc


def _parse_repeat(raw, where: str) -> RepeatRule:
    if raw is None:
        return RepeatRule()
    if not isinstance(raw, dict):
        raise ValueError(f"{where}: repeat_rule must be an object")
    kind = str(raw.get("type", "none"))
    if kind not in REPEAT_TYPES:
        raise ValueError(f"{where}: invalid repeat type '{kind}'")
    day_of_week = raw.get("day_of_week")
    day_of_month = raw.get("day_of_month")
    rule = RepeatRule(
        type=kind,
        day_of_week=None if day_of_week is None else _parse_int(day_of_week, where, "day_of_week"),
        day_of_month=None if day_of_month is None else _parse_int(day_of_month, where, "day_of_month"),
    )
    try:
        check_repeat_rule(rule)
    except ValueError as exc:
        raise ValueError(f"{where}: {exc}") from exc
    return rule


def _parse_reminder(raw, where: str) -> ReminderSettings:
    if raw is None:
        return ReminderSettings()
    if not isinstance(raw, dict):
        raise ValueError(f"{where}: reminder must be an object")
    notification_id = raw.get("notification_id")
    return ReminderSettings(
        enabled=bool(raw.get("enabled", False)),
        minutes_before=_parse_int(raw.get("minutes_before", 10), where, "minutes_before"),
        notification_id=str(notification_id) if notification_id is not None else None,
    )


def _parse_node(item: dict, where: str) -> ScheduleNode:
    if not isinstance(item, dict):
        raise ValueError(f"{where}: node must be an object")
    missing = sorted(field for field in _REQUIRED_FIELDS if item.get(field) in (None, ""))
    if missing:
        raise ValueError(f"{where}: missing required fields {missing}")

    duration = _parse_int(item["duration_minutes"], where, "duration_minutes")
    if duration <= 0:
        raise ValueError(f"{where}: duration_minutes must be positive")

    color = str(item.get("color", "blue"))
    if color not in NODE_COLORS:
        raise ValueError(f"{where}: invalid color '{color}'")

    return ScheduleNode(
        id=str(item["id"]),
        name=str(item.get("name", "")),
        duration_minutes=duration,
        start_minutes=_parse_int(item.get("start_minutes", 0), where, "start_minutes"),
        color=color,
        notes=str(item.get("notes") or ""),
        is_filler=bool(item.get("is_filler", False)),
        is_locked=bool(item.get("is_locked", False)),
        repeat_rule=_parse_repeat(item.get("repeat_rule"), where),
        reminder=_parse_reminder(item.get("reminder"), where),
        created_at=_parse_timestamp(item["created_at"], where),
        updated_at=_parse_timestamp(item["updated_at"], where),
    )


def schedule_from_dict(date_key: str, payload: dict) -> DaySchedule:
    """Build a DaySchedule from its stored JSON object."""

    parse_date(date_key)
    if not isinstance(payload, dict) or not isinstance(payload.get("nodes"), list):
        raise ValueError(f"Schedule {date_key}: expected an object with a 'nodes' list")
    nodes = [_parse_node(item, f"Schedule {date_key} node {i}") for i, item in enumerate(payload["nodes"], start=1)]
    return DaySchedule(
        date=date_key,
        nodes=nodes,
        updated_at=_parse_timestamp(payload.get("updated_at"), f"Schedule {date_key}"),
    )


def _node_to_dict(node: ScheduleNode) -> dict:
    return {
        "id": node.id,
        "name": node.name,
        "duration_minutes": node.duration_minutes,
        "start_minutes": node.start_minutes,
        "color": node.color,
        "notes": node.notes,
        "is_filler": node.is_filler,
        "is_locked": node.is_locked,
        "repeat_rule": {
            "type": node.repeat_rule.type,
            "day_of_week": node.repeat_rule.day_of_week,
            "day_of_month": node.repeat_rule.day_of_month,
        },
        "reminder": {
            "enabled": node.reminder.enabled,
            "minutes_before": node.reminder.minutes_before,
            "notification_id": node.reminder.notification_id,
        },
        "created_at": node.created_at.isoformat(),
        "updated_at": node.updated_at.isoformat(),
    }


def schedule_to_dict(schedule: DaySchedule) -> dict:
    return {
        "nodes": [_node_to_dict(node) for node in schedule.nodes],
        "updated_at": schedule.updated_at.isoformat(),
    }


def parse(file_path: str) -> dict[str, DaySchedule]:
    """Parse a stored JSON file into a date -> DaySchedule map."""

    with open(file_path, encoding="utf-8") as handle:
        payload = json.load(handle)

    if not isinstance(payload, dict):
        raise ValueError("JSON payload must be an object keyed by date")

    return {date_key: schedule_from_dict(date_key, item) for date_key, item in payload.items()}


def dump(schedules: dict[str, DaySchedule], file_path: str) -> None:
    """Write the whole map, replacing the target file atomically."""

    target = Path(file_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = {date_key: schedule_to_dict(schedule) for date_key, schedule in sorted(schedules.items())}

    fd, temp_path = tempfile.mkstemp(dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)
        os.replace(temp_path, target)
    except BaseException:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise


class JsonScheduleStorage:
    """Key-value persistence for ScheduleStore backed by one JSON file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> dict[str, DaySchedule]:
        if not self.path.exists():
            return {}
        return parse(str(self.path))

    def save(self, schedules: dict[str, DaySchedule]) -> None:
        dump(schedules, str(self.path))
