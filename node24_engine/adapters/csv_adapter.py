"""CSV export and import of a single day's schedule."""

from __future__ import annotations

import csv
from dataclasses import replace
from datetime import datetime

from node24_engine.engine import tile
from node24_engine.nodes import create_node
from node24_engine.schema import NODE_COLORS, DaySchedule, ScheduleNode
from node24_engine.timefmt import clock_to_minutes, minutes_to_clock, parse_date

FIELDNAMES = ["start", "end", "name", "color", "duration_minutes", "is_filler", "is_locked", "notes"]
_REQUIRED_FIELDS = {"start", "end", "name"}
_TRUE_VALUES = {"1", "true", "yes", "y"}


def export(schedule: DaySchedule, file_path: str) -> None:
    """Write one row per node, fillers included, in day order."""

    with open(file_path, "w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=FIELDNAMES)
        writer.writeheader()
        for node in schedule.nodes:
            writer.writerow(
                {
                    "start": minutes_to_clock(node.start_minutes),
                    "end": minutes_to_clock(node.end_minutes),
                    "name": node.name,
                    "color": "" if node.is_filler else node.color,
                    "duration_minutes": node.duration_minutes,
                    "is_filler": str(node.is_filler).lower(),
                    "is_locked": str(node.is_locked).lower(),
                    "notes": node.notes,
                }
            )


def _is_true(value) -> bool:
    return str(value or "").strip().lower() in _TRUE_VALUES


def _parse_row(row: dict, row_number: int, now: datetime) -> ScheduleNode:
    missing = [field for field in sorted(_REQUIRED_FIELDS) if not (row.get(field) or "").strip()]
    if missing:
        raise ValueError(f"Row {row_number}: missing required fields {missing}")

    try:
        start = clock_to_minutes(row["start"])
        end = clock_to_minutes(row["end"])
    except ValueError as exc:
        raise ValueError(f"Row {row_number}: {exc}") from exc
    if end <= start:
        raise ValueError(f"Row {row_number}: end must be after start")

    color = (row.get("color") or "blue").strip()
    if color not in NODE_COLORS:
        raise ValueError(f"Row {row_number}: invalid color '{color}'")

    node = create_node(row["name"].strip(), end - start, color, start, now=now)
    notes = (row.get("notes") or "").strip()
    locked = _is_true(row.get("is_locked"))
    if notes or locked:
        node = replace(node, notes=notes, is_locked=locked)
    return node


def parse(file_path: str, date_key: str, now: datetime | None = None) -> DaySchedule:
    """Read user rows back into a fully tiled day; filler rows are ignored."""

    parse_date(date_key)
    stamp = now or datetime.now()
    with open(file_path, newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        nodes: list[ScheduleNode] = []
        if reader.fieldnames:
            for row_number, row in enumerate(reader, start=2):
                if _is_true(row.get("is_filler")):
                    continue
                nodes.append(_parse_row(row, row_number, stamp))

    ordered = sorted(nodes, key=lambda n: n.start_minutes)
    for earlier, later in zip(ordered, ordered[1:]):
        if later.start_minutes < earlier.end_minutes:
            raise ValueError(f"Nodes '{earlier.name}' and '{later.name}' overlap")

    return DaySchedule(date=date_key, nodes=tile(ordered, now=stamp), updated_at=stamp)
