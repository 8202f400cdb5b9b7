"""Print one day's timeline and statistics from a schedule storage file."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from node24_engine.adapters import csv_adapter
from node24_engine.adapters.json_adapter import JsonScheduleStorage
from node24_engine.layout import layout, px_per_minute
from node24_engine.metrics import compute_metrics
from node24_engine.store import ScheduleStore
from node24_engine.timefmt import format_date_display, format_duration, minutes_to_time


def _render(store: ScheduleStore, date_key: str, height: float) -> list[str]:
    schedule = store.get_schedule(date_key)
    lines = [format_date_display(date_key)]
    for item in layout(schedule.nodes, px_per_minute(height)):
        node = item.node
        label = "(free)" if node.is_filler else node.name
        lock = " [locked]" if node.is_locked else ""
        lines.append(
            f"{minutes_to_time(item.start_minutes):>8} - {minutes_to_time(item.end_minutes):>8}"
            f"  {format_duration(node.duration_minutes):>10}  {label}{lock}  ({item.top:.0f}px +{item.height:.0f}px)"
        )
    return lines


def main() -> None:
    parser = argparse.ArgumentParser(description="Show a Node24 day schedule")
    parser.add_argument("--storage", required=True, help="Path to the schedules JSON file")
    parser.add_argument("--date", help="Date key (YYYY-MM-DD), defaults to today")
    parser.add_argument("--height", type=float, default=720.0, help="Column height in pixels for layout")
    parser.add_argument("--export-csv", help="Also write the day to this CSV path")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    store = ScheduleStore(storage=JsonScheduleStorage(args.storage), today=args.date)
    try:
        store.load()
        date_key = store.current_date
        for line in _render(store, date_key, args.height):
            print(line)
        print(json.dumps(compute_metrics(store.get_schedule(date_key).nodes), indent=2))
        if args.export_csv:
            csv_adapter.export(store.get_schedule(date_key), args.export_csv)
            print(f"Saved CSV export to {args.export_csv}")
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
