"""Demo script for node24-engine."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from node24_engine.layout import TOP, layout, propose_resize, px_per_minute
from node24_engine.metrics import compute_metrics
from node24_engine.store import ScheduleStore
from node24_engine.timefmt import format_duration, minutes_to_time


def show(store: ScheduleStore) -> None:
    for node in store.get_schedule().nodes:
        label = "(free)" if node.is_filler else node.name
        print(f"  {minutes_to_time(node.start_minutes):>8}  {format_duration(node.duration_minutes):>10}  {label}")


def main() -> None:
    store = ScheduleStore()
    work = store.add_node("Work", "blue", 480)
    gym = store.add_node("Gym", "green", 60)
    print("After adding Work and Gym:")
    show(store)

    store.toggle_lock(work.id)
    scale = px_per_minute(720)
    items = layout(store.get_schedule().nodes, scale)
    index = next(i for i, item in enumerate(items) if item.node.id == gym.id)
    intent = propose_resize(items, index, TOP, -30, scale)
    if intent is not None:
        store.resize_node(intent.node_id, intent.new_start, intent.new_duration)
    print("After dragging Gym's top edge up:")
    show(store)
    print("Metrics:", compute_metrics(store.get_schedule().nodes))


if __name__ == "__main__":
    main()
