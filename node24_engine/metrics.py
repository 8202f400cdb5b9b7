"""Day schedule statistics."""

from __future__ import annotations

from collections import Counter

from node24_engine.schema import MINUTES_IN_DAY, ScheduleNode


def compute_metrics(nodes: list[ScheduleNode]) -> dict:
    """Compute scheduled/free time, node counts and per-color minutes."""

    if not nodes:
        return {
            "scheduled_minutes": 0,
            "free_minutes": MINUTES_IN_DAY,
            "node_count": 0,
            "filler_count": 0,
            "locked_count": 0,
            "utilization": 0.0,
            "minutes_by_color": {},
            "longest_free_block": MINUTES_IN_DAY,
        }

    by_color = Counter()
    scheduled = 0
    free = 0
    longest_free = 0
    node_count = 0
    locked_count = 0
    for node in nodes:
        if node.is_filler:
            free += node.duration_minutes
            longest_free = max(longest_free, node.duration_minutes)
            continue
        node_count += 1
        locked_count += 1 if node.is_locked else 0
        scheduled += node.duration_minutes
        by_color[node.color] += node.duration_minutes

    return {
        "scheduled_minutes": scheduled,
        "free_minutes": free,
        "node_count": node_count,
        "filler_count": len(nodes) - node_count,
        "locked_count": locked_count,
        "utilization": scheduled / MINUTES_IN_DAY,
        "minutes_by_color": dict(by_color),
        "longest_free_block": longest_free,
    }
