"""Invariant-preserving operations over a day's node sequence.

Every operation takes a sequence and returns a sequence without mutating its
input. A declined operation (no space, unknown id, locked node, filler target)
returns the very list it was given, so callers detect "nothing changed" by
comparing the result with what they passed in.

Outputs always tile the day: durations sum to ``MINUTES_IN_DAY``, each node's
``start_minutes`` equals the sum of the durations before it, and no two
fillers are adjacent.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional, Sequence

from node24_engine.nodes import NodeUpdate, apply_update, create_filler_node
from node24_engine.schema import MIN_NODE_MINUTES, MINUTES_IN_DAY, ScheduleNode

logger = logging.getLogger(__name__)


def validate(sequence: Sequence[ScheduleNode]) -> bool:
    """Return True when the durations sum to exactly one day."""

    return sum(node.duration_minutes for node in sequence) == MINUTES_IN_DAY


def is_tiled(sequence: Sequence[ScheduleNode]) -> bool:
    """Strict check: full day, positive durations, contiguous stamps, merged fillers."""

    if not validate(sequence):
        return False
    cursor = 0
    previous_filler = False
    for node in sequence:
        if node.duration_minutes <= 0 or node.start_minutes != cursor:
            return False
        if node.is_filler and previous_filler:
            return False
        previous_filler = node.is_filler
        cursor += node.duration_minutes
    return True


def find_node(sequence: Sequence[ScheduleNode], node_id: str) -> tuple[int, Optional[ScheduleNode]]:
    for index, node in enumerate(sequence):
        if node.id == node_id:
            return index, node
    return -1, None


def node_start_time(sequence: Sequence[ScheduleNode], index: int) -> int:
    """Minute offset of the node at ``index``, derived from position."""

    return sum(node.duration_minutes for node in sequence[:index])


def total_filler_minutes(sequence: Sequence[ScheduleNode]) -> int:
    return sum(node.duration_minutes for node in sequence if node.is_filler)


def restamp(sequence: Sequence[ScheduleNode]) -> list[ScheduleNode]:
    """Recompute every ``start_minutes`` from sequence position."""

    result = []
    cursor = 0
    for node in sequence:
        result.append(node if node.start_minutes == cursor else replace(node, start_minutes=cursor))
        cursor += node.duration_minutes
    return result


def merge_fillers(sequence: Sequence[ScheduleNode], now: datetime | None = None) -> list[ScheduleNode]:
    """Collapse runs of adjacent fillers into the first filler of each run."""

    stamp = now or datetime.now()
    result: list[ScheduleNode] = []
    for node in sequence:
        last = result[-1] if result else None
        if last is not None and last.is_filler and node.is_filler:
            result[-1] = replace(
                last,
                duration_minutes=last.duration_minutes + node.duration_minutes,
                updated_at=stamp,
            )
        else:
            result.append(node)
    return restamp(result)


def tile(user_nodes: Sequence[ScheduleNode], now: datetime | None = None) -> list[ScheduleNode]:
    """Rebuild a full day from user nodes, synthesizing fillers for every gap.

    Nodes are placed in ``start_minutes`` order. A node that starts before the
    previous one ends is pushed back to the previous end.
    """

    ordered = sorted((node for node in user_nodes if not node.is_filler), key=lambda n: n.start_minutes)
    result: list[ScheduleNode] = []
    cursor = 0
    for node in ordered:
        gap = node.start_minutes - cursor
        if gap > 0:
            result.append(create_filler_node(gap, cursor, now=now))
        elif gap < 0:
            node = replace(node, start_minutes=cursor)
        result.append(node)
        cursor = node.start_minutes + node.duration_minutes
    if cursor < MINUTES_IN_DAY:
        result.append(create_filler_node(MINUTES_IN_DAY - cursor, cursor, now=now))
    return result


def _positions(sequence: Sequence[ScheduleNode]) -> list[int]:
    starts = []
    cursor = 0
    for node in sequence:
        starts.append(cursor)
        cursor += node.duration_minutes
    return starts


def _free_window(sequence: Sequence[ScheduleNode], starts: list[int], index: int) -> tuple[int, int]:
    """Span between the previous and next user nodes around ``index``."""

    low = 0
    for i in range(index - 1, -1, -1):
        if not sequence[i].is_filler:
            low = starts[i] + sequence[i].duration_minutes
            break
    high = MINUTES_IN_DAY
    for i in range(index + 1, len(sequence)):
        if not sequence[i].is_filler:
            high = starts[i]
            break
    return low, high


def _retile(
    sequence: Sequence[ScheduleNode],
    node_id: str,
    new_start: int,
    new_duration: int,
    now: datetime | None,
) -> list[ScheduleNode]:
    stamp = now or datetime.now()
    user_nodes = []
    for start, node in zip(_positions(sequence), sequence):
        if node.is_filler:
            continue
        if node.id == node_id:
            node = replace(node, start_minutes=new_start, duration_minutes=new_duration, updated_at=stamp)
        elif node.start_minutes != start:
            node = replace(node, start_minutes=start)
        user_nodes.append(node)
    return tile(user_nodes, now=stamp)


def insert_node(
    sequence: Sequence[ScheduleNode],
    new_node: ScheduleNode,
    now: datetime | None = None,
) -> Sequence[ScheduleNode]:
    """Place ``new_node`` in the middle of the largest filler.

    The first of equally large fillers wins. Declines when no filler can hold
    the node.
    """

    if new_node.is_filler or new_node.duration_minutes <= 0:
        logger.debug("Refusing to insert node %s with duration %s", new_node.id, new_node.duration_minutes)
        return sequence

    working = list(sequence) or [create_filler_node(MINUTES_IN_DAY, 0, now=now)]

    best_index = -1
    best_duration = 0
    for index, node in enumerate(working):
        if node.is_filler and node.duration_minutes > best_duration:
            best_index = index
            best_duration = node.duration_minutes

    if best_index == -1 or best_duration < new_node.duration_minutes:
        logger.warning(
            "No space to add node %s: needs %d min, largest free block is %d min",
            new_node.id,
            new_node.duration_minutes,
            best_duration,
        )
        return sequence

    remaining = best_duration - new_node.duration_minutes
    half = remaining // 2
    pieces = []
    if half > 0:
        pieces.append(create_filler_node(half, now=now))
    pieces.append(new_node)
    if remaining - half > 0:
        pieces.append(create_filler_node(remaining - half, now=now))

    working[best_index : best_index + 1] = pieces
    return merge_fillers(working, now=now)


def remove_node(sequence: Sequence[ScheduleNode], node_id: str, now: datetime | None = None) -> Sequence[ScheduleNode]:
    """Turn a user node into free time. Fillers cannot be removed directly."""

    index, node = find_node(sequence, node_id)
    if node is None:
        logger.debug("Remove skipped, node %s not found", node_id)
        return sequence
    if node.is_filler:
        return sequence

    working = list(sequence)
    working[index] = create_filler_node(node.duration_minutes, node.start_minutes, now=now)
    return merge_fillers(working, now=now)


def resize_node(
    sequence: Sequence[ScheduleNode],
    node_id: str,
    new_start: int,
    new_duration: int,
    now: datetime | None = None,
) -> Sequence[ScheduleNode]:
    """Move and resize a user node, then rebuild the day around it.

    Duration is clamped to ``[MIN_NODE_MINUTES, MINUTES_IN_DAY]`` and the node is
    confined to the free window between its neighboring user nodes. Declines
    when that window is shorter than ``MIN_NODE_MINUTES``.
    """

    index, node = find_node(sequence, node_id)
    if node is None or node.is_filler:
        logger.debug("Resize skipped, no user node %s", node_id)
        return sequence
    if node.is_locked:
        logger.debug("Resize skipped, node %s is locked", node_id)
        return sequence

    starts = _positions(sequence)
    low, high = _free_window(sequence, starts, index)
    if high - low < MIN_NODE_MINUTES:
        logger.debug("Resize skipped, node %s has only %d free minutes", node_id, high - low)
        return sequence

    duration = min(max(int(new_duration), MIN_NODE_MINUTES), MINUTES_IN_DAY)
    duration = min(duration, high - low)
    start = min(max(int(new_start), low), high - duration)

    if start == starts[index] and duration == node.duration_minutes:
        return sequence
    return _retile(sequence, node_id, start, duration, now)


def update_duration(
    sequence: Sequence[ScheduleNode],
    node_id: str,
    new_duration: int,
    now: datetime | None = None,
) -> Sequence[ScheduleNode]:
    """Change a node's length, trading time with its adjacent fillers.

    Growth comes from the following filler first, then the preceding one, and
    is capped at what those two hold. Freed time goes to the following filler,
    or to the preceding one when only that neighbor is free time.
    """

    index, node = find_node(sequence, node_id)
    if node is None or node.is_filler or new_duration <= 0:
        logger.debug("Duration change skipped for node %s", node_id)
        return sequence

    delta = int(new_duration) - node.duration_minutes
    if delta == 0:
        return sequence

    start = node_start_time(sequence, index)
    after = sequence[index + 1] if index + 1 < len(sequence) and sequence[index + 1].is_filler else None
    before = sequence[index - 1] if index > 0 and sequence[index - 1].is_filler else None

    if delta > 0:
        take_after = min(delta, after.duration_minutes if after else 0)
        take_before = min(delta - take_after, before.duration_minutes if before else 0)
        granted = take_after + take_before
        if granted == 0:
            logger.debug("Node %s cannot grow, no adjacent free time", node_id)
            return sequence
        if granted < delta:
            logger.debug("Node %s growth clamped from %d to %d min", node_id, delta, granted)
        start -= take_before
        duration = node.duration_minutes + granted
    else:
        duration = int(new_duration)
        if after is None and before is not None:
            start -= delta

    return _retile(sequence, node_id, start, duration, now)


def update_node(
    sequence: Sequence[ScheduleNode],
    node_id: str,
    update: NodeUpdate,
    now: datetime | None = None,
) -> Sequence[ScheduleNode]:
    """Apply field changes to a user node; a new duration re-tiles the day."""

    index, node = find_node(sequence, node_id)
    if node is None or node.is_filler or update.is_empty():
        return sequence

    updated = apply_update(node, update, now=now)
    working = sequence if updated is node else [*sequence[:index], updated, *sequence[index + 1 :]]
    if update.duration_minutes is not None and update.duration_minutes != node.duration_minutes:
        return update_duration(working, node_id, update.duration_minutes, now=now)
    return working


def toggle_lock(sequence: Sequence[ScheduleNode], node_id: str, now: datetime | None = None) -> Sequence[ScheduleNode]:
    index, node = find_node(sequence, node_id)
    if node is None or node.is_filler:
        return sequence
    toggled = replace(node, is_locked=not node.is_locked, updated_at=now or datetime.now())
    return [*sequence[:index], toggled, *sequence[index + 1 :]]
