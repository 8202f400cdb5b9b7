"""Minute/pixel projection and drag-handle constraints for the day column."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from node24_engine.schema import MIN_NODE_MINUTES, MINUTES_IN_DAY, ScheduleNode
from node24_engine.timefmt import minutes_to_time

FILLER_MIN_HEIGHT_PX = 2.0
LABEL_HOURS = (3, 6, 9, 12, 15, 18, 21)

TOP = "top"
BOTTOM = "bottom"


@dataclass(frozen=True)
class NodeLayout:
    node: ScheduleNode
    top: float
    height: float
    start_minutes: int
    end_minutes: int


@dataclass(frozen=True)
class EdgeRange:
    """Allowed pixel translation for one drag handle."""

    min_delta: float
    max_delta: float

    def clamp(self, offset: float) -> float:
        return max(self.min_delta, min(self.max_delta, offset))


@dataclass(frozen=True)
class DragConstraints:
    top: EdgeRange
    bottom: EdgeRange


@dataclass(frozen=True)
class ResizeIntent:
    node_id: str
    new_start: int
    new_duration: int


def px_per_minute(available_height: float) -> float:
    return available_height / MINUTES_IN_DAY


def minutes_to_pixels(minutes: float, scale: float) -> float:
    return minutes * scale


def pixels_to_minutes(pixels: float, scale: float) -> int:
    """Nearest whole minute, halves rounded up."""

    return math.floor(pixels / scale + 0.5)


def layout(
    sequence: Sequence[ScheduleNode],
    scale: float,
    min_node_minutes: int = MIN_NODE_MINUTES,
) -> list[NodeLayout]:
    """Position every node in one forward scan.

    Heights are floored so short user nodes stay touchable and tiny fillers
    still paint; the floor never feeds back into durations.
    """

    min_node_height = minutes_to_pixels(min_node_minutes, scale)
    result = []
    cursor = 0
    for node in sequence:
        start = cursor
        cursor += node.duration_minutes
        floor = FILLER_MIN_HEIGHT_PX if node.is_filler else min_node_height
        result.append(
            NodeLayout(
                node=node,
                top=minutes_to_pixels(start, scale),
                height=max(minutes_to_pixels(node.duration_minutes, scale), floor),
                start_minutes=start,
                end_minutes=cursor,
            )
        )
    return result


def _is_hard_neighbor(item: Optional[NodeLayout]) -> bool:
    return item is not None and not item.node.is_filler and not item.node.is_locked


def drag_constraints(
    item: NodeLayout,
    prev: Optional[NodeLayout],
    next_: Optional[NodeLayout],
    min_node_height: float,
) -> DragConstraints:
    """Pixel ranges for the start ("top") and end ("bottom") handles.

    An edge next to an unlocked user node cannot move into it. Next to filler
    or a locked node it may travel the neighbor's height less one minimum
    node height, and never less than zero.
    """

    if _is_hard_neighbor(prev):
        min_top = 0.0
    elif prev is not None:
        min_top = min(0.0, -prev.height + min_node_height)
    else:
        min_top = 0.0
    max_top = item.height - min_node_height

    min_bottom = -(item.height - min_node_height)
    if _is_hard_neighbor(next_):
        max_bottom = 0.0
    elif next_ is not None:
        max_bottom = max(0.0, next_.height - min_node_height)
    else:
        max_bottom = 0.0

    return DragConstraints(top=EdgeRange(min_top, max_top), bottom=EdgeRange(min_bottom, max_bottom))


def clamp_offset(constraints: DragConstraints, edge: str, offset: float) -> float:
    if edge == TOP:
        return constraints.top.clamp(offset)
    if edge == BOTTOM:
        return constraints.bottom.clamp(offset)
    raise ValueError(f"unknown edge '{edge}'")


def is_draggable(node: ScheduleNode, edit_mode: bool) -> bool:
    return edit_mode and not node.is_locked and not node.is_filler


def propose_resize(
    layouts: Sequence[NodeLayout],
    index: int,
    edge: str,
    translation: float,
    scale: float,
    min_node_minutes: int = MIN_NODE_MINUTES,
    edit_mode: bool = True,
) -> Optional[ResizeIntent]:
    """Turn a finished handle drag into a resize request, or None for a no-op."""

    item = layouts[index]
    if not is_draggable(item.node, edit_mode):
        return None

    prev = layouts[index - 1] if index > 0 else None
    next_ = layouts[index + 1] if index + 1 < len(layouts) else None
    constraints = drag_constraints(item, prev, next_, minutes_to_pixels(min_node_minutes, scale))
    delta = pixels_to_minutes(clamp_offset(constraints, edge, translation), scale)
    if delta == 0:
        return None

    if edge == TOP:
        new_start = item.start_minutes + delta
        return ResizeIntent(item.node.id, new_start, item.end_minutes - new_start)
    return ResizeIntent(item.node.id, item.start_minutes, item.end_minutes - item.start_minutes + delta)


def time_labels(scale: float) -> list[tuple[float, str]]:
    """Hour marks for the time column, ending with the midnight mark."""

    labels = [(minutes_to_pixels(hour * 60, scale), minutes_to_time(hour * 60)) for hour in LABEL_HOURS]
    labels.append((minutes_to_pixels(MINUTES_IN_DAY, scale), minutes_to_time(MINUTES_IN_DAY)))
    return labels
