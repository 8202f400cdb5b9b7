"""Streamlit demo UI for node24-engine."""

from __future__ import annotations

from datetime import date
from typing import Any

from node24_engine.adapters.json_adapter import JsonScheduleStorage
from node24_engine.layout import BOTTOM, TOP, layout, propose_resize, px_per_minute, time_labels
from node24_engine.metrics import compute_metrics
from node24_engine.nodes import NodeUpdate
from node24_engine.reminders import InMemoryReminderScheduler, ReminderSync
from node24_engine.schema import NODE_COLORS, ReminderSettings
from node24_engine.store import ScheduleStore
from node24_engine.timefmt import format_date, format_date_display, format_duration, minutes_to_time

STORAGE_PATH = "node24_schedules.json"
COLUMN_HEIGHT = 720.0


def _timeline_rows(store: ScheduleStore, date_key: str) -> list[dict[str, Any]]:
    rows = []
    for item in layout(store.get_schedule(date_key).nodes, px_per_minute(COLUMN_HEIGHT)):
        node = item.node
        rows.append(
            {
                "start": minutes_to_time(item.start_minutes),
                "end": minutes_to_time(item.end_minutes),
                "name": "(free)" if node.is_filler else node.name,
                "duration": format_duration(node.duration_minutes),
                "color": "" if node.is_filler else node.color,
                "locked": node.is_locked,
                "top_px": round(item.top, 1),
                "height_px": round(item.height, 1),
            }
        )
    return rows


def _get_store(st) -> ScheduleStore:
    if "store" not in st.session_state:
        store = ScheduleStore(storage=JsonScheduleStorage(STORAGE_PATH))
        store.load()
        st.session_state["store"] = store
        sync = ReminderSync(store, InMemoryReminderScheduler())
        sync.sync_all()
        st.session_state["reminders"] = sync
    return st.session_state["store"]


def main() -> None:
    import streamlit as st

    st.set_page_config(page_title="Node24 Demo", layout="wide")
    st.title("Node24 - Streamlit Demo")

    store = _get_store(st)

    with st.sidebar:
        st.header("Day")
        picked = st.date_input("Date", value=date.fromisoformat(store.current_date))
        store.set_current_date(format_date(picked))
        store.set_edit_mode(st.checkbox("Edit mode", value=store.is_edit_mode))

        st.header("Add node")
        name = st.text_input("Name", value="New Node")
        color = st.selectbox("Color", options=list(NODE_COLORS), index=0)
        duration = st.number_input("Duration (min)", min_value=15, max_value=1440, value=240, step=15)
        if st.button("Add", type="primary"):
            if store.add_node(name, color, int(duration)) is None:
                st.warning("There is not enough free time to add a new node.")

    date_key = store.current_date
    nodes = [node for node in store.get_schedule(date_key).nodes if not node.is_filler]

    st.subheader(format_date_display(date_key))
    metrics = compute_metrics(store.get_schedule(date_key).nodes)
    c1, c2, c3 = st.columns(3)
    c1.metric("Scheduled", format_duration(metrics["scheduled_minutes"]))
    c2.metric("Free", format_duration(metrics["free_minutes"]))
    c3.metric("Nodes", metrics["node_count"])
    st.table(_timeline_rows(store, date_key))
    st.caption(" · ".join(label for _, label in time_labels(px_per_minute(COLUMN_HEIGHT))))

    pending = st.session_state["reminders"].scheduler.pending.values()
    if pending:
        st.write("**Pending reminders**")
        st.table([{"at": r.fire_at.isoformat(sep=" "), "message": r.body} for r in sorted(pending, key=lambda r: r.fire_at)])

    if not nodes:
        st.info("Add a node from the sidebar to start planning the day.")
        return

    st.subheader("Edit node")
    labels = {f"{minutes_to_time(n.start_minutes)} {n.name}": n for n in nodes}
    selected = labels[st.selectbox("Node", options=list(labels))]

    e1, e2, e3 = st.columns(3)
    new_name = e1.text_input("Rename", value=selected.name)
    new_color = e2.selectbox("Recolor", options=list(NODE_COLORS), index=NODE_COLORS.index(selected.color))
    new_notes = e3.text_input("Notes", value=selected.notes)
    reminder_on = st.checkbox("Reminder", value=selected.reminder.enabled)

    a1, a2, a3 = st.columns(3)
    if a1.button("Save"):
        try:
            reminder = ReminderSettings(enabled=reminder_on, minutes_before=selected.reminder.minutes_before)
            store.update_node(
                selected.id,
                NodeUpdate(name=new_name, color=new_color, notes=new_notes, reminder=reminder),
            )
        except ValueError as exc:
            st.error(f"Input error: {exc}")
    if a2.button("Lock" if not selected.is_locked else "Unlock"):
        store.toggle_lock(selected.id)
    if a3.button("Delete"):
        store.remove_node(selected.id)

    st.subheader("Drag a handle")
    d1, d2 = st.columns(2)
    edge = d1.radio("Edge", options=[TOP, BOTTOM], horizontal=True)
    translation = d2.slider("Translation (px)", min_value=-200, max_value=200, value=0)
    if st.button("Commit drag"):
        scale = px_per_minute(COLUMN_HEIGHT)
        items = layout(store.get_schedule(date_key).nodes, scale)
        index = next(i for i, item in enumerate(items) if item.node.id == selected.id)
        intent = propose_resize(items, index, edge, float(translation), scale, edit_mode=store.is_edit_mode)
        if intent is None:
            st.info("Nothing to change: the node is locked, edit mode is off, or the edge cannot move that way.")
        else:
            store.resize_node(intent.node_id, intent.new_start, intent.new_duration)


if __name__ == "__main__":
    main()
