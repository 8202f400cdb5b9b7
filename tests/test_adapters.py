import json
from datetime import datetime

import pytest

from node24_engine import engine
from node24_engine.adapters import csv_adapter
from node24_engine.adapters.json_adapter import JsonScheduleStorage, dump, parse
from node24_engine.nodes import NodeUpdate, create_default_day_schedule, create_node
from node24_engine.schema import DaySchedule, RepeatRule

NOW = datetime(2026, 1, 29, 8, 0)


def sample_schedule():
    nodes = engine.insert_node(
        create_default_day_schedule("2026-01-29", now=NOW).nodes,
        create_node("Run", 45, "green", now=NOW),
        now=NOW,
    )
    run_id = nodes[1].id
    update = NodeUpdate(notes="5k", is_locked=True, repeat_rule=RepeatRule("weekly", day_of_week=1))
    nodes = engine.update_node(nodes, run_id, update, now=NOW)
    return DaySchedule(date="2026-01-29", nodes=nodes, updated_at=NOW)


def test_json_storage_round_trip(tmp_path):
    storage = JsonScheduleStorage(tmp_path / "nested" / "schedules.json")
    assert storage.load() == {}
    schedules = {"2026-01-29": sample_schedule()}
    storage.save(schedules)
    assert storage.load() == schedules
    assert [p.name for p in (tmp_path / "nested").iterdir()] == ["schedules.json"]


def test_json_parse_rejects_non_object(tmp_path):
    path = tmp_path / "schedules.json"
    path.write_text(json.dumps([1, 2]), encoding="utf-8")
    with pytest.raises(ValueError):
        parse(str(path))


def test_json_parse_malformed_node(tmp_path):
    path = tmp_path / "schedules.json"
    dump({"2026-01-29": sample_schedule()}, str(path))
    payload = json.loads(path.read_text(encoding="utf-8"))
    payload["2026-01-29"]["nodes"][1]["color"] = "brown"
    path.write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(ValueError, match="node 2"):
        parse(str(path))


def test_json_parse_rejects_out_of_range_repeat_days(tmp_path):
    path = tmp_path / "schedules.json"
    dump({"2026-01-29": sample_schedule()}, str(path))
    payload = json.loads(path.read_text(encoding="utf-8"))
    payload["2026-01-29"]["nodes"][1]["repeat_rule"] = {"type": "weekly", "day_of_week": 9, "day_of_month": None}
    path.write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(ValueError, match="node 2: day_of_week"):
        parse(str(path))

    payload["2026-01-29"]["nodes"][1]["repeat_rule"] = {"type": "monthly", "day_of_month": "soon"}
    path.write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(ValueError, match="invalid day_of_month"):
        parse(str(path))


def test_json_parse_bad_date_key(tmp_path):
    path = tmp_path / "schedules.json"
    path.write_text(json.dumps({"29/01/2026": {"nodes": [], "updated_at": NOW.isoformat()}}), encoding="utf-8")
    with pytest.raises(ValueError):
        parse(str(path))


def test_csv_export_then_parse(tmp_path):
    path = tmp_path / "day.csv"
    schedule = sample_schedule()
    csv_adapter.export(schedule, str(path))
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "start,end,name,color,duration_minutes,is_filler,is_locked,notes"
    assert lines[2].startswith("11:37,12:22,Run,green,45,false,true,5k")
    assert lines[-1].startswith("12:22,24:00,")

    restored = csv_adapter.parse(str(path), "2026-01-29", now=NOW)
    run = restored.nodes[1]
    assert (run.name, run.start_minutes, run.duration_minutes, run.notes, run.is_locked) == ("Run", 697, 45, "5k", True)
    assert engine.is_tiled(restored.nodes)


def test_csv_parse_rejects_overlap(tmp_path):
    path = tmp_path / "day.csv"
    path.write_text(
        "start,end,name,color\n"
        "09:00,10:00,A,blue\n"
        "09:30,11:00,B,red\n",
        encoding="utf-8",
    )
    with pytest.raises(ValueError, match="overlap"):
        csv_adapter.parse(str(path), "2026-01-29")


def test_csv_parse_invalid_row(tmp_path):
    path = tmp_path / "day.csv"
    path.write_text("start,end,name,color\n09:00,25:00,A,blue\n", encoding="utf-8")
    with pytest.raises(ValueError, match="Row 2"):
        csv_adapter.parse(str(path), "2026-01-29")
