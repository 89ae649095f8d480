from __future__ import annotations

import sys
from pathlib import Path

import pytest

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from errors import StoreWriteError  # noqa: E402
from models import DailyOccupancy  # noqa: E402
from occupancy import (  # noqa: E402
    CSV_TEMPLATE,
    clamp_percentage,
    editor_week,
    import_occupancy_csv,
    load_occupancy,
    parse_occupancy_csv,
    save_occupancy,
    shift_occupancy,
)


def test_clamp_percentage_bounds():
    assert clamp_percentage(-5) == 0
    assert clamp_percentage(140) == 100
    assert clamp_percentage(64) == 64


def test_shift_occupancy_defaults_to_75():
    records = [DailyOccupancy(date="2024-06-01", percentage=0)]
    assert shift_occupancy(records, "2024-06-01") == 0
    assert shift_occupancy(records, "2024-06-02") == 75


def test_editor_week_fills_gaps_with_65():
    records = [DailyOccupancy(date="2024-06-12", percentage=88, notes="Wedding")]
    week = editor_week(records, "2024-06-13")
    assert [day.date for day in week][0] == "2024-06-10"
    assert week[2] == records[0]
    assert {day.percentage for day in week if day.date != "2024-06-12"} == {65}


def test_parse_csv_skips_header_and_bad_lines():
    text = "\n".join(
        [
            "Date,Percentage,Notes",
            "2024-01-01,85,New Year Arrivals",
            "01/02/2024,90,wrong date format",
            "2024-01-03,abc,not a number",
            "2024-01-04,120,\"Gala, dinner\"",
            "2024-01-05,42%",
            "",
        ]
    )
    records, processed = parse_occupancy_csv(text)

    assert processed == 3
    by_date = {record.date: record for record in records}
    assert by_date["2024-01-01"].percentage == 85
    assert by_date["2024-01-04"].percentage == 100
    assert by_date["2024-01-04"].notes == "Gala, dinner"
    assert by_date["2024-01-05"].percentage == 42
    assert by_date["2024-01-05"].notes == ""


def test_template_parses_cleanly():
    records, processed = parse_occupancy_csv(CSV_TEMPLATE)
    assert processed == 2
    assert [record.date for record in records] == ["2024-01-01", "2024-01-02"]


def test_save_clamps_and_upserts(store):
    save_occupancy(store, [DailyOccupancy(date="2024-06-01", percentage=130, notes="Overbooked")])
    save_occupancy(store, [DailyOccupancy(date="2024-06-01", percentage=80)])

    loaded = load_occupancy(store)
    assert loaded == [DailyOccupancy(date="2024-06-01", percentage=80, notes="")]


def test_import_keeps_existing_notes_when_csv_has_none(store):
    save_occupancy(store, [DailyOccupancy(date="2024-06-01", percentage=50, notes="Group block")])

    _, processed = import_occupancy_csv(store, "2024-06-01,70\n2024-06-02,60,Quiet")

    assert processed == 2
    loaded = {record.date: record for record in load_occupancy(store)}
    assert loaded["2024-06-01"] == DailyOccupancy(date="2024-06-01", percentage=70, notes="Group block")
    assert loaded["2024-06-02"].notes == "Quiet"


def test_import_without_valid_rows_raises(store):
    with pytest.raises(ValueError):
        import_occupancy_csv(store, "Date,Percentage,Notes\nnope,1,2")


def test_load_degrades_and_save_propagates(broken_store):
    assert load_occupancy(broken_store) == []
    with pytest.raises(StoreWriteError):
        save_occupancy(broken_store, [DailyOccupancy(date="2024-06-01", percentage=50)])
