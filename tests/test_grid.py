"""Tests for the static timetable and the rendered grid."""

from src.routine_sync.grid import build_grid, format_grid
from src.routine_sync.models import PeriodRecord
from src.routine_sync.timetable import DAY_DISPLAY_NAMES, TIME_SLOTS, WEEKDAYS, day_key


def test_time_slot_table():
    assert len(TIME_SLOTS) == 8
    assert [s.period for s in TIME_SLOTS] == list(range(1, 9))
    assert [s.period for s in TIME_SLOTS if s.is_lunch] == [4]


def test_day_key():
    assert day_key("Wednesday") == "wed"
    assert day_key("SAT") == "sat"
    assert all(day_key(DAY_DISPLAY_NAMES[d]) == d for d in WEEKDAYS)


def test_grid_shape_and_cells():
    snapshot = {
        "mon": [
            PeriodRecord(period_number=1, subject="Math", teacher="Mr. X"),
            PeriodRecord(period_number=4, subject="Ignored at lunch"),
        ]
    }
    rows = build_grid(snapshot)
    assert [r.day for r in rows] == list(WEEKDAYS)
    assert rows[0].label == "Monday"
    assert all(len(r.cells) == 8 for r in rows)

    monday = rows[0].cells
    assert monday[0].period.subject == "Math"
    assert monday[1].is_empty
    assert monday[3].is_lunch
    assert monday[3].period is None
    # days with no data render as empty cells
    assert all(c.is_empty or c.is_lunch for c in rows[5].cells)


def test_format_grid():
    snapshot = {"tue": [PeriodRecord(period_number=2, subject="Art", code="AR1", room="R2")]}
    text = format_grid(build_grid(snapshot))
    lines = text.splitlines()
    assert lines[0].startswith("Day / Time")
    assert "9:00 - 10:00" in lines[0]
    assert len(lines) == 2 + len(WEEKDAYS)
    tuesday = next(line for line in lines if line.startswith("Tuesday"))
    assert "Art / AR1 / R2" in tuesday
    assert "Lunch Break" in tuesday


def test_period_without_subject_renders_empty():
    snapshot = {"wed": [PeriodRecord(period_number=1, teacher="Mr. X", room="R1")]}
    rows = build_grid(snapshot)
    wednesday = rows[WEEKDAYS.index("wed")]
    assert wednesday.cells[0].period is not None
    assert wednesday.cells[0].is_empty

    line = next(ln for ln in format_grid(rows).splitlines() if ln.startswith("Wednesday"))
    assert "Mr. X" not in line
    assert "R1" not in line
