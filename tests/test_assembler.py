"""Tests for normalization, the day-snapshot reducer and lookups."""

import itertools

import pytest

from src.routine_sync.assembler import (
    SettleTracker,
    apply_day_error,
    apply_day_snapshot,
    lookup,
    normalize_day,
    normalize_period,
    parse_period_number,
)
from src.routine_sync.errors import MalformedPeriodId
from src.routine_sync.models import PeriodRecord, SourceDocument
from src.routine_sync.timetable import WEEKDAYS


def doc(doc_id: str, **fields) -> SourceDocument:
    return SourceDocument(id=doc_id, fields=fields)


class TestParsePeriodNumber:
    def test_plain_number(self):
        assert parse_period_number("4") == 4

    def test_surrounding_whitespace(self):
        assert parse_period_number(" 7 ") == 7

    @pytest.mark.parametrize(
        "doc_id", ["3x", "", "abc", "0", "-2", "1.5", "1_0", "+3", "\uff13", " 1 2 "]
    )
    def test_malformed(self, doc_id):
        with pytest.raises(MalformedPeriodId) as ctx:
            parse_period_number(doc_id)
        assert ctx.value.doc_id == doc_id


class TestNormalizePeriod:
    def test_primary_field_names(self):
        record = normalize_period(doc("1", sname="Math", tname="Mr. X", scode="M1", room="R1"))
        assert record == PeriodRecord(
            period_number=1, subject="Math", teacher="Mr. X", code="M1", room="R1"
        )

    def test_legacy_field_names(self):
        record = normalize_period(doc("2", name="Art", faculty="Ms. A", code="AR", venue="Hall"))
        assert record.subject == "Art"
        assert record.teacher == "Ms. A"
        assert record.code == "AR"
        assert record.room == "Hall"

    def test_primary_wins_over_alternates(self):
        record = normalize_period(doc("1", sname="Math", subject="Other", name="Third"))
        assert record.subject == "Math"

    def test_empty_primary_falls_through(self):
        record = normalize_period(doc("1", sname="", subject="Physics"))
        assert record.subject == "Physics"

    def test_missing_fields_default_to_empty(self):
        record = normalize_period(doc("3"))
        assert (record.subject, record.teacher, record.code, record.room) == ("", "", "", "")

    def test_non_string_values_are_stringified(self):
        assert normalize_period(doc("1", room=204)).room == "204"

    def test_custom_aliases(self):
        aliases = {"subject": ["title"], "teacher": [], "code": [], "room": []}
        record = normalize_period(doc("1", title="Music", sname="ignored"), aliases)
        assert record.subject == "Music"


class TestNormalizeDay:
    def test_sorts_and_drops_malformed(self):
        periods = normalize_day([doc("2"), doc("1"), doc("3x")], day="mon")
        assert [p.period_number for p in periods] == [1, 2]

    def test_python_only_integer_syntax_dropped(self):
        periods = normalize_day([doc("1_0", sname="X"), doc("\uff13"), doc("2", sname="Y")])
        assert [p.period_number for p in periods] == [2]

    def test_duplicate_period_last_write_wins(self):
        periods = normalize_day([doc("1", sname="First"), doc("01", sname="Second")])
        assert len(periods) == 1
        assert periods[0].subject == "Second"

    def test_numeric_not_lexicographic_order(self):
        periods = normalize_day([doc("10"), doc("9"), doc("1")])
        assert [p.period_number for p in periods] == [1, 9, 10]


class TestApplyDaySnapshot:
    def test_stale_epoch_is_noop(self):
        snapshot = {"mon": [PeriodRecord(period_number=1, subject="Keep")]}
        result = apply_day_snapshot(snapshot, "mon", [doc("2", sname="Late")], 1, 2)
        assert result is snapshot

    def test_no_current_epoch_is_noop(self):
        snapshot: dict = {}
        assert apply_day_snapshot(snapshot, "mon", [doc("1")], 1, None) is snapshot

    def test_replaces_day_wholesale(self):
        snapshot = {"mon": [PeriodRecord(period_number=1), PeriodRecord(period_number=2)]}
        result = apply_day_snapshot(snapshot, "mon", [doc("5", sname="New")], 3, 3)
        assert [p.period_number for p in result["mon"]] == [5]
        # input not mutated
        assert len(snapshot["mon"]) == 2

    def test_other_days_untouched(self):
        tue = [PeriodRecord(period_number=1, subject="Tue")]
        result = apply_day_snapshot({"tue": tue}, "mon", [doc("1")], 1, 1)
        assert result["tue"] == tue

    def test_empty_delivery_clears_day(self):
        snapshot = {"fri": [PeriodRecord(period_number=1, subject="Old")]}
        result = apply_day_snapshot(snapshot, "fri", [], 1, 1)
        assert result["fri"] == []

    def test_day_result_is_independent_of_interleaving(self):
        deliveries = [
            ("mon", [doc("2", sname="M2"), doc("1", sname="M1")]),
            ("tue", [doc("1", sname="T1")]),
            ("mon", [doc("3", sname="M3")]),
            ("wed", []),
        ]
        expected = None
        # keep per-day order, permute everything else
        for order in itertools.permutations(range(len(deliveries))):
            if order.index(0) > order.index(2):
                continue
            snapshot: dict = {}
            for i in order:
                day, docs = deliveries[i]
                snapshot = apply_day_snapshot(snapshot, day, docs, 1, 1)
            if expected is None:
                expected = snapshot
            assert snapshot == expected
        assert [p.subject for p in expected["mon"]] == ["M3"]
        assert [p.subject for p in expected["tue"]] == ["T1"]
        assert expected["wed"] == []


class TestApplyDayError:
    def test_leaves_day_empty(self):
        snapshot = {"thu": [PeriodRecord(period_number=1)], "mon": [PeriodRecord(period_number=2)]}
        result = apply_day_error(snapshot, "thu", 4, 4)
        assert result["thu"] == []
        assert result["mon"] == snapshot["mon"]

    def test_stale_error_ignored(self):
        snapshot = {"thu": [PeriodRecord(period_number=1)]}
        assert apply_day_error(snapshot, "thu", 3, 4) is snapshot


class TestLookup:
    snapshot = {
        "wed": [
            PeriodRecord(period_number=1, subject="Math"),
            PeriodRecord(period_number=4, subject="Art"),
        ]
    }

    def test_found(self):
        assert lookup(self.snapshot, "wed", 4).subject == "Art"

    def test_absent_period(self):
        assert lookup(self.snapshot, "wed", 7) is None

    def test_absent_day(self):
        assert lookup(self.snapshot, "mon", 1) is None

    def test_display_name(self):
        assert lookup(self.snapshot, "Wednesday", 1).subject == "Math"


class TestSettleTracker:
    def test_all_settled_only_after_every_day(self):
        tracker = SettleTracker(WEEKDAYS)
        for day in WEEKDAYS[:-1]:
            assert tracker.settle(day)
            assert not tracker.all_settled
        tracker.settle(WEEKDAYS[-1])
        assert tracker.all_settled

    def test_repeat_and_unknown_days(self):
        tracker = SettleTracker(["mon"])
        assert tracker.settle("mon")
        assert not tracker.settle("mon")
        assert not tracker.settle("sun")

    def test_reset(self):
        tracker = SettleTracker(["mon", "tue"])
        tracker.settle("mon")
        tracker.reset()
        assert tracker.pending == {"mon", "tue"}
