"""
tests/unit/test_state.py — Unit tests for watcher/state.py

Covers: SubjectChange and SummaryRecord shapes, camelCase serialization,
        the synthetic records, ContentSlot, CycleResult, PollerStatus.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import pytest
from watcher.state import (
    ContentSlot,
    CycleOutcome,
    CycleResult,
    PollerStatus,
    SubjectChange,
    SummaryRecord,
    MONITORING_STARTED,
    UNPARSEABLE_SUMMARY,
)


# ── Fixtures ──────────────────────────────────────────────────────────────────

STAMP = datetime(2026, 10, 17, 9, 0, 0, tzinfo=timezone.utc)


def make_record(**overrides) -> SummaryRecord:
    fields = dict(
        has_changes=True,
        summary="Math homework added",
        subjects=[SubjectChange(name="Math", changes=["New worksheet due Friday"])],
        timestamp=STAMP,
    )
    fields.update(overrides)
    return SummaryRecord(**fields)


# ── SubjectChange ─────────────────────────────────────────────────────────────

class TestSubjectChange:
    def test_changes_stored_as_tuple(self):
        s = SubjectChange(name="Math", changes=["a", "b"])
        assert s.changes == ("a", "b")

    def test_change_order_preserved(self):
        s = SubjectChange(name="Math", changes=["third", "first", "second"])
        assert s.to_dict()["changes"] == ["third", "first", "second"]

    def test_to_dict(self):
        s = SubjectChange(name="Science", changes=["Lab report due Monday"])
        assert s.to_dict() == {"name": "Science", "changes": ["Lab report due Monday"]}

    def test_defaults_to_no_changes(self):
        assert SubjectChange(name="Music").changes == ()


# ── SummaryRecord ─────────────────────────────────────────────────────────────

class TestSummaryRecord:
    def test_to_dict_uses_camel_case(self):
        d = make_record().to_dict()
        assert set(d) == {"hasChanges", "summary", "subjects", "timestamp"}

    def test_to_dict_values(self):
        d = make_record().to_dict()
        assert d["hasChanges"] is True
        assert d["summary"] == "Math homework added"
        assert d["subjects"] == [{"name": "Math", "changes": ["New worksheet due Friday"]}]
        assert d["timestamp"] == STAMP.isoformat()

    def test_is_frozen(self):
        record = make_record()
        with pytest.raises(Exception):
            record.summary = "edited"

    def test_subjects_stored_as_tuple(self):
        assert isinstance(make_record().subjects, tuple)

    def test_subject_names(self):
        record = make_record(subjects=[
            SubjectChange(name="Math", changes=["x"]),
            SubjectChange(name="Science", changes=["y"]),
        ])
        assert record.subject_names == ["Math", "Science"]

    def test_timestamp_defaults_to_now_utc(self):
        before = datetime.now(timezone.utc)
        record = SummaryRecord(has_changes=True, summary="x")
        assert record.timestamp >= before
        assert record.timestamp.tzinfo is not None

    def test_from_dict_round_trip(self):
        original = make_record()
        rebuilt = SummaryRecord.from_dict(original.to_dict())
        assert rebuilt == original

    def test_from_dict_tolerates_missing_fields(self):
        record = SummaryRecord.from_dict({})
        assert record.has_changes is False
        assert record.summary == ""
        assert record.subjects == ()


class TestSyntheticRecords:
    def test_monitoring_started(self):
        record = SummaryRecord.monitoring_started()
        assert record.has_changes is False
        assert record.summary == MONITORING_STARTED
        assert record.subjects == ()

    def test_unparseable(self):
        record = SummaryRecord.unparseable()
        assert record.has_changes is False
        assert record.summary == UNPARSEABLE_SUMMARY
        assert record.subjects == ()


# ── ContentSlot ───────────────────────────────────────────────────────────────

class TestContentSlot:
    def test_starts_empty(self):
        slot = ContentSlot()
        assert slot.is_empty
        assert slot.value is None

    def test_replace(self):
        slot = ContentSlot()
        slot.replace("Math: p. 12")
        assert not slot.is_empty
        assert slot.value == "Math: p. 12"

    def test_replace_with_empty_string_is_not_empty(self):
        slot = ContentSlot()
        slot.replace("")
        assert not slot.is_empty


# ── CycleResult ───────────────────────────────────────────────────────────────

class TestCycleResult:
    def test_skipped_tick(self):
        result = CycleResult.skipped_tick()
        assert result.skipped is True
        assert result.outcome is None

    def test_to_dict_with_record(self):
        record = make_record()
        result = CycleResult(outcome=CycleOutcome.CHANGED, recorded=record)
        d = result.to_dict()
        assert d["outcome"] == "changed"
        assert d["skipped"] is False
        assert d["recorded"] == record.to_dict()
        assert d["error"] is None

    def test_to_dict_failed(self):
        d = CycleResult(outcome=CycleOutcome.FAILED, error="HTTP 503").to_dict()
        assert d["outcome"] == "failed"
        assert d["recorded"] is None
        assert d["error"] == "HTTP 503"

    def test_to_dict_skipped(self):
        d = CycleResult.skipped_tick().to_dict()
        assert d["outcome"] is None
        assert d["skipped"] is True

    def test_outcome_values(self):
        assert [o.value for o in CycleOutcome] == ["first_run", "no_change", "changed", "failed"]


# ── PollerStatus ──────────────────────────────────────────────────────────────

class TestPollerStatus:
    def test_to_dict_with_times(self):
        status = PollerStatus(
            running=True, analyzing=False, cycles=3, failures=1,
            last_checked=STAMP, last_updated=STAMP,
        )
        d = status.to_dict()
        assert d["running"] is True
        assert d["cycles"] == 3
        assert d["failures"] == 1
        assert d["lastChecked"] == STAMP.isoformat()
        assert d["lastUpdated"] == STAMP.isoformat()

    def test_to_dict_without_times(self):
        status = PollerStatus(
            running=False, analyzing=False, cycles=0, failures=0,
            last_checked=None, last_updated=None,
        )
        d = status.to_dict()
        assert d["lastChecked"] is None
        assert d["lastUpdated"] is None
