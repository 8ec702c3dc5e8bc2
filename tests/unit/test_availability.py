"""Unit tests for conflict detection and free-slot suggestions."""

from datetime import datetime, time

import pytest

from calassist.config import CalendarAssistConfig, SchedulingConfig
from calassist.errors import ErrorCode, InvalidSearchWindowError, ValidationError
from contracts.calendar import Category, DraftKind, EventDraft, TimeInterval, WorkingHours
from integrations.calendar.availability import (
    AvailabilityEngineImpl,
    get_availability_engine,
    intervals_conflict,
    merge_busy,
    reset_availability_engine,
)
from tests.helpers import at, make_event


def draft(start, end, kind=DraftKind.EVENT):
    return EventDraft(title="Draft", start=start, end=end, category=Category.OTHER, kind=kind)


def day(day_of_month):
    return TimeInterval(at(day_of_month, 0), at(day_of_month + 1, 0))


@pytest.fixture
def busy_monday():
    return [
        make_event("standup", at(15, 10), at(15, 11)),
        make_event("lunch", at(15, 13), at(15, 14, 30)),
    ]


class TestIntervalsConflict:
    """Tests for the half-open overlap rule."""

    def test_overlap(self):
        """Partially overlapping intervals conflict."""
        assert intervals_conflict(at(15, 9), at(15, 11), at(15, 10), at(15, 12))

    def test_touching_do_not_conflict(self):
        """An interval ending when another starts does not conflict."""
        assert not intervals_conflict(at(15, 9), at(15, 10), at(15, 10), at(15, 11))

    def test_containment(self):
        """An interval inside another conflicts."""
        assert intervals_conflict(at(15, 9), at(15, 17), at(15, 12), at(15, 13))

    def test_zero_length_never_conflicts(self):
        """Zero-length intervals conflict with nothing."""
        assert not intervals_conflict(at(15, 10), at(15, 10), at(15, 9), at(15, 11))


class TestMergeBusy:
    """Tests for busy-block merging."""

    def test_merges_overlapping_and_touching(self):
        """Overlapping and touching events collapse into one block."""
        events = [
            make_event("c", at(15, 13), at(15, 14)),
            make_event("a", at(15, 9), at(15, 10)),
            make_event("b", at(15, 10), at(15, 11)),
            make_event("d", at(15, 13, 30), at(15, 15)),
        ]
        assert merge_busy(events) == [
            TimeInterval(at(15, 9), at(15, 11)),
            TimeInterval(at(15, 13), at(15, 15)),
        ]

    def test_ignores_zero_length(self):
        """Zero-length events are not busy time."""
        assert merge_busy([make_event("z", at(15, 9), at(15, 9))]) == []


class TestFindConflicts:
    """Tests for draft conflict detection."""

    def test_returns_overlapping_sorted(self, engine, busy_monday):
        """Conflicts come back sorted by start."""
        found = engine.find_conflicts(draft(at(15, 10, 30), at(15, 13, 30)), busy_monday)
        assert [e.id for e in found] == ["standup", "lunch"]

    def test_adjacent_event_is_not_a_conflict(self, engine, busy_monday):
        """A draft starting when an event ends does not conflict."""
        assert engine.find_conflicts(draft(at(15, 11), at(15, 12)), busy_monday) == []

    def test_task_without_time_has_no_conflicts(self, engine, busy_monday):
        """Undated tasks never conflict."""
        task = draft(None, None, kind=DraftKind.TASK)
        assert engine.find_conflicts(task, busy_monday) == []

    def test_input_is_not_modified(self, engine, busy_monday):
        """The supplied snapshot is left untouched."""
        snapshot = list(reversed(busy_monday))
        before = list(snapshot)
        engine.find_conflicts(draft(at(15, 9), at(15, 17)), snapshot)
        assert snapshot == before


class TestFindOverlappingEvents:
    """Tests for clashes inside a calendar snapshot."""

    def test_reports_each_clashing_event_once(self, engine):
        """Every event involved in a clash is listed once."""
        events = [
            make_event("a", at(15, 9), at(15, 11)),
            make_event("b", at(15, 10), at(15, 12)),
            make_event("c", at(15, 10, 30), at(15, 10, 45)),
            make_event("d", at(15, 14), at(15, 15)),
        ]
        assert [e.id for e in engine.find_overlapping_events(events)] == ["a", "b", "c"]

    def test_no_clashes(self, engine, busy_monday):
        """A clean calendar has no overlapping events."""
        assert engine.find_overlapping_events(busy_monday) == []


class TestSuggestSlots:
    """Tests for free-slot search."""

    def test_gaps_within_working_hours(self, engine, busy_monday, working_hours):
        """Gaps between events inside 9-17 are suggested whole."""
        slots = engine.suggest_slots(60, day(15), busy_monday, working_hours)
        assert slots == [
            TimeInterval(at(15, 9), at(15, 10)),
            TimeInterval(at(15, 11), at(15, 13)),
            TimeInterval(at(15, 14, 30), at(15, 17)),
        ]

    def test_short_gaps_are_dropped(self, engine, busy_monday, working_hours):
        """Gaps shorter than the duration are not suggested."""
        slots = engine.suggest_slots(121, day(15), busy_monday, working_hours)
        assert slots == [TimeInterval(at(15, 14, 30), at(15, 17))]

    def test_window_clips_working_hours(self, engine, working_hours):
        """Suggestions never leave the search window."""
        window = TimeInterval(at(15, 15), at(15, 16))
        assert engine.suggest_slots(30, window, [], working_hours) == [window]

    def test_multiple_days(self, engine, working_hours):
        """A multi-day window yields one slot per free day."""
        window = TimeInterval(at(15, 0), at(18, 0))
        slots = engine.suggest_slots(60, window, [], working_hours)
        assert [s.start for s in slots] == [at(15, 9), at(16, 9), at(17, 9)]

    def test_excluded_weekdays(self, engine):
        """Days outside the working weekdays get no suggestions."""
        weekdays_only = WorkingHours(weekdays=frozenset(range(5)))
        saturday = day(20)
        assert engine.suggest_slots(30, saturday, [], weekdays_only) == []

    def test_custom_hours(self, engine):
        """Working hours bound every suggestion."""
        hours = WorkingHours(start=time(13, 0), end=time(15, 0))
        assert engine.suggest_slots(30, day(15), [], hours) == [
            TimeInterval(at(15, 13), at(15, 15))
        ]

    def test_max_suggestions(self, working_hours):
        """At most max_suggestions slots are returned."""
        engine = AvailabilityEngineImpl(max_suggestions=2)
        window = TimeInterval(at(15, 0), at(22, 0))
        assert len(engine.suggest_slots(30, window, [], working_hours)) == 2

    def test_empty_window_raises(self, engine, working_hours):
        """A window ending at its start is rejected."""
        with pytest.raises(InvalidSearchWindowError) as exc_info:
            engine.suggest_slots(30, TimeInterval(at(15, 9), at(15, 9)), [], working_hours)
        assert exc_info.value.code == ErrorCode.SCH_INVALID_WINDOW

    def test_inverted_window_raises(self, engine, working_hours):
        """A window ending before its start is rejected."""
        with pytest.raises(InvalidSearchWindowError):
            engine.suggest_slots(30, TimeInterval(at(15, 17), at(15, 9)), [], working_hours)

    @pytest.mark.parametrize("minutes", [0, -15])
    def test_non_positive_duration_raises(self, engine, working_hours, minutes):
        """Durations must be positive."""
        with pytest.raises(ValidationError) as exc_info:
            engine.suggest_slots(minutes, day(15), [], working_hours)
        assert exc_info.value.details["field"] == "duration_minutes"

    def test_naive_window_raises(self, engine, working_hours):
        """The search window must carry a zone."""
        window = TimeInterval(datetime(2024, 1, 15, 9), datetime(2024, 1, 15, 17))
        with pytest.raises(ValueError, match="timezone-aware"):
            engine.suggest_slots(30, window, [], working_hours)


class TestCheck:
    """Tests for ConflictReport assembly."""

    def test_conflicting_draft_gets_suggestions(self, engine, busy_monday, working_hours):
        """A clash is reported with same-length free slots on that day."""
        report = engine.check(draft(at(15, 10, 30), at(15, 11, 30)), busy_monday, working_hours)
        assert report.has_conflicts
        assert [e.id for e in report.overlapping] == ["standup"]
        assert report.free_slot_suggestions[0] == TimeInterval(at(15, 9), at(15, 10))
        assert all(s.duration.total_seconds() >= 3600 for s in report.free_slot_suggestions)

    def test_clear_draft_gets_no_suggestions(self, engine, busy_monday, working_hours):
        """No clash means no suggestions."""
        report = engine.check(draft(at(15, 11), at(15, 12)), busy_monday, working_hours)
        assert not report.has_conflicts
        assert report.free_slot_suggestions == ()


class TestEngineConfiguration:
    """Tests for engine construction."""

    def test_rejects_zero_max_suggestions(self):
        """max_suggestions must be at least 1."""
        with pytest.raises(ValueError, match="max_suggestions"):
            AvailabilityEngineImpl(max_suggestions=0)

    def test_from_config(self):
        """The suggestion cap comes from the scheduling settings."""
        config = CalendarAssistConfig(scheduling=SchedulingConfig(max_suggestions=3))
        assert AvailabilityEngineImpl.from_config(config).max_suggestions == 3

    def test_singleton(self):
        """get_availability_engine returns one shared instance until reset."""
        first = get_availability_engine()
        assert get_availability_engine() is first
        reset_availability_engine()
        assert get_availability_engine() is not first
