"""Unit tests for the conversation orchestrator."""

from datetime import datetime

import pytest

from calassist.errors import (
    CalendarCommitError,
    CalendarError,
    ErrorCode,
    ExternalModelError,
    UnclassifiedIntentError,
    UnresolvedTemporalExpressionError,
)
from calassist.fallbacks import FailureReason, get_fallback_response
from calassist.intent import IntentType
from calassist.orchestrator import (
    Orchestrator,
    TurnState,
    describe_draft,
    get_orchestrator,
    reset_orchestrator,
)
from contracts.calendar import AmbiguityFlag, Category, DraftKind, EventDraft, TimeInterval
from integrations.calendar import InMemoryCalendarStore
from tests.helpers import REFERENCE, FakeBackend, at, make_event

DRAFT_PATH = (
    TurnState.IDLE,
    TurnState.CLASSIFYING,
    TurnState.DRAFTING,
    TurnState.RESPONDING,
    TurnState.IDLE,
)
QUERY_PATH = (
    TurnState.IDLE,
    TurnState.CLASSIFYING,
    TurnState.QUERYING,
    TurnState.RESPONDING,
    TurnState.IDLE,
)


class TestDrafting:
    """Tests for create_event and create_task turns."""

    def test_lunch_with_sarah(self, make_orchestrator):
        """An event request yields a draft awaiting confirmation."""
        result = make_orchestrator().handle("Lunch with Sarah next Friday at noon", REFERENCE)
        assert result.ok
        assert result.intent.intent is IntentType.CREATE_EVENT
        assert result.draft.start == at(19, 12)
        assert result.draft.participants == ("Sarah",)
        assert result.transitions == DRAFT_PATH
        assert result.conflict_report is None
        assert result.message == "Lunch on Fri Jan 19 12:00-13:00 with Sarah. Confirm to save."

    def test_draft_checked_against_snapshot(self, make_orchestrator):
        """Supplied events are checked for conflicts."""
        events = [make_event("e1", at(19, 12, 30), at(19, 13, 30), "Dentist")]
        result = make_orchestrator().handle(
            "Lunch with Sarah next Friday at noon", REFERENCE, events=events
        )
        report = result.conflict_report
        assert report.has_conflicts
        assert [e.id for e in report.overlapping] == ["e1"]
        assert "Conflicts with: Dentist." in result.message

    def test_draft_checked_against_store(self, make_orchestrator):
        """Without a snapshot the attached store is consulted."""
        store = InMemoryCalendarStore([make_event("e1", at(19, 11), at(19, 12), "Call")])
        result = make_orchestrator(store=store).handle(
            "Lunch with Sarah next Friday at noon", REFERENCE
        )
        assert result.conflict_report is not None
        assert not result.conflict_report.has_conflicts

    def test_nothing_is_committed(self, make_orchestrator):
        """Drafting never writes to the store."""
        store = InMemoryCalendarStore()
        make_orchestrator(store=store).handle("Lunch with Sarah next Friday at noon", REFERENCE)
        assert len(store) == 0

    def test_task_without_date(self, make_orchestrator):
        """A task needs no date."""
        result = make_orchestrator().handle("Buy groceries", REFERENCE)
        assert result.ok
        assert result.intent.intent is IntentType.CREATE_TASK
        assert result.draft.kind is DraftKind.TASK
        assert result.draft.start is None
        assert result.message == "Task: Buy groceries. Confirm to save."

    def test_task_with_unresolved_date(self, make_orchestrator):
        """A task keeps going when its date is impossible, flagged."""
        result = make_orchestrator().handle("Remind me to pay rent on the 35th", REFERENCE)
        assert result.ok
        assert result.draft.kind is DraftKind.TASK
        assert result.draft.start is None
        assert AmbiguityFlag.UNRESOLVED_TEMPORAL_EXPRESSION in result.draft.ambiguity_flags

    def test_event_with_unresolved_date(self, make_orchestrator):
        """An event with an impossible date fails with a fallback message."""
        result = make_orchestrator().handle("Dinner with Sam on February 30", REFERENCE)
        assert isinstance(result.error, UnresolvedTemporalExpressionError)
        assert result.draft is None
        assert AmbiguityFlag.UNRESOLVED_TEMPORAL_EXPRESSION in result.flags
        assert result.message == get_fallback_response(FailureReason.UNRESOLVED_DATE).render()
        assert result.transitions == DRAFT_PATH

    def test_raise_for_error(self, make_orchestrator):
        """raise_for_error re-raises the turn's error."""
        result = make_orchestrator().handle("Dinner with Sam on February 30", REFERENCE)
        with pytest.raises(UnresolvedTemporalExpressionError):
            result.raise_for_error()

    def test_timezone_override(self, make_orchestrator):
        """A per-turn zone changes how wall-clock times resolve."""
        result = make_orchestrator().handle(
            "Lunch with Sarah next Friday at noon", REFERENCE, timezone="Europe/London"
        )
        assert result.draft.start.utcoffset().total_seconds() == 0
        assert result.draft.start.hour == 12

    def test_conflict_after_midnight(self, make_orchestrator):
        """An event that runs past midnight is checked against the next day too."""
        events = [make_event("late", at(17, 0, 30), at(17, 1, 30), "Afterparty")]
        result = make_orchestrator().handle(
            "Schedule party tomorrow 10pm-2am", REFERENCE, events=events
        )
        assert result.draft.end == at(17, 2)
        assert [e.id for e in result.conflict_report.overlapping] == ["late"]
        assert "Conflicts with: Afterparty." in result.message

    def test_naive_snapshot_times_are_local(self, make_orchestrator):
        """Snapshot events without a zone are read in the turn's zone."""
        start, end = datetime(2024, 1, 19, 12, 30), datetime(2024, 1, 19, 13, 30)
        events = [make_event("e1", start, end, "Dentist")]
        result = make_orchestrator().handle(
            "Lunch with Sarah next Friday at noon", REFERENCE, events=events
        )
        assert result.ok
        assert [e.id for e in result.conflict_report.overlapping] == ["e1"]
        assert result.conflict_report.overlapping[0].start == at(19, 12, 30)

    def test_date_at_end_of_calendar(self, make_orchestrator):
        """A date too late to schedule fails the turn instead of crashing."""
        result = make_orchestrator().handle("Book flight 12/31/9999", REFERENCE)
        assert isinstance(result.error, UnresolvedTemporalExpressionError)
        assert result.draft is None
        assert result.transitions == DRAFT_PATH


class TestQueries:
    """Tests for query turns."""

    def test_schedule(self, make_orchestrator):
        """Schedule questions list the day's events."""
        events = [
            make_event("gym", at(16, 9), at(16, 10), "Gym"),
            make_event("other", at(17, 9), at(17, 10), "Other"),
        ]
        result = make_orchestrator().handle("What's on tomorrow?", REFERENCE, events=events)
        assert result.intent.intent is IntentType.QUERY_SCHEDULE
        assert [e.id for e in result.events] == ["gym"]
        assert result.message == "Gym (Tue Jan 16 09:00-10:00)."
        assert result.transitions == QUERY_PATH

    def test_empty_schedule(self, make_orchestrator):
        """An empty day says so."""
        result = make_orchestrator().handle("What's on tomorrow?", REFERENCE, events=[])
        assert result.message == "Nothing scheduled for Tue Jan 16."

    def test_schedule_from_store(self, make_orchestrator):
        """The store answers when no snapshot is given."""
        store = InMemoryCalendarStore([make_event("gym", at(16, 9), at(16, 10), "Gym")])
        result = make_orchestrator(store=store).handle("What's on tomorrow?", REFERENCE)
        assert [e.id for e in result.events] == ["gym"]

    def test_query_without_calendar(self, make_orchestrator):
        """Queries need calendar data."""
        result = make_orchestrator().handle("What's on tomorrow?", REFERENCE)
        assert isinstance(result.error, CalendarError)
        assert result.error.code == ErrorCode.CAL_NOT_AVAILABLE

    def test_conflicts_at_time(self, make_orchestrator):
        """A timed conflict question checks that slot."""
        events = [
            make_event("review", at(16, 15, 30), at(16, 16, 30), "Review"),
            make_event("gym", at(16, 9), at(16, 10), "Gym"),
        ]
        result = make_orchestrator().handle(
            "Do I have any conflicts tomorrow at 3pm?", REFERENCE, events=events
        )
        assert result.intent.intent is IntentType.QUERY_CONFLICTS
        assert [e.id for e in result.events] == ["review"]
        assert result.message.startswith("1 conflicting event(s): Review")

    def test_conflicts_on_day(self, make_orchestrator):
        """A dateless-time conflict question reports clashes within the day."""
        events = [
            make_event("a", at(19, 9), at(19, 11), "A"),
            make_event("b", at(19, 10), at(19, 12), "B"),
            make_event("c", at(19, 14), at(19, 15), "C"),
        ]
        result = make_orchestrator().handle("Any conflicts on Friday?", REFERENCE, events=events)
        assert [e.id for e in result.events] == ["a", "b"]

    def test_no_conflicts(self, make_orchestrator):
        """A clear day reports no conflicts."""
        result = make_orchestrator().handle("Any conflicts on Friday?", REFERENCE, events=[])
        assert result.message == "No conflicts found."

    def test_free_on_day(self, make_orchestrator):
        """Free-time questions for a day list gaps in working hours."""
        events = [make_event("m", at(16, 9), at(16, 12), "Morning block")]
        result = make_orchestrator().handle("Am I free tomorrow?", REFERENCE, events=events)
        assert result.intent.intent is IntentType.QUERY_FREE_TIME
        assert result.suggestions == (TimeInterval(at(16, 12), at(16, 17)),)
        assert result.message == "Free 60-minute slots: Tue Jan 16 12:00-17:00."

    def test_free_at_time_when_busy(self, make_orchestrator):
        """A timed free-time question reports the clash and alternatives."""
        events = [make_event("m", at(16, 15), at(16, 16), "Review")]
        result = make_orchestrator().handle("Am I free tomorrow at 3pm?", REFERENCE, events=events)
        assert [e.id for e in result.events] == ["m"]
        assert result.message.startswith("You're busy then. ")
        assert result.suggestions == (
            TimeInterval(at(16, 9), at(16, 15)),
            TimeInterval(at(16, 16), at(16, 17)),
        )

    def test_free_without_date_looks_ahead(self, make_orchestrator):
        """With no date the look-ahead window is searched from now."""
        result = make_orchestrator().handle("Suggest a 30 minute slot", REFERENCE, events=[])
        assert result.suggestions[0] == TimeInterval(REFERENCE, at(15, 17))
        assert len(result.suggestions) == 5
        assert result.message.startswith("Free 30-minute slots: Mon Jan 15 10:00-17:00")


class TestClassificationFailures:
    """Tests for turns the classifier cannot place."""

    def test_unclassified(self, make_orchestrator):
        """Small talk without a model is unclassified."""
        result = make_orchestrator().handle("hello there", REFERENCE)
        assert isinstance(result.error, UnclassifiedIntentError)
        assert result.intent is None
        assert result.message == get_fallback_response(FailureReason.UNCLASSIFIED).render()
        assert result.transitions == (
            TurnState.IDLE,
            TurnState.CLASSIFYING,
            TurnState.RESPONDING,
            TurnState.IDLE,
        )

    def test_model_label(self, make_orchestrator):
        """The model labels requests the rules miss."""
        backend = FakeBackend('{"intent": "query_schedule"}')
        result = make_orchestrator(backend=backend).handle(
            "how's my week looking", REFERENCE, events=[]
        )
        assert result.intent.method == "model"
        assert result.message == "Nothing scheduled for Mon Jan 15."

    def test_model_failure_message(self, make_orchestrator):
        """A model outage shows the model fallback, not raw transport details."""
        backend = FakeBackend(ExternalModelError("HTTP 503: upstream exploded", status_code=503))
        result = make_orchestrator(backend=backend).handle("how's my week looking", REFERENCE)
        assert isinstance(result.error, UnclassifiedIntentError)
        assert result.message == get_fallback_response(FailureReason.MODEL_ERROR).render()
        assert "exploded" not in result.message


class TestCommit:
    """Tests for explicit commits."""

    def test_commit_confirmed_draft(self, make_orchestrator):
        """A confirmed draft is written through the store."""
        store = InMemoryCalendarStore()
        orchestrator = make_orchestrator(store=store)
        result = orchestrator.handle("Lunch with Sarah next Friday at noon", REFERENCE)
        commit = orchestrator.commit(result.draft)
        assert commit.success
        assert [e.title for e in store.all_events()] == ["Lunch"]

    def test_commit_without_store(self, make_orchestrator):
        """Committing needs a store."""
        orchestrator = make_orchestrator()
        result = orchestrator.handle("Lunch with Sarah next Friday at noon", REFERENCE)
        with pytest.raises(CalendarError):
            orchestrator.commit(result.draft)

    def test_commit_rejected(self, make_orchestrator):
        """A store rejection is a commit error."""
        orchestrator = make_orchestrator(store=InMemoryCalendarStore())
        result = orchestrator.handle("Buy groceries", REFERENCE)
        with pytest.raises(CalendarCommitError) as exc_info:
            orchestrator.commit(result.draft)
        assert exc_info.value.code == ErrorCode.CAL_COMMIT_FAILED


class TestDescribeDraft:
    """Tests for draft summaries."""

    def test_all_day(self):
        """All-day drafts show the day only."""
        draft = EventDraft(
            title="Offsite", start=at(16, 0), end=at(17, 0), category=Category.WORK, all_day=True
        )
        assert describe_draft(draft) == "Offsite on Tue Jan 16 (all day)."

    def test_location(self):
        """Locations are included."""
        draft = EventDraft(
            title="Coffee",
            start=at(16, 9),
            end=at(16, 10),
            category=Category.FRIENDS,
            location="Blue Bottle",
        )
        assert describe_draft(draft) == "Coffee on Tue Jan 16 09:00-10:00 at Blue Bottle."

    def test_task_due(self):
        """Tasks show their due time."""
        draft = EventDraft(
            title="Submit report",
            start=at(16, 17),
            end=None,
            category=Category.WORK,
            kind=DraftKind.TASK,
        )
        assert describe_draft(draft) == "Task: Submit report due Tue Jan 16 17:00."


class TestSingleton:
    """Tests for the shared orchestrator."""

    def test_shared_until_reset(self):
        """get_orchestrator builds from config once until reset."""
        first = get_orchestrator()
        assert isinstance(first, Orchestrator)
        assert get_orchestrator() is first
        reset_orchestrator()
        assert get_orchestrator() is not first
