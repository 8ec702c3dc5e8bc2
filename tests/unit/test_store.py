"""Unit tests for the in-memory calendar store."""

import json

import pytest

from calassist.errors import CalendarError, ErrorCode
from contracts.calendar import Category, DraftKind, EventDraft
from integrations.calendar.store import InMemoryCalendarStore
from tests.helpers import TZ_NAME, at, make_event


@pytest.fixture
def events_file(tmp_path):
    path = tmp_path / "calendar.json"
    path.write_text(
        json.dumps(
            [
                {"id": "e2", "title": "Lunch", "start": "2024-01-16T12:00", "end": "2024-01-16T13:00"},
                {
                    "id": "e1",
                    "title": "Standup",
                    "start": "2024-01-16T14:00:00Z",
                    "end": "2024-01-16T14:15:00Z",
                },
                {"title": "Gym", "start": "2024-01-17T07:00", "end": "2024-01-17T08:00"},
            ]
        )
    )
    return path


class TestFromJson:
    """Tests for loading calendar snapshots."""

    def test_loads_events(self, events_file):
        """Records become events; naive timestamps use the given zone."""
        store = InMemoryCalendarStore.from_json(events_file, TZ_NAME)
        assert len(store) == 3
        lunch = next(e for e in store.all_events() if e.id == "e2")
        assert lunch.start == at(16, 12)

    def test_offset_timestamps_are_kept(self, events_file):
        """Timestamps with an offset keep it."""
        store = InMemoryCalendarStore.from_json(events_file, TZ_NAME)
        standup = next(e for e in store.all_events() if e.id == "e1")
        assert standup.start == at(16, 9)

    def test_missing_id_is_generated(self, events_file):
        """Records without an id get one from their position."""
        store = InMemoryCalendarStore.from_json(events_file, TZ_NAME)
        assert "event-2" in {e.id for e in store.all_events()}

    def test_missing_file(self, tmp_path):
        """An unreadable file is a calendar error."""
        with pytest.raises(CalendarError) as exc_info:
            InMemoryCalendarStore.from_json(tmp_path / "nope.json")
        assert exc_info.value.code == ErrorCode.CAL_NOT_AVAILABLE

    def test_invalid_json(self, tmp_path):
        """Malformed JSON is a calendar error."""
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(CalendarError):
            InMemoryCalendarStore.from_json(path)

    def test_not_a_list(self, tmp_path):
        """The file must hold a list."""
        path = tmp_path / "obj.json"
        path.write_text('{"events": []}')
        with pytest.raises(CalendarError, match="list"):
            InMemoryCalendarStore.from_json(path)

    def test_bad_record(self, tmp_path):
        """A record without times names its index."""
        path = tmp_path / "bad_record.json"
        path.write_text('[{"id": "x", "title": "No times"}]')
        with pytest.raises(CalendarError) as exc_info:
            InMemoryCalendarStore.from_json(path)
        assert exc_info.value.details["index"] == 0


class TestQueries:
    """Tests for reading events back."""

    def test_get_events_overlapping_range(self):
        """Only events overlapping [start, end) are returned, ordered by start."""
        store = InMemoryCalendarStore(
            [
                make_event("late", at(16, 15), at(16, 16)),
                make_event("early", at(16, 9), at(16, 10)),
                make_event("other_day", at(17, 9), at(17, 10)),
            ]
        )
        found = store.get_events(at(16, 0), at(17, 0))
        assert [e.id for e in found] == ["early", "late"]

    def test_range_end_is_exclusive(self):
        """An event starting at the range end is not included."""
        store = InMemoryCalendarStore([make_event("next", at(17, 0), at(17, 1))])
        assert store.get_events(at(16, 0), at(17, 0)) == []


class TestCommit:
    """Tests for writing confirmed drafts."""

    def test_commit_event(self):
        """A timed event draft is stored with a new id."""
        store = InMemoryCalendarStore()
        draft = EventDraft(title="Lunch", start=at(19, 12), end=at(19, 13), category=Category.FRIENDS)
        result = store.commit_draft(draft)
        assert result.success
        assert result.event_id
        (saved,) = store.all_events()
        assert saved.id == result.event_id
        assert saved.title == "Lunch"

    def test_commit_task_is_rejected(self):
        """Tasks have no time span and are not stored."""
        store = InMemoryCalendarStore()
        task = EventDraft(
            title="Buy milk", start=None, end=None, category=Category.PERSONAL, kind=DraftKind.TASK
        )
        result = store.commit_draft(task)
        assert not result.success
        assert result.error
        assert len(store) == 0
