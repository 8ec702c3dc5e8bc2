"""In-memory calendar store.

Implements the CalendarStore collaborator for the command line and tests.
Events can be loaded from a JSON snapshot of
``[{"id", "title", "start", "end"}]`` records with ISO-8601 timestamps.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from collections.abc import Iterable
from datetime import datetime, tzinfo
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo

from calassist.errors import CalendarError, ErrorCode
from contracts.calendar import CommitResult, DraftKind, EventDraft, ExistingEvent

logger = logging.getLogger(__name__)


def _parse_iso(value: str, tz: tzinfo) -> datetime:
    """Parse an ISO timestamp; naive values are read as wall-clock time in tz."""
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


class InMemoryCalendarStore:
    """Thread-safe, process-local calendar.

    Reads return snapshots; writes are serialized with a lock.
    """

    def __init__(self, events: Iterable[ExistingEvent] = ()) -> None:
        self._lock = threading.Lock()
        self._events: dict[str, ExistingEvent] = {event.id: event for event in events}

    @classmethod
    def from_json(cls, path: str | Path, timezone: str | tzinfo = "UTC") -> InMemoryCalendarStore:
        """Load events from a JSON file.

        Args:
            path: File holding a list of event records.
            timezone: Zone for timestamps without an offset.

        Returns:
            A store holding the loaded events.

        Raises:
            CalendarError: If the file cannot be read or a record is invalid.
        """
        tz = ZoneInfo(timezone) if isinstance(timezone, str) else timezone
        path = Path(path)
        try:
            with path.open() as f:
                records: list[dict[str, Any]] = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise CalendarError(
                f"Cannot load calendar file {path}",
                code=ErrorCode.CAL_NOT_AVAILABLE,
                details={"path": str(path)},
                cause=e,
            ) from e

        if not isinstance(records, list):
            raise CalendarError(
                f"Calendar file {path} must hold a list of events",
                details={"path": str(path)},
            )

        events = []
        for index, record in enumerate(records):
            try:
                events.append(
                    ExistingEvent(
                        id=str(record.get("id") or f"event-{index}"),
                        title=str(record.get("title", "")),
                        start=_parse_iso(record["start"], tz),
                        end=_parse_iso(record["end"], tz),
                    )
                )
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise CalendarError(
                    f"Invalid event record #{index} in {path}",
                    details={"path": str(path), "index": index},
                    cause=e,
                ) from e

        logger.info("Loaded %d event(s) from %s", len(events), path)
        return cls(events)

    def get_events(self, start: datetime, end: datetime) -> list[ExistingEvent]:
        """Return events overlapping [start, end), ordered by start."""
        with self._lock:
            snapshot = list(self._events.values())
        found = [event for event in snapshot if event.start < end and start < event.end]
        found.sort(key=lambda e: (e.start, e.end, e.id))
        return found

    def all_events(self) -> list[ExistingEvent]:
        with self._lock:
            snapshot = list(self._events.values())
        return sorted(snapshot, key=lambda e: (e.start, e.end, e.id))

    def commit_draft(self, draft: EventDraft) -> CommitResult:
        """Write a confirmed EVENT draft as a new calendar event.

        Task drafts have no time span and are rejected.
        """
        if draft.kind is not DraftKind.EVENT or draft.start is None or draft.end is None:
            return CommitResult(success=False, error="Only timed event drafts can be saved")

        event_id = uuid.uuid4().hex
        event = ExistingEvent(id=event_id, start=draft.start, end=draft.end, title=draft.title)
        with self._lock:
            self._events[event_id] = event
        logger.info("Created event with ID: %s", event_id)
        return CommitResult(success=True, event_id=event_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
