"""Conflict detection and free-slot suggestions.

Intervals are half-open: [s1, e1) and [s2, e2) conflict iff s1 < e2 and
s2 < e1. Supplied event sequences are treated as read-only snapshots.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, time, timedelta, tzinfo

from calassist.config import CalendarAssistConfig, get_config
from calassist.errors import empty_search_window, non_positive_duration
from contracts.calendar import (
    ConflictReport,
    EventDraft,
    ExistingEvent,
    TimeInterval,
    WorkingHours,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_SUGGESTIONS = 5


def intervals_conflict(
    a_start: datetime,
    a_end: datetime,
    b_start: datetime,
    b_end: datetime,
) -> bool:
    """Return True if two half-open intervals share any instant.

    Zero-length intervals never conflict with anything.
    """
    if a_end <= a_start or b_end <= b_start:
        return False
    return a_start < b_end and b_start < a_end


def _event_key(event: ExistingEvent) -> tuple[datetime, datetime, str]:
    return (event.start, event.end, event.id)


def merge_busy(events: Sequence[ExistingEvent]) -> list[TimeInterval]:
    """Merge overlapping or touching event intervals into busy blocks.

    Returns:
        Disjoint intervals sorted by start. Zero-length events are ignored.
    """
    merged: list[TimeInterval] = []
    for event in sorted(events, key=_event_key):
        if event.end <= event.start:
            continue
        if merged and event.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = TimeInterval(last.start, max(last.end, event.end))
        else:
            merged.append(TimeInterval(event.start, event.end))
    return merged


def _day_windows(window: TimeInterval, hours: WorkingHours, tz: tzinfo) -> list[TimeInterval]:
    """Working-hours intervals for each local day the window touches, clipped to it."""
    local_start = window.start.astimezone(tz)
    local_end = window.end.astimezone(tz)
    windows = []
    day = local_start.date()
    while day <= local_end.date():
        if day.weekday() in hours.weekdays:
            open_at = datetime.combine(day, hours.start, tzinfo=tz)
            close_at = datetime.combine(day, hours.end, tzinfo=tz)
            start = max(open_at, window.start)
            end = min(close_at, window.end)
            if start < end:
                windows.append(TimeInterval(start, end))
        day += timedelta(days=1)
    return windows


class AvailabilityEngineImpl:
    """Finds conflicts for drafts and suggests free slots.

    Stateless between calls; the only instance state is the suggestion cap.
    """

    def __init__(self, max_suggestions: int = DEFAULT_MAX_SUGGESTIONS) -> None:
        if max_suggestions < 1:
            msg = f"max_suggestions must be >= 1, got {max_suggestions}"
            raise ValueError(msg)
        self.max_suggestions = max_suggestions

    @classmethod
    def from_config(cls, config: CalendarAssistConfig) -> AvailabilityEngineImpl:
        return cls(max_suggestions=config.scheduling.max_suggestions)

    def find_conflicts(
        self,
        draft: EventDraft,
        existing_events: Sequence[ExistingEvent],
    ) -> list[ExistingEvent]:
        """Return events that overlap the draft, sorted by start, end, then id."""
        if draft.start is None or draft.end is None:
            return []
        conflicts = [
            event
            for event in existing_events
            if intervals_conflict(draft.start, draft.end, event.start, event.end)
        ]
        conflicts.sort(key=_event_key)
        return conflicts

    def find_overlapping_events(self, events: Sequence[ExistingEvent]) -> list[ExistingEvent]:
        """Return every event that overlaps at least one other event in the snapshot."""
        ordered = sorted(events, key=_event_key)
        clashing: dict[str, ExistingEvent] = {}
        for i, first in enumerate(ordered):
            for second in ordered[i + 1 :]:
                if second.start >= first.end:
                    break
                if intervals_conflict(first.start, first.end, second.start, second.end):
                    clashing.setdefault(first.id, first)
                    clashing.setdefault(second.id, second)
        return sorted(clashing.values(), key=_event_key)

    def suggest_slots(
        self,
        duration_minutes: int,
        search_window: TimeInterval,
        existing_events: Sequence[ExistingEvent],
        working_hours: WorkingHours,
    ) -> list[TimeInterval]:
        """Find free intervals long enough for the requested duration.

        Busy intervals are merged, the gaps inside the search window are
        intersected with each day's working hours (in the window's zone) and
        gaps shorter than the duration are dropped.

        Args:
            duration_minutes: Required slot length.
            search_window: Where to look. Must end after it starts.
            existing_events: Calendar snapshot. Not modified.
            working_hours: Hours and weekdays eligible for suggestions.

        Returns:
            Whole free gaps, earliest first, at most ``max_suggestions``.

        Raises:
            InvalidSearchWindowError: If the window ends at or before its start.
            ValidationError: If the duration is not positive.
        """
        if search_window.end <= search_window.start:
            raise empty_search_window(search_window.start, search_window.end)
        if duration_minutes <= 0:
            raise non_positive_duration(duration_minutes)

        needed = timedelta(minutes=duration_minutes)
        tz = search_window.start.tzinfo
        if tz is None:
            msg = "search window must be timezone-aware"
            raise ValueError(msg)

        busy = merge_busy(existing_events)
        suggestions: list[TimeInterval] = []
        for day_window in _day_windows(search_window, working_hours, tz):
            cursor = day_window.start
            for block in busy:
                if block.end <= cursor:
                    continue
                if block.start >= day_window.end:
                    break
                if block.start - cursor >= needed:
                    suggestions.append(TimeInterval(cursor, block.start))
                cursor = max(cursor, block.end)
                if cursor >= day_window.end:
                    break
            if day_window.end - cursor >= needed:
                suggestions.append(TimeInterval(cursor, day_window.end))
            if len(suggestions) >= self.max_suggestions:
                break

        logger.debug(
            "Found %d free slot(s) of %d min in %s - %s",
            len(suggestions),
            duration_minutes,
            search_window.start,
            search_window.end,
        )
        return suggestions[: self.max_suggestions]

    def check(
        self,
        draft: EventDraft,
        existing_events: Sequence[ExistingEvent],
        working_hours: WorkingHours,
        search_window: TimeInterval | None = None,
    ) -> ConflictReport:
        """Check a draft against the calendar.

        Free slots of the draft's length are suggested only when it conflicts.
        Without a search window they are searched over the draft's local day.
        """
        overlapping = self.find_conflicts(draft, existing_events)
        suggestions: list[TimeInterval] = []
        if overlapping and draft.start is not None and draft.end is not None:
            window = search_window or self._day_of(draft.start)
            minutes = max(1, int((draft.end - draft.start).total_seconds() // 60))
            suggestions = self.suggest_slots(minutes, window, existing_events, working_hours)
        return ConflictReport(
            draft=draft,
            overlapping=tuple(overlapping),
            free_slot_suggestions=tuple(suggestions),
        )

    @staticmethod
    def _day_of(instant: datetime) -> TimeInterval:
        tz = instant.tzinfo
        start = datetime.combine(instant.date(), time(0, 0), tzinfo=tz)
        end = datetime.combine(instant.date() + timedelta(days=1), time(0, 0), tzinfo=tz)
        return TimeInterval(start, end)


# Module-level singleton
_engine: AvailabilityEngineImpl | None = None


def get_availability_engine() -> AvailabilityEngineImpl:
    """Get the singleton availability engine, configured from get_config().

    Returns:
        AvailabilityEngineImpl instance.
    """
    global _engine
    if _engine is None:
        _engine = AvailabilityEngineImpl.from_config(get_config())
    return _engine


def reset_availability_engine() -> None:
    """Reset the singleton availability engine."""
    global _engine
    _engine = None
