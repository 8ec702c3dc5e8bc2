"""Calendar drafting interfaces.

Value objects passed between the temporal resolver, the entity extractor,
the draft builder and the availability engine, plus the protocols for the
calendar store collaborator. Everything here is request-scoped: objects are
built for one utterance and handed back to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta, tzinfo
from enum import Enum, StrEnum
from typing import Protocol
from zoneinfo import ZoneInfo

ALL_WEEKDAYS = frozenset(range(7))


class Category(StrEnum):
    """Closed set of event categories."""

    WORK = "work"
    PERSONAL = "personal"
    FRIENDS = "friends"
    HEALTH = "health"
    OTHER = "other"


class EntityKind(Enum):
    """Kinds of entities pulled out of an utterance."""

    PERSON = "person"
    TITLE = "title"
    LOCATION = "location"


class AmbiguityFlag(StrEnum):
    """Markers for guesses made while drafting."""

    AMBIGUOUS_DURATION = "ambiguous_duration"
    MULTIPLE_TIMES_DETECTED = "multiple_times_detected"
    LOW_CONFIDENCE_TITLE = "low_confidence_title"
    UNRESOLVED_TEMPORAL_EXPRESSION = "unresolved_temporal_expression"
    INFERRED_TIME_OF_DAY = "inferred_time_of_day"
    IMPLIED_DATE = "implied_date"


class DraftKind(Enum):
    """Whether a draft is a timed calendar event or a todo-style task."""

    EVENT = "event"
    TASK = "task"


@dataclass(frozen=True)
class Utterance:
    """One unit of user input with the instant and zone it was said in.

    Attributes:
        text: Raw user text.
        reference: Instant the text is relative to. A naive value is read as
            wall-clock time in ``timezone``.
        timezone: IANA zone name or tzinfo for the user.
    """

    text: str
    reference: datetime
    timezone: str | tzinfo = "UTC"

    @property
    def tz(self) -> tzinfo:
        if isinstance(self.timezone, str):
            return ZoneInfo(self.timezone)
        return self.timezone

    @property
    def local_reference(self) -> datetime:
        """Reference instant expressed in the user's zone."""
        if self.reference.tzinfo is None:
            return self.reference.replace(tzinfo=self.tz)
        return self.reference.astimezone(self.tz)


@dataclass(frozen=True)
class TemporalExpression:
    """A date/time phrase resolved to an absolute span.

    Attributes:
        text: The phrase as it appeared in the utterance.
        span: (start, end) character offsets of the phrase.
        start: Resolved start instant.
        end: Resolved end instant, if known.
        all_day: True when only a date was given.
        recurrence: RRULE-style recurrence ("FREQ=WEEKLY;BYDAY=FR") or None.
        flags: Ambiguity flags raised while resolving.
    """

    text: str
    span: tuple[int, int]
    start: datetime
    end: datetime | None = None
    all_day: bool = False
    recurrence: str | None = None
    flags: frozenset[AmbiguityFlag] = frozenset()

    def __post_init__(self) -> None:
        if self.end is not None and self.end < self.start:
            msg = f"Temporal expression ends before it starts: {self.start} > {self.end}"
            raise ValueError(msg)

    @property
    def duration_defaulted(self) -> bool:
        return AmbiguityFlag.AMBIGUOUS_DURATION in self.flags


@dataclass(frozen=True)
class ExtractedEntity:
    """A person, title or location found in text."""

    kind: EntityKind
    text: str
    confidence: float
    span: tuple[int, int] | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            msg = f"confidence must be 0.0-1.0, got {self.confidence}"
            raise ValueError(msg)


@dataclass(frozen=True)
class CategoryLabel:
    """Category prediction with its confidence."""

    category: Category
    confidence: float
    matched_terms: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            msg = f"confidence must be 0.0-1.0, got {self.confidence}"
            raise ValueError(msg)

    @classmethod
    def unclassified(cls) -> CategoryLabel:
        return cls(category=Category.OTHER, confidence=0.0)


@dataclass(frozen=True)
class EventDraft:
    """Unconfirmed event (or task) pending user approval.

    For EVENT drafts ``start`` and ``end`` are always set. For TASK drafts
    ``start`` is the optional due instant and ``end`` is None.
    """

    title: str
    start: datetime | None
    end: datetime | None
    category: Category
    participants: tuple[str, ...] = ()
    confidence: float = 0.0
    ambiguity_flags: frozenset[AmbiguityFlag] = frozenset()
    kind: DraftKind = DraftKind.EVENT
    location: str | None = None
    all_day: bool = False
    recurrence: str | None = None
    source_text: str = ""

    def __post_init__(self) -> None:
        if self.kind is DraftKind.EVENT and (self.start is None or self.end is None):
            msg = "Event drafts require both start and end"
            raise ValueError(msg)
        if self.start is not None and self.end is not None and self.end < self.start:
            msg = f"Draft ends before it starts: {self.start} > {self.end}"
            raise ValueError(msg)

    @property
    def duration(self) -> timedelta | None:
        if self.start is None or self.end is None:
            return None
        return self.end - self.start


@dataclass(frozen=True)
class ExistingEvent:
    """Event already on the user's calendar. Read-only to the core."""

    id: str
    start: datetime
    end: datetime
    title: str = ""


@dataclass(frozen=True)
class TimeInterval:
    """Half-open [start, end) span of time.

    Ordering is not validated here so that empty or inverted search windows
    can be reported by the availability engine.
    """

    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def is_empty(self) -> bool:
        return self.end <= self.start

    def overlaps(self, other: TimeInterval) -> bool:
        return self.start < other.end and other.start < self.end


@dataclass(frozen=True)
class WorkingHours:
    """Time-of-day range eligible for slot suggestions.

    Attributes:
        start: Local start of the working day.
        end: Local end of the working day (must be after start).
        weekdays: Allowed weekdays, 0=Monday through 6=Sunday.
    """

    start: time = time(9, 0)
    end: time = time(17, 0)
    weekdays: frozenset[int] = ALL_WEEKDAYS

    def __post_init__(self) -> None:
        if self.end <= self.start:
            msg = f"Working hours must end after they start: {self.start} >= {self.end}"
            raise ValueError(msg)
        if not self.weekdays <= ALL_WEEKDAYS:
            msg = f"weekdays must be within 0-6, got {sorted(self.weekdays)}"
            raise ValueError(msg)


@dataclass(frozen=True)
class ConflictReport:
    """Result of checking a draft against existing events."""

    draft: EventDraft
    overlapping: tuple[ExistingEvent, ...] = ()
    free_slot_suggestions: tuple[TimeInterval, ...] = ()

    @property
    def has_conflicts(self) -> bool:
        return bool(self.overlapping)


@dataclass
class CommitResult:
    """Result of writing a confirmed draft to the calendar store."""

    success: bool
    event_id: str | None = None
    error: str | None = None


class TemporalResolver(Protocol):
    """Interface for turning date/time phrases into absolute spans."""

    def resolve(
        self,
        text: str,
        reference: datetime,
        timezone: str | tzinfo,
    ) -> list[TemporalExpression]:
        """Resolve every date/time phrase in text.

        Args:
            text: Utterance text.
            reference: Instant relative phrases are resolved against.
            timezone: User's time zone.

        Returns:
            Expressions ordered by position in the text.
        """
        ...


class EntityExtractor(Protocol):
    """Interface for pulling people, titles and a category out of text."""

    def extract(
        self,
        text: str,
        consumed_spans: tuple[tuple[int, int], ...] = (),
    ) -> tuple[list[ExtractedEntity], CategoryLabel]:
        """Extract entities and classify the text.

        Args:
            text: Utterance text.
            consumed_spans: Character spans already claimed by temporal phrases.

        Returns:
            (entities, category label)
        """
        ...


class CalendarStore(Protocol):
    """Interface for the calendar collaborator."""

    def get_events(self, start: datetime, end: datetime) -> list[ExistingEvent]:
        """Return events overlapping [start, end), ordered by start."""
        ...

    def commit_draft(self, draft: EventDraft) -> CommitResult:
        """Write a draft the user has explicitly confirmed."""
        ...

