"""Conversation orchestrator.

Runs one user turn through an explicit state machine:

    IDLE -> CLASSIFYING -> DRAFTING | QUERYING -> RESPONDING -> IDLE

Drafting resolves dates, extracts entities, builds a draft and checks it
against the calendar when calendar data is available. Querying answers
conflict, free-time and schedule questions. Nothing is written to the
calendar here; ``commit`` must be called explicitly with a confirmed draft.

Usage:
    from calassist.orchestrator import get_orchestrator

    result = get_orchestrator().handle("Lunch with Sarah next Friday at noon", now)
    if result.draft is not None:
        ...  # show the draft, then orchestrator.commit(result.draft) on confirmation
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, time, timedelta, tzinfo
from enum import Enum

from calassist.config import CalendarAssistConfig, get_config
from calassist.errors import (
    CalendarAssistError,
    CalendarCommitError,
    CalendarError,
    ErrorCode,
    UnresolvedTemporalExpressionError,
)
from calassist.fallbacks import fallback_for_error
from calassist.intent import IntentClassifier, IntentResult, IntentType, get_intent_classifier
from contracts.calendar import (
    AmbiguityFlag,
    CalendarStore,
    Category,
    CommitResult,
    ConflictReport,
    DraftKind,
    EventDraft,
    ExistingEvent,
    TemporalExpression,
    TimeInterval,
    Utterance,
    WorkingHours,
)
from contracts.llm import ChatMessage
from integrations.calendar import (
    AvailabilityEngineImpl,
    EntityExtractorImpl,
    EventDraftBuilderImpl,
    TemporalResolverImpl,
    get_draft_builder,
    parse_duration_minutes,
    vocabulary_spans,
)

logger = logging.getLogger(__name__)


class TurnState(Enum):
    """States a turn passes through."""

    IDLE = "idle"
    CLASSIFYING = "classifying"
    DRAFTING = "drafting"
    QUERYING = "querying"
    RESPONDING = "responding"


@dataclass
class TurnResult:
    """Everything produced by one turn.

    Attributes:
        text: The user's request.
        intent: Classified intent, None if classification failed.
        draft: Draft awaiting confirmation (create intents).
        conflict_report: Draft checked against the calendar, when data was available.
        events: Events answering a query (listed, overlapping or clashing).
        suggestions: Free slots answering a free-time query.
        error: Request-scoped failure, if any.
        message: Short user-facing summary or fallback text.
        flags: Ambiguity flags raised outside the draft.
        transitions: States visited, in order.
    """

    text: str
    intent: IntentResult | None = None
    draft: EventDraft | None = None
    conflict_report: ConflictReport | None = None
    events: tuple[ExistingEvent, ...] = ()
    suggestions: tuple[TimeInterval, ...] = ()
    error: CalendarAssistError | None = None
    message: str = ""
    flags: frozenset[AmbiguityFlag] = frozenset()
    transitions: tuple[TurnState, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        """Re-raise the turn's error, if any."""
        if self.error is not None:
            raise self.error


def _fmt_time(instant: datetime) -> str:
    return instant.strftime("%H:%M")


def _fmt_day(instant: datetime) -> str:
    return instant.strftime("%a %b %d").replace(" 0", " ")


def _fmt_span(start: datetime, end: datetime | None) -> str:
    if end is None:
        return f"{_fmt_day(start)} {_fmt_time(start)}"
    if start.date() == end.date():
        return f"{_fmt_day(start)} {_fmt_time(start)}-{_fmt_time(end)}"
    return f"{_fmt_day(start)} {_fmt_time(start)} - {_fmt_day(end)} {_fmt_time(end)}"


def describe_draft(draft: EventDraft) -> str:
    """One-line summary of a draft for confirmation."""
    if draft.kind is DraftKind.TASK:
        due = f" due {_fmt_span(draft.start, None)}" if draft.start else ""
        return f"Task: {draft.title}{due}."
    assert draft.start is not None
    when = _fmt_day(draft.start) + " (all day)" if draft.all_day else _fmt_span(draft.start, draft.end)
    parts = [f"{draft.title} on {when}"]
    if draft.participants:
        parts.append("with " + ", ".join(draft.participants))
    if draft.location:
        parts.append(f"at {draft.location}")
    return " ".join(parts) + "."


class Orchestrator:
    """Routes each turn to drafting or querying.

    Holds only its collaborators and immutable settings, so one instance
    can serve concurrent turns. Supplied event snapshots are read, never
    modified.
    """

    def __init__(
        self,
        resolver: TemporalResolverImpl,
        extractor: EntityExtractorImpl,
        builder: EventDraftBuilderImpl,
        engine: AvailabilityEngineImpl,
        classifier: IntentClassifier,
        store: CalendarStore | None = None,
        working_hours: WorkingHours | None = None,
        timezone: str | tzinfo = "UTC",
        lookahead_days: int = 7,
        default_duration_minutes: int = 60,
    ) -> None:
        self.resolver = resolver
        self.extractor = extractor
        self.builder = builder
        self.engine = engine
        self.classifier = classifier
        self.store = store
        self.working_hours = working_hours or WorkingHours()
        self.timezone = timezone
        self.lookahead_days = lookahead_days
        self.default_duration_minutes = default_duration_minutes

    @classmethod
    def from_config(
        cls,
        config: CalendarAssistConfig,
        store: CalendarStore | None = None,
        classifier: IntentClassifier | None = None,
    ) -> Orchestrator:
        """Build an orchestrator whose components follow the given configuration."""
        return cls(
            resolver=TemporalResolverImpl.from_config(config),
            extractor=EntityExtractorImpl.from_config(config),
            builder=get_draft_builder(),
            engine=AvailabilityEngineImpl.from_config(config),
            classifier=classifier or get_intent_classifier(),
            store=store,
            working_hours=config.working_hours.to_working_hours(),
            timezone=config.timezone,
            lookahead_days=config.scheduling.lookahead_days,
            default_duration_minutes=config.scheduling.default_duration_minutes,
        )

    # =========================================================================
    # Turn handling
    # =========================================================================

    def handle(
        self,
        text: str,
        reference: datetime,
        timezone: str | tzinfo | None = None,
        events: Sequence[ExistingEvent] | None = None,
        history: tuple[ChatMessage, ...] = (),
    ) -> TurnResult:
        """Handle one user turn.

        Args:
            text: The user's request.
            reference: Instant the request was made.
            timezone: User's zone. Defaults to the configured zone.
            events: Calendar snapshot to check against. When None the store
                is consulted, if there is one.
            history: Earlier transcript turns for the model fallback.

        Returns:
            The turn result. Errors are returned on ``result.error`` with a
            fallback message, never raised.
        """
        utterance = Utterance(text=text, reference=reference, timezone=timezone or self.timezone)
        states = [TurnState.IDLE, TurnState.CLASSIFYING]
        result = TurnResult(text=text)

        try:
            has_temporal = bool(vocabulary_spans(text))
            intent = self.classifier.classify(text, has_temporal, history)
            result.intent = intent
            if intent.intent.is_query:
                states.append(TurnState.QUERYING)
                self._query(utterance, intent.intent, events, result)
            else:
                states.append(TurnState.DRAFTING)
                self._draft(utterance, intent.intent, events, result)
        except CalendarAssistError as e:
            logger.info("Turn failed with %s: %s", e.code, e.message)
            result.error = e
            result.message = fallback_for_error(e).render()
            if isinstance(e, UnresolvedTemporalExpressionError):
                result.flags = result.flags | {AmbiguityFlag.UNRESOLVED_TEMPORAL_EXPRESSION}

        states.extend([TurnState.RESPONDING, TurnState.IDLE])
        result.transitions = tuple(states)
        return result

    def commit(self, draft: EventDraft) -> CommitResult:
        """Write a confirmed draft through the calendar store.

        Raises:
            CalendarError: If no store is attached.
            CalendarCommitError: If the store rejects the draft.
        """
        if self.store is None:
            raise CalendarError("No calendar store attached")
        result = self.store.commit_draft(draft)
        if not result.success:
            raise CalendarCommitError(result.error or None, details={"title": draft.title})
        return result

    # =========================================================================
    # Drafting
    # =========================================================================

    def _resolve(
        self, utterance: Utterance
    ) -> tuple[list[TemporalExpression], UnresolvedTemporalExpressionError | None]:
        try:
            return (
                self.resolver.resolve(utterance.text, utterance.reference, utterance.timezone),
                None,
            )
        except UnresolvedTemporalExpressionError as e:
            logger.debug("Unresolved date text %r", e.text)
            return [], e

    def _draft(
        self,
        utterance: Utterance,
        intent: IntentType,
        events: Sequence[ExistingEvent] | None,
        result: TurnResult,
    ) -> None:
        kind = DraftKind.TASK if intent is IntentType.CREATE_TASK else DraftKind.EVENT
        expressions, unresolved = self._resolve(utterance)
        if unresolved is not None and kind is DraftKind.EVENT:
            raise unresolved

        consumed = tuple(e.span for e in expressions)
        entities, label = self.extractor.extract(utterance.text, consumed)
        draft = self.builder.build(utterance, expressions, entities, label, kind)
        if unresolved is not None:
            flags = draft.ambiguity_flags | {AmbiguityFlag.UNRESOLVED_TEMPORAL_EXPRESSION}
            draft = replace(draft, ambiguity_flags=flags)
        result.draft = draft

        message = describe_draft(draft)
        if kind is DraftKind.EVENT and draft.start is not None and draft.end is not None:
            # Every local day the draft touches, so late-night events count
            first = self._day_window(draft.start, utterance.tz)
            last = self._day_window(draft.end, utterance.tz, inclusive_end=True)
            snapshot = self._calendar(first.start, last.end, events, utterance.tz)
            if snapshot is not None:
                report = self.engine.check(draft, snapshot, self.working_hours)
                result.conflict_report = report
                if report.has_conflicts:
                    titles = ", ".join(e.title or e.id for e in report.overlapping)
                    message += f" Conflicts with: {titles}."
        result.message = message + " Confirm to save."

    # =========================================================================
    # Querying
    # =========================================================================

    def _query(
        self,
        utterance: Utterance,
        intent: IntentType,
        events: Sequence[ExistingEvent] | None,
        result: TurnResult,
    ) -> None:
        expressions, unresolved = self._resolve(utterance)
        if unresolved is not None:
            raise unresolved

        now = utterance.local_reference
        tz = utterance.tz
        timed = [e for e in expressions if not e.all_day and e.end is not None and e.end > e.start]
        window = self._query_window(expressions, now, tz, intent)

        snapshot = self._calendar(window.start, window.end, events, tz)
        if snapshot is None:
            raise CalendarError(
                "No calendar data is available",
                code=ErrorCode.CAL_NOT_AVAILABLE,
            )

        if intent is IntentType.QUERY_CONFLICTS:
            if timed:
                candidate = self._as_draft(timed[0])
                found = self.engine.find_conflicts(candidate, snapshot)
            else:
                found = self.engine.find_overlapping_events(snapshot)
            result.events = tuple(found)
            if found:
                listed = "; ".join(self._describe_event(e) for e in found)
                result.message = f"{len(found)} conflicting event(s): {listed}."
            else:
                result.message = "No conflicts found."
            return

        if intent is IntentType.QUERY_FREE_TIME:
            duration = parse_duration_minutes(utterance.text)
            if duration is None and timed and not timed[0].duration_defaulted:
                duration = int((timed[0].end - timed[0].start).total_seconds() // 60)
            duration = duration or self.default_duration_minutes

            if timed:
                result.events = tuple(self.engine.find_conflicts(self._as_draft(timed[0]), snapshot))

            search = window
            if search.start < now < search.end:
                search = TimeInterval(now, search.end)
            slots = self.engine.suggest_slots(duration, search, snapshot, self.working_hours)
            result.suggestions = tuple(slots)

            lead = ""
            if timed:
                lead = "You're busy then. " if result.events else "You're free then. "
            if slots:
                listed = "; ".join(_fmt_span(s.start, s.end) for s in slots)
                result.message = f"{lead}Free {duration}-minute slots: {listed}."
            else:
                result.message = f"{lead}No free {duration}-minute slots found."
            return

        listing = sorted(
            (e for e in snapshot if e.start < window.end and window.start < e.end),
            key=lambda e: (e.start, e.end, e.id),
        )
        result.events = tuple(listing)
        if listing:
            result.message = "; ".join(self._describe_event(e) for e in listing) + "."
        else:
            result.message = f"Nothing scheduled for {_fmt_day(window.start)}."

    def _query_window(
        self,
        expressions: list[TemporalExpression],
        now: datetime,
        tz: tzinfo,
        intent: IntentType,
    ) -> TimeInterval:
        """Days covered by the request's expressions, or a default window."""
        if not expressions:
            if intent is IntentType.QUERY_FREE_TIME:
                today = self._day_window(now, tz)
                return TimeInterval(today.start, today.start + timedelta(days=self.lookahead_days))
            return self._day_window(now, tz)

        start = min(self._day_window(e.start, tz).start for e in expressions)
        end = max(self._day_window(e.end or e.start, tz, inclusive_end=e.all_day).end for e in expressions)
        return TimeInterval(start, end)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _calendar(
        self,
        start: datetime,
        end: datetime,
        events: Sequence[ExistingEvent] | None,
        tz: tzinfo,
    ) -> list[ExistingEvent] | None:
        """Events overlapping [start, end), or None when no calendar data exists.

        Naive event times are read as wall-clock time in tz, as the store
        does when loading a snapshot.
        """
        if events is not None:
            local = [self._localize(e, tz) for e in events]
            return [e for e in local if e.start < end and start < e.end]
        if self.store is not None:
            return self.store.get_events(start, end)
        return None

    @staticmethod
    def _localize(event: ExistingEvent, tz: tzinfo) -> ExistingEvent:
        if event.start.tzinfo is not None and event.end.tzinfo is not None:
            return event
        start = event.start if event.start.tzinfo else event.start.replace(tzinfo=tz)
        end = event.end if event.end.tzinfo else event.end.replace(tzinfo=tz)
        return replace(event, start=start, end=end)

    @staticmethod
    def _day_window(instant: datetime, tz: tzinfo, inclusive_end: bool = False) -> TimeInterval:
        """Local calendar day containing instant.

        With ``inclusive_end`` an instant at local midnight is treated as the
        end of the previous day, as for all-day expressions.
        """
        local = instant.astimezone(tz)
        day = local.date()
        if inclusive_end and local.time() == time(0, 0):
            day -= timedelta(days=1)
        start = datetime.combine(day, time(0, 0), tzinfo=tz)
        end = datetime.combine(day + timedelta(days=1), time(0, 0), tzinfo=tz)
        return TimeInterval(start, end)

    @staticmethod
    def _as_draft(expression: TemporalExpression) -> EventDraft:
        return EventDraft(
            title=expression.text,
            start=expression.start,
            end=expression.end,
            category=Category.OTHER,
        )

    @staticmethod
    def _describe_event(event: ExistingEvent) -> str:
        return f"{event.title or event.id} ({_fmt_span(event.start, event.end)})"


# Module-level singleton
_orchestrator: Orchestrator | None = None
_orchestrator_lock = threading.Lock()


def get_orchestrator(store: CalendarStore | None = None) -> Orchestrator:
    """Get the singleton orchestrator.

    Args:
        store: Calendar store attached on first creation.

    Returns:
        Orchestrator instance.
    """
    global _orchestrator
    if _orchestrator is None:
        with _orchestrator_lock:
            if _orchestrator is None:
                _orchestrator = Orchestrator.from_config(get_config(), store=store)
    return _orchestrator


def reset_orchestrator() -> None:
    """Reset the singleton orchestrator."""
    global _orchestrator
    with _orchestrator_lock:
        _orchestrator = None
