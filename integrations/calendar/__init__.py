"""Calendar drafting and scheduling components for calassist.

Provides temporal resolution, entity extraction, draft building, conflict
detection and an in-memory calendar store.

Usage:
    from integrations.calendar import (
        get_temporal_resolver,
        get_entity_extractor,
        get_draft_builder,
        get_availability_engine,
    )

    expressions = get_temporal_resolver().resolve(
        "Lunch with Sarah next Friday at noon", reference, "America/New_York"
    )
    entities, label = get_entity_extractor().extract(text)
    draft = get_draft_builder().build(utterance, expressions, entities, label)
    report = get_availability_engine().check(draft, events, working_hours)
"""

from integrations.calendar.availability import (
    AvailabilityEngineImpl,
    get_availability_engine,
    intervals_conflict,
    merge_busy,
    reset_availability_engine,
)
from integrations.calendar.builder import (
    EventDraftBuilderImpl,
    get_draft_builder,
    reset_draft_builder,
)
from integrations.calendar.extractor import (
    EntityExtractorImpl,
    get_entity_extractor,
    reset_entity_extractor,
)
from integrations.calendar.store import InMemoryCalendarStore
from integrations.calendar.temporal import (
    TemporalResolverImpl,
    get_temporal_resolver,
    parse_duration_minutes,
    reset_temporal_resolver,
    vocabulary_spans,
)

__all__ = [
    # Temporal Resolution
    "TemporalResolverImpl",
    "get_temporal_resolver",
    "reset_temporal_resolver",
    "parse_duration_minutes",
    "vocabulary_spans",
    # Entity Extraction
    "EntityExtractorImpl",
    "get_entity_extractor",
    "reset_entity_extractor",
    # Draft Building
    "EventDraftBuilderImpl",
    "get_draft_builder",
    "reset_draft_builder",
    # Availability
    "AvailabilityEngineImpl",
    "get_availability_engine",
    "reset_availability_engine",
    "intervals_conflict",
    "merge_busy",
    # Storage
    "InMemoryCalendarStore",
]
