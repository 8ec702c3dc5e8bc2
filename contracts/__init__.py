"""Contract interfaces for calassist.

Exports the value objects and Protocol interfaces shared by the drafting
pipeline, the availability engine and the language-model adapters.
All implementations should code against these contracts, not concrete implementations.
"""

from contracts.calendar import (
    AmbiguityFlag,
    CalendarStore,
    Category,
    CategoryLabel,
    CommitResult,
    ConflictReport,
    DraftKind,
    EntityExtractor,
    EntityKind,
    EventDraft,
    ExistingEvent,
    ExtractedEntity,
    TemporalExpression,
    TemporalResolver,
    TimeInterval,
    Utterance,
    WorkingHours,
)
from contracts.llm import (
    ChatMessage,
    CompletionConfig,
    LanguageModelBackend,
    ModelTier,
    Provider,
)

__all__ = [
    # Calendar
    "AmbiguityFlag",
    "CalendarStore",
    "Category",
    "CategoryLabel",
    "CommitResult",
    "ConflictReport",
    "DraftKind",
    "EntityExtractor",
    "EntityKind",
    "EventDraft",
    "ExistingEvent",
    "ExtractedEntity",
    "TemporalExpression",
    "TemporalResolver",
    "TimeInterval",
    "Utterance",
    "WorkingHours",
    # Language models
    "ChatMessage",
    "CompletionConfig",
    "LanguageModelBackend",
    "ModelTier",
    "Provider",
]
