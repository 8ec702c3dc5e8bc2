"""Event draft assembly.

Combines resolved temporal expressions, extracted entities and a category
label into one EventDraft with a confidence score and ambiguity flags. The
builder is pure: identical inputs give identical drafts.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from calassist.errors import MissingTemporalExpressionError
from contracts.calendar import (
    AmbiguityFlag,
    CategoryLabel,
    DraftKind,
    EntityKind,
    EventDraft,
    ExtractedEntity,
    TemporalExpression,
    Utterance,
)

logger = logging.getLogger(__name__)

UNTITLED = {
    DraftKind.EVENT: "Untitled event",
    DraftKind.TASK: "Untitled task",
}

# Titles below this confidence are replaced with the placeholder
TITLE_CONFIDENCE_THRESHOLD = 0.5

TEMPORAL_WEIGHT = 0.4
CATEGORY_WEIGHT = 0.3
TITLE_WEIGHT = 0.3


def _unique_names(entities: Sequence[ExtractedEntity]) -> tuple[str, ...]:
    """Person names in first-seen order, duplicates collapsed case-insensitively."""
    seen: dict[str, str] = {}
    for entity in entities:
        if entity.kind is EntityKind.PERSON:
            seen.setdefault(entity.text.casefold(), entity.text)
    return tuple(seen.values())


class EventDraftBuilderImpl:
    """Builds EventDraft objects from pipeline outputs."""

    def build(
        self,
        utterance: Utterance,
        expressions: Sequence[TemporalExpression],
        entities: Sequence[ExtractedEntity],
        category: CategoryLabel,
        kind: DraftKind = DraftKind.EVENT,
    ) -> EventDraft:
        """Assemble a draft.

        Args:
            utterance: The request being drafted.
            expressions: Resolved expressions, in any order.
            entities: Extracted persons, title and location.
            category: Category label for the request.
            kind: EVENT for calendar events, TASK for todo items.

        Returns:
            The draft. Not retained by the builder.

        Raises:
            MissingTemporalExpressionError: If an EVENT draft has no expressions.
        """
        flags: set[AmbiguityFlag] = set()
        ordered = sorted(expressions, key=lambda e: e.span)

        if not ordered and kind is DraftKind.EVENT:
            raise MissingTemporalExpressionError(
                "No date or time found for the event",
                text=utterance.text,
            )
        if len(ordered) > 1:
            flags.add(AmbiguityFlag.MULTIPLE_TIMES_DETECTED)

        chosen = ordered[0] if ordered else None
        if chosen is not None:
            flags.update(chosen.flags)

        title_entity = next((e for e in entities if e.kind is EntityKind.TITLE), None)
        location_entity = next((e for e in entities if e.kind is EntityKind.LOCATION), None)

        title_confidence = title_entity.confidence if title_entity else 0.0
        if title_entity is not None and title_confidence >= TITLE_CONFIDENCE_THRESHOLD:
            title = title_entity.text
        else:
            title = UNTITLED[kind]
            flags.add(AmbiguityFlag.LOW_CONFIDENCE_TITLE)

        if chosen is None:
            temporal_certainty = 0.0
        elif chosen.duration_defaulted:
            temporal_certainty = 0.5
        else:
            temporal_certainty = 1.0

        confidence = (
            TEMPORAL_WEIGHT * temporal_certainty
            + CATEGORY_WEIGHT * category.confidence
            + TITLE_WEIGHT * title_confidence
        )

        if kind is DraftKind.TASK:
            start = chosen.start if chosen else None
            end = None
        else:
            assert chosen is not None
            start, end = chosen.start, chosen.end
            if end is None:
                end = start

        draft = EventDraft(
            title=title,
            start=start,
            end=end,
            category=category.category,
            participants=_unique_names(entities),
            confidence=round(min(1.0, max(0.0, confidence)), 4),
            ambiguity_flags=frozenset(flags),
            kind=kind,
            location=location_entity.text if location_entity else None,
            all_day=chosen.all_day if chosen else False,
            recurrence=chosen.recurrence if chosen else None,
            source_text=utterance.text,
        )
        logger.debug(
            "Built %s draft %r (confidence=%.2f, flags=%s)",
            kind.value,
            draft.title,
            draft.confidence,
            sorted(draft.ambiguity_flags),
        )
        return draft


# Module-level singleton
_builder: EventDraftBuilderImpl | None = None


def get_draft_builder() -> EventDraftBuilderImpl:
    """Get the singleton draft builder.

    Returns:
        EventDraftBuilderImpl instance.
    """
    global _builder
    if _builder is None:
        _builder = EventDraftBuilderImpl()
    return _builder


def reset_draft_builder() -> None:
    """Reset the singleton draft builder."""
    global _builder
    _builder = None
