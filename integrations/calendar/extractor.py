"""Entity and category extraction for scheduling requests.

Pulls participants, a title and an optional location out of an utterance
and classifies it into one of the fixed event categories by keyword match.
Temporal phrases are excluded from titles and names using the resolver's
vocabulary spans.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence

from calassist.config import CalendarAssistConfig, get_config
from contracts.calendar import Category, CategoryLabel, EntityKind, ExtractedEntity
from integrations.calendar.temporal import DAYS_OF_WEEK, vocabulary_spans

logger = logging.getLogger(__name__)

# Common event indicator words
EVENT_NOUNS = [
    "meeting",
    "appointment",
    "call",
    "interview",
    "dinner",
    "lunch",
    "breakfast",
    "brunch",
    "coffee",
    "party",
    "event",
    "conference",
    "webinar",
    "session",
    "class",
    "lesson",
    "workout",
    "gym",
    "doctor",
    "dentist",
    "flight",
    "trip",
    "birthday",
    "wedding",
    "concert",
    "show",
    "game",
    "match",
    "reservation",
    "standup",
    "sync",
]

CATEGORY_KEYWORDS: dict[Category, tuple[str, ...]] = {
    Category.WORK: (
        "meeting",
        "standup",
        "stand-up",
        "sprint",
        "review",
        "client",
        "interview",
        "presentation",
        "deadline",
        "conference",
        "webinar",
        "sync",
        "1:1",
        "project",
        "office",
        "team",
        "work",
        "demo",
        "report",
        "call",
    ),
    Category.HEALTH: (
        "doctor",
        "dentist",
        "gym",
        "workout",
        "yoga",
        "pilates",
        "therapy",
        "therapist",
        "checkup",
        "physio",
        "clinic",
        "hospital",
        "run",
        "swim",
        "meditation",
    ),
    Category.PERSONAL: (
        "errand",
        "errands",
        "groceries",
        "haircut",
        "study",
        "class",
        "lecture",
        "homework",
        "exam",
        "laundry",
        "bank",
        "shopping",
        "bills",
        "appointment",
        "cleaning",
    ),
    Category.FRIENDS: (
        "dinner",
        "party",
        "drinks",
        "lunch",
        "brunch",
        "coffee",
        "birthday",
        "hangout",
        "movie",
        "movies",
        "concert",
        "bbq",
        "friends",
        "game night",
    ),
    Category.OTHER: (),
}

DEFAULT_PRIORITY = (
    Category.WORK,
    Category.HEALTH,
    Category.PERSONAL,
    Category.FRIENDS,
    Category.OTHER,
)

RELATIONAL_WORDS = frozenset({"with", "and", "&"})

KEYWORD_WORDS = frozenset(EVENT_NOUNS).union(*CATEGORY_KEYWORDS.values())

MONTH_NAMES = frozenset(
    {
        "january",
        "february",
        "march",
        "april",
        "may",
        "june",
        "july",
        "august",
        "september",
        "october",
        "november",
        "december",
    }
)

# Capitalized words that are never names
NAME_STOP_WORDS = (
    frozenset(DAYS_OF_WEEK)
    | MONTH_NAMES
    | frozenset(
        {
            "i",
            "me",
            "my",
            "we",
            "us",
            "you",
            "the",
            "a",
            "an",
            "today",
            "tonight",
            "tomorrow",
            "noon",
            "midnight",
            "morning",
            "afternoon",
            "evening",
            "night",
            "next",
            "this",
            "every",
            "am",
            "pm",
        }
    )
)

# Leading phrases stripped from titles, longest first
LEAD_PHRASES = sorted(
    (
        "remind me to",
        "remind me",
        "don't forget to",
        "dont forget to",
        "i need to",
        "need to",
        "i have to",
        "have to",
        "i have",
        "i've got",
        "let's have",
        "let's do",
        "lets have",
        "let's",
        "lets",
        "can you",
        "could you",
        "please",
        "schedule",
        "book",
        "add",
        "create",
        "set up",
        "setup",
        "plan",
        "put",
        "arrange",
        "organize",
        "todo",
        "to-do",
        "to do",
        "a",
        "an",
        "the",
        "my",
        "on",
        "at",
        "in",
        "for",
        "to",
        "with",
    ),
    key=lambda p: len(p.split()),
    reverse=True,
)

TRAILING_WORDS = frozenset(
    {"on", "at", "in", "for", "with", "and", "&", "to", "the", "a", "an", "from", "by", "of", "my"}
)

_TOKEN = re.compile(r"\w+(?:['’.:-]\w+)*|&")
_LOCATION = re.compile(
    r"(?:\b(?i:at|in)\s+|@\s*)"
    r"(?P<loc>[A-Z][\w'’&-]*(?:\s+(?:[A-Z0-9][\w'’&-]*|of|the|de|&))*)"
)
_POSSESSIVE = re.compile(r"['’]s$", re.IGNORECASE)
_EVENT_NOUN_PATTERN = re.compile(r"\b(" + "|".join(EVENT_NOUNS) + r")s?\b", re.IGNORECASE)


def _keyword_pattern(words: Iterable[str]) -> re.Pattern[str] | None:
    words = sorted(set(words), key=len, reverse=True)
    if not words:
        return None
    return re.compile(r"(?<![\w-])(" + "|".join(re.escape(w) for w in words) + r")s?(?![\w-])", re.IGNORECASE)


def _inside(span: tuple[int, int], spans: Iterable[tuple[int, int]]) -> bool:
    return any(span[0] < end and start < span[1] for start, end in spans)


class EntityExtractorImpl:
    """Extracts people, a title, a location and a category from text.

    Persons are capitalized tokens that follow "with", "and" or "&". The
    title is the longest run of tokens left after removing temporal phrases,
    names, locations and scheduling verbs. Categories come from keyword
    lexicons; ties go to the earliest category in the priority order.
    """

    def __init__(
        self,
        extra_keywords: dict[Category, Iterable[str]] | None = None,
        priority: Sequence[Category] = DEFAULT_PRIORITY,
    ) -> None:
        """Initialize the extractor.

        Args:
            extra_keywords: Additional keywords per category, merged with the
                built-in lexicons.
            priority: Tie-break order, most preferred first. Must list every
                category exactly once.
        """
        if sorted(priority) != sorted(Category):
            msg = f"priority must list each category once, got {list(priority)}"
            raise ValueError(msg)
        self.priority = tuple(priority)
        extra_keywords = extra_keywords or {}
        self._category_patterns: dict[Category, re.Pattern[str] | None] = {
            category: _keyword_pattern(
                [*CATEGORY_KEYWORDS[category], *extra_keywords.get(category, ())]
            )
            for category in Category
        }

    @classmethod
    def from_config(cls, config: CalendarAssistConfig) -> EntityExtractorImpl:
        extra = {Category(name): words for name, words in config.categories.extra_keywords.items()}
        return cls(extra_keywords=extra, priority=config.categories.priority_order())

    def extract(
        self,
        text: str,
        consumed_spans: tuple[tuple[int, int], ...] = (),
    ) -> tuple[list[ExtractedEntity], CategoryLabel]:
        """Extract entities and classify the text.

        Args:
            text: Utterance text.
            consumed_spans: Character spans already claimed by temporal
                phrases. Temporal vocabulary found in the text is excluded
                as well.

        Returns:
            (entities, category label). Entities are persons in text order,
            then the title, then the location when one was found.
        """
        if not text or not text.strip():
            return [], CategoryLabel.unclassified()

        temporal = [*consumed_spans, *vocabulary_spans(text)]
        location = self._extract_location(text, temporal)
        blocked = list(temporal)
        if location is not None and location.span is not None:
            blocked.append(location.span)

        persons, person_spans = self._extract_persons(text, blocked)
        title = self._extract_title(text, [*blocked, *person_spans])

        entities = [*persons, title]
        if location is not None:
            entities.append(location)

        label = self.classify(text)
        logger.debug(
            "Extracted %d person(s), title=%r, category=%s", len(persons), title.text, label.category
        )
        return entities, label

    def classify(self, text: str) -> CategoryLabel:
        """Classify text into a category by keyword counts.

        Returns:
            The category with the most keyword hits (ties broken by priority).
            OTHER with confidence 0.0 when nothing matches.
        """
        counts: dict[Category, int] = {}
        terms: dict[Category, list[str]] = {}
        for category, pattern in self._category_patterns.items():
            if pattern is None:
                continue
            found = [m.group(1).lower() for m in pattern.finditer(text)]
            if found:
                counts[category] = len(found)
                terms[category] = list(dict.fromkeys(found))

        if not counts:
            return CategoryLabel.unclassified()

        top = max(counts.values())
        winner = next(c for c in self.priority if counts.get(c) == top)
        share = top / sum(counts.values())
        strength = min(1.0, 0.6 + 0.2 * (top - 1))
        return CategoryLabel(
            category=winner,
            confidence=share * strength,
            matched_terms=tuple(terms[winner]),
        )

    def _extract_location(
        self, text: str, blocked: list[tuple[int, int]]
    ) -> ExtractedEntity | None:
        for match in _LOCATION.finditer(text):
            span = match.span("loc")
            if _inside(span, blocked):
                continue
            words = match.group("loc").split()
            while words and words[-1].lower() in ("of", "the", "de", "&"):
                words.pop()
            if not words or words[0].lower() in NAME_STOP_WORDS:
                continue
            location = " ".join(words)
            return ExtractedEntity(
                kind=EntityKind.LOCATION,
                text=location,
                confidence=0.7,
                span=(match.start(), span[0] + len(location)),
            )
        return None

    def _extract_persons(
        self, text: str, blocked: list[tuple[int, int]]
    ) -> tuple[list[ExtractedEntity], list[tuple[int, int]]]:
        tokens = list(_TOKEN.finditer(text))
        persons: list[ExtractedEntity] = []
        spans: list[tuple[int, int]] = []
        seen: set[str] = set()

        i = 0
        while i < len(tokens):
            keyword = tokens[i]
            if keyword.group(0).lower() not in RELATIONAL_WORDS or _inside(keyword.span(), blocked):
                i += 1
                continue
            j = i + 1
            name_tokens = []
            while j < len(tokens):
                token = tokens[j]
                word = token.group(0)
                if not word[0].isupper() or _inside(token.span(), blocked):
                    break
                if word.lower() in NAME_STOP_WORDS or word.lower() in KEYWORD_WORDS:
                    break
                name_tokens.append(token)
                j += 1
            if name_tokens:
                name = " ".join(_POSSESSIVE.sub("", t.group(0)) for t in name_tokens)
                span = (name_tokens[0].start(), name_tokens[-1].end())
                if name.lower() not in seen:
                    seen.add(name.lower())
                    persons.append(
                        ExtractedEntity(
                            kind=EntityKind.PERSON,
                            text=name,
                            confidence=0.9 if keyword.group(0).lower() == "with" else 0.8,
                            span=span,
                        )
                    )
                spans.append((keyword.start(), span[1]))
                i = j
            else:
                i += 1
        return persons, spans

    def _extract_title(self, text: str, blocked: list[tuple[int, int]]) -> ExtractedEntity:
        tokens = [t for t in _TOKEN.finditer(text)]
        runs: list[list[re.Match[str]]] = []
        current: list[re.Match[str]] = []
        for token in tokens:
            if _inside(token.span(), blocked):
                if current:
                    runs.append(current)
                current = []
            else:
                current.append(token)
        if current:
            runs.append(current)

        best: list[re.Match[str]] = []
        for run in runs:
            trimmed = self._trim(run)
            if len(trimmed) > len(best):
                best = trimmed

        if not best:
            return ExtractedEntity(
                kind=EntityKind.TITLE,
                text=text.strip(),
                confidence=0.3,
                span=(0, len(text)),
            )

        start, end = best[0].start(), best[-1].end()
        title = text[start:end]
        title = title[0].upper() + title[1:]
        confidence = 0.6 if len(best) == 1 else 0.8
        if _EVENT_NOUN_PATTERN.search(title) or self.classify(title).confidence > 0:
            confidence += 0.1 if len(best) > 1 else 0.3
        return ExtractedEntity(
            kind=EntityKind.TITLE,
            text=title,
            confidence=min(confidence, 0.9),
            span=(start, end),
        )

    @staticmethod
    def _trim(run: list[re.Match[str]]) -> list[re.Match[str]]:
        """Strip scheduling verbs and dangling prepositions from a token run."""
        words = [t.group(0).lower() for t in run]
        start = 0
        stripped = True
        while stripped and start < len(words):
            stripped = False
            for phrase in LEAD_PHRASES:
                parts = phrase.split()
                if words[start : start + len(parts)] == parts:
                    start += len(parts)
                    stripped = True
                    break
        end = len(words)
        while end > start and words[end - 1] in TRAILING_WORDS:
            end -= 1
        return run[start:end]


# Module-level singleton
_extractor: EntityExtractorImpl | None = None


def get_entity_extractor() -> EntityExtractorImpl:
    """Get the singleton entity extractor, configured from get_config().

    Returns:
        EntityExtractorImpl instance.
    """
    global _extractor
    if _extractor is None:
        _extractor = EntityExtractorImpl.from_config(get_config())
    return _extractor


def reset_entity_extractor() -> None:
    """Reset the singleton entity extractor."""
    global _extractor
    _extractor = None
