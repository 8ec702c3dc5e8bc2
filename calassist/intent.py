"""Intent classification for calendar requests.

Requests are classified by ordered regex rules first. Only when no rule
applies is the request sent to the hosted language model with a JSON intent
prompt; the model's label is then used exactly as a rule's would be.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from enum import StrEnum

from calassist.config import get_config
from calassist.errors import ExternalModelError, UnclassifiedIntentError, model_malformed_output
from calassist.prompts import build_intent_prompt, parse_intent_reply
from contracts.llm import ChatMessage, CompletionConfig, LanguageModelBackend
from integrations.calendar.extractor import EVENT_NOUNS
from models import completion_config_from, get_language_model

logger = logging.getLogger(__name__)


class IntentType(StrEnum):
    """What the user wants done with a request."""

    CREATE_EVENT = "create_event"
    CREATE_TASK = "create_task"
    QUERY_CONFLICTS = "query_conflicts"
    QUERY_FREE_TIME = "query_free_time"
    QUERY_SCHEDULE = "query_schedule"

    @property
    def is_query(self) -> bool:
        return self.value.startswith("query_")


@dataclass
class IntentResult:
    """Result of intent classification.

    Attributes:
        intent: The classified intent type
        confidence: Confidence score from 0.0 to 1.0
        method: "rules" or "model"
        rule: Name of the matching rule, empty for model labels
    """

    intent: IntentType
    confidence: float
    method: str = "rules"
    rule: str = ""


# =============================================================================
# Rule Patterns
# =============================================================================

_TASK_TEMPLATE = re.compile(
    r"^\s*(?:please\s+)?(?:remind me(?: to)?|remember to|don'?t forget(?: to)?|do not forget(?: to)?"
    r"|to-?do\b|add (?:a )?(?:task|todo|to-do)|task:|i need to|i have to|i must)\b",
    re.IGNORECASE,
)

_TASK_VERB = re.compile(
    r"^\s*(?:please\s+)?(?:buy|call|email|text|message|pick up|drop off|pay|order|finish"
    r"|submit|send|clean|return|renew|fix|file|print|write|read|water|wash)\b(?!\s+with\b)",
    re.IGNORECASE,
)

_QUERY_LEAD = re.compile(
    r"^\s*(?:what\b|whats\b|do i have|have i got|am i\b|are there|is there|is my|any\b|anything\b"
    r"|suggest|recommend|when (?:can|could|should|am|is|are|do)\b|show|list|find (?:me )?(?:a )?(?:time|slot)"
    r"|check|how (?:busy|free|packed|full)|can i fit|where can i fit)\b",
    re.IGNORECASE,
)

_CONFLICT_WORDS = re.compile(
    r"\b(?:conflicts?|conflicting|clash(?:es|ing)?|overlap(?:s|ping)?|double[- ]?booked|busy)\b",
    re.IGNORECASE,
)

_FREE_TIME_WORDS = re.compile(
    r"\b(?:suggest|recommend|free|available|availability|open slots?|slots?|good time|best time"
    r"|when can|fit (?:in|it)|find (?:me )?(?:a )?time)\b",
    re.IGNORECASE,
)

_CREATE_VERB = re.compile(
    r"\b(?:schedule|book|add|create|set up|put|plan|arrange|organi[sz]e|block(?: out| off)?"
    r"|reserve|pencil in|make (?:a|an)|have (?:a|an)|meet(?:ing)?|see)\b",
    re.IGNORECASE,
)

_EVENT_NOUN = re.compile(r"\b(?:" + "|".join(EVENT_NOUNS) + r")s?\b", re.IGNORECASE)


def _query_subtype(text: str) -> tuple[IntentType, str]:
    if _CONFLICT_WORDS.search(text):
        return IntentType.QUERY_CONFLICTS, "query_conflicts"
    if _FREE_TIME_WORDS.search(text):
        return IntentType.QUERY_FREE_TIME, "query_free_time"
    return IntentType.QUERY_SCHEDULE, "query_schedule"


class IntentClassifier:
    """Rule-first intent classifier with a language-model fallback.

    Thread Safety:
        Stateless between calls; patterns are module constants.
    """

    def __init__(
        self,
        backend: LanguageModelBackend | None = None,
        completion_config: CompletionConfig | None = None,
    ) -> None:
        """Initialize the classifier.

        Args:
            backend: Model consulted when no rule applies. None disables the fallback.
            completion_config: Settings for the model request.
        """
        self.backend = backend
        self.completion_config = completion_config or CompletionConfig()

    def classify_rules(self, text: str, has_temporal: bool) -> IntentResult | None:
        """Apply the deterministic rules only.

        Returns:
            The result, or None when no rule applies.
        """
        stripped = text.strip()
        if not stripped:
            return None

        if _TASK_TEMPLATE.search(stripped):
            return IntentResult(IntentType.CREATE_TASK, 0.95, rule="task_template")
        if _TASK_VERB.search(stripped):
            return IntentResult(IntentType.CREATE_TASK, 0.8, rule="task_verb")

        if _QUERY_LEAD.search(stripped):
            intent, rule = _query_subtype(stripped)
            return IntentResult(intent, 0.9, rule=rule)

        if has_temporal:
            if _CREATE_VERB.search(stripped):
                return IntentResult(IntentType.CREATE_EVENT, 0.9, rule="create_verb")
            if _EVENT_NOUN.search(stripped):
                return IntentResult(IntentType.CREATE_EVENT, 0.8, rule="event_noun")

        if stripped.endswith("?") and (
            _CONFLICT_WORDS.search(stripped) or _FREE_TIME_WORDS.search(stripped)
        ):
            intent, rule = _query_subtype(stripped)
            return IntentResult(intent, 0.6, rule=f"question_{rule}")

        return None

    def classify(
        self,
        text: str,
        has_temporal: bool,
        history: tuple[ChatMessage, ...] = (),
    ) -> IntentResult:
        """Classify a request.

        Args:
            text: The user request.
            has_temporal: Whether the request contains date/time vocabulary.
            history: Earlier transcript turns, passed to the model fallback.

        Returns:
            The classified intent.

        Raises:
            UnclassifiedIntentError: If no rule applies and the model is
                unavailable, fails or gives no usable label. A model failure
                is attached as the cause.
        """
        result = self.classify_rules(text, has_temporal)
        if result is not None:
            logger.debug("Intent %s via rule %s", result.intent, result.rule)
            return result

        if self.backend is None:
            logger.debug("No rule matched and no model configured: %r", text)
            raise UnclassifiedIntentError(details={"text": text})

        prompt = build_intent_prompt(text)
        try:
            reply = self.backend.complete(prompt, self.completion_config, history)
        except ExternalModelError as e:
            logger.warning("Intent model request failed (%s): %s", e.code, e.message)
            raise UnclassifiedIntentError(details={"text": text}, cause=e) from e

        label = parse_intent_reply(reply)
        if label is None:
            cause = model_malformed_output(self.completion_config.provider.value, "no intent label")
            logger.warning("Intent model gave no usable label")
            raise UnclassifiedIntentError(details={"text": text}, cause=cause)
        if label == "unknown":
            raise UnclassifiedIntentError(details={"text": text})

        logger.debug("Intent %s via model", label)
        return IntentResult(IntentType(label), 0.7, method="model")


# Module-level singleton
_classifier: IntentClassifier | None = None
_classifier_lock = threading.Lock()


def get_intent_classifier() -> IntentClassifier:
    """Get the singleton intent classifier.

    The model fallback is wired from the configured language model, if any.

    Returns:
        IntentClassifier instance.
    """
    global _classifier
    if _classifier is None:
        with _classifier_lock:
            if _classifier is None:
                config = get_config()
                _classifier = IntentClassifier(
                    backend=get_language_model(config.llm),
                    completion_config=completion_config_from(config),
                )
    return _classifier


def reset_intent_classifier() -> None:
    """Reset the singleton intent classifier."""
    global _classifier
    with _classifier_lock:
        _classifier = None
