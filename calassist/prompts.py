"""Prompt templates for the hosted language model.

This module is the single place prompts are defined. The model is used for
one job only: labelling requests the local rules could not classify.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

# =============================================================================
# Prompt Metadata & Versioning
# =============================================================================

PROMPT_VERSION = "1.0.0"

# =============================================================================
# Intent Prompt
# =============================================================================

INTENT_LABELS = (
    "create_event",
    "create_task",
    "query_conflicts",
    "query_free_time",
    "query_schedule",
    "unknown",
)


@dataclass
class IntentExample:
    """A few-shot example for the intent prompt.

    Attributes:
        text: The user request.
        intent: The expected label.
    """

    text: str
    intent: str


INTENT_EXAMPLES: list[IntentExample] = [
    IntentExample("Grab coffee w/ Priya Thursday 4ish", "create_event"),
    IntentExample("need to renew passport before the 20th", "create_task"),
    IntentExample("anything clashing on Monday?", "query_conflicts"),
    IntentExample("got a spare hour tomorrow?", "query_free_time"),
    IntentExample("how packed is my Friday", "query_schedule"),
    IntentExample("tell me a joke", "unknown"),
]

INTENT_PROMPT_TEMPLATE = """Classify the calendar request into exactly one intent.

Intents:
- create_event: the user wants a new calendar event at a specific time
- create_task: the user wants a todo or reminder, with or without a due date
- query_conflicts: the user asks whether something clashes or overlaps
- query_free_time: the user asks when they are free or wants a time suggested
- query_schedule: the user asks what is on their calendar
- unknown: anything else

Reply with JSON only, like {{"intent": "create_event"}}.

{examples}

Request: {text}
JSON:"""


def _format_examples(examples: list[IntentExample]) -> str:
    return "\n".join(
        f"Request: {ex.text}\nJSON: {json.dumps({'intent': ex.intent})}" for ex in examples
    )


def build_intent_prompt(text: str, examples: list[IntentExample] | None = None) -> str:
    """Build the few-shot intent prompt for a request.

    Args:
        text: The user request.
        examples: Optional few-shot examples. Defaults to INTENT_EXAMPLES.

    Returns:
        The formatted prompt.
    """
    return INTENT_PROMPT_TEMPLATE.format(
        examples=_format_examples(INTENT_EXAMPLES if examples is None else examples),
        text=text.strip(),
    )


_JSON_OBJECT = re.compile(r"\{.*?\}", re.DOTALL)


def parse_intent_reply(reply: str) -> str | None:
    """Pull the intent label out of a model reply.

    Accepts bare JSON or JSON wrapped in prose or code fences.

    Returns:
        A label from INTENT_LABELS, or None if the reply holds no valid label.
    """
    for candidate in _JSON_OBJECT.findall(reply or ""):
        try:
            data: Any = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            label = str(data.get("intent", "")).strip().lower()
            if label in INTENT_LABELS:
                return label
    logger.debug("No intent label in model reply: %r", (reply or "")[:200])
    return None
