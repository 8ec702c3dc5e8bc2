"""Fallback responses when a request cannot be completed.

Maps failures (impossible dates, unclassifiable requests, model outages,
calendar write failures) to user-facing text plus a suggestion of what to
try next. Raw transport details never reach these messages.
"""

from dataclasses import dataclass
from enum import Enum

from calassist.errors import CalendarAssistError, ErrorCode


class FailureReason(Enum):
    """Reasons a turn might not produce what the user asked for."""

    UNRESOLVED_DATE = "unresolved_date"
    MISSING_DATE = "missing_date"
    INVALID_WINDOW = "invalid_window"
    INVALID_INPUT = "invalid_input"
    UNCLASSIFIED = "unclassified"
    MODEL_UNAVAILABLE = "model_unavailable"
    MODEL_TIMEOUT = "model_timeout"
    MODEL_ERROR = "model_error"
    CALENDAR_UNAVAILABLE = "calendar_unavailable"
    COMMIT_FAILED = "commit_failed"
    UNKNOWN = "unknown"


@dataclass
class FallbackResponse:
    """A fallback response with user guidance."""

    text: str
    reason: FailureReason
    suggestion: str  # What user can do

    def render(self) -> str:
        return f"{self.text} {self.suggestion}"


FALLBACK_RESPONSES: dict[FailureReason, FallbackResponse] = {
    FailureReason.UNRESOLVED_DATE: FallbackResponse(
        text="I couldn't work out which date you meant.",
        reason=FailureReason.UNRESOLVED_DATE,
        suggestion='Try a date like "March 5" or "next Friday".',
    ),
    FailureReason.MISSING_DATE: FallbackResponse(
        text="I need a date or time to schedule that.",
        reason=FailureReason.MISSING_DATE,
        suggestion='Add when it should happen, e.g. "tomorrow at 3pm".',
    ),
    FailureReason.INVALID_WINDOW: FallbackResponse(
        text="That time range is empty.",
        reason=FailureReason.INVALID_WINDOW,
        suggestion="Pick a range that ends after it starts.",
    ),
    FailureReason.INVALID_INPUT: FallbackResponse(
        text="Some of that request doesn't look right.",
        reason=FailureReason.INVALID_INPUT,
        suggestion="Check the duration and dates, then try again.",
    ),
    FailureReason.UNCLASSIFIED: FallbackResponse(
        text="I'm not sure what you'd like me to do.",
        reason=FailureReason.UNCLASSIFIED,
        suggestion='Try "schedule lunch with Sam tomorrow at noon" or "am I free Friday?".',
    ),
    FailureReason.MODEL_UNAVAILABLE: FallbackResponse(
        text="The assistant model isn't configured.",
        reason=FailureReason.MODEL_UNAVAILABLE,
        suggestion="Set an API key for your provider, or phrase the request as a command.",
    ),
    FailureReason.MODEL_TIMEOUT: FallbackResponse(
        text="The assistant took too long to answer.",
        reason=FailureReason.MODEL_TIMEOUT,
        suggestion="Try again in a moment.",
    ),
    FailureReason.MODEL_ERROR: FallbackResponse(
        text="The assistant couldn't answer right now.",
        reason=FailureReason.MODEL_ERROR,
        suggestion="Try again, or phrase the request as a command.",
    ),
    FailureReason.CALENDAR_UNAVAILABLE: FallbackResponse(
        text="I can't reach your calendar.",
        reason=FailureReason.CALENDAR_UNAVAILABLE,
        suggestion="Load a calendar file with --events and try again.",
    ),
    FailureReason.COMMIT_FAILED: FallbackResponse(
        text="I couldn't save that to your calendar.",
        reason=FailureReason.COMMIT_FAILED,
        suggestion="Check the draft and confirm again.",
    ),
    FailureReason.UNKNOWN: FallbackResponse(
        text="Something went wrong.",
        reason=FailureReason.UNKNOWN,
        suggestion="Try again.",
    ),
}

_REASON_BY_CODE: dict[ErrorCode, FailureReason] = {
    ErrorCode.TMP_UNRESOLVED: FailureReason.UNRESOLVED_DATE,
    ErrorCode.TMP_MISSING: FailureReason.MISSING_DATE,
    ErrorCode.SCH_INVALID_WINDOW: FailureReason.INVALID_WINDOW,
    ErrorCode.VAL_INVALID_INPUT: FailureReason.INVALID_INPUT,
    ErrorCode.VAL_MISSING_REQUIRED: FailureReason.INVALID_INPUT,
    ErrorCode.INT_UNCLASSIFIED: FailureReason.UNCLASSIFIED,
    ErrorCode.MDL_NOT_CONFIGURED: FailureReason.MODEL_UNAVAILABLE,
    ErrorCode.MDL_TIMEOUT: FailureReason.MODEL_TIMEOUT,
    ErrorCode.MDL_HTTP_ERROR: FailureReason.MODEL_ERROR,
    ErrorCode.MDL_MALFORMED_OUTPUT: FailureReason.MODEL_ERROR,
    ErrorCode.CAL_NOT_AVAILABLE: FailureReason.CALENDAR_UNAVAILABLE,
    ErrorCode.CAL_COMMIT_FAILED: FailureReason.COMMIT_FAILED,
}

EMPTY_CHAT_REPLY = "I'm here to help you with your calendar. What would you like to know?"


def get_fallback_response(reason: FailureReason) -> FallbackResponse:
    """Get a fallback response for a given failure reason.

    Args:
        reason: The reason for the failure

    Returns:
        FallbackResponse with helpful text and suggestions
    """
    return FALLBACK_RESPONSES.get(
        reason,
        FALLBACK_RESPONSES[FailureReason.UNKNOWN],
    )


def fallback_for_error(error: CalendarAssistError) -> FallbackResponse:
    """Pick the fallback response matching an error's code.

    An unclassified intent caused by a model failure reports the model
    failure, so the user learns the assistant was unreachable.
    """
    if error.code is ErrorCode.INT_UNCLASSIFIED and isinstance(error.cause, CalendarAssistError):
        error = error.cause
    reason = _REASON_BY_CODE.get(error.code, FailureReason.UNKNOWN)
    return get_fallback_response(reason)
