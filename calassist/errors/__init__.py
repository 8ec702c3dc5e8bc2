"""Unified exception hierarchy for calassist.

Every calassist exception inherits from CalendarAssistError and carries a
message, an ErrorCode, optional details and the original cause.

Exception Hierarchy:
    CalendarAssistError (base)
    +-- ConfigurationError - Configuration and settings issues
    +-- ValidationError - Input validation failures
    +-- TemporalError - Date/time resolution failures
    |   +-- UnresolvedTemporalExpressionError - Impossible date text
    |   +-- MissingTemporalExpressionError - Event without any date/time
    +-- SchedulingError - Availability engine failures
    |   +-- InvalidSearchWindowError - Empty or inverted search window
    +-- IntentError - Intent classification failures
    |   +-- UnclassifiedIntentError - Request not understood
    +-- CalendarError - Calendar store failures
    |   +-- CalendarCommitError - Confirmed draft could not be saved
    +-- ModelError - Language-model failures
        +-- ExternalModelError - HTTP, timeout or malformed reply

Usage:
    from calassist.errors import CalendarAssistError

    try:
        draft = builder.build(utterance, expressions, entities, label)
    except CalendarAssistError as e:
        logger.warning("Draft failed: %s (code: %s)", e.message, e.code)
"""

# --- base ---
from calassist.errors.base import (
    CalendarAssistError,
    ConfigurationError,
    ErrorCode,
)

# --- domain errors ---
from calassist.errors.domain import (
    CalendarCommitError,
    CalendarError,
    IntentError,
    InvalidSearchWindowError,
    MissingTemporalExpressionError,
    SchedulingError,
    TemporalError,
    UnclassifiedIntentError,
    UnresolvedTemporalExpressionError,
    ValidationError,
)

# --- convenience factories ---
from calassist.errors.factories import (
    empty_search_window,
    model_malformed_output,
    model_not_configured,
    model_timeout,
    non_positive_duration,
    unresolved_date,
    validation_required,
)

# --- model ---
from calassist.errors.model import ExternalModelError, ModelError

__all__ = [
    # Error codes
    "ErrorCode",
    # Base exception
    "CalendarAssistError",
    # Configuration errors
    "ConfigurationError",
    # Validation errors
    "ValidationError",
    # Temporal errors
    "TemporalError",
    "UnresolvedTemporalExpressionError",
    "MissingTemporalExpressionError",
    # Scheduling errors
    "SchedulingError",
    "InvalidSearchWindowError",
    # Intent errors
    "IntentError",
    "UnclassifiedIntentError",
    # Calendar errors
    "CalendarError",
    "CalendarCommitError",
    # Model errors
    "ModelError",
    "ExternalModelError",
    # Convenience functions
    "validation_required",
    "non_positive_duration",
    "empty_search_window",
    "unresolved_date",
    "model_not_configured",
    "model_timeout",
    "model_malformed_output",
]
