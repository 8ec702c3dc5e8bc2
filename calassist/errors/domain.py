"""Domain error classes.

Validation, temporal resolution, scheduling, intent and calendar store
errors. Each is scoped to a single request and never fatal to the process.
"""

from __future__ import annotations

from typing import Any

from calassist.errors.base import CalendarAssistError, ErrorCode

# Validation Errors


class ValidationError(CalendarAssistError):
    """Raised for input validation failures.

    Examples:
        - Non-positive slot durations
        - Missing required fields
        - Value out of acceptable range
    """

    default_message = "Validation error"
    default_code = ErrorCode.VAL_INVALID_INPUT

    def __init__(
        self,
        message: str | None = None,
        *,
        field: str | None = None,
        value: Any = None,
        expected: str | None = None,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize a validation error.

        Args:
            message: Human-readable error message.
            field: Name of the field that failed validation.
            value: The invalid value (will be converted to string).
            expected: Description of expected value/format.
            code: Error code for programmatic handling.
            details: Additional context as key-value pairs.
            cause: Original exception that caused this error.
        """
        details = dict(details or {})
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        if expected:
            details["expected"] = expected
        super().__init__(message, code=code, details=details, cause=cause)


# Temporal Errors


class TemporalError(CalendarAssistError):
    """Base class for date/time resolution errors."""

    default_message = "Could not understand the date or time"
    default_code = ErrorCode.TMP_UNRESOLVED

    def __init__(
        self,
        message: str | None = None,
        *,
        text: str | None = None,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        details = dict(details or {})
        if text:
            details["text"] = text
        self.text = text
        super().__init__(message, code=code, details=details, cause=cause)


class UnresolvedTemporalExpressionError(TemporalError):
    """Raised when date-like text cannot be mapped to a calendar date."""

    default_message = "Date-like text could not be resolved"
    default_code = ErrorCode.TMP_UNRESOLVED


class MissingTemporalExpressionError(TemporalError):
    """Raised when an event draft is requested but no date or time was given."""

    default_message = "No date or time found for the event"
    default_code = ErrorCode.TMP_MISSING


# Scheduling Errors


class SchedulingError(CalendarAssistError):
    """Base class for conflict and availability errors."""

    default_message = "Scheduling error"
    default_code = ErrorCode.SCH_INVALID_WINDOW


class InvalidSearchWindowError(SchedulingError):
    """Raised when a slot search window ends at or before its start."""

    default_message = "Search window must end after it starts"
    default_code = ErrorCode.SCH_INVALID_WINDOW

    def __init__(
        self,
        message: str | None = None,
        *,
        start: Any = None,
        end: Any = None,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        details = dict(details or {})
        if start is not None:
            details["start"] = str(start)
        if end is not None:
            details["end"] = str(end)
        super().__init__(message, code=code, details=details, cause=cause)


# Intent Errors


class IntentError(CalendarAssistError):
    """Base class for intent classification errors."""

    default_message = "Intent error"
    default_code = ErrorCode.INT_UNCLASSIFIED


class UnclassifiedIntentError(IntentError):
    """Raised when neither the rules nor the language model understood a request."""

    default_message = "Could not work out what you would like to do"
    default_code = ErrorCode.INT_UNCLASSIFIED


# Calendar Errors


class CalendarError(CalendarAssistError):
    """Base class for calendar store errors."""

    default_message = "Calendar error"
    default_code = ErrorCode.CAL_NOT_AVAILABLE


class CalendarCommitError(CalendarError):
    """Raised when a confirmed draft could not be written to the calendar."""

    default_message = "Failed to save the event"
    default_code = ErrorCode.CAL_COMMIT_FAILED
