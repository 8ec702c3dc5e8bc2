"""Convenience factory functions for common error scenarios.

Provides shorthand functions for creating commonly-used error instances
with appropriate error codes and details pre-filled.
"""

from __future__ import annotations

from calassist.errors.base import ErrorCode
from calassist.errors.domain import (
    InvalidSearchWindowError,
    UnresolvedTemporalExpressionError,
    ValidationError,
)
from calassist.errors.model import ExternalModelError


def validation_required(field: str) -> ValidationError:
    """Create a ValidationError for a missing required field."""
    return ValidationError(
        f"Required field missing: {field}",
        field=field,
        code=ErrorCode.VAL_MISSING_REQUIRED,
    )


def non_positive_duration(duration_minutes: int) -> ValidationError:
    """Create a ValidationError for a zero or negative slot length."""
    return ValidationError(
        f"Duration must be positive, got {duration_minutes} minutes",
        field="duration_minutes",
        value=duration_minutes,
        expected="integer > 0",
    )


def empty_search_window(start: object, end: object) -> InvalidSearchWindowError:
    """Create an InvalidSearchWindowError for a window with end <= start."""
    return InvalidSearchWindowError(
        f"Search window ends at or before it starts: {start} >= {end}",
        start=start,
        end=end,
    )


def unresolved_date(text: str) -> UnresolvedTemporalExpressionError:
    """Create an UnresolvedTemporalExpressionError for impossible date text."""
    return UnresolvedTemporalExpressionError(
        f"Could not resolve date: {text!r}",
        text=text,
    )


def model_not_configured(provider: str, env_var: str) -> ExternalModelError:
    """Create an ExternalModelError for a provider with no API key."""
    return ExternalModelError(
        f"No API key for {provider}; set {env_var}",
        provider=provider,
        code=ErrorCode.MDL_NOT_CONFIGURED,
        details={"env_var": env_var},
    )


def model_timeout(provider: str, timeout_seconds: float, cause: Exception) -> ExternalModelError:
    """Create an ExternalModelError for a request that exceeded its timeout."""
    return ExternalModelError(
        f"{provider} request timed out after {timeout_seconds}s",
        provider=provider,
        timeout_seconds=timeout_seconds,
        cause=cause,
    )


def model_malformed_output(provider: str, reason: str) -> ExternalModelError:
    """Create an ExternalModelError for a reply that could not be parsed."""
    return ExternalModelError(
        f"Malformed {provider} response: {reason}",
        provider=provider,
        code=ErrorCode.MDL_MALFORMED_OUTPUT,
    )
