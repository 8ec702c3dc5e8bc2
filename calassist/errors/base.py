"""Base error class and error codes for calassist.

Contains the ErrorCode enum, the CalendarAssistError base class and
ConfigurationError. Every calassist exception inherits from
CalendarAssistError so callers can catch one type per request.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Machine-readable error codes.

    Codes are stable strings so they can be logged, compared in tests and
    included in ``to_dict()`` output.
    """

    # Configuration errors (CFG_*)
    CFG_INVALID = "CFG_INVALID"
    CFG_MISSING = "CFG_MISSING"

    # Validation errors (VAL_*)
    VAL_INVALID_INPUT = "VAL_INVALID_INPUT"
    VAL_MISSING_REQUIRED = "VAL_MISSING_REQUIRED"

    # Temporal errors (TMP_*)
    TMP_UNRESOLVED = "TMP_UNRESOLVED"
    TMP_MISSING = "TMP_MISSING"

    # Scheduling errors (SCH_*)
    SCH_INVALID_WINDOW = "SCH_INVALID_WINDOW"

    # Intent errors (INT_*)
    INT_UNCLASSIFIED = "INT_UNCLASSIFIED"

    # Calendar errors (CAL_*)
    CAL_NOT_AVAILABLE = "CAL_NOT_AVAILABLE"
    CAL_COMMIT_FAILED = "CAL_COMMIT_FAILED"

    # Model errors (MDL_*)
    MDL_HTTP_ERROR = "MDL_HTTP_ERROR"
    MDL_TIMEOUT = "MDL_TIMEOUT"
    MDL_MALFORMED_OUTPUT = "MDL_MALFORMED_OUTPUT"
    MDL_NOT_CONFIGURED = "MDL_NOT_CONFIGURED"

    # Generic errors
    UNKNOWN = "UNKNOWN"


class CalendarAssistError(Exception):
    """Root of every error raised by calassist.

    ``message`` is what the user sees; ``code`` is what callers branch on.
    ``details`` carries structured context (the offending text, a status
    code) for logs and ``to_dict()``. A ``cause`` is also chained as
    ``__cause__`` so tracebacks show the underlying failure.
    """

    default_message: str = "An error occurred"
    default_code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(
        self,
        message: str | None = None,
        *,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message or self.default_message)
        self.message: str = self.args[0]
        self.code = code or self.default_code
        self.details: dict[str, Any] = dict(details) if details else {}
        self.cause = cause
        self.__cause__ = cause

    def __repr__(self) -> str:
        fields = [repr(self.message)]
        if self.code != self.default_code:
            fields.append(f"code={str(self.code)!r}")
        if self.details:
            fields.append(f"details={self.details!r}")
        if self.cause is not None:
            fields.append(f"cause={self.cause!r}")
        return f"{type(self).__name__}({', '.join(fields)})"

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready summary for structured logs."""
        payload: dict[str, Any] = {
            "error": type(self).__name__,
            "code": str(self.code),
            "detail": self.message,
        }
        if self.details:
            payload["details"] = dict(self.details)
        return payload


class ConfigurationError(CalendarAssistError):
    """Bad or missing settings, usually from ``~/.calassist/config.json``."""

    default_message = "Configuration error"
    default_code = ErrorCode.CFG_INVALID

    def __init__(
        self,
        message: str | None = None,
        *,
        config_key: str | None = None,
        config_path: str | None = None,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        context = {"config_key": config_key, "config_path": config_path}
        merged = {**(details or {}), **{k: v for k, v in context.items() if v}}
        super().__init__(message, code=code, details=merged, cause=cause)
