"""Language-model error classes."""

from __future__ import annotations

from typing import Any

from calassist.errors.base import CalendarAssistError, ErrorCode


class ModelError(CalendarAssistError):
    """Base class for language-model backend errors."""

    default_message = "Model error"
    default_code = ErrorCode.MDL_HTTP_ERROR

    def __init__(
        self,
        message: str | None = None,
        *,
        provider: str | None = None,
        model_name: str | None = None,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        details = dict(details or {})
        if provider:
            details["provider"] = provider
        if model_name:
            details["model_name"] = model_name
        self.provider = provider
        super().__init__(message, code=code, details=details, cause=cause)


class ExternalModelError(ModelError):
    """Raised when a hosted model request fails.

    Covers non-2xx responses, transport failures, timeouts, API error
    payloads and replies that cannot be parsed.
    """

    default_message = "The language model request failed"
    default_code = ErrorCode.MDL_HTTP_ERROR

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        timeout_seconds: float | None = None,
        provider: str | None = None,
        model_name: str | None = None,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        details = dict(details or {})
        if status_code is not None:
            details["status_code"] = status_code
        if timeout_seconds is not None:
            details["timeout_seconds"] = timeout_seconds
            code = code or ErrorCode.MDL_TIMEOUT
        self.status_code = status_code
        super().__init__(
            message,
            provider=provider,
            model_name=model_name,
            code=code,
            details=details,
            cause=cause,
        )
