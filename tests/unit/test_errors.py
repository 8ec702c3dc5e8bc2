"""Unit tests for the unified error hierarchy."""

import pytest

from calassist.errors import (
    CalendarAssistError,
    CalendarCommitError,
    CalendarError,
    ConfigurationError,
    ErrorCode,
    ExternalModelError,
    IntentError,
    InvalidSearchWindowError,
    MissingTemporalExpressionError,
    ModelError,
    SchedulingError,
    TemporalError,
    UnclassifiedIntentError,
    UnresolvedTemporalExpressionError,
    ValidationError,
    empty_search_window,
    model_malformed_output,
    model_not_configured,
    model_timeout,
    non_positive_duration,
    unresolved_date,
    validation_required,
)


class TestErrorCode:
    """Tests for ErrorCode enum."""

    def test_error_code_values_are_unique(self):
        """All error code values are unique."""
        values = [code.value for code in ErrorCode]
        assert len(values) == len(set(values))

    def test_error_code_categories(self):
        """Error codes follow category prefixes."""
        for code in ErrorCode:
            if code == ErrorCode.UNKNOWN:
                continue
            assert code.value.split("_")[0] in {"CFG", "VAL", "TMP", "SCH", "INT", "CAL", "MDL"}


class TestCalendarAssistError:
    """Tests for the base class."""

    def test_default_message(self):
        """Has sensible default message."""
        error = CalendarAssistError()
        assert error.message == "An error occurred"
        assert str(error) == "An error occurred"
        assert error.code == ErrorCode.UNKNOWN

    def test_cause_is_chained(self):
        """The cause is kept and chained."""
        original = OSError("disk")
        error = CalendarAssistError("wrapped", cause=original)
        assert error.cause is original
        assert error.__cause__ is original

    def test_to_dict(self):
        """to_dict includes type, code, detail and details."""
        error = ValidationError("bad", field="duration")
        assert error.to_dict() == {
            "error": "ValidationError",
            "code": "VAL_INVALID_INPUT",
            "detail": "bad",
            "details": {"field": "duration"},
        }

    def test_repr_shows_non_default_code(self):
        """repr mentions the code only when it differs from the default."""
        assert "code=" not in repr(CalendarError("x"))
        assert "code='CAL_COMMIT_FAILED'" in repr(
            CalendarError("x", code=ErrorCode.CAL_COMMIT_FAILED)
        )

    def test_repr_lists_fields(self):
        """repr reads like the constructor call."""
        error = CalendarError("x", code=ErrorCode.CAL_COMMIT_FAILED, details={"id": "e1"})
        assert repr(error) == "CalendarError('x', code='CAL_COMMIT_FAILED', details={'id': 'e1'})"

    def test_details_are_copied(self):
        """The caller's details dict is never shared or mutated."""
        context = {"path": "/tmp/c.json"}
        error = ConfigurationError("bad", config_key="llm.tier", details=context)
        assert context == {"path": "/tmp/c.json"}
        assert error.details == {"path": "/tmp/c.json", "config_key": "llm.tier"}
        error.to_dict()["details"]["extra"] = 1
        assert "extra" not in error.details

    def test_no_cause_leaves_chain_empty(self):
        """Without a cause nothing is chained."""
        error = CalendarAssistError("plain")
        assert error.cause is None
        assert error.__cause__ is None


class TestHierarchy:
    """Tests for subclass relationships and default codes."""

    @pytest.mark.parametrize(
        ("cls", "parent", "code"),
        [
            (ConfigurationError, CalendarAssistError, ErrorCode.CFG_INVALID),
            (ValidationError, CalendarAssistError, ErrorCode.VAL_INVALID_INPUT),
            (UnresolvedTemporalExpressionError, TemporalError, ErrorCode.TMP_UNRESOLVED),
            (MissingTemporalExpressionError, TemporalError, ErrorCode.TMP_MISSING),
            (InvalidSearchWindowError, SchedulingError, ErrorCode.SCH_INVALID_WINDOW),
            (UnclassifiedIntentError, IntentError, ErrorCode.INT_UNCLASSIFIED),
            (CalendarCommitError, CalendarError, ErrorCode.CAL_COMMIT_FAILED),
            (ExternalModelError, ModelError, ErrorCode.MDL_HTTP_ERROR),
        ],
    )
    def test_subclass_and_code(self, cls, parent, code):
        """Each error sits under its family and has its default code."""
        error = cls()
        assert isinstance(error, parent)
        assert isinstance(error, CalendarAssistError)
        assert error.code == code

    def test_configuration_details(self):
        """Config key and path go into details."""
        error = ConfigurationError("bad", config_key="llm.tier", config_path="/tmp/c.json")
        assert error.details == {"config_key": "llm.tier", "config_path": "/tmp/c.json"}

    def test_temporal_text(self):
        """Temporal errors keep the offending text."""
        error = UnresolvedTemporalExpressionError(text="the 35th")
        assert error.text == "the 35th"
        assert error.details["text"] == "the 35th"

    def test_external_model_timeout_code(self):
        """A timeout value switches the default code to MDL_TIMEOUT."""
        error = ExternalModelError("slow", timeout_seconds=20.0, provider="openrouter")
        assert error.code == ErrorCode.MDL_TIMEOUT
        assert error.details == {"timeout_seconds": 20.0, "provider": "openrouter"}

    def test_external_model_status(self):
        """Status codes are kept."""
        error = ExternalModelError("nope", status_code=500)
        assert error.status_code == 500
        assert error.details["status_code"] == 500


class TestFactories:
    """Tests for convenience factories."""

    def test_validation_required(self):
        error = validation_required("title")
        assert error.code == ErrorCode.VAL_MISSING_REQUIRED
        assert error.details["field"] == "title"

    def test_non_positive_duration(self):
        error = non_positive_duration(0)
        assert isinstance(error, ValidationError)
        assert error.details == {
            "field": "duration_minutes",
            "value": "0",
            "expected": "integer > 0",
        }

    def test_empty_search_window(self):
        error = empty_search_window("2024-01-15 10:00", "2024-01-15 09:00")
        assert isinstance(error, InvalidSearchWindowError)
        assert error.details["start"] == "2024-01-15 10:00"

    def test_unresolved_date(self):
        error = unresolved_date("February 30")
        assert error.text == "February 30"
        assert "February 30" in error.message

    def test_model_not_configured(self):
        error = model_not_configured("openrouter", "OPENROUTER_API_KEY")
        assert error.code == ErrorCode.MDL_NOT_CONFIGURED
        assert error.details["env_var"] == "OPENROUTER_API_KEY"

    def test_model_timeout(self):
        cause = TimeoutError("read")
        error = model_timeout("huggingface", 20.0, cause)
        assert error.code == ErrorCode.MDL_TIMEOUT
        assert error.cause is cause

    def test_model_malformed_output(self):
        error = model_malformed_output("openrouter", "no choices")
        assert error.code == ErrorCode.MDL_MALFORMED_OUTPUT
        assert error.provider == "openrouter"
