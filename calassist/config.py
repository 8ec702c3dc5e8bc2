"""calassist Configuration System.

Loads and validates configuration from ~/.calassist/config.json.
Uses Pydantic for schema validation with sensible defaults.

Usage:
    from calassist.config import get_config, save_config

    config = get_config()
    print(config.timezone)
    print(config.scheduling.default_duration_minutes)

    # Modify and save
    config.assistant.tone = "casual"
    save_config(config)
"""

from __future__ import annotations

import json
import logging
import os
import threading
from datetime import time
from pathlib import Path
from typing import Any, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, ValidationError, field_validator

from contracts.calendar import Category, WorkingHours
from contracts.llm import ModelTier, Provider

logger = logging.getLogger(__name__)

CONFIG_PATH = Path.home() / ".calassist" / "config.json"

CONFIG_VERSION = 1

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful scheduling assistant. You can help users manage their calendar, "
    "create events, and answer schedule-related questions. Always be helpful and "
    "concise in your responses."
)

TONE_PROMPTS: dict[str, str] = {
    "professional": "Maintain a professional and formal tone in all responses.",
    "casual": "Use a friendly, casual tone while remaining helpful and informative.",
}


def _parse_clock(value: str) -> time:
    hours, _, minutes = value.partition(":")
    return time(int(hours), int(minutes or 0))


class WorkingHoursConfig(BaseModel):
    """Working hours used for free-slot suggestions.

    Attributes:
        start: Local start of the working day ("HH:MM").
        end: Local end of the working day ("HH:MM"), after start.
        days: Weekdays eligible for suggestions, 0=Monday through 6=Sunday.
    """

    start: str = "09:00"
    end: str = "17:00"
    days: list[int] = Field(default_factory=lambda: list(range(7)))

    @field_validator("start", "end")
    @classmethod
    def validate_clock(cls, v: str) -> str:
        """Validate an HH:MM clock string."""
        try:
            _parse_clock(v)
        except ValueError as e:
            raise ValueError(f"expected HH:MM, got {v!r}") from e
        return v

    @field_validator("days")
    @classmethod
    def validate_days(cls, v: list[int]) -> list[int]:
        """Validate weekday numbers."""
        bad = [d for d in v if not 0 <= d <= 6]
        if bad:
            raise ValueError(f"weekdays must be within 0-6, got {bad}")
        return sorted(set(v))

    def to_working_hours(self) -> WorkingHours:
        """Build the WorkingHours value object used by the availability engine."""
        return WorkingHours(
            start=_parse_clock(self.start),
            end=_parse_clock(self.end),
            weekdays=frozenset(self.days),
        )


class SchedulingConfig(BaseModel):
    """Drafting and slot-search preferences.

    Attributes:
        default_duration_minutes: Event length when none was given.
        max_suggestions: Maximum free slots to return.
        lookahead_days: Days searched when a free-time query names no day.
        next_weekday_policy: How "next <weekday>" resolves. "upcoming" picks the
            first occurrence after today; "following_week" picks the occurrence
            in the following Monday-based week.
    """

    default_duration_minutes: int = Field(default=60, ge=1, le=1440)
    max_suggestions: int = Field(default=5, ge=1, le=50)
    lookahead_days: int = Field(default=7, ge=1, le=90)
    next_weekday_policy: Literal["upcoming", "following_week"] = "upcoming"


class TemporalConfig(BaseModel):
    """Hours assigned to time-of-day words."""

    morning_hour: int = Field(default=9, ge=0, le=23)
    afternoon_hour: int = Field(default=14, ge=0, le=23)
    evening_hour: int = Field(default=18, ge=0, le=23)
    night_hour: int = Field(default=20, ge=0, le=23)


class CategoryConfig(BaseModel):
    """Category classification policy.

    Attributes:
        extra_keywords: Additional keywords per category name.
        priority: Tie-break order, most preferred first.
    """

    extra_keywords: dict[str, list[str]] = Field(default_factory=dict)
    priority: list[str] = Field(
        default_factory=lambda: ["work", "health", "personal", "friends", "other"]
    )

    @field_validator("extra_keywords")
    @classmethod
    def validate_keyword_categories(cls, v: dict[str, list[str]]) -> dict[str, list[str]]:
        """Reject unknown category names."""
        known = {c.value for c in Category}
        unknown = sorted(set(v) - known)
        if unknown:
            raise ValueError(f"unknown categories: {unknown}")
        return {k: [w.lower() for w in words] for k, words in v.items()}

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v: list[str]) -> list[str]:
        """Require a permutation of every category."""
        if sorted(v) != sorted(c.value for c in Category):
            raise ValueError(f"priority must list each category once, got {v}")
        return v

    def priority_order(self) -> tuple[Category, ...]:
        return tuple(Category(name) for name in self.priority)


class LLMSettings(BaseModel):
    """Language-model backend configuration.

    Attributes:
        enabled: Whether unclassified requests are sent to a hosted model.
        provider: Hosted provider to call.
        tier: Model tier resolved through the model registry.
        model_id: Explicit provider model id, overrides tier.
        timeout_seconds: Upper bound on each HTTP request.
        max_retries: Retries for transient connection errors.
        max_tokens: Maximum tokens to generate.
        temperature: Sampling temperature (0.0-2.0).
        top_p: Nucleus sampling threshold.
        history_limit: Prior messages sent with a request. None uses the
            provider default.
        openrouter_api_key_env: Environment variable holding the OpenRouter key.
        huggingface_api_key_env: Environment variable holding the Hugging Face token.
    """

    enabled: bool = True
    provider: Provider = Provider.OPENROUTER
    tier: ModelTier = ModelTier.FAST
    model_id: str | None = None
    timeout_seconds: float = Field(default=20.0, ge=10.0, le=30.0)
    max_retries: int = Field(default=2, ge=0, le=5)
    max_tokens: int = Field(default=300, ge=1, le=4096)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    top_p: float = Field(default=0.9, ge=0.0, le=1.0)
    history_limit: int | None = Field(default=None, ge=0, le=50)
    openrouter_api_key_env: str = "OPENROUTER_API_KEY"
    huggingface_api_key_env: str = "HUGGINGFACE_API_KEY"

    def api_key_env(self, provider: Provider | None = None) -> str:
        """Name of the environment variable holding the provider's API key."""
        provider = provider or self.provider
        if provider is Provider.HUGGINGFACE:
            return self.huggingface_api_key_env
        return self.openrouter_api_key_env


class AssistantConfig(BaseModel):
    """Assistant persona settings.

    Attributes:
        tone: Reply tone ("professional" or "casual").
        system_prompt: Base system prompt sent to the model.
    """

    tone: Literal["professional", "casual"] = "professional"
    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    def full_system_prompt(self) -> str:
        return f"{self.system_prompt}\n{TONE_PROMPTS[self.tone]}"


class CalendarAssistConfig(BaseModel):
    """calassist configuration schema.

    Attributes:
        config_version: Schema version.
        timezone: IANA zone used when the caller supplies none.
        working_hours: Working hours for slot suggestions.
        scheduling: Drafting and slot-search preferences.
        temporal: Hours assigned to time-of-day words.
        categories: Category keyword extensions and tie-break priority.
        llm: Language-model backend configuration.
        assistant: Assistant persona settings.
    """

    config_version: int = CONFIG_VERSION
    timezone: str = "UTC"
    working_hours: WorkingHoursConfig = Field(default_factory=WorkingHoursConfig)
    scheduling: SchedulingConfig = Field(default_factory=SchedulingConfig)
    temporal: TemporalConfig = Field(default_factory=TemporalConfig)
    categories: CategoryConfig = Field(default_factory=CategoryConfig)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    assistant: AssistantConfig = Field(default_factory=AssistantConfig)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate the zone name against the IANA database."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown time zone: {v!r}") from e
        return v


# Module-level singleton with thread safety
_config: CalendarAssistConfig | None = None
_config_lock = threading.Lock()


def load_config(config_path: Path | None = None) -> CalendarAssistConfig:
    """Load configuration from file, return defaults if missing/invalid.

    Args:
        config_path: Optional path to config file. Defaults to ~/.calassist/config.json.

    Returns:
        CalendarAssistConfig instance with loaded or default values.
    """
    path = config_path or CONFIG_PATH

    if not path.exists():
        logger.debug("Config file not found at %s, using defaults", path)
        return CalendarAssistConfig()

    try:
        with path.open() as f:
            data: dict[str, Any] = json.load(f)
    except json.JSONDecodeError as e:
        logger.warning("Invalid JSON in config file %s: %s, using defaults", path, e)
        return CalendarAssistConfig()
    except OSError as e:
        logger.warning("Cannot read config file %s: %s, using defaults", path, e)
        return CalendarAssistConfig()

    try:
        return CalendarAssistConfig.model_validate(data)
    except ValidationError as e:
        logger.warning("Config validation failed: %s, using defaults", e)
        return CalendarAssistConfig()


def save_config(config: CalendarAssistConfig, config_path: Path | None = None) -> bool:
    """Save configuration to file.

    Args:
        config: Configuration to save.
        config_path: Optional path to config file. Defaults to ~/.calassist/config.json.

    Returns:
        True if saved successfully, False otherwise.
    """
    path = config_path or CONFIG_PATH

    try:
        path.parent.mkdir(parents=True, exist_ok=True)

        with path.open("w") as f:
            json.dump(config.model_dump(mode="json"), f, indent=2)

        # Owner-only: the file may name API key variables and personal hours
        os.chmod(path, 0o600)

        logger.debug("Configuration saved to %s", path)
        return True

    except OSError as e:
        logger.error("Failed to save config to %s: %s", path, e)
        return False


def get_config() -> CalendarAssistConfig:
    """Get singleton configuration instance.

    Uses double-check locking for thread safety.

    Returns:
        Shared CalendarAssistConfig instance.
    """
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:
                _config = load_config()
    return _config


def reset_config() -> None:
    """Reset singleton configuration for testing."""
    global _config
    with _config_lock:
        _config = None
