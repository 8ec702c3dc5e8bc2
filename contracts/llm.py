"""Language-model backend interfaces.

The orchestrator treats the model purely as an opaque text-completion
function. Provider adapters in ``models/`` implement ``LanguageModelBackend``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol


class Provider(StrEnum):
    """Hosted completion providers."""

    OPENROUTER = "openrouter"
    HUGGINGFACE = "huggingface"


class ModelTier(StrEnum):
    """Closed set of model choices exposed to the user."""

    FAST = "fast"
    BALANCED = "balanced"
    PREMIUM = "premium"


@dataclass(frozen=True)
class ChatMessage:
    """One prior turn of the conversation transcript."""

    role: str  # "user" or "assistant"
    content: str


@dataclass(frozen=True)
class CompletionConfig:
    """Per-request completion settings.

    Attributes:
        provider: Which hosted provider to call.
        tier: Model tier used when model_id is not given.
        model_id: Explicit provider model id, overrides tier.
        system_prompt: System instructions for the request.
        max_tokens: Maximum tokens to generate.
        temperature: Sampling temperature.
        top_p: Nucleus sampling threshold.
        timeout_seconds: Upper bound on the HTTP request.
    """

    provider: Provider = Provider.OPENROUTER
    tier: ModelTier = ModelTier.FAST
    model_id: str | None = None
    system_prompt: str = "You are a helpful calendar assistant."
    max_tokens: int = 300
    temperature: float = 0.7
    top_p: float = 0.9
    timeout_seconds: float = 20.0

    def __post_init__(self) -> None:
        if self.max_tokens < 1:
            msg = f"max_tokens must be >= 1, got {self.max_tokens}"
            raise ValueError(msg)
        if not 0.0 <= self.temperature <= 2.0:
            msg = f"temperature must be 0.0-2.0, got {self.temperature}"
            raise ValueError(msg)
        if not 0.0 <= self.top_p <= 1.0:
            msg = f"top_p must be 0.0-1.0, got {self.top_p}"
            raise ValueError(msg)
        if self.timeout_seconds <= 0:
            msg = f"timeout_seconds must be positive, got {self.timeout_seconds}"
            raise ValueError(msg)


class LanguageModelBackend(Protocol):
    """Interface for a hosted text-completion model."""

    def complete(
        self,
        prompt: str,
        config: CompletionConfig,
        history: tuple[ChatMessage, ...] = (),
    ) -> str:
        """Complete a prompt.

        Args:
            prompt: The user-turn prompt text.
            config: Provider/model/sampling settings.
            history: Earlier transcript turns, oldest first.

        Returns:
            The model's reply text.

        Raises:
            ExternalModelError: On non-2xx responses, transport failures,
                timeouts or malformed output.
        """
        ...
