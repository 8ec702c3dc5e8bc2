"""Hosted language-model backends for calassist.

The orchestrator only sees ``LanguageModelBackend.complete``; this package
supplies the OpenRouter and Hugging Face adapters and picks one from the
configured provider.

Usage:
    from models import get_language_model, completion_config_from

    backend = get_language_model()  # None when no API key is set
    if backend is not None:
        reply = backend.complete("What's on Friday?", completion_config_from(get_config()))
"""

import logging
import os
import threading

from calassist.config import CalendarAssistConfig, LLMSettings, get_config
from contracts.llm import CompletionConfig, LanguageModelBackend, Provider
from models.hosted import HostedModelBackend
from models.huggingface import HuggingFaceBackend, build_transcript
from models.openrouter import OpenRouterBackend
from models.registry import (
    MODEL_REGISTRY,
    ModelSpec,
    get_model_spec,
    get_models_for_provider,
    resolve_model_id,
)

logger = logging.getLogger(__name__)

_BACKENDS: dict[Provider, type[HostedModelBackend]] = {
    Provider.OPENROUTER: OpenRouterBackend,
    Provider.HUGGINGFACE: HuggingFaceBackend,
}


def completion_config_from(config: CalendarAssistConfig) -> CompletionConfig:
    """Build per-request completion settings from the app configuration."""
    llm = config.llm
    return CompletionConfig(
        provider=llm.provider,
        tier=llm.tier,
        model_id=llm.model_id,
        system_prompt=config.assistant.full_system_prompt(),
        max_tokens=llm.max_tokens,
        temperature=llm.temperature,
        top_p=llm.top_p,
        timeout_seconds=llm.timeout_seconds,
    )


def create_language_model(settings: LLMSettings) -> LanguageModelBackend | None:
    """Create the backend for the configured provider.

    Returns:
        The backend, or None if the model is disabled or the provider's
        API key environment variable is unset.
    """
    if not settings.enabled:
        logger.debug("Language model disabled in config")
        return None

    env_var = settings.api_key_env()
    api_key = os.environ.get(env_var, "").strip()
    if not api_key:
        logger.info("No API key in %s; language model unavailable", env_var)
        return None

    backend_cls = _BACKENDS[settings.provider]
    return backend_cls(
        api_key,
        history_limit=settings.history_limit,
        max_retries=settings.max_retries,
    )


# Module-level singleton
_backend: LanguageModelBackend | None = None
_backend_loaded = False
_backend_lock = threading.Lock()


def get_language_model(settings: LLMSettings | None = None) -> LanguageModelBackend | None:
    """Get the shared language-model backend.

    Uses double-checked locking; the first call decides the backend.

    Args:
        settings: LLM settings. Defaults to ``get_config().llm``.

    Returns:
        The backend, or None when no model is configured.
    """
    global _backend, _backend_loaded
    if not _backend_loaded:
        with _backend_lock:
            if not _backend_loaded:
                _backend = create_language_model(settings or get_config().llm)
                _backend_loaded = True
    return _backend


def reset_language_model() -> None:
    """Reset the shared backend so the next call re-reads configuration."""
    global _backend, _backend_loaded
    with _backend_lock:
        _backend = None
        _backend_loaded = False


__all__ = [
    # Factory
    "completion_config_from",
    "create_language_model",
    "get_language_model",
    "reset_language_model",
    # Backends
    "HostedModelBackend",
    "HuggingFaceBackend",
    "OpenRouterBackend",
    "build_transcript",
    # Registry
    "MODEL_REGISTRY",
    "ModelSpec",
    "get_model_spec",
    "get_models_for_provider",
    "resolve_model_id",
]
