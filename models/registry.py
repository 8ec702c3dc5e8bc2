"""Model Registry for calassist.

Maps each provider's model tiers to concrete hosted model ids. Users pick a
tier (fast, balanced, premium) or override it with an explicit model id.

Usage:
    from models.registry import get_model_spec, resolve_model_id

    spec = get_model_spec(Provider.OPENROUTER, ModelTier.FAST)
    model_id = resolve_model_id(completion_config)
"""

from __future__ import annotations

from dataclasses import dataclass

from contracts.llm import CompletionConfig, ModelTier, Provider


@dataclass(frozen=True)
class ModelSpec:
    """Specification for a hosted model.

    Attributes:
        id: Provider model id sent in requests.
        provider: Provider hosting the model.
        tier: Tier the model is registered under.
        display_name: Human-readable name for the CLI.
        description: One-line description.
    """

    id: str
    provider: Provider
    tier: ModelTier
    display_name: str
    description: str


MODEL_REGISTRY: dict[tuple[Provider, ModelTier], ModelSpec] = {
    (Provider.OPENROUTER, ModelTier.FAST): ModelSpec(
        id="anthropic/claude-3-haiku",
        provider=Provider.OPENROUTER,
        tier=ModelTier.FAST,
        display_name="Claude 3 Haiku",
        description="Fast, efficient, great for calendar tasks",
    ),
    (Provider.OPENROUTER, ModelTier.BALANCED): ModelSpec(
        id="openai/gpt-3.5-turbo",
        provider=Provider.OPENROUTER,
        tier=ModelTier.BALANCED,
        display_name="GPT-3.5 Turbo",
        description="Popular, well-balanced model",
    ),
    (Provider.OPENROUTER, ModelTier.PREMIUM): ModelSpec(
        id="anthropic/claude-3-sonnet",
        provider=Provider.OPENROUTER,
        tier=ModelTier.PREMIUM,
        display_name="Claude 3 Sonnet",
        description="Balanced performance and intelligence",
    ),
    (Provider.HUGGINGFACE, ModelTier.FAST): ModelSpec(
        id="microsoft/DialoGPT-medium",
        provider=Provider.HUGGINGFACE,
        tier=ModelTier.FAST,
        display_name="DialoGPT Medium",
        description="Free conversational model",
    ),
    (Provider.HUGGINGFACE, ModelTier.BALANCED): ModelSpec(
        id="facebook/blenderbot-400M-distill",
        provider=Provider.HUGGINGFACE,
        tier=ModelTier.BALANCED,
        display_name="BlenderBot 400M",
        description="Distilled open-domain chat model",
    ),
    (Provider.HUGGINGFACE, ModelTier.PREMIUM): ModelSpec(
        id="microsoft/DialoGPT-large",
        provider=Provider.HUGGINGFACE,
        tier=ModelTier.PREMIUM,
        display_name="DialoGPT Large",
        description="Larger free conversational model",
    ),
}


def get_model_spec(provider: Provider, tier: ModelTier) -> ModelSpec:
    """Get the registered model for a provider and tier."""
    return MODEL_REGISTRY[(provider, tier)]


def get_models_for_provider(provider: Provider) -> list[ModelSpec]:
    """All registered models for a provider, fast tier first."""
    order = list(ModelTier)
    specs = [spec for (p, _), spec in MODEL_REGISTRY.items() if p is provider]
    return sorted(specs, key=lambda s: order.index(s.tier))


def resolve_model_id(config: CompletionConfig) -> str:
    """Model id for a request: the explicit override, else the tier's model."""
    if config.model_id:
        return config.model_id
    return get_model_spec(config.provider, config.tier).id
