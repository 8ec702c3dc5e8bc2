"""Unit tests for the model registry."""

import pytest

from contracts.llm import CompletionConfig, ModelTier, Provider
from models.registry import (
    MODEL_REGISTRY,
    get_model_spec,
    get_models_for_provider,
    resolve_model_id,
)


class TestRegistry:
    """Tests for registry contents and lookups."""

    @pytest.mark.parametrize("provider", list(Provider))
    @pytest.mark.parametrize("tier", list(ModelTier))
    def test_every_provider_and_tier_registered(self, provider, tier):
        """Each provider offers each tier."""
        spec = get_model_spec(provider, tier)
        assert spec.provider is provider
        assert spec.tier is tier
        assert spec.id

    def test_known_ids(self):
        """Tier defaults match the documented models."""
        assert get_model_spec(Provider.OPENROUTER, ModelTier.FAST).id == "anthropic/claude-3-haiku"
        assert get_model_spec(Provider.OPENROUTER, ModelTier.BALANCED).id == "openai/gpt-3.5-turbo"
        assert get_model_spec(Provider.HUGGINGFACE, ModelTier.FAST).id == "microsoft/DialoGPT-medium"

    def test_models_for_provider_ordered_by_tier(self):
        """Listings start with the fast tier."""
        specs = get_models_for_provider(Provider.HUGGINGFACE)
        assert [s.tier for s in specs] == [ModelTier.FAST, ModelTier.BALANCED, ModelTier.PREMIUM]

    def test_registry_size(self):
        """Three tiers for each of two providers."""
        assert len(MODEL_REGISTRY) == 6


class TestResolveModelId:
    """Tests for request model selection."""

    def test_tier_default(self):
        """Without an override the tier decides."""
        config = CompletionConfig(provider=Provider.OPENROUTER, tier=ModelTier.PREMIUM)
        assert resolve_model_id(config) == "anthropic/claude-3-sonnet"

    def test_override(self):
        """An explicit model id wins."""
        config = CompletionConfig(model_id="meta-llama/llama-3-8b-instruct")
        assert resolve_model_id(config) == "meta-llama/llama-3-8b-instruct"
