"""Pytest configuration for calassist tests.

Provides a fixed reference instant, fresh component instances, a scripted
language-model backend, and isolation from the user's config file and API
keys.
"""

import pytest

from calassist.config import reset_config
from calassist.intent import IntentClassifier, reset_intent_classifier
from calassist.orchestrator import Orchestrator, reset_orchestrator
from contracts.calendar import WorkingHours
from integrations.calendar import (
    AvailabilityEngineImpl,
    EntityExtractorImpl,
    EventDraftBuilderImpl,
    InMemoryCalendarStore,
    TemporalResolverImpl,
    reset_availability_engine,
    reset_draft_builder,
    reset_entity_extractor,
    reset_temporal_resolver,
)
from models import reset_language_model
from tests.helpers import REFERENCE, TZ_NAME


@pytest.fixture(autouse=True)
def isolate_environment(tmp_path, monkeypatch):
    """Keep tests away from ~/.calassist and real API keys; reset singletons."""
    monkeypatch.setattr("calassist.config.CONFIG_PATH", tmp_path / "config.json")
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    monkeypatch.delenv("HUGGINGFACE_API_KEY", raising=False)

    def reset_all():
        reset_config()
        reset_temporal_resolver()
        reset_entity_extractor()
        reset_draft_builder()
        reset_availability_engine()
        reset_language_model()
        reset_intent_classifier()
        reset_orchestrator()

    reset_all()
    yield
    reset_all()


@pytest.fixture
def reference():
    return REFERENCE


@pytest.fixture
def resolver():
    return TemporalResolverImpl()


@pytest.fixture
def extractor():
    return EntityExtractorImpl()


@pytest.fixture
def builder():
    return EventDraftBuilderImpl()


@pytest.fixture
def engine():
    return AvailabilityEngineImpl()


@pytest.fixture
def working_hours():
    return WorkingHours()


@pytest.fixture
def store():
    return InMemoryCalendarStore()


@pytest.fixture
def make_orchestrator(resolver, extractor, builder, engine, working_hours):
    """Factory for orchestrators wired to fresh components."""

    def factory(backend=None, store=None):
        return Orchestrator(
            resolver=resolver,
            extractor=extractor,
            builder=builder,
            engine=engine,
            classifier=IntentClassifier(backend=backend),
            store=store,
            working_hours=working_hours,
            timezone=TZ_NAME,
        )

    return factory
