"""Pytest configuration and fixtures."""

import os
from typing import Any

import pytest

from genui.core import create_container, get_settings
from genui.core.config import Settings
from genui.integrations import ComponentContext, ExtractComponentsResult, StubContextProvider
from genui.orchestrator import ConstraintBuilder, GenerationOrchestrator
from genui.persistence import InMemoryPersistence
from genui.spec import DEFAULT_CATALOG, SpecValidator


# ============================================================================
# Pytest Hooks
# ============================================================================

def pytest_configure(config):
    """Configure pytest with environment variables."""
    os.environ['GENUI_LOG_LEVEL'] = 'DEBUG'
    os.environ.pop('GENUI_CONTEXT_URL', None)  # Stub context in tests


# ============================================================================
# Core Fixtures
# ============================================================================

@pytest.fixture
def settings():
    """Test settings."""
    return get_settings()


@pytest.fixture
def di_container():
    """Dependency injection container for testing."""
    return create_container(Settings())


@pytest.fixture
def validator():
    """Validator limited to catalog types."""
    return SpecValidator(allowed_types=DEFAULT_CATALOG.allowed_types)


@pytest.fixture
def constraint_builder():
    """Constraint builder over the default catalog."""
    return ConstraintBuilder(DEFAULT_CATALOG)


@pytest.fixture
def persistence():
    """Empty in-memory persistence."""
    return InMemoryPersistence()


# ============================================================================
# Model Fixtures
# ============================================================================

class ScriptedModel:
    """Model whose design stream replays one script per attempt."""

    def __init__(
        self,
        scripts: list[list[Any]],
        extraction: ExtractComponentsResult | None = None,
        extract_error: Exception | None = None,
    ) -> None:
        self.scripts = scripts
        self.extraction = extraction or ExtractComponentsResult(components=[], intent_type="modify")
        self.extract_error = extract_error
        self.design_inputs = []
        self.closed = 0

    async def extract_components(self, data):
        if self.extract_error:
            raise self.extract_error
        return self.extraction

    async def stream_design(self, data):
        self.design_inputs.append(data)
        script = self.scripts[min(len(self.design_inputs), len(self.scripts)) - 1]
        try:
            for item in script:
                if isinstance(item, Exception):
                    raise item
                yield item
        finally:
            self.closed += 1


class FailingContextProvider:
    """Context provider that always raises."""

    async def fetch_context(self, names):
        raise RuntimeError("context service down")


@pytest.fixture
def scripted_model():
    """Factory for scripted models."""
    return ScriptedModel


@pytest.fixture
def failing_context():
    """Context provider that raises."""
    return FailingContextProvider()


@pytest.fixture
def empty_context():
    """Component context without rules."""
    return ComponentContext(context_version="test-v1", component_rules=[])


@pytest.fixture
def make_orchestrator(persistence, validator, constraint_builder):
    """Build an orchestrator around a model, sharing the test persistence."""

    def _make(model, context_provider=None, **overrides):
        return GenerationOrchestrator(
            model=model,
            context_provider=context_provider or StubContextProvider(),
            persistence=persistence,
            validator=validator,
            constraint_builder=constraint_builder,
            settings=Settings(**overrides),
        )

    return _make


# ============================================================================
# Data Fixtures
# ============================================================================

@pytest.fixture
def sample_spec():
    """Small valid spec."""
    return {
        "root": "card",
        "elements": {
            "card": {"type": "Card", "props": {}, "children": ["header", "content"]},
            "header": {"type": "CardHeader", "props": {}, "children": ["title"]},
            "title": {"type": "CardTitle", "props": {}, "children": ["title__text_0"]},
            "title__text_0": {"type": "Text", "props": {"text": "Plans"}, "children": []},
            "content": {"type": "CardContent", "props": {}, "children": ["cta"]},
            "cta": {"type": "Button", "props": {"variant": "default"}, "children": []},
        },
    }


@pytest.fixture
def sample_tree():
    """Nested tree as a model would stream it."""
    return {
        "state": {"plans": [{"id": "a", "name": "Basic"}]},
        "tree": {
            "id": "card",
            "type": "Card",
            "children": [
                {"id": "header", "type": "CardHeader", "children": [{"id": "title", "type": "CardTitle", "children": ["Plans"]}]},
                {"id": "content", "type": "CardContent", "children": ["Pick one", {"type": "Button", "children": ["Buy"]}]},
            ],
        },
    }
