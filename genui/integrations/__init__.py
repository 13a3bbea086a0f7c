"""External collaborators: generation model and component context."""

from .context_client import ContextFetchError, HttpContextClient
from .interfaces import (
    AttemptContext,
    AttemptIssue,
    ComponentContext,
    ComponentRule,
    ContextProvider,
    DesignInput,
    ExtractComponentsInput,
    ExtractComponentsResult,
    GenerationModel,
    normalize_extraction,
)
from .langchain_model import LangChainGenerationModel
from .prompts import PromptBuilder
from .stub import StubContextProvider, StubGenerationModel

__all__ = [
    "AttemptContext",
    "AttemptIssue",
    "ComponentContext",
    "ComponentRule",
    "ContextProvider",
    "DesignInput",
    "ExtractComponentsInput",
    "ExtractComponentsResult",
    "GenerationModel",
    "normalize_extraction",
    "ContextFetchError",
    "HttpContextClient",
    "LangChainGenerationModel",
    "PromptBuilder",
    "StubContextProvider",
    "StubGenerationModel",
]
