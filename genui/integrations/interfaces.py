"""
Collaborator Interfaces
Protocols and payloads for the generation model and component context.
"""

from typing import Any, AsyncIterator, Literal, Protocol

from pydantic import BaseModel, Field


class ComponentRule(BaseModel):
    """Per-component usage rule from the context service."""

    name: str
    allowed_props: list[str] = Field(default_factory=list)
    variants: list[str] = Field(default_factory=list)
    composition_rules: list[str] = Field(default_factory=list)
    supported_events: list[str] = Field(default_factory=list)
    binding_hints: list[str] = Field(default_factory=list)
    notes: str = ""


class ComponentContext(BaseModel):
    """Rules supplied for the components a prompt needs."""

    context_version: str
    component_rules: list[ComponentRule] = Field(default_factory=list)


class ExtractComponentsInput(BaseModel):
    """First pass: which components does the prompt need."""

    prompt: str
    previous_spec: dict[str, Any] | None = None


class ExtractComponentsResult(BaseModel):
    """Model's self-reported component list and intent."""

    components: list[str] = Field(default_factory=list)
    intent_type: Literal["new", "modify"] = "new"
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class AttemptIssue(BaseModel):
    """Rejection reason carried into the next attempt."""

    code: str
    message: str


class AttemptContext(BaseModel):
    """Attempt number plus the issues that rejected earlier attempts."""

    attempt: int = Field(ge=1)
    issues: list[AttemptIssue] = Field(default_factory=list)


class DesignInput(BaseModel):
    """Second pass: stream a UI tree for the prompt."""

    prompt: str
    previous_spec: dict[str, Any] | None = None
    component_context: ComponentContext
    attempt: AttemptContext = Field(default_factory=lambda: AttemptContext(attempt=1))


class GenerationModel(Protocol):
    """Text-generating model used by the orchestrator."""

    async def extract_components(self, data: ExtractComponentsInput) -> ExtractComponentsResult:
        ...

    def stream_design(self, data: DesignInput) -> AsyncIterator[str]:
        """Yield text chunks containing zero or more JSON tree objects."""
        ...


class ContextProvider(Protocol):
    """Source of per-component rules."""

    async def fetch_context(self, names: list[str]) -> ComponentContext:
        ...


def normalize_extraction(payload: Any) -> ExtractComponentsResult:
    """
    Sanitize a model's extraction reply.

    Non-string components are dropped, any intent other than "modify" is
    "new" and confidence is clamped to [0, 1].

    Examples:
        >>> normalize_extraction({"components": ["Card", 3], "intentType": "edit", "confidence": 7})
        ExtractComponentsResult(components=['Card'], intent_type='new', confidence=1.0)
    """
    if not isinstance(payload, dict):
        return ExtractComponentsResult()

    components = payload.get("components")
    confidence = payload.get("confidence")
    if not isinstance(confidence, (int, float)) or isinstance(confidence, bool):
        confidence = 0.0

    return ExtractComponentsResult(
        components=[item for item in components if isinstance(item, str)]
        if isinstance(components, list)
        else [],
        intent_type="modify" if payload.get("intentType") == "modify" else "new",
        confidence=max(0.0, min(1.0, float(confidence))),
    )
