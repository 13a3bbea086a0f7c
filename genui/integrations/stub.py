"""
Stub Collaborators
Deterministic model and context provider for local runs and tests.
"""

from typing import Any, AsyncIterator

from ..core.json import safe_json_dumps
from .interfaces import (
    ComponentContext,
    ComponentRule,
    DesignInput,
    ExtractComponentsInput,
    ExtractComponentsResult,
)


STUB_COMPONENTS = ["Card", "CardHeader", "CardTitle", "CardDescription", "CardContent", "Button", "Text"]


def build_stub_tree(prompt: str, cta: str) -> dict[str, Any]:
    """Card tree that satisfies the default constraints for most prompts."""
    summary = prompt[:120]
    return {
        "id": "root",
        "type": "Card",
        "children": [
            {
                "id": "header",
                "type": "CardHeader",
                "children": [
                    {"id": "title", "type": "CardTitle", "children": ["Generated UI"]},
                    {"id": "description", "type": "CardDescription", "children": [summary]},
                ],
            },
            {
                "id": "content",
                "type": "CardContent",
                "children": [
                    {"id": "summary", "type": "Text", "props": {"text": summary}, "children": []},
                    {"id": "badge", "type": "Badge", "props": {"variant": "secondary"}, "children": ["Popular"]},
                    {"id": "cta", "type": "Button", "props": {"variant": "default"}, "children": [cta]},
                ],
            },
            {
                "id": "footer",
                "type": "CardFooter",
                "children": [
                    {"id": "email", "type": "Input", "props": {"placeholder": "Work email"}, "children": []},
                    {"id": "secondary", "type": "Button", "props": {"variant": "outline"}, "children": ["Learn more"]},
                ],
            },
        ],
    }


class StubGenerationModel:
    """Model that streams two fixed snapshots, one per line."""

    async def extract_components(self, data: ExtractComponentsInput) -> ExtractComponentsResult:
        return ExtractComponentsResult(
            components=list(STUB_COMPONENTS),
            intent_type="new",
            confidence=0.88,
        )

    async def stream_design(self, data: DesignInput) -> AsyncIterator[str]:
        yield safe_json_dumps(build_stub_tree(data.prompt, "Working...")) + "\n"
        final_cta = "Refined" if data.previous_spec else "Create Next Iteration"
        yield safe_json_dumps(build_stub_tree(data.prompt, final_cta)) + "\n"


class StubContextProvider:
    """Context provider returning a generic rule per requested component."""

    CONTEXT_VERSION = "stub-context-v1"

    async def fetch_context(self, names: list[str]) -> ComponentContext:
        return ComponentContext(
            context_version=self.CONTEXT_VERSION,
            component_rules=[
                ComponentRule(
                    name=name,
                    allowed_props=["className", "variant", "size"],
                    variants=["default", "secondary", "outline", "destructive"],
                    notes=f"{name} follows the local component contract in stub mode.",
                )
                for name in names
            ],
        )
