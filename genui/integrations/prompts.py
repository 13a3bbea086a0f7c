"""
Prompt Builder
Renders extraction and design prompts, including retry feedback.
"""

from ..core.json import safe_json_dumps
from ..spec.catalog import DEFAULT_CATALOG, ComponentCatalog
from .interfaces import AttemptContext, ComponentContext, DesignInput, ExtractComponentsInput


EXTRACT_SYSTEM_PROMPT = "\n".join([
    "You are a component extractor for a UI generator.",
    'Return strict JSON object only with keys: components (string[]), intentType ("new"|"modify"), confidence (0..1).',
    "Do not include markdown.",
])

DESIGN_SYSTEM_PROMPT = "\n".join([
    "You generate UI tree snapshots for a component renderer.",
    "Output newline-delimited JSON objects only.",
    'Each line must be one complete object {"state"?, "tree"} or a bare node with id, type, props?, children?.',
    "Children are nodes or literal strings. No markdown, no explanations.",
])


class PromptBuilder:
    """Builds model prompts from structured inputs."""

    def __init__(self, catalog: ComponentCatalog = DEFAULT_CATALOG) -> None:
        self.catalog = catalog

    @staticmethod
    def context_section(context: ComponentContext) -> str:
        """Render component rules as a prompt section."""
        if not context.component_rules:
            return "CONTEXT RULES: none."

        lines = [f"CONTEXT RULES ({context.context_version}):"]
        for rule in context.component_rules:
            props = ", ".join(rule.allowed_props) or "none"
            variants = ", ".join(rule.variants) or "none"
            composition = " ".join(rule.composition_rules) or "none"
            lines.append(
                f"- {rule.name}: allowedProps [{props}]; variants [{variants}]; "
                f"composition [{composition}]; notes: {rule.notes}"
            )
        return "\n".join(lines)

    @staticmethod
    def feedback_section(attempt: AttemptContext) -> str:
        """Render earlier rejection reasons, empty on a first attempt."""
        if not attempt.issues:
            return ""
        lines = [f"PREVIOUS ATTEMPT FAILED (attempt {attempt.attempt - 1}). Fix these issues:"]
        lines.extend(f"- [{issue.code}] {issue.message}" for issue in attempt.issues)
        return "\n".join(lines)

    def build_extract(self, data: ExtractComponentsInput) -> str:
        """Build the component extraction prompt."""
        previous = safe_json_dumps(data.previous_spec) if data.previous_spec else "null"
        return "\n".join([
            EXTRACT_SYSTEM_PROMPT,
            f"Prompt: {data.prompt}",
            f"PreviousSpec: {previous}",
        ])

    def build_design(self, data: DesignInput) -> str:
        """Build the streamed design prompt."""
        previous = safe_json_dumps(data.previous_spec) if data.previous_spec else "null"
        parts = [
            DESIGN_SYSTEM_PROMPT,
            f"\n=== COMPONENTS ===\n{self.catalog.catalog_section()}",
            f"\n=== CONTEXT ===\n{self.context_section(data.component_context)}",
        ]

        feedback = self.feedback_section(data.attempt)
        if feedback:
            parts.append(f"\n=== FEEDBACK ===\n{feedback}")

        parts.append(f"\n=== REQUEST ===\nPrompt: {data.prompt}\nPreviousSpec: {previous}")
        return "\n".join(parts)
