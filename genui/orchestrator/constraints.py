"""Prompt-derived constraints checked against candidate specs.

Violations never invalidate a spec; they reject a candidate so the next
attempt can be steered by them.
"""

import re
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from ..integrations.interfaces import ComponentContext, ExtractComponentsResult
from ..spec.catalog import CONTROL_TYPES, DEFAULT_CATALOG, ComponentCatalog


CARD_HINT = re.compile(r"\b(card|pricing|plan|dashboard|hero)\b", re.IGNORECASE)
FORM_HINT = re.compile(r"\b(form|login|sign[- ]?up|input|textarea|select|checkbox|submit)\b", re.IGNORECASE)
BUTTON_HINT = re.compile(r"\b(button|cta|call to action)\b", re.IGNORECASE)
BADGE_HINT = re.compile(r"\bbadge\b", re.IGNORECASE)
CARD_WORD_HINT = re.compile(r"\bcard\b", re.IGNORECASE)
COMPLEX_HINT = re.compile(r"\b(pricing|landing|checkout|dashboard|hero|feature|section|form)\b", re.IGNORECASE)
SIMPLE_HINT = re.compile(
    r"\b(simple|minimal|minimalist|minimalistic|single|basic|plain|tiny|compact|just)\b", re.IGNORECASE
)
QUOTED_TOKEN_RE = re.compile(r"[\"“”'‘’]([^\"“”'‘’]{2,80})[\"“”'‘’]")
EXACT_NOTE_TOKEN_RE = re.compile(r"exactly\s+[\"“]([^\"”]{2,80})[\"”]", re.IGNORECASE)

CARD_STRUCTURE_TYPES = ("Card", "CardHeader", "CardContent")
HEADER_TYPES = frozenset({"CardHeader", "CardTitle"})

MAX_TOKEN_DRIVEN_MINIMUM = 12
COMPLEX_FLOOR = 10
SIMPLE_FLOOR = 3
DEFAULT_FLOOR = 5


@dataclass(frozen=True)
class ConstraintSet:
    """Requirements a candidate must meet to be accepted."""

    required_types: frozenset[str] = frozenset()
    required_text_tokens: tuple[str, ...] = ()
    min_elements: int = 1
    min_root_children: int = 0
    require_text_node: bool = False
    require_card_structure: bool = False
    require_form_controls: bool = False


@dataclass(frozen=True)
class Violation:
    code: str
    message: str


def _normalize_token(value: str) -> str:
    return " ".join(value.split())


def _unique_tokens(pattern: re.Pattern[str], texts: list[str]) -> list[str]:
    tokens: dict[str, None] = {}
    for text in texts:
        for match in pattern.finditer(text):
            token = _normalize_token(match.group(1))
            if 2 <= len(token) <= 80:
                tokens[token] = None
    return list(tokens)


class ConstraintBuilder:
    """Derives a ConstraintSet from prompt, extraction and context."""

    def __init__(self, catalog: ComponentCatalog = DEFAULT_CATALOG) -> None:
        self.catalog = catalog

    def build(
        self,
        prompt: str,
        extraction: ExtractComponentsResult,
        context: ComponentContext,
    ) -> ConstraintSet:
        """
        Build constraints for one generation.

        Args:
            prompt: User prompt
            extraction: Components the model reported for the prompt
            context: Component rules; "exactly \"...\"" notes add text tokens

        Returns:
            Constraint set
        """
        reported = [self.catalog.canonicalize(name) for name in extraction.components]
        required = {name for name in reported if self.catalog.is_allowed(name)}

        if BUTTON_HINT.search(prompt):
            required.add("Button")
        if BADGE_HINT.search(prompt):
            required.add("Badge")
        if CARD_WORD_HINT.search(prompt):
            required.add("Card")

        require_card_structure = bool(CARD_HINT.search(prompt)) or "Card" in reported
        require_form_controls = bool(FORM_HINT.search(prompt)) or any(
            name in CONTROL_TYPES for name in reported
        )
        if require_card_structure:
            required.update(CARD_STRUCTURE_TYPES)
        if require_form_controls:
            required.add("Button")

        tokens = _unique_tokens(QUOTED_TOKEN_RE, [prompt])
        for token in _unique_tokens(EXACT_NOTE_TOKEN_RE, [rule.notes for rule in context.component_rules]):
            if token not in tokens:
                tokens.append(token)

        is_new = extraction.intent_type == "new"
        if is_new:
            if COMPLEX_HINT.search(prompt):
                floor = COMPLEX_FLOOR
            elif SIMPLE_HINT.search(prompt):
                floor = SIMPLE_FLOOR
            else:
                floor = DEFAULT_FLOOR
            min_elements = max(min(MAX_TOKEN_DRIVEN_MINIMUM, len(tokens) + 2), floor)
        else:
            min_elements = 1

        return ConstraintSet(
            required_types=frozenset(required),
            required_text_tokens=tuple(tokens),
            min_elements=min_elements,
            min_root_children=1 if is_new else 0,
            require_text_node=is_new,
            require_card_structure=require_card_structure,
            require_form_controls=require_form_controls,
        )


def _descendant_types(elements: dict[str, Any], start: list[str]) -> set[str]:
    found: set[str] = set()
    visited: set[str] = set()
    queue = deque(start)
    while queue:
        element_id = queue.popleft()
        if element_id in visited:
            continue
        visited.add(element_id)
        element = elements.get(element_id)
        if element is None:
            continue
        found.add(element["type"])
        queue.extend(element.get("children", []))
    return found


def check_constraints(document: dict[str, Any], constraints: ConstraintSet) -> list[Violation]:
    """Return every constraint the document violates (empty when accepted)."""
    violations: list[Violation] = []
    elements: dict[str, Any] = document.get("elements", {})
    types = {element["type"] for element in elements.values()}

    if len(elements) < constraints.min_elements:
        violations.append(
            Violation(
                "CONSTRAINT_MIN_ELEMENTS",
                f"Generated spec has {len(elements)} elements, below required minimum {constraints.min_elements}.",
            )
        )

    root = elements.get(document.get("root", ""))
    root_children = len(root["children"]) if root else 0
    if root_children < constraints.min_root_children:
        violations.append(
            Violation(
                "CONSTRAINT_MIN_ROOT_CHILDREN",
                f"Root element has {root_children} child(ren), below required minimum {constraints.min_root_children}.",
            )
        )

    for required in sorted(constraints.required_types):
        if required not in types:
            violations.append(
                Violation("CONSTRAINT_REQUIRED_COMPONENT", f"Required component type '{required}' was not generated.")
            )

    text = " ".join(
        value
        for element in elements.values()
        for value in element.get("props", {}).values()
        if isinstance(value, str)
    ).lower()
    for token in constraints.required_text_tokens:
        if token.lower() not in text:
            violations.append(
                Violation("CONSTRAINT_REQUIRED_TEXT", f"Required visible text token '{token}' was not found.")
            )

    if constraints.require_text_node and not any(
        element["type"] == "Text" and isinstance(element.get("props", {}).get("text"), str)
        for element in elements.values()
    ):
        violations.append(
            Violation(
                "CONSTRAINT_TEXT_NODE_REQUIRED",
                "At least one visible text node is required for new UI generations.",
            )
        )

    if constraints.require_card_structure:
        for element_id, element in elements.items():
            if element["type"] != "Card":
                continue
            descendants = _descendant_types(elements, element["children"])
            missing = []
            if not descendants & HEADER_TYPES:
                missing.append("CardHeader or CardTitle")
            if "CardContent" not in descendants:
                missing.append("CardContent")
            if missing:
                violations.append(
                    Violation(
                        "CONSTRAINT_CARD_STRUCTURE",
                        f"Card '{element_id}' is missing required structure: {' and '.join(missing)}.",
                    )
                )

    if constraints.require_form_controls and not types & CONTROL_TYPES:
        violations.append(
            Violation(
                "CONSTRAINT_FORM_CONTROL_MISSING",
                "Form-like prompts require at least one of Input, Textarea, Select, or Checkbox.",
            )
        )

    return violations
