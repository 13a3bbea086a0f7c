"""Spec engine: data model, runtime resolution, normalization, validation, diffs."""

from .catalog import CONTROL_TYPES, DEFAULT_CATALOG, CatalogEntry, ComponentCatalog
from .diff import apply_patches, diff_specs, json_equal
from .models import Patch, Spec, empty_spec
from .normalize import normalize_tree
from .runtime import (
    ItemBinding,
    RepeatExpansion,
    RepeatScope,
    StateBinding,
    evaluate_visibility,
    get_value_at_state_path,
    resolve_dynamic_value,
)
from .validate import Issue, IssueCode, SpecValidator, ValidationResult

__all__ = [
    # Catalog
    "CONTROL_TYPES",
    "DEFAULT_CATALOG",
    "CatalogEntry",
    "ComponentCatalog",
    # Model
    "Patch",
    "Spec",
    "empty_spec",
    # Runtime
    "ItemBinding",
    "RepeatExpansion",
    "RepeatScope",
    "StateBinding",
    "evaluate_visibility",
    "get_value_at_state_path",
    "resolve_dynamic_value",
    # Engine
    "normalize_tree",
    "Issue",
    "IssueCode",
    "SpecValidator",
    "ValidationResult",
    "diff_specs",
    "apply_patches",
    "json_equal",
]
