"""Core utilities and infrastructure."""

from .config import Settings, get_settings
from .validate import GenerateRequest
from .logging_config import configure_logging, get_logger
from .stream import Extraction, JsonObjectExtractor, StreamCounter, extract_complete_objects
from .json import extract_json, decode_object, safe_json_dumps, canonical_json_bytes, JSONParseError
from .hash import Algorithm, hash_spec


def create_container(settings: Settings | None = None):
    """Create dependency injection container (lazy import to avoid circular deps)."""
    from .container import create_container as _create_container

    return _create_container(settings)


__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Validation
    "GenerateRequest",
    # Logging
    "configure_logging",
    "get_logger",
    # Streaming
    "Extraction",
    "JsonObjectExtractor",
    "StreamCounter",
    "extract_complete_objects",
    # JSON
    "extract_json",
    "decode_object",
    "safe_json_dumps",
    "canonical_json_bytes",
    "JSONParseError",
    # DI
    "create_container",
    # Hashing
    "Algorithm",
    "hash_spec",
]
