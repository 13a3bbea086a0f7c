"""Fast, type-safe JSON parsing with multiple backends."""

import json
import re
from typing import Any

import msgspec
import orjson
from json_repair import repair_json


class JSONParseError(Exception):
    """JSON parsing failed."""

    def __init__(self, message: str, original: Exception | None = None) -> None:
        super().__init__(message)
        self.original = original


_decoder = msgspec.json.Decoder()

FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


def find_object_text(text: str) -> str | None:
    """
    Slice the outermost {...} span out of a model reply.

    A fenced block (```json or bare ```) is searched first; an unclosed
    fence is ignored.

    Returns:
        The object text, or None when the reply has no braces
    """
    fence = FENCE.search(text)
    if fence:
        text = fence.group(1)

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return None
    return text[start : end + 1]


def decode_object(text: str) -> dict[str, Any]:
    """
    Strictly decode one complete JSON object.

    Raises:
        JSONParseError: If text is not valid JSON or not an object
    """
    try:
        result = _decoder.decode(text.encode("utf-8"))
    except msgspec.DecodeError as e:
        raise JSONParseError(f"Invalid JSON: {e}", e)
    if not isinstance(result, dict):
        raise JSONParseError(f"Expected dict, got {type(result).__name__}")
    return result


def extract_json(text: str, repair: bool = True) -> dict[str, Any]:
    """
    Extract and parse JSON from free-form model output.

    Args:
        text: Text containing JSON
        repair: Attempt to repair invalid JSON with json_repair

    Returns:
        Parsed JSON dictionary

    Raises:
        JSONParseError: If parsing fails
    """
    json_str = find_object_text(text)
    if json_str is None:
        raise JSONParseError("No JSON object found in text")

    try:
        return decode_object(json_str)
    except JSONParseError:
        if not repair:
            raise

    # Last resort: try json_repair
    try:
        result = json.loads(repair_json(json_str))
    except Exception as repair_error:
        raise JSONParseError(f"JSON repair failed: {repair_error}", repair_error)
    if not isinstance(result, dict):
        raise JSONParseError(f"Expected dict, got {type(result).__name__}")
    return result


def safe_json_dumps(obj: Any, **kwargs: Any) -> str:
    """
    Encode object to JSON string using fastest available library.

    Args:
        obj: Object to encode
        **kwargs: Additional arguments (indent, etc.)

    Returns:
        JSON string
    """
    indent = kwargs.get("indent", 0)

    if indent == 0:
        try:
            return orjson.dumps(obj).decode("utf-8")
        except (TypeError, ValueError):
            # Fallback for edge cases (e.g., integers outside 64-bit range)
            pass

    return json.dumps(obj, indent=indent if indent > 0 else None)


def canonical_json_bytes(obj: Any) -> bytes:
    """Encode with sorted keys so equal documents produce equal bytes."""
    return orjson.dumps(obj, option=orjson.OPT_SORT_KEYS)
