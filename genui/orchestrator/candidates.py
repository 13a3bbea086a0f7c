"""Candidate parsing for objects pulled from the model stream."""

from dataclasses import dataclass
from typing import Any

from returns.result import Failure, Result, Success

from ..core.json import JSONParseError, decode_object


@dataclass(frozen=True)
class CandidateError:
    """Why an extracted object is not a candidate."""

    message: str
    preview: str = ""


def parse_candidate(text: str) -> Result[dict[str, Any], CandidateError]:
    """
    Parse one extracted object into a snapshot.

    A ``{"tree": {...}}`` object is a snapshot as-is; a bare node with
    string id and type is wrapped as ``{"tree": node}``.

    Args:
        text: One complete JSON object as extracted from the stream

    Returns:
        Success(snapshot) or Failure(CandidateError)
    """
    try:
        payload = decode_object(text)
    except JSONParseError as e:
        return Failure(CandidateError(str(e), text[:120]))

    if isinstance(payload.get("tree"), dict):
        return Success(payload)

    if isinstance(payload.get("id"), str) and isinstance(payload.get("type"), str):
        return Success({"tree": payload})

    return Failure(CandidateError("Object is neither a snapshot nor a node", text[:120]))
