"""
Stream Events
Typed events emitted by a generation, plus SSE framing.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..core.json import safe_json_dumps


class StreamEvent(BaseModel):
    """Base event; wire keys are camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    generation_id: str

    @property
    def is_terminal(self) -> bool:
        return False

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class StatusEvent(StreamEvent):
    type: Literal["status"] = "status"
    stage: str


class PatchEvent(StreamEvent):
    type: Literal["patch"] = "patch"
    patch: dict[str, Any]


class WarningEvent(StreamEvent):
    type: Literal["warning"] = "warning"
    code: str
    message: str


class UsageEvent(StreamEvent):
    type: Literal["usage"] = "usage"
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class DoneEvent(StreamEvent):
    type: Literal["done"] = "done"
    version_id: str
    spec_hash: str

    @property
    def is_terminal(self) -> bool:
        return True


class ErrorEvent(StreamEvent):
    type: Literal["error"] = "error"
    code: str
    message: str

    @property
    def is_terminal(self) -> bool:
        return True


def encode_sse(event: StreamEvent) -> str:
    """
    Encode one event as a text/event-stream frame.

    Examples:
        >>> encode_sse(StatusEvent(generation_id="gen_1", stage="persist"))
        'data: {"generationId":"gen_1","type":"status","stage":"persist"}\\n\\n'
    """
    return f"data: {safe_json_dumps(event.to_wire())}\n\n"
