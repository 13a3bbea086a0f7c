"""Incremental extraction of JSON objects from streamed model output."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Extraction:
    """Complete objects found in a buffer plus the unfinished tail."""

    objects: list[str]
    remainder: str


def extract_complete_objects(buffer: str) -> Extraction:
    """
    Scan buffer once and pull out every top-level ``{...}`` that has closed.

    Text between objects is treated as noise: quotes there do not open a
    string, and stray ``}`` are ignored. Inside an object, braces within
    string literals (escapes included) never change the depth.

    Args:
        buffer: Text accumulated so far

    Returns:
        Extraction with objects in encounter order and the still-open
        object (or "") as remainder
    """
    objects: list[str] = []
    in_string = False
    escaped = False
    depth = 0
    start = -1

    for index, char in enumerate(buffer):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == "{":
            if depth == 0:
                start = index
            depth += 1
        elif depth == 0:
            continue
        elif char == '"':
            in_string = True
        elif char == "}":
            depth -= 1
            if depth == 0:
                objects.append(buffer[start:index + 1])
                start = -1

    remainder = buffer[start:] if start >= 0 else ""
    return Extraction(objects=objects, remainder=remainder)


@dataclass
class JsonObjectExtractor:
    """Pull-based extractor fed one chunk at a time."""

    buffer: str = ""
    emitted_count: int = 0

    def feed(self, chunk: str) -> list[str]:
        """Add chunk, return objects completed by it."""
        result = extract_complete_objects(self.buffer + chunk)
        self.buffer = result.remainder
        self.emitted_count += len(result.objects)
        return result.objects


@dataclass
class StreamCounter:
    """Accumulate streamed model text."""

    _chunks: list[str] = field(default_factory=list, init=False, repr=False)

    def track(self, chunk: str) -> None:
        """Record chunk."""
        self._chunks.append(chunk)

    @property
    def text(self) -> str:
        """Everything tracked so far."""
        return "".join(self._chunks)
