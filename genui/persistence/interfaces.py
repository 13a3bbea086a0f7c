"""
Persistence Interfaces
Records and the adapter protocol the orchestrator writes through.
"""

from datetime import datetime
from typing import Any, Literal, Protocol

from pydantic import BaseModel, Field


class ThreadNotFoundError(LookupError):
    """Thread does not exist."""

    def __init__(self, thread_id: str) -> None:
        super().__init__(f"Thread '{thread_id}' not found.")
        self.thread_id = thread_id


class VersionNotFoundError(LookupError):
    """Version does not exist in the thread."""

    def __init__(self, thread_id: str, version_id: str) -> None:
        super().__init__(f"Version '{version_id}' not found in thread '{thread_id}'.")
        self.thread_id = thread_id
        self.version_id = version_id


# ============================================================================
# Records
# ============================================================================


class ThreadRecord(BaseModel):
    thread_id: str
    title: str
    active_version_id: str
    created_at: datetime
    updated_at: datetime


class VersionRecord(BaseModel):
    """Immutable spec snapshot."""

    version_id: str
    thread_id: str
    base_version_id: str | None
    spec_snapshot: dict[str, Any]
    spec_hash: str
    context_used: list[str] = Field(default_factory=list)
    created_at: datetime


class MessageRecord(BaseModel):
    id: str
    thread_id: str
    generation_id: str | None = None
    role: Literal["user", "assistant"]
    content: str
    reasoning: str | None = None
    meta: dict[str, Any] | None = None
    created_at: datetime


class GenerationLogRecord(BaseModel):
    """Outcome of one generation, successful or not."""

    id: str
    generation_id: str
    thread_id: str
    warning_count: int
    patch_count: int
    duration_ms: int
    error_code: str | None = None
    created_at: datetime


class ThreadBundle(BaseModel):
    """Thread with its messages and versions (newest version first)."""

    thread: ThreadRecord
    messages: list[MessageRecord]
    versions: list[VersionRecord]


# ============================================================================
# Inputs
# ============================================================================


class WarningEntry(BaseModel):
    code: str
    message: str


class PersistGenerationInput(BaseModel):
    thread_id: str
    generation_id: str
    prompt: str
    assistant_response_text: str
    assistant_reasoning_text: str
    base_version_id: str | None
    spec_snapshot: dict[str, Any]
    spec_hash: str
    context_used: list[str] = Field(default_factory=list)
    warnings: list[WarningEntry] = Field(default_factory=list)
    patch_count: int = 0
    duration_ms: int = 0


class RecordFailureInput(BaseModel):
    thread_id: str
    generation_id: str
    warning_count: int
    patch_count: int
    duration_ms: int
    error_code: str


class PersistResult(BaseModel):
    version: VersionRecord
    message: MessageRecord
    log: GenerationLogRecord


class PersistenceAdapter(Protocol):
    """Thread, version and message storage."""

    async def create_thread(self, title: str | None = None) -> ThreadRecord:
        ...

    async def get_bundle(self, thread_id: str) -> ThreadBundle | None:
        ...

    async def get_version(self, thread_id: str, version_id: str | None) -> VersionRecord | None:
        """Version by id, or the active version when version_id is None."""
        ...

    async def persist_generation(self, data: PersistGenerationInput) -> PersistResult:
        ...

    async def record_failure(self, data: RecordFailureInput) -> GenerationLogRecord:
        ...

    async def revert(self, thread_id: str, version_id: str) -> VersionRecord:
        ...
