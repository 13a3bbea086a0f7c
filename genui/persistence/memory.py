"""In-memory persistence adapter."""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from ..core.id import new_log_id, new_message_id, new_thread_id, new_version_id
from ..core.logging_config import get_logger
from ..spec.models import empty_spec
from .interfaces import (
    GenerationLogRecord,
    MessageRecord,
    PersistGenerationInput,
    PersistResult,
    RecordFailureInput,
    ThreadBundle,
    ThreadNotFoundError,
    ThreadRecord,
    VersionNotFoundError,
    VersionRecord,
)

logger = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _ThreadState:
    thread: ThreadRecord
    messages: list[MessageRecord] = field(default_factory=list)
    versions: list[VersionRecord] = field(default_factory=list)  # Newest first
    logs: list[GenerationLogRecord] = field(default_factory=list)


class InMemoryPersistence:
    """
    Process-local store.

    Every returned record is a deep copy, so callers can never mutate
    stored state. Each thread has one active-version pointer, advanced on
    persist and on revert.
    """

    def __init__(self) -> None:
        self._store: dict[str, _ThreadState] = {}

    def _state(self, thread_id: str) -> _ThreadState:
        state = self._store.get(thread_id)
        if state is None:
            raise ThreadNotFoundError(thread_id)
        return state

    async def create_thread(self, title: str | None = None) -> ThreadRecord:
        """Create a thread holding one empty initial version."""
        timestamp = _now()
        thread_id = new_thread_id()
        version = VersionRecord(
            version_id=new_version_id(),
            thread_id=thread_id,
            base_version_id=None,
            spec_snapshot=empty_spec(),
            spec_hash="",
            created_at=timestamp,
        )
        thread = ThreadRecord(
            thread_id=thread_id,
            title=title or "Untitled Thread",
            active_version_id=version.version_id,
            created_at=timestamp,
            updated_at=timestamp,
        )
        self._store[thread_id] = _ThreadState(thread=thread, versions=[version])
        logger.info("thread_created", thread_id=thread_id)
        return thread.model_copy(deep=True)

    async def get_bundle(self, thread_id: str) -> ThreadBundle | None:
        state = self._store.get(thread_id)
        if state is None:
            return None
        return ThreadBundle(
            thread=state.thread,
            messages=state.messages,
            versions=state.versions,
        ).model_copy(deep=True)

    async def get_version(self, thread_id: str, version_id: str | None) -> VersionRecord | None:
        state = self._store.get(thread_id)
        if state is None:
            return None
        target = version_id or state.thread.active_version_id
        for version in state.versions:
            if version.version_id == target:
                return version.model_copy(deep=True)
        return None

    async def persist_generation(self, data: PersistGenerationInput) -> PersistResult:
        """Store version, user and assistant messages and a log record."""
        state = self._state(data.thread_id)
        timestamp = _now()

        user_message = MessageRecord(
            id=new_message_id(),
            thread_id=data.thread_id,
            generation_id=data.generation_id,
            role="user",
            content=data.prompt,
            created_at=timestamp,
        )
        assistant_message = MessageRecord(
            id=new_message_id(),
            thread_id=data.thread_id,
            generation_id=data.generation_id,
            role="assistant",
            content=data.assistant_response_text,
            reasoning=data.assistant_reasoning_text,
            meta={
                "warningCount": len(data.warnings),
                "patchCount": data.patch_count,
                "durationMs": data.duration_ms,
                "specHash": data.spec_hash,
                "contextUsed": list(data.context_used),
            },
            created_at=timestamp,
        )
        version = VersionRecord(
            version_id=new_version_id(),
            thread_id=data.thread_id,
            base_version_id=data.base_version_id,
            spec_snapshot=data.spec_snapshot,
            spec_hash=data.spec_hash,
            context_used=list(data.context_used),
            created_at=timestamp,
        ).model_copy(deep=True)
        log = GenerationLogRecord(
            id=new_log_id(),
            generation_id=data.generation_id,
            thread_id=data.thread_id,
            warning_count=len(data.warnings),
            patch_count=data.patch_count,
            duration_ms=data.duration_ms,
            created_at=timestamp,
        )

        state.messages.extend([user_message, assistant_message])
        state.versions.insert(0, version)
        state.logs.append(log)
        state.thread.active_version_id = version.version_id
        state.thread.updated_at = timestamp

        logger.info("generation_persisted", thread_id=data.thread_id, version_id=version.version_id)
        return PersistResult(version=version, message=assistant_message, log=log).model_copy(deep=True)

    async def record_failure(self, data: RecordFailureInput) -> GenerationLogRecord:
        state = self._state(data.thread_id)
        log = GenerationLogRecord(
            id=new_log_id(),
            generation_id=data.generation_id,
            thread_id=data.thread_id,
            warning_count=data.warning_count,
            patch_count=data.patch_count,
            duration_ms=data.duration_ms,
            error_code=data.error_code,
            created_at=_now(),
        )
        state.logs.append(log)
        return log.model_copy(deep=True)

    async def revert(self, thread_id: str, version_id: str) -> VersionRecord:
        """Activate a copy of an earlier version as a new version."""
        state = self._state(thread_id)
        target = next((v for v in state.versions if v.version_id == version_id), None)
        if target is None:
            raise VersionNotFoundError(thread_id, version_id)

        timestamp = _now()
        version = target.model_copy(
            deep=True,
            update={
                "version_id": new_version_id(),
                "base_version_id": version_id,
                "created_at": timestamp,
            },
        )
        state.versions.insert(0, version)
        state.thread.active_version_id = version.version_id
        state.thread.updated_at = timestamp

        logger.info("thread_reverted", thread_id=thread_id, target=version_id, version_id=version.version_id)
        return version.model_copy(deep=True)

    async def get_logs(self, thread_id: str) -> list[GenerationLogRecord]:
        """Generation log records in insertion order."""
        return [log.model_copy(deep=True) for log in self._state(thread_id).logs]
