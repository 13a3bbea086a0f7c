"""Persistence: records, adapter protocol and in-memory adapter."""

from .interfaces import (
    GenerationLogRecord,
    MessageRecord,
    PersistenceAdapter,
    PersistGenerationInput,
    PersistResult,
    RecordFailureInput,
    ThreadBundle,
    ThreadNotFoundError,
    ThreadRecord,
    VersionNotFoundError,
    VersionRecord,
    WarningEntry,
)
from .memory import InMemoryPersistence

__all__ = [
    "GenerationLogRecord",
    "MessageRecord",
    "PersistenceAdapter",
    "PersistGenerationInput",
    "PersistResult",
    "RecordFailureInput",
    "ThreadBundle",
    "ThreadNotFoundError",
    "ThreadRecord",
    "VersionNotFoundError",
    "VersionRecord",
    "WarningEntry",
    "InMemoryPersistence",
]
