"""ID Generation System.

ULID-based identifiers for generations, threads, versions, messages and
log records. Prefixes keep ids readable in logs and stream events.
"""

from typing import NewType
from ulid import ULID

# ============================================================================
# Type-Safe ID Wrappers
# ============================================================================

GenerationID = NewType("GenerationID", str)
"""One orchestrator run"""

ThreadID = NewType("ThreadID", str)
"""Conversation thread owning a version history"""

VersionID = NewType("VersionID", str)
"""Immutable spec snapshot"""

MessageID = NewType("MessageID", str)
"""User or assistant message"""

LogID = NewType("LogID", str)
"""Generation log record"""


class Prefix:
    """ID prefix constants."""

    GENERATION = "gen"
    THREAD = "thread"
    VERSION = "ver"
    MESSAGE = "msg"
    LOG = "log"


# ============================================================================
# ULID Generator
# ============================================================================


class Generator:
    """ULID generator."""

    def generate(self) -> str:
        """Generate a new ULID."""
        return str(ULID())

    def generate_with_prefix(self, prefix: str) -> str:
        """Generate ULID with type prefix."""
        return f"{prefix}_{self.generate()}"


# Singleton instance
_generator = Generator()


def new_generation_id() -> GenerationID:
    """Generate new generation ID."""
    return GenerationID(_generator.generate_with_prefix(Prefix.GENERATION))


def new_thread_id() -> ThreadID:
    """Generate new thread ID."""
    return ThreadID(_generator.generate_with_prefix(Prefix.THREAD))


def new_version_id() -> VersionID:
    """Generate new version ID."""
    return VersionID(_generator.generate_with_prefix(Prefix.VERSION))


def new_message_id() -> MessageID:
    """Generate new message ID."""
    return MessageID(_generator.generate_with_prefix(Prefix.MESSAGE))


def new_log_id() -> LogID:
    """Generate new log record ID."""
    return LogID(_generator.generate_with_prefix(Prefix.LOG))
