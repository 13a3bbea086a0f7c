"""Hashing for spec snapshots.

SHA256 is the default content hash for persisted versions; xxhash64 is
available for fast, non-cryptographic fingerprints.
"""

from typing import Any, Protocol
from enum import Enum
import hashlib

import xxhash

from .json import canonical_json_bytes


class Algorithm(str, Enum):
    """Supported hash algorithms."""

    XXHASH64 = "xxhash64"  # Fast, non-cryptographic
    SHA256 = "sha256"      # Stable content hash for versions


class Hasher(Protocol):
    """Protocol for hash implementations."""

    def digest(self, data: bytes) -> str:
        """Compute hex digest of data."""
        ...


class XXHasher:
    """Ultra-fast non-cryptographic hasher."""

    def digest(self, data: bytes) -> str:
        """Compute xxhash64 hex digest."""
        return xxhash.xxh64(data).hexdigest()


class SHA256Hasher:
    """Secure cryptographic hasher."""

    def digest(self, data: bytes) -> str:
        """Compute SHA256 hex digest."""
        return hashlib.sha256(data).hexdigest()


def create_hasher(algorithm: Algorithm = Algorithm.SHA256) -> Hasher:
    """
    Create hasher instance.

    Args:
        algorithm: Hash algorithm to use

    Returns:
        Hasher instance

    Raises:
        ValueError: If the algorithm is unknown
    """
    match Algorithm(algorithm):
        case Algorithm.XXHASH64:
            return XXHasher()
        case Algorithm.SHA256:
            return SHA256Hasher()
    raise ValueError(f"Unknown algorithm: {algorithm}")


def hash_spec(spec: dict[str, Any], algorithm: Algorithm = Algorithm.SHA256) -> str:
    """
    Content hash of a spec document.

    Keys are sorted before hashing, so two documents that compare equal
    always hash equal regardless of key insertion order.

    Examples:
        >>> hash_spec({"root": "", "elements": {}}) == hash_spec({"elements": {}, "root": ""})
        True
    """
    return create_hasher(algorithm).digest(canonical_json_bytes(spec))


__all__ = [
    "Algorithm",
    "Hasher",
    "create_hasher",
    "hash_spec",
]
