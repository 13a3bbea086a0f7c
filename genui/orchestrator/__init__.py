"""Generation orchestration: constraints, fallback, events and the attempt loop."""

from .candidates import CandidateError, parse_candidate
from .constraints import ConstraintBuilder, ConstraintSet, Violation, check_constraints
from .events import (
    DoneEvent,
    ErrorEvent,
    PatchEvent,
    StatusEvent,
    StreamEvent,
    UsageEvent,
    WarningEvent,
    encode_sse,
)
from .fallback import build_fallback_snapshot
from .orchestrator import ErrorCode, GenerationOrchestrator, Stage, WarningCode, estimate_tokens

__all__ = [
    # Orchestrator
    "GenerationOrchestrator",
    "ErrorCode",
    "Stage",
    "WarningCode",
    "estimate_tokens",
    # Constraints
    "ConstraintBuilder",
    "ConstraintSet",
    "Violation",
    "check_constraints",
    # Candidates
    "CandidateError",
    "parse_candidate",
    # Fallback
    "build_fallback_snapshot",
    # Events
    "StreamEvent",
    "StatusEvent",
    "PatchEvent",
    "WarningEvent",
    "UsageEvent",
    "DoneEvent",
    "ErrorEvent",
    "encode_sse",
]
