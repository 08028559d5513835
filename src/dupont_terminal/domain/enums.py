"""Domain enumerations for the DuPont terminal.

These enums capture the fixed vocabularies used across the domain layer:
accuracy-audit outcomes, where a resolved analysis came from, and the
failure classes surfaced to callers.
"""

from enum import Enum


class AuditStatus(Enum):
    """Outcome of verifying one reported figure against a public source."""

    VERIFIED = "Verified"  # variance within tolerance, identified value kept
    ADJUSTED = "Adjusted"  # variance too large, found value used instead


class ResolutionSource(Enum):
    """Which step of the retrieval pipeline produced an analysis."""

    PRECOMPUTED = "precomputed"
    PERSISTED = "persisted"
    GENERATED = "generated"
    DEEP_DIVE = "deep_dive"


class FailureKind(Enum):
    """Caller-facing classification of a failed retrieval."""

    RATE_LIMIT = "rate_limit"
    MALFORMED = "malformed"
    UNAVAILABLE = "unavailable"
