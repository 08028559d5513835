"""Domain events for the DuPont terminal.

Every event is a frozen dataclass inheriting from ``DomainEvent``.  The
resolver and the batch workflows publish events; listeners (progress bars,
logs, tests) react.  Publishing is observability only and never changes the
outcome of a retrieval.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from .enums import FailureKind, ResolutionSource

# ---------------------------------------------------------------------------
# Base event
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events."""

    timestamp: float = field(default_factory=time.time)
    source_id: str = ""


# ---------------------------------------------------------------------------
# Retrieval events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AnalysisResolved(DomainEvent):
    """An analysis was served from a cache tier or freshly generated."""

    symbol: str = ""
    year: int = 0
    source: ResolutionSource | None = None


@dataclass(frozen=True)
class DeepDiveTriggered(DomainEvent):
    """A forced refresh deviated enough to warrant a re-verification pass."""

    symbol: str = ""
    year: int = 0
    message: str = ""


# ---------------------------------------------------------------------------
# Batch events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PreCacheProgressed(DomainEvent):
    """The batch controller picked up (``done=False``) or finished a company."""

    completed: int = 0
    total: int = 0
    symbol: str = ""
    done: bool = True


@dataclass(frozen=True)
class PreCacheFailed(DomainEvent):
    """Generation failed for one company; the batch carries on."""

    symbol: str = ""
    year: int = 0
    kind: FailureKind | None = None
    error: str = ""


@dataclass(frozen=True)
class PreCacheFinished(DomainEvent):
    """The batch ran to completion or was cancelled."""

    year: int = 0
    completed: int = 0
    total: int = 0
    cancelled: bool = False


@dataclass(frozen=True)
class ExportCollected(DomainEvent):
    """Both cache tiers were scanned for an export."""

    year: int = 0
    found: int = 0
    considered: int = 0
