"""Domain layer for the DuPont terminal.

Re-exports all public domain types so that consumers can write::

    from dupont_terminal.domain import AnalysisResult, Company, CacheKey
"""

# -- Enumerations -------------------------------------------------------------
from .enums import AuditStatus, FailureKind, ResolutionSource

# -- Value Objects ------------------------------------------------------------
from .values import (
    Q_AND_A_KEYS,
    AccuracyAuditEntry,
    AnalysisResult,
    BusinessRisk,
    CacheKey,
    Company,
    DerivedYearMetrics,
    DiscrepancyReport,
    Narrative,
    NLPMeasures,
    PeerComparator,
    PeerRiskMetric,
    Resolution,
    RiskAnalysis,
    ScenarioForecast,
    SourceRef,
    YearlyFinancials,
)

# -- Domain Events ------------------------------------------------------------
from .events import (
    AnalysisResolved,
    DeepDiveTriggered,
    DomainEvent,
    ExportCollected,
    PreCacheFailed,
    PreCacheFinished,
    PreCacheProgressed,
)

# -- Exceptions ---------------------------------------------------------------
from .exceptions import (
    DuPontTerminalError,
    GenerationError,
    MalformedResponseError,
    MaxRetriesExceededError,
    NothingToExportError,
    RateLimitError,
    ServiceUnavailableError,
    classify_failure,
    is_rate_limit_error,
    user_message,
)

__all__ = [
    # Enums
    "AuditStatus",
    "FailureKind",
    "ResolutionSource",
    # Values
    "Q_AND_A_KEYS",
    "AccuracyAuditEntry",
    "AnalysisResult",
    "BusinessRisk",
    "CacheKey",
    "Company",
    "DerivedYearMetrics",
    "DiscrepancyReport",
    "Narrative",
    "NLPMeasures",
    "PeerComparator",
    "PeerRiskMetric",
    "Resolution",
    "RiskAnalysis",
    "ScenarioForecast",
    "SourceRef",
    "YearlyFinancials",
    # Events
    "AnalysisResolved",
    "DeepDiveTriggered",
    "DomainEvent",
    "ExportCollected",
    "PreCacheFailed",
    "PreCacheFinished",
    "PreCacheProgressed",
    # Exceptions
    "DuPontTerminalError",
    "GenerationError",
    "MalformedResponseError",
    "MaxRetriesExceededError",
    "NothingToExportError",
    "RateLimitError",
    "ServiceUnavailableError",
    "classify_failure",
    "is_rate_limit_error",
    "user_message",
]
