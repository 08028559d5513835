"""Service layer for the DuPont terminal.

Re-exports public service types for convenient top-level access::

    from dupont_terminal.services import (
        derive_time_series, with_retry, ResilientInvoker,
        detect_discrepancy, FactProvider, LLMFactProvider,
        TieredCacheResolver, BatchPreCacheController, CancellationToken,
        ExportCollector, write_export,
    )
"""

from dupont_terminal.services.batch import (
    BatchPreCacheController,
    BatchProgress,
    BatchReport,
    CancellationToken,
)
from dupont_terminal.services.derivation import (
    derive_time_series,
    derive_year,
    historical_averages,
)
from dupont_terminal.services.discrepancy import detect_discrepancy, relative_shift
from dupont_terminal.services.export import ExportCollector, ExportReport, write_export
from dupont_terminal.services.fact_provider import (
    AnalysisPayload,
    FactProvider,
    LLMFactProvider,
    build_analysis,
)
from dupont_terminal.services.resolver import (
    CacheTier,
    PersistedTier,
    PrecomputedTier,
    TieredCacheResolver,
)
from dupont_terminal.services.retry import ExponentialBackoff, ResilientInvoker, with_retry

__all__ = [
    # Derivation
    "derive_time_series",
    "derive_year",
    "historical_averages",
    # Retry
    "ExponentialBackoff",
    "ResilientInvoker",
    "with_retry",
    # Discrepancy
    "detect_discrepancy",
    "relative_shift",
    # Fact provider
    "AnalysisPayload",
    "FactProvider",
    "LLMFactProvider",
    "build_analysis",
    # Resolution
    "CacheTier",
    "PersistedTier",
    "PrecomputedTier",
    "TieredCacheResolver",
    # Batch
    "BatchPreCacheController",
    "BatchProgress",
    "BatchReport",
    "CancellationToken",
    # Export
    "ExportCollector",
    "ExportReport",
    "write_export",
]
