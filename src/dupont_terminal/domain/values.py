"""Value objects for the DuPont terminal.

All types here are frozen dataclasses: immutable, compared by value.
An :class:`AnalysisResult` is never mutated after construction; a forced
refresh produces a new result that supersedes the cached one.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from .enums import AuditStatus, ResolutionSource

Q_AND_A_KEYS: tuple[str, ...] = (
    "roe_trend",
    "roe_peer",
    "roe_persistent",
    "driver_dominance",
    "driver_peer",
    "risk_trend",
    "risk_peer",
    "nlp_sentiment",
    "nlp_specificity",
    "nlp_complexity",
    "nlp_peer",
)


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Company:
    """A constituent of the analysed universe."""

    symbol: str
    name: str
    sector: str
    domain: str = ""

    def __post_init__(self) -> None:
        if not self.symbol:
            raise ValueError("Company.symbol must not be empty")


@dataclass(frozen=True)
class CacheKey:
    """Identity of one analysis in every cache tier: ``(symbol, year)``."""

    symbol: str
    year: int

    @property
    def composite(self) -> str:
        """The ``"{symbol}_{year}"`` form used by bulk artifacts."""
        return f"{self.symbol}_{self.year}"

    @classmethod
    def parse(cls, composite: str) -> CacheKey:
        """Inverse of :attr:`composite`. Symbols may contain ``_``."""
        symbol, sep, year = composite.rpartition("_")
        if not sep or not symbol:
            raise ValueError(f"Not a composite cache key: {composite!r}")
        return cls(symbol=symbol, year=int(year))

    def __str__(self) -> str:
        return self.composite


# ---------------------------------------------------------------------------
# Financial time series
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class YearlyFinancials:
    """Raw figures for one fiscal year, as identified by the fact provider."""

    year: int
    revenue: float
    net_profit: float
    total_assets: float
    total_equity: float
    source_url: str = ""


@dataclass(frozen=True)
class DerivedYearMetrics:
    """A :class:`YearlyFinancials` record with its DuPont ratios attached.

    ``avg_assets`` and ``avg_equity`` are the two-point averages (or, for the
    earliest year of a series, the raw values) the ratios were computed from.
    Ratios may be non-finite when a denominator is zero.
    """

    year: int
    revenue: float
    net_profit: float
    total_assets: float
    total_equity: float
    avg_assets: float
    avg_equity: float
    margin: float
    turnover: float
    roa: float
    leverage: float
    roe: float
    source_url: str = ""

    @property
    def raw(self) -> YearlyFinancials:
        return YearlyFinancials(
            year=self.year,
            revenue=self.revenue,
            net_profit=self.net_profit,
            total_assets=self.total_assets,
            total_equity=self.total_equity,
            source_url=self.source_url,
        )


@dataclass(frozen=True)
class NLPMeasures:
    """Textual measures extracted from one year's reporting narrative."""

    sentiment: float
    forward_looking_info: float
    specificity: float
    sentence_length: float
    depth: float
    unfamiliarity: float


# ---------------------------------------------------------------------------
# Verification and risk
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AccuracyAuditEntry:
    """One verified metric for one year."""

    metric: str
    year: int
    identified_value: float
    verified_value: float
    variance: float
    status: AuditStatus
    source_reference: str = ""
    currency: str = ""


@dataclass(frozen=True)
class PeerRiskMetric:
    """One row of the peer benchmarking table."""

    metric: str
    company_value: str
    peer_median: str
    top_quartile: str
    evidence: str = ""


@dataclass(frozen=True)
class PeerComparator:
    """The single nearest peer used as an ROA / ROE yardstick."""

    name: str
    roa: float
    roe: float


@dataclass(frozen=True)
class BusinessRisk:
    """Business-risk sub-scores, each in [0, 1]."""

    legal: float = 0.2
    tax: float = 0.1
    macro: float = 0.5
    firm_specific: float = 0.2


@dataclass(frozen=True)
class RiskAnalysis:
    """Solvency, business-risk and peer comparison assessment."""

    financial: str = ""
    solvency_index: float = 0.82
    business: BusinessRisk = field(default_factory=BusinessRisk)
    summary: str = ""
    peer_comparison: tuple[PeerRiskMetric, ...] = ()
    nearest_peer: PeerComparator | None = None


# ---------------------------------------------------------------------------
# Narrative and outlook
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Narrative:
    """Four prose sections plus answers to the fixed Q&A prompts."""

    section1: str = ""
    section2: str = ""
    section3: str = ""
    section4: str = ""
    q_and_a: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ScenarioForecast:
    """Base / upside / downside projection for one metric."""

    base: float
    upside: float
    downside: float


@dataclass(frozen=True)
class SourceRef:
    """An evidentiary source consulted by the fact provider."""

    title: str
    uri: str


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AnalysisResult:
    """Complete analysis for one ``(company, anchor_year)``.

    ``time_series`` is ordered most recent first, so ``time_series[0]`` is
    the anchor year.
    """

    company: Company
    anchor_year: int
    time_series: tuple[DerivedYearMetrics, ...]
    nlp_data: Mapping[int, NLPMeasures] = field(default_factory=dict)
    risk: RiskAnalysis = field(default_factory=RiskAnalysis)
    accuracy_audit: tuple[AccuracyAuditEntry, ...] = ()
    accuracy_summary: str = ""
    narrative: Narrative = field(default_factory=Narrative)
    forecasts: Mapping[str, ScenarioForecast] = field(default_factory=dict)
    forecast_assumptions: str = ""
    sources: tuple[SourceRef, ...] = ()

    def __post_init__(self) -> None:
        if not self.time_series:
            raise ValueError("AnalysisResult.time_series must not be empty")

    @property
    def anchor(self) -> DerivedYearMetrics:
        """Metrics of the most recent year in the series."""
        return self.time_series[0]

    @property
    def cache_key(self) -> CacheKey:
        return CacheKey(symbol=self.company.symbol, year=self.anchor_year)

    @property
    def years(self) -> tuple[int, ...]:
        return tuple(m.year for m in self.time_series)


@dataclass(frozen=True)
class DiscrepancyReport:
    """Verdict of comparing a fresh analysis against a cached one."""

    significant: bool
    roe_delta: float
    profit_delta: float
    message: str


@dataclass(frozen=True)
class Resolution:
    """An analysis together with the pipeline step that produced it."""

    result: AnalysisResult
    source: ResolutionSource
    discrepancy: DiscrepancyReport | None = None

    @property
    def from_cache(self) -> bool:
        return self.source in (ResolutionSource.PRECOMPUTED, ResolutionSource.PERSISTED)
