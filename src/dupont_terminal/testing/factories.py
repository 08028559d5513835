"""Builders for realistic payloads and analyses, plus a scripted provider.

``sample_payload`` produces a three-year :class:`AnalysisPayload` with
figures loosely modelled on a large FTSE constituent; ``sample_analysis``
runs it through the same assembly path the LLM provider uses.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from dupont_terminal.domain.values import AnalysisResult, Company
from dupont_terminal.services.fact_provider import (
    AnalysisPayload,
    FactProvider,
    build_analysis,
)

DEFAULT_COMPANY = Company(symbol="SHEL", name="Shell plc", sector="Energy", domain="shell.com")


def sample_payload(
    year: int = 2024,
    net_profit: float = 16_000.0,
    revenue: float = 280_000.0,
    total_assets: float = 400_000.0,
    total_equity: float = 180_000.0,
) -> AnalysisPayload:
    """Build a valid payload whose anchor year carries the given figures.

    The two preceding years are scaled down slightly so the series trends.
    """
    series = []
    for offset in range(3):
        scale = 1.0 - 0.05 * offset
        series.append(
            {
                "year": year - offset,
                "revenue": revenue * scale,
                "netProfit": net_profit * scale,
                "totalAssets": total_assets * scale,
                "totalEquity": total_equity * scale,
                "sourceUrl": f"https://example.com/annual-report-{year - offset}.pdf",
            }
        )
    return AnalysisPayload.model_validate(
        {
            "timeSeries": series,
            "accuracyAudit": [
                {
                    "metric": "Net Profit",
                    "year": year,
                    "identifiedValue": net_profit,
                    "verifiedValue": net_profit,
                    "variance": 0.0,
                    "status": "Verified",
                    "sourceReference": "Annual Report, p. 142",
                    "currency": "USD m",
                }
            ],
            "accuracySummary": "All figures verified against the annual report.",
            "forecastAssumptions": "Stable commodity prices.",
            "peerRiskComparison": [
                {
                    "metric": "Net debt / EBITDA",
                    "companyValue": "1.1x",
                    "peerMedian": "1.4x",
                    "topQuartile": "0.8x",
                }
            ],
            "nearestPeer": {"name": "BP", "roa": 0.03, "roe": 0.09},
            "nlpData": [
                {
                    "year": year - offset,
                    "sentiment": 0.2,
                    "fli": 0.3,
                    "specificity": 0.6,
                    "sentenceLength": 22.0,
                    "depth": 0.7,
                    "unfamiliarity": 0.1,
                }
                for offset in range(3)
            ],
            "narrative": {
                "section1": "ROE improved on higher margins.",
                "section2": "Margin is the dominant driver.",
                "section3": "Leverage remains conservative.",
                "section4": "Tone is measured and specific.",
                "qAndA": {"roe_trend": "Upward over three years."},
            },
            "forecasts": {
                "roa": {"base": 0.04, "upside": 0.05, "downside": 0.03},
                "roe": {"base": 0.09, "upside": 0.11, "downside": 0.07},
            },
            "sources": [{"title": "Shell Annual Report", "uri": "https://example.com/ar"}],
        }
    )


def sample_analysis(
    company: Company = DEFAULT_COMPANY,
    year: int = 2024,
    **figures: float,
) -> AnalysisResult:
    """Assemble an :class:`AnalysisResult` from :func:`sample_payload`."""
    return build_analysis(company, year, sample_payload(year, **figures))


class ScriptedFactProvider(FactProvider):
    """Fact provider that replays scripted outcomes and records calls.

    Parameters
    ----------
    outcomes:
        Consumed in order, one per call.  Each item is an
        :class:`AnalysisResult`, an exception instance (raised), or a
        callable ``(company, year, deep_dive, note) -> AnalysisResult``.
        When exhausted, :func:`sample_analysis` is returned for the
        requested company and year.
    """

    def __init__(self, outcomes: Sequence[Any] = ()) -> None:
        self._outcomes = list(outcomes)
        self.calls: list[tuple[str, int, bool, str | None]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def generate(
        self,
        company: Company,
        anchor_year: int,
        deep_dive: bool = False,
        discrepancy_note: str | None = None,
    ) -> AnalysisResult:
        self.calls.append((company.symbol, anchor_year, deep_dive, discrepancy_note))
        if not self._outcomes:
            return sample_analysis(company, anchor_year)
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            factory: Callable[..., AnalysisResult] = outcome
            return factory(company, anchor_year, deep_dive, discrepancy_note)
        return outcome
