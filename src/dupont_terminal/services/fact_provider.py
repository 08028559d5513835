"""Fact provider: the generation boundary of the retrieval pipeline.

A fact provider turns ``(company, anchor_year, deep_dive, discrepancy_note)``
into a complete :class:`AnalysisResult`.  The pipeline treats it as opaque,
possibly non-deterministic and fallible.

:class:`LLMFactProvider` drives any LangChain chat model through
``model.with_structured_output(AnalysisPayload)`` and runs the raw yearly
figures through metric derivation.  A payload that does not validate against
the schema raises :class:`MalformedResponseError`; every other exception
(rate limits included) propagates untouched so the retry layer can classify
it.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Literal

from langchain_core.exceptions import OutputParserException
from langchain_core.language_models import BaseChatModel
from langchain_core.prompts import ChatPromptTemplate
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from dupont_terminal.domain.enums import AuditStatus
from dupont_terminal.domain.exceptions import MalformedResponseError
from dupont_terminal.domain.values import (
    Q_AND_A_KEYS,
    AccuracyAuditEntry,
    AnalysisResult,
    BusinessRisk,
    Company,
    Narrative,
    NLPMeasures,
    PeerComparator,
    PeerRiskMetric,
    RiskAnalysis,
    ScenarioForecast,
    SourceRef,
    YearlyFinancials,
)
from dupont_terminal.services.derivation import derive_time_series

logger = logging.getLogger(__name__)


# =========================================================================== #
#  Structured output schema                                                    #
# =========================================================================== #

class _Payload(BaseModel):
    """Base for wire models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class YearFigures(_Payload):
    year: int
    revenue: float
    net_profit: float
    total_assets: float
    total_equity: float
    source_url: str | None = Field(
        default=None, description="Filing or page the figures were taken from"
    )


class AuditRow(_Payload):
    metric: str = Field(description="Revenue, Net Profit, Total Assets or Total Equity")
    year: int
    identified_value: float = Field(description="Figure initially identified")
    verified_value: float = Field(description="Figure found in the official source")
    variance: float = Field(description="abs(identified - verified) / verified")
    status: Literal["Verified", "Adjusted"]
    source_reference: str = ""
    currency: str = ""


class PeerRiskRow(_Payload):
    metric: str
    company_value: str
    peer_median: str
    top_quartile: str
    evidence: str = ""


class NearestPeer(_Payload):
    name: str
    roa: float
    roe: float


class NLPRow(_Payload):
    year: int
    sentiment: float
    forward_looking_info: float = Field(alias="fli")
    specificity: float
    sentence_length: float
    depth: float
    unfamiliarity: float


class QAndA(BaseModel):
    roe_trend: str = ""
    roe_peer: str = ""
    roe_persistent: str = ""
    driver_dominance: str = ""
    driver_peer: str = ""
    risk_trend: str = ""
    risk_peer: str = ""
    nlp_sentiment: str = ""
    nlp_specificity: str = ""
    nlp_complexity: str = ""
    nlp_peer: str = ""


class NarrativeBlock(_Payload):
    section1: str = Field(description="Profitability and ROE trend")
    section2: str = Field(description="DuPont driver decomposition")
    section3: str = Field(description="Risk assessment")
    section4: str = Field(description="Reporting narrative (NLP) assessment")
    q_and_a: QAndA = Field(default_factory=QAndA, alias="qAndA")


class Scenario(_Payload):
    base: float
    upside: float
    downside: float


class Forecasts(_Payload):
    roa: Scenario
    roe: Scenario


class RiskBlock(_Payload):
    financial: str = ""
    solvency_index: float = Field(default=0.82, ge=0, le=1)
    legal: float = Field(default=0.2, ge=0, le=1)
    tax: float = Field(default=0.1, ge=0, le=1)
    macro: float = Field(default=0.5, ge=0, le=1)
    firm_specific: float = Field(default=0.2, ge=0, le=1)


class SourceItem(_Payload):
    title: str = ""
    uri: str


class AnalysisPayload(_Payload):
    """Structured output schema of one generation request."""

    time_series: list[YearFigures] = Field(
        min_length=1, description="Anchor year and the two preceding years"
    )
    accuracy_audit: list[AuditRow]
    accuracy_summary: str
    forecast_assumptions: str = ""
    peer_risk_comparison: list[PeerRiskRow] = Field(default_factory=list)
    nearest_peer: NearestPeer | None = None
    nlp_data: list[NLPRow]
    narrative: NarrativeBlock
    forecasts: Forecasts | None = None
    risk: RiskBlock | None = None
    sources: list[SourceItem] = Field(default_factory=list)


_DEFAULT_FORECASTS = {
    "roa": ScenarioForecast(base=0.05, upside=0.07, downside=0.03),
    "roe": ScenarioForecast(base=0.12, upside=0.15, downside=0.09),
}


# =========================================================================== #
#  Payload -> domain                                                           #
# =========================================================================== #

def build_analysis(company: Company, anchor_year: int, payload: AnalysisPayload) -> AnalysisResult:
    """Assemble an :class:`AnalysisResult` from a validated payload.

    The time series is ordered most recent first before derivation, whatever
    order the provider returned it in.
    """
    raw = sorted(
        (
            YearlyFinancials(
                year=y.year,
                revenue=y.revenue,
                net_profit=y.net_profit,
                total_assets=y.total_assets,
                total_equity=y.total_equity,
                source_url=y.source_url or "",
            )
            for y in payload.time_series
        ),
        key=lambda r: r.year,
        reverse=True,
    )
    if raw[0].year != anchor_year:
        logger.warning(
            "build_analysis: %s series starts at %d, expected anchor year %d",
            company.symbol,
            raw[0].year,
            anchor_year,
        )

    risk_block = payload.risk or RiskBlock()
    risk = RiskAnalysis(
        financial=risk_block.financial
        or "Validated leverage profile based on latest filings.",
        solvency_index=risk_block.solvency_index,
        business=BusinessRisk(
            legal=risk_block.legal,
            tax=risk_block.tax,
            macro=risk_block.macro,
            firm_specific=risk_block.firm_specific,
        ),
        summary=payload.narrative.section3,
        peer_comparison=tuple(
            PeerRiskMetric(
                metric=p.metric,
                company_value=p.company_value,
                peer_median=p.peer_median,
                top_quartile=p.top_quartile,
                evidence=p.evidence,
            )
            for p in payload.peer_risk_comparison
        ),
        nearest_peer=(
            PeerComparator(
                name=payload.nearest_peer.name,
                roa=payload.nearest_peer.roa,
                roe=payload.nearest_peer.roe,
            )
            if payload.nearest_peer is not None
            else None
        ),
    )

    q_and_a = payload.narrative.q_and_a.model_dump()
    forecasts = (
        {
            "roa": ScenarioForecast(**payload.forecasts.roa.model_dump()),
            "roe": ScenarioForecast(**payload.forecasts.roe.model_dump()),
        }
        if payload.forecasts is not None
        else dict(_DEFAULT_FORECASTS)
    )

    sources: list[SourceRef] = []
    seen: set[str] = set()
    for item in payload.sources:
        if item.uri not in seen:
            seen.add(item.uri)
            sources.append(SourceRef(title=item.title or item.uri, uri=item.uri))
    for record in raw:
        if record.source_url and record.source_url not in seen:
            seen.add(record.source_url)
            sources.append(SourceRef(title=f"{company.name} {record.year}", uri=record.source_url))

    return AnalysisResult(
        company=company,
        anchor_year=anchor_year,
        time_series=tuple(derive_time_series(raw)),
        nlp_data={
            n.year: NLPMeasures(
                sentiment=n.sentiment,
                forward_looking_info=n.forward_looking_info,
                specificity=n.specificity,
                sentence_length=n.sentence_length,
                depth=n.depth,
                unfamiliarity=n.unfamiliarity,
            )
            for n in payload.nlp_data
        },
        risk=risk,
        accuracy_audit=tuple(
            AccuracyAuditEntry(
                metric=a.metric,
                year=a.year,
                identified_value=a.identified_value,
                verified_value=a.verified_value,
                variance=a.variance,
                status=AuditStatus(a.status),
                source_reference=a.source_reference,
                currency=a.currency,
            )
            for a in payload.accuracy_audit
        ),
        accuracy_summary=payload.accuracy_summary,
        narrative=Narrative(
            section1=payload.narrative.section1,
            section2=payload.narrative.section2,
            section3=payload.narrative.section3,
            section4=payload.narrative.section4,
            q_and_a={k: q_and_a.get(k, "") for k in Q_AND_A_KEYS},
        ),
        forecasts=forecasts,
        forecast_assumptions=payload.forecast_assumptions,
        sources=tuple(sources),
    )


# =========================================================================== #
#  Provider interface                                                          #
# =========================================================================== #

class FactProvider(ABC):
    """Produces an analysis for one ``(company, anchor_year)``."""

    @abstractmethod
    async def generate(
        self,
        company: Company,
        anchor_year: int,
        deep_dive: bool = False,
        discrepancy_note: str | None = None,
    ) -> AnalysisResult:
        """Generate a fresh analysis.

        Parameters
        ----------
        company:
            The company to analyse.
        anchor_year:
            Most recent year of the three-year series.
        deep_dive:
            Request the stricter re-verification pass.
        discrepancy_note:
            Description of the deviation that triggered a deep dive.

        Raises
        ------
        MalformedResponseError
            If the provider's payload fails validation.
        """
        ...


# -- Prompt ------------------------------------------------------------------

_ANALYSIS_PROMPT = ChatPromptTemplate.from_messages(
    [
        (
            "system",
            "You are a meticulous equity analyst producing a DuPont "
            "decomposition backed by official filings. Search for every "
            "figure you report and return strictly structured data.",
        ),
        (
            "human",
            "Perform a {precision} financial and NLP analysis for "
            "{company_name} ({symbol}, sector: {sector}) for anchor year "
            "{anchor_year} and the two preceding years.\n\n"
            "{discrepancy_block}"
            "ACCURACY PROTOCOL\n"
            "For every figure used (Revenue, Net Profit, Total Assets, Total "
            "Equity) in each of the three years:\n"
            "1. Find the official reported figure.\n"
            "2. Compare it with the number you initially identified.\n"
            "3. variance = abs(identified - found) / found.\n"
            "4. If variance <= 1% keep your number, status 'Verified'.\n"
            "5. If variance > 1% use the found number, status 'Adjusted'.\n"
            "6. Record each check in accuracyAudit.\n\n"
            "Also: analyse the tone and complexity of the reporting narrative, "
            "benchmark risk metrics against sector peers and the nearest "
            "peer, forecast ROA and ROE (base, upside, downside) with the "
            "assumptions used, and answer the diagnostic Q&A prompts.",
        ),
    ]
)


class LLMFactProvider(FactProvider):
    """Fact provider backed by a LangChain chat model with structured output.

    Parameters
    ----------
    model:
        A LangChain chat model (e.g. ``ChatGoogleGenerativeAI``,
        ``ChatAnthropic``, ``ChatOpenAI``).
    prompt:
        Optional custom ``ChatPromptTemplate`` to replace the default.  It
        receives ``precision``, ``company_name``, ``symbol``, ``sector``,
        ``anchor_year`` and ``discrepancy_block``.
    """

    def __init__(
        self,
        model: BaseChatModel,
        prompt: ChatPromptTemplate | None = None,
    ) -> None:
        self.model = model
        self._prompt = prompt or _ANALYSIS_PROMPT
        self._chain = self._build_chain()

    def _build_chain(self) -> Any:
        structured_model = self.model.with_structured_output(AnalysisPayload)
        return self._prompt | structured_model

    @staticmethod
    def _inputs(
        company: Company,
        anchor_year: int,
        deep_dive: bool,
        discrepancy_note: str | None,
    ) -> dict[str, Any]:
        discrepancy_block = ""
        if deep_dive:
            discrepancy_block = (
                f"DISCREPANCY ALERT: {discrepancy_note or 'figures changed on refresh'}. "
                "Conduct an exhaustive search to resolve this variance.\n\n"
            )
        return {
            "precision": "CRITICAL DEEP-DIVE" if deep_dive else "high-precision",
            "company_name": company.name,
            "symbol": company.symbol,
            "sector": company.sector,
            "anchor_year": anchor_year,
            "discrepancy_block": discrepancy_block,
        }

    async def generate(
        self,
        company: Company,
        anchor_year: int,
        deep_dive: bool = False,
        discrepancy_note: str | None = None,
    ) -> AnalysisResult:
        logger.info(
            "LLMFactProvider: generating %s %d (deep_dive=%s)",
            company.symbol,
            anchor_year,
            deep_dive,
        )
        inputs = self._inputs(company, anchor_year, deep_dive, discrepancy_note)
        try:
            raw = await self._chain.ainvoke(inputs)
            payload = self._coerce(raw)
        except (OutputParserException, ValidationError, json.JSONDecodeError) as exc:
            raise MalformedResponseError(
                f"Malformed analysis payload for {company.symbol} {anchor_year}: {exc}",
                symbol=company.symbol,
                year=anchor_year,
            ) from exc
        return build_analysis(company, anchor_year, payload)

    @staticmethod
    def _coerce(raw: Any) -> AnalysisPayload:
        if isinstance(raw, AnalysisPayload):
            return raw
        if isinstance(raw, BaseModel):
            return AnalysisPayload.model_validate(raw.model_dump(by_alias=True))
        if isinstance(raw, str):
            return AnalysisPayload.model_validate_json(raw)
        if isinstance(raw, dict):
            return AnalysisPayload.model_validate(raw)
        raise OutputParserException(
            f"Expected a structured analysis payload, got {type(raw).__name__}"
        )
