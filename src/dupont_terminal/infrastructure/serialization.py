"""Serialization utilities for the DuPont terminal.

Provides ``to_dict`` / ``from_dict`` conversion for :class:`AnalysisResult`
and its parts.  The wire format uses camelCase keys (``timeSeries``,
``netProfit``, ``nlpData`` ...), the same shape as the fact provider payload,
so persisted entries, export artifacts and precomputed bulk files are
interchangeable.

Design goals:
- stdlib ``json`` only; every ``to_dict`` output is JSON-serializable.
- Non-finite ratios survive a round trip (``NaN`` / ``Infinity`` literals).
- ``from_dict`` accepts permissive input and raises ``ValueError`` for
  unrecoverable data.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from dupont_terminal.domain.enums import AuditStatus
from dupont_terminal.domain.values import (
    AccuracyAuditEntry,
    AnalysisResult,
    BusinessRisk,
    Company,
    DerivedYearMetrics,
    Narrative,
    NLPMeasures,
    PeerComparator,
    PeerRiskMetric,
    RiskAnalysis,
    ScenarioForecast,
    SourceRef,
    YearlyFinancials,
)

logger = logging.getLogger(__name__)

_DERIVED_KEYS = ("avgAssets", "avgEquity", "margin", "turnover", "roa", "leverage", "roe")


# =========================================================================== #
#  Helpers                                                                     #
# =========================================================================== #

def _float(data: Mapping[str, Any], key: str, default: float | None = None) -> float:
    value = data.get(key, default)
    if value is None:
        raise KeyError(key)
    return float(value)


def _audit_status(value: Any) -> AuditStatus:
    if isinstance(value, AuditStatus):
        return value
    return AuditStatus(str(value).strip().capitalize())


# =========================================================================== #
#  Parts                                                                       #
# =========================================================================== #

def company_to_dict(c: Company) -> dict[str, Any]:
    return {"symbol": c.symbol, "name": c.name, "sector": c.sector, "domain": c.domain}


def company_from_dict(data: Mapping[str, Any]) -> Company:
    return Company(
        symbol=str(data["symbol"]),
        name=str(data.get("name", data["symbol"])),
        sector=str(data.get("sector", "")),
        domain=str(data.get("domain", "") or ""),
    )


def year_metrics_to_dict(m: DerivedYearMetrics) -> dict[str, Any]:
    out: dict[str, Any] = {
        "year": m.year,
        "revenue": m.revenue,
        "netProfit": m.net_profit,
        "totalAssets": m.total_assets,
        "totalEquity": m.total_equity,
        "avgAssets": m.avg_assets,
        "avgEquity": m.avg_equity,
        "margin": m.margin,
        "turnover": m.turnover,
        "roa": m.roa,
        "leverage": m.leverage,
        "roe": m.roe,
    }
    if m.source_url:
        out["sourceUrl"] = m.source_url
    return out


def yearly_financials_from_dict(data: Mapping[str, Any]) -> YearlyFinancials:
    return YearlyFinancials(
        year=int(data["year"]),
        revenue=_float(data, "revenue"),
        net_profit=_float(data, "netProfit"),
        total_assets=_float(data, "totalAssets"),
        total_equity=_float(data, "totalEquity"),
        source_url=str(data.get("sourceUrl", "") or ""),
    )


def time_series_from_dicts(rows: list[Mapping[str, Any]]) -> tuple[DerivedYearMetrics, ...]:
    """Rebuild a derived series.

    Stored ratios are taken as-is when every row carries them.  Records
    written without the averaged denominators (older bulk artifacts) are
    re-derived from their raw figures.
    """
    if all(all(k in row for k in _DERIVED_KEYS) for row in rows):
        return tuple(
            DerivedYearMetrics(
                year=int(row["year"]),
                revenue=_float(row, "revenue"),
                net_profit=_float(row, "netProfit"),
                total_assets=_float(row, "totalAssets"),
                total_equity=_float(row, "totalEquity"),
                avg_assets=_float(row, "avgAssets"),
                avg_equity=_float(row, "avgEquity"),
                margin=_float(row, "margin"),
                turnover=_float(row, "turnover"),
                roa=_float(row, "roa"),
                leverage=_float(row, "leverage"),
                roe=_float(row, "roe"),
                source_url=str(row.get("sourceUrl", "") or ""),
            )
            for row in rows
        )
    from dupont_terminal.services.derivation import derive_time_series

    return tuple(derive_time_series([yearly_financials_from_dict(r) for r in rows]))


def nlp_to_dict(n: NLPMeasures) -> dict[str, Any]:
    return {
        "sentiment": n.sentiment,
        "fli": n.forward_looking_info,
        "specificity": n.specificity,
        "sentenceLength": n.sentence_length,
        "depth": n.depth,
        "unfamiliarity": n.unfamiliarity,
    }


def nlp_from_dict(data: Mapping[str, Any]) -> NLPMeasures:
    return NLPMeasures(
        sentiment=_float(data, "sentiment", 0.0),
        forward_looking_info=_float(data, "fli", 0.0),
        specificity=_float(data, "specificity", 0.0),
        sentence_length=_float(data, "sentenceLength", 0.0),
        depth=_float(data, "depth", 0.0),
        unfamiliarity=_float(data, "unfamiliarity", 0.0),
    )


def audit_entry_to_dict(a: AccuracyAuditEntry) -> dict[str, Any]:
    return {
        "metric": a.metric,
        "year": a.year,
        "identifiedValue": a.identified_value,
        "verifiedValue": a.verified_value,
        "variance": a.variance,
        "status": a.status.value,
        "sourceReference": a.source_reference,
        "currency": a.currency,
    }


def audit_entry_from_dict(data: Mapping[str, Any]) -> AccuracyAuditEntry:
    return AccuracyAuditEntry(
        metric=str(data["metric"]),
        year=int(data["year"]),
        identified_value=_float(data, "identifiedValue"),
        verified_value=_float(data, "verifiedValue"),
        variance=_float(data, "variance", 0.0),
        status=_audit_status(data.get("status", AuditStatus.VERIFIED.value)),
        source_reference=str(data.get("sourceReference", "") or ""),
        currency=str(data.get("currency", "") or ""),
    )


def risk_to_dict(r: RiskAnalysis) -> dict[str, Any]:
    return {
        "financial": r.financial,
        "solvencyIndex": r.solvency_index,
        "business": {
            "legal": r.business.legal,
            "tax": r.business.tax,
            "macro": r.business.macro,
            "firmSpecific": r.business.firm_specific,
        },
        "summary": r.summary,
        "peerComparison": [
            {
                "metric": p.metric,
                "companyValue": p.company_value,
                "peerMedian": p.peer_median,
                "topQuartile": p.top_quartile,
                "evidence": p.evidence,
            }
            for p in r.peer_comparison
        ],
        "nearestPeer": (
            {"name": r.nearest_peer.name, "roa": r.nearest_peer.roa, "roe": r.nearest_peer.roe}
            if r.nearest_peer is not None
            else None
        ),
    }


def risk_from_dict(data: Mapping[str, Any]) -> RiskAnalysis:
    business = data.get("business") or {}
    defaults = BusinessRisk()
    peer = data.get("nearestPeer")
    return RiskAnalysis(
        financial=str(data.get("financial", "")),
        solvency_index=_float(data, "solvencyIndex", RiskAnalysis().solvency_index),
        business=BusinessRisk(
            legal=_float(business, "legal", defaults.legal),
            tax=_float(business, "tax", defaults.tax),
            macro=_float(business, "macro", defaults.macro),
            firm_specific=_float(business, "firmSpecific", defaults.firm_specific),
        ),
        summary=str(data.get("summary", "")),
        peer_comparison=tuple(
            PeerRiskMetric(
                metric=str(p.get("metric", "")),
                company_value=str(p.get("companyValue", "")),
                peer_median=str(p.get("peerMedian", "")),
                top_quartile=str(p.get("topQuartile", "")),
                evidence=str(p.get("evidence", "")),
            )
            for p in data.get("peerComparison") or []
        ),
        nearest_peer=(
            PeerComparator(
                name=str(peer.get("name", "")),
                roa=_float(peer, "roa", 0.0),
                roe=_float(peer, "roe", 0.0),
            )
            if peer
            else None
        ),
    )


def narrative_to_dict(n: Narrative) -> dict[str, Any]:
    return {
        "section1": n.section1,
        "section2": n.section2,
        "section3": n.section3,
        "section4": n.section4,
        "qAndA": dict(n.q_and_a),
    }


def narrative_from_dict(data: Mapping[str, Any]) -> Narrative:
    return Narrative(
        section1=str(data.get("section1", "")),
        section2=str(data.get("section2", "")),
        section3=str(data.get("section3", "")),
        section4=str(data.get("section4", "")),
        q_and_a={str(k): str(v) for k, v in (data.get("qAndA") or {}).items()},
    )


# =========================================================================== #
#  Aggregate                                                                   #
# =========================================================================== #

def analysis_to_dict(result: AnalysisResult) -> dict[str, Any]:
    """Convert an :class:`AnalysisResult` to its JSON-ready wire form."""
    return {
        "company": company_to_dict(result.company),
        "anchorYear": result.anchor_year,
        "timeSeries": [year_metrics_to_dict(m) for m in result.time_series],
        "nlpData": {str(year): nlp_to_dict(n) for year, n in result.nlp_data.items()},
        "risk": risk_to_dict(result.risk),
        "accuracyAudit": [audit_entry_to_dict(a) for a in result.accuracy_audit],
        "accuracySummary": result.accuracy_summary,
        "narrative": narrative_to_dict(result.narrative),
        "forecasts": {
            metric: {"base": f.base, "upside": f.upside, "downside": f.downside}
            for metric, f in result.forecasts.items()
        },
        "forecastAssumptions": result.forecast_assumptions,
        "sources": [{"title": s.title, "uri": s.uri} for s in result.sources],
    }


def analysis_from_dict(data: Mapping[str, Any]) -> AnalysisResult:
    """Rebuild an :class:`AnalysisResult` from its wire form.

    Raises
    ------
    ValueError
        If required fields are missing or have the wrong type.
    """
    try:
        return AnalysisResult(
            company=company_from_dict(data["company"]),
            anchor_year=int(data["anchorYear"]),
            time_series=time_series_from_dicts(list(data["timeSeries"])),
            nlp_data={
                int(year): nlp_from_dict(n)
                for year, n in (data.get("nlpData") or {}).items()
            },
            risk=risk_from_dict(data.get("risk") or {}),
            accuracy_audit=tuple(
                audit_entry_from_dict(a) for a in data.get("accuracyAudit") or []
            ),
            accuracy_summary=str(data.get("accuracySummary", "")),
            narrative=narrative_from_dict(data.get("narrative") or {}),
            forecasts={
                str(metric): ScenarioForecast(
                    base=_float(f, "base"),
                    upside=_float(f, "upside"),
                    downside=_float(f, "downside"),
                )
                for metric, f in (data.get("forecasts") or {}).items()
            },
            forecast_assumptions=str(data.get("forecastAssumptions", "")),
            sources=tuple(
                SourceRef(title=str(s.get("title", "")), uri=str(s.get("uri", "")))
                for s in data.get("sources") or []
            ),
        )
    except (KeyError, TypeError, AttributeError) as exc:
        raise ValueError(f"Invalid analysis record: {exc!r}") from exc


def analysis_to_json(result: AnalysisResult, indent: int | None = None) -> str:
    return json.dumps(analysis_to_dict(result), indent=indent)


def analysis_from_json(text: str) -> AnalysisResult:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid analysis JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError("Analysis JSON must be an object")
    return analysis_from_dict(data)


def bulk_to_json(entries: Mapping[str, AnalysisResult], indent: int | None = 2) -> str:
    """Serialize a ``"{symbol}_{year}" -> AnalysisResult`` mapping."""
    return json.dumps(
        {key: analysis_to_dict(result) for key, result in entries.items()},
        indent=indent,
    )


def bulk_from_json(text: str) -> dict[str, AnalysisResult]:
    """Parse a bulk artifact, skipping (and logging) unreadable entries."""
    raw = json.loads(text)
    if not isinstance(raw, dict):
        raise ValueError("Bulk artifact must be a JSON object")
    entries: dict[str, AnalysisResult] = {}
    for key, data in raw.items():
        try:
            entries[str(key)] = analysis_from_dict(data)
        except ValueError as exc:
            logger.warning("bulk_from_json: skipping entry %r: %s", key, exc)
    return entries
