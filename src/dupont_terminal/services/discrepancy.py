"""Discrepancy detection between a cached and a freshly generated analysis.

Compares anchor-year ROE and net profit.  A relative shift strictly above the
threshold (1% by default) in either figure is significant, and the report's
message is handed to the fact provider as context for a deep-dive pass.
"""

from __future__ import annotations

import math

from dupont_terminal.domain.values import AnalysisResult, DiscrepancyReport

DEFAULT_THRESHOLD = 0.01


def relative_shift(old: float, new: float) -> float:
    """``|new - old| / old``, with a zero *old* replaced by 1."""
    return abs(new - old) / (old or 1)


def exceeds(delta: float, threshold: float) -> bool:
    """Strict ``delta > threshold`` that treats float noise at the boundary
    as equality (0.101 vs 0.10 is exactly a 1% shift)."""
    return delta > threshold and not math.isclose(delta, threshold, rel_tol=1e-9)


def detect_discrepancy(
    old: AnalysisResult,
    new: AnalysisResult,
    threshold: float = DEFAULT_THRESHOLD,
) -> DiscrepancyReport:
    """Compare two analyses for the same ``(company, year)``.

    Parameters
    ----------
    old:
        The previously cached analysis.
    new:
        The freshly generated analysis.
    threshold:
        Relative shift that must be exceeded to be significant.
    """
    roe_delta = relative_shift(old.anchor.roe, new.anchor.roe)
    profit_delta = relative_shift(old.anchor.net_profit, new.anchor.net_profit)
    return DiscrepancyReport(
        significant=exceeds(roe_delta, threshold) or exceeds(profit_delta, threshold),
        roe_delta=roe_delta,
        profit_delta=profit_delta,
        message=(
            f"ROE shifted by {roe_delta * 100:.2f}%, "
            f"Net Profit shifted by {profit_delta * 100:.2f}%"
        ),
    )
