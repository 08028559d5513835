"""DuPont metric derivation.

Turns raw yearly financials into the derived ratio records::

    margin   = net_profit / revenue
    turnover = revenue    / avg_assets
    roa      = net_profit / avg_assets
    leverage = avg_assets / avg_equity
    roe      = net_profit / avg_equity      (= margin * turnover * leverage)

Balance-sheet figures are two-point averages of the current and prior year.
The earliest year of a series has no prior year, so its own raw assets and
equity stand in as the average.

A zero denominator produces ``inf`` or ``nan`` rather than an exception.
Non-finite ratios are passed through unchanged; callers that render or
compare them must tolerate that.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from dupont_terminal.domain.values import DerivedYearMetrics, YearlyFinancials


def _ratio(numerator: float, denominator: float) -> float:
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.float64(numerator) / np.float64(denominator))


def derive_year(
    current: YearlyFinancials,
    prior: YearlyFinancials | None = None,
) -> DerivedYearMetrics:
    """Derive the ratios of *current*, averaging with *prior* if given."""
    if prior is not None:
        avg_assets = (current.total_assets + prior.total_assets) / 2
        avg_equity = (current.total_equity + prior.total_equity) / 2
    else:
        avg_assets = current.total_assets
        avg_equity = current.total_equity

    return DerivedYearMetrics(
        year=current.year,
        revenue=current.revenue,
        net_profit=current.net_profit,
        total_assets=current.total_assets,
        total_equity=current.total_equity,
        avg_assets=avg_assets,
        avg_equity=avg_equity,
        margin=_ratio(current.net_profit, current.revenue),
        turnover=_ratio(current.revenue, avg_assets),
        roa=_ratio(current.net_profit, avg_assets),
        leverage=_ratio(avg_assets, avg_equity),
        roe=_ratio(current.net_profit, avg_equity),
        source_url=current.source_url,
    )


def derive_time_series(records: Sequence[YearlyFinancials]) -> list[DerivedYearMetrics]:
    """Derive a whole series.

    Parameters
    ----------
    records:
        Raw records ordered most recent first; element ``i + 1`` is the
        prior year of element ``i``.

    Returns
    -------
    list[DerivedYearMetrics]
        Same length and order as *records*.
    """
    return [
        derive_year(record, records[i + 1] if i + 1 < len(records) else None)
        for i, record in enumerate(records)
    ]


def historical_averages(series: Sequence[DerivedYearMetrics]) -> dict[str, float]:
    """Mean ROE and ROA across *series*, the yardstick for scenario forecasts.

    Returns zeros for an empty series.
    """
    if not series:
        return {"roe": 0.0, "roa": 0.0}
    return {
        "roe": float(np.mean([m.roe for m in series])),
        "roa": float(np.mean([m.roa for m in series])),
    }
