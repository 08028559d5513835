"""Tests for DuPont metric derivation."""

from __future__ import annotations

import math

import pytest

from dupont_terminal.domain.values import DerivedYearMetrics, YearlyFinancials
from dupont_terminal.services.derivation import (
    derive_time_series,
    derive_year,
    historical_averages,
)


def _series() -> list[YearlyFinancials]:
    return [
        YearlyFinancials(2024, revenue=1000.0, net_profit=100.0, total_assets=2000.0, total_equity=800.0),
        YearlyFinancials(2023, revenue=900.0, net_profit=80.0, total_assets=1800.0, total_equity=700.0),
        YearlyFinancials(2022, revenue=850.0, net_profit=60.0, total_assets=1700.0, total_equity=650.0),
    ]


class TestDeriveYear:

    def test_two_point_averages(self) -> None:
        current, prior, _ = _series()
        m = derive_year(current, prior)
        assert m.avg_assets == pytest.approx(1900.0)
        assert m.avg_equity == pytest.approx(750.0)
        assert m.margin == pytest.approx(0.1)
        assert m.turnover == pytest.approx(1000.0 / 1900.0)
        assert m.roa == pytest.approx(100.0 / 1900.0)
        assert m.leverage == pytest.approx(1900.0 / 750.0)
        assert m.roe == pytest.approx(100.0 / 750.0)

    def test_no_prior_uses_own_balances(self) -> None:
        m = derive_year(_series()[2])
        assert m.avg_assets == 1700.0
        assert m.avg_equity == 650.0

    def test_zero_revenue_gives_non_finite_margin(self) -> None:
        record = YearlyFinancials(2024, revenue=0.0, net_profit=10.0, total_assets=100.0, total_equity=50.0)
        m = derive_year(record)
        assert math.isinf(m.margin)
        assert m.roe == pytest.approx(0.2)

    def test_zero_over_zero_is_nan(self) -> None:
        record = YearlyFinancials(2024, revenue=0.0, net_profit=0.0, total_assets=0.0, total_equity=0.0)
        m = derive_year(record)
        assert math.isnan(m.margin)
        assert math.isnan(m.roe)

    def test_raw_roundtrip(self) -> None:
        record = _series()[0]
        assert derive_year(record).raw == record


class TestDeriveTimeSeries:

    def test_documented_two_year_example(self) -> None:
        series = derive_time_series([
            YearlyFinancials(2024, revenue=50.0, net_profit=10.0, total_assets=100.0, total_equity=50.0),
            YearlyFinancials(2023, revenue=40.0, net_profit=8.0, total_assets=80.0, total_equity=40.0),
        ])
        latest = series[0]
        assert latest.turnover == pytest.approx(0.5556, abs=1e-4)
        assert latest.roa == pytest.approx(0.1111, abs=1e-4)
        assert latest.leverage == pytest.approx(2.0)
        assert latest.roe == pytest.approx(0.2222, abs=1e-4)
        assert latest.margin == pytest.approx(0.2)
        assert series[1].avg_assets == 80.0
        assert series[1].avg_equity == 40.0

    def test_same_length_and_order(self) -> None:
        series = derive_time_series(_series())
        assert [m.year for m in series] == [2024, 2023, 2022]

    def test_dupont_identity_holds(self) -> None:
        for m in derive_time_series(_series()):
            assert m.roe == pytest.approx(m.margin * m.turnover * m.leverage, rel=1e-9)
            assert m.roa == pytest.approx(m.margin * m.turnover, rel=1e-9)

    def test_earliest_year_has_no_prior(self) -> None:
        series = derive_time_series(_series())
        assert series[-1].avg_assets == series[-1].total_assets
        assert series[0].avg_assets == pytest.approx((2000.0 + 1800.0) / 2)

    def test_single_record(self) -> None:
        series = derive_time_series(_series()[:1])
        assert len(series) == 1
        assert series[0].avg_equity == 800.0

    def test_empty(self) -> None:
        assert derive_time_series([]) == []


class TestHistoricalAverages:

    def test_means(self) -> None:
        series = derive_time_series(_series())
        averages = historical_averages(series)
        assert averages["roe"] == pytest.approx(sum(m.roe for m in series) / 3)
        assert averages["roa"] == pytest.approx(sum(m.roa for m in series) / 3)

    def test_empty_series(self) -> None:
        empty: list[DerivedYearMetrics] = []
        assert historical_averages(empty) == {"roe": 0.0, "roa": 0.0}
