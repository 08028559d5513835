"""Tests for domain value objects and the reference index."""

from __future__ import annotations

import dataclasses

import pytest

from dupont_terminal.domain.enums import ResolutionSource
from dupont_terminal.domain.reference import (
    COMPANIES,
    METRIC_DEFINITIONS,
    YEARS,
    find_company,
    search_companies,
)
from dupont_terminal.domain.values import CacheKey, Company, Resolution
from dupont_terminal.testing import sample_analysis


class TestCompany:

    def test_rejects_empty_symbol(self) -> None:
        with pytest.raises(ValueError, match="symbol"):
            Company(symbol="", name="Nobody", sector="None")

    def test_is_frozen(self) -> None:
        company = Company("BP", "BP", "Oil & Gas Producers")
        with pytest.raises(dataclasses.FrozenInstanceError):
            company.symbol = "SHEL"  # type: ignore[misc]


class TestCacheKey:

    def test_composite(self) -> None:
        assert CacheKey("SHEL", 2024).composite == "SHEL_2024"
        assert str(CacheKey("SHEL", 2024)) == "SHEL_2024"

    def test_parse_symbol_with_underscore(self) -> None:
        assert CacheKey.parse("BT_A_2023") == CacheKey("BT_A", 2023)

    def test_parse_rejects_garbage(self) -> None:
        with pytest.raises(ValueError):
            CacheKey.parse("SHEL2024")


class TestAnalysisResult:

    def test_anchor_is_most_recent_year(self, shell: Company) -> None:
        result = sample_analysis(shell, 2024)
        assert result.years == (2024, 2023, 2022)
        assert result.anchor.year == 2024
        assert result.cache_key == CacheKey("SHEL", 2024)

    def test_rejects_empty_series(self, shell: Company) -> None:
        result = sample_analysis(shell, 2024)
        with pytest.raises(ValueError, match="time_series"):
            dataclasses.replace(result, time_series=())

    def test_resolution_from_cache(self, shell: Company) -> None:
        result = sample_analysis(shell, 2024)
        assert Resolution(result, ResolutionSource.PERSISTED).from_cache
        assert Resolution(result, ResolutionSource.PRECOMPUTED).from_cache
        assert not Resolution(result, ResolutionSource.GENERATED).from_cache
        assert not Resolution(result, ResolutionSource.DEEP_DIVE).from_cache


class TestReferenceIndex:

    def test_symbols_are_unique(self) -> None:
        symbols = [c.symbol for c in COMPANIES]
        assert len(symbols) == len(set(symbols))

    def test_find_company_case_insensitive(self) -> None:
        company = find_company("shel")
        assert company is not None
        assert company.name == "Shell"
        assert find_company("NOPE") is None

    def test_search_by_name_fragment(self) -> None:
        banks = search_companies("bank")
        symbols = {c.symbol for c in banks}
        assert {"LLOY", "BKIR"} <= symbols

    def test_empty_search_returns_universe(self) -> None:
        assert search_companies("") == list(COMPANIES)

    def test_years_most_recent_first(self) -> None:
        assert list(YEARS) == sorted(YEARS, reverse=True)

    def test_metric_short_label(self) -> None:
        assert METRIC_DEFINITIONS["roe"].short_label == "Return on Equity"
        assert METRIC_DEFINITIONS["margin"].short_label == "Net Profit Margin"
