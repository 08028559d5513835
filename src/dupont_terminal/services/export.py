"""Collect every cached analysis for one year into a bulk artifact.

The collector reads both cache tiers (precomputed first, then persisted) for
each company in the universe and never triggers generation.  The resulting
mapping, keyed ``"{symbol}_{year}"``, is in the same shape the precomputed
tier loads, so an export can seed the next session.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from dupont_terminal.domain.events import ExportCollected
from dupont_terminal.domain.exceptions import NothingToExportError
from dupont_terminal.domain.reference import COMPANIES
from dupont_terminal.domain.values import AnalysisResult, CacheKey, Company
from dupont_terminal.infrastructure.cache_store import PersistedAnalysisCache, PrecomputedStore
from dupont_terminal.infrastructure.event_bus import EventBus
from dupont_terminal.infrastructure.serialization import bulk_to_json
from dupont_terminal.services.resolver import CacheTier, PersistedTier, PrecomputedTier

logger = logging.getLogger(__name__)


@dataclass
class ExportReport:
    """Entries found for *year*, with *found* out of *considered* companies."""

    year: int
    entries: dict[str, AnalysisResult] = field(default_factory=dict)
    considered: int = 0

    @property
    def found(self) -> int:
        return len(self.entries)


class ExportCollector:
    """Gather cached analyses for a year across the whole universe.

    Parameters
    ----------
    persisted:
        Durable cache, consulted second.
    precomputed:
        Read-only bulk artifact, consulted first.
    companies:
        The universe to scan.  Defaults to the built-in index.
    event_bus:
        Optional bus receiving an ``ExportCollected`` event.
    """

    def __init__(
        self,
        persisted: PersistedAnalysisCache,
        precomputed: PrecomputedStore | None = None,
        companies: Sequence[Company] = COMPANIES,
        event_bus: EventBus | None = None,
    ) -> None:
        self._tiers: tuple[CacheTier, ...] = (
            PrecomputedTier(precomputed if precomputed is not None else PrecomputedStore()),
            PersistedTier(persisted),
        )
        self._companies = tuple(companies)
        self._event_bus = event_bus

    def collect(self, year: int) -> ExportReport:
        """Scan every company for a cached analysis of *year*.

        Raises
        ------
        NothingToExportError
            If no company has a cached analysis for *year*.
        """
        report = ExportReport(year=year)
        for company in self._companies:
            report.considered += 1
            key = CacheKey(company.symbol, year)
            for tier in self._tiers:
                hit = tier.lookup(key)
                if hit is not None:
                    report.entries[key.composite] = hit
                    break

        logger.info(
            "ExportCollector: %d/%d constituents cached for %d",
            report.found,
            report.considered,
            year,
        )
        if self._event_bus is not None:
            self._event_bus.publish(
                ExportCollected(year=year, found=report.found, considered=report.considered)
            )
        if report.found == 0:
            raise NothingToExportError(
                f"No cached analysis found for {year}; run a pre-cache batch first.",
                year=year,
                considered=report.considered,
            )
        return report


def write_export(report: ExportReport, path: str | Path) -> Path:
    """Write *report* as a bulk artifact loadable by the precomputed tier."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(bulk_to_json(report.entries), encoding="utf-8")
    logger.info("write_export: wrote %d entries to %s", report.found, target)
    return target
