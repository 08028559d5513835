"""Batch pre-caching of the whole company universe for one year.

The controller walks the universe sequentially in its fixed order, skips
companies already present in either cache tier and generates the rest
through the resolver, pausing between requests to stay under provider
throughput limits.  A per-company failure is logged and recorded, never
raised; a rate-limit failure additionally triggers a longer cooldown.

Cancellation is cooperative: the token is polled before each company, so an
in-flight generation always finishes (and is persisted) before the batch
stops.

Usage::

    controller = BatchPreCacheController(resolver, on_progress=print)
    token = CancellationToken()
    report = await controller.run(2024, token)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from dupont_terminal.domain.enums import FailureKind
from dupont_terminal.domain.events import PreCacheFailed, PreCacheFinished, PreCacheProgressed
from dupont_terminal.domain.exceptions import classify_failure
from dupont_terminal.domain.reference import COMPANIES
from dupont_terminal.domain.values import Company
from dupont_terminal.infrastructure.config import BatchConfig
from dupont_terminal.infrastructure.event_bus import EventBus
from dupont_terminal.services.resolver import TieredCacheResolver
from dupont_terminal.services.retry import Sleep

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative stop flag shared between a batch and whoever started it."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self._cancelled})"


@dataclass(frozen=True)
class BatchProgress:
    """Progress snapshot: *completed* companies out of *total*.

    A snapshot with ``done=False`` is published when *symbol* is picked up;
    the one with ``done=True`` follows once it has been processed.
    """

    completed: int
    total: int
    symbol: str
    done: bool = True


ProgressCallback = Callable[[BatchProgress], None]


@dataclass
class BatchReport:
    """Outcome of one batch run.

    Attributes
    ----------
    year:
        The anchor year that was pre-cached.
    total:
        Size of the universe.
    completed:
        Companies processed (skipped, generated or failed) before the run
        ended.
    cancelled:
        Whether the run stopped on the cancellation token.
    generated:
        Symbols freshly generated and persisted.
    skipped:
        Symbols already cached in either tier.
    failed:
        Symbols whose generation failed, with the failure class.
    """

    year: int
    total: int
    completed: int = 0
    cancelled: bool = False
    generated: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, FailureKind] = field(default_factory=dict)


class BatchPreCacheController:
    """Sequentially fill the cache for every company in the universe.

    Parameters
    ----------
    resolver:
        Resolver used both to test the cache tiers and to generate.
    companies:
        The universe, in processing order.  Defaults to the built-in index.
    config:
        Inter-request delay and rate-limit cooldown, in seconds.
    sleep:
        Awaitable sleep, injectable for simulated time.
    event_bus:
        Optional bus receiving ``PreCacheProgressed``, ``PreCacheFailed`` and
        ``PreCacheFinished`` events.
    on_progress:
        Optional callback invoked after each company.
    """

    def __init__(
        self,
        resolver: TieredCacheResolver,
        companies: Sequence[Company] = COMPANIES,
        config: BatchConfig | None = None,
        sleep: Sleep = asyncio.sleep,
        event_bus: EventBus | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._resolver = resolver
        self._companies = tuple(companies)
        self.config = config or BatchConfig()
        self.config.validate()
        self._sleep = sleep
        self._event_bus = event_bus
        self._on_progress = on_progress

    @property
    def total(self) -> int:
        return len(self._companies)

    async def run(self, year: int, token: CancellationToken | None = None) -> BatchReport:
        """Pre-cache every company for *year*.

        Never raises for per-company generation failures; they are recorded
        in the returned report.
        """
        token = token or CancellationToken()
        report = BatchReport(year=year, total=self.total)
        logger.info("BatchPreCacheController: starting %d companies for %d", self.total, year)

        for company in self._companies:
            if token.cancelled:
                report.cancelled = True
                logger.info(
                    "BatchPreCacheController: cancelled after %d/%d",
                    report.completed,
                    report.total,
                )
                break

            self._report_progress(report, company.symbol, done=False)
            await self._process(company, year, report)
            report.completed += 1
            self._report_progress(report, company.symbol)

        if self._event_bus is not None:
            self._event_bus.publish(
                PreCacheFinished(
                    year=year,
                    completed=report.completed,
                    total=report.total,
                    cancelled=report.cancelled,
                )
            )
        logger.info(
            "BatchPreCacheController: finished %d/%d (generated=%d, skipped=%d, failed=%d)",
            report.completed,
            report.total,
            len(report.generated),
            len(report.skipped),
            len(report.failed),
        )
        return report

    async def _process(self, company: Company, year: int, report: BatchReport) -> None:
        if self._resolver.is_cached(company, year):
            logger.debug("BatchPreCacheController: %s already cached", company.symbol)
            report.skipped.append(company.symbol)
            return

        try:
            await self._resolver.resolve(company, year)
        except Exception as exc:
            kind = classify_failure(exc)
            logger.warning(
                "BatchPreCacheController: failed to pre-cache %s (%s): %s",
                company.symbol,
                kind.value,
                exc,
            )
            report.failed[company.symbol] = kind
            if self._event_bus is not None:
                self._event_bus.publish(
                    PreCacheFailed(
                        source_id=company.symbol,
                        symbol=company.symbol,
                        year=year,
                        kind=kind,
                        error=str(exc),
                    )
                )
            if kind is FailureKind.RATE_LIMIT:
                await self._sleep(self.config.rate_limit_cooldown)
            return

        report.generated.append(company.symbol)
        await self._sleep(self.config.inter_request_delay)

    def _report_progress(self, report: BatchReport, symbol: str, done: bool = True) -> None:
        progress = BatchProgress(
            completed=report.completed, total=report.total, symbol=symbol, done=done
        )
        if self._on_progress is not None:
            self._on_progress(progress)
        if self._event_bus is not None:
            self._event_bus.publish(
                PreCacheProgressed(
                    completed=progress.completed,
                    total=progress.total,
                    symbol=symbol,
                    done=done,
                )
            )
