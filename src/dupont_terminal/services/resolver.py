"""Tiered cache resolution for a single ``(company, year)`` analysis.

Lookup walks an ordered list of cache tiers and short-circuits on the first
hit.  On a miss (or a forced refresh) the fact provider is called through the
resilient invoker.  A forced refresh that replaces an existing persisted
entry is compared against it, and a significant shift escalates to a
deep-dive request whose result supersedes the first.  Every successful
generation is persisted; failures are classified and propagated without
touching the cache.

Classes
-------
CacheTier
    Abstract lookup strategy: a function of the key returning an optional
    analysis.
PrecomputedTier
    Lookup in the session's read-only bulk artifact.
PersistedTier
    Lookup in the durable key/value cache.
TieredCacheResolver
    Orchestrates tiers, generation, escalation and persistence.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Sequence

from dupont_terminal.domain.enums import ResolutionSource
from dupont_terminal.domain.events import AnalysisResolved, DeepDiveTriggered
from dupont_terminal.domain.exceptions import (
    GenerationError,
    RateLimitError,
    ServiceUnavailableError,
    is_rate_limit_error,
)
from dupont_terminal.domain.values import (
    AnalysisResult,
    CacheKey,
    Company,
    DiscrepancyReport,
    Resolution,
)
from dupont_terminal.infrastructure.cache_store import PersistedAnalysisCache, PrecomputedStore
from dupont_terminal.infrastructure.config import AppConfig
from dupont_terminal.infrastructure.event_bus import EventBus
from dupont_terminal.services.discrepancy import DEFAULT_THRESHOLD, detect_discrepancy
from dupont_terminal.services.fact_provider import FactProvider
from dupont_terminal.services.retry import ResilientInvoker, Sleep

logger = logging.getLogger(__name__)


# ===================================================================== #
#  Cache tiers                                                           #
# ===================================================================== #


class CacheTier(ABC):
    """A read-only cache lookup strategy."""

    source: ResolutionSource

    @abstractmethod
    def lookup(self, key: CacheKey) -> AnalysisResult | None:
        """Return the cached analysis for *key*, or ``None`` on a miss."""


class PrecomputedTier(CacheTier):
    source = ResolutionSource.PRECOMPUTED

    def __init__(self, store: PrecomputedStore) -> None:
        self._store = store

    def lookup(self, key: CacheKey) -> AnalysisResult | None:
        return self._store.get(key)


class PersistedTier(CacheTier):
    source = ResolutionSource.PERSISTED

    def __init__(self, cache: PersistedAnalysisCache) -> None:
        self._cache = cache

    def lookup(self, key: CacheKey) -> AnalysisResult | None:
        return self._cache.get(key)


# ===================================================================== #
#  Resolver                                                              #
# ===================================================================== #


class TieredCacheResolver:
    """Resolve analyses through the cache tiers, generating on a miss.

    Parameters
    ----------
    provider:
        The fact provider used on a cache miss or forced refresh.
    persisted:
        Durable cache; also the write target of every generation.
    precomputed:
        Optional read-only bulk artifact, consulted first.
    invoker:
        Retry wrapper around provider calls.  Defaults to
        ``ResilientInvoker()``.
    threshold:
        Relative shift above which a forced refresh escalates to a deep dive.
    event_bus:
        Optional bus receiving ``AnalysisResolved`` and
        ``DeepDiveTriggered`` events.
    coalesce_requests:
        Share one in-flight generation between concurrent callers asking
        for the same key.  Off by default: concurrent misses each generate
        and the last write wins.
    """

    def __init__(
        self,
        provider: FactProvider,
        persisted: PersistedAnalysisCache,
        precomputed: PrecomputedStore | None = None,
        invoker: ResilientInvoker | None = None,
        threshold: float = DEFAULT_THRESHOLD,
        event_bus: EventBus | None = None,
        coalesce_requests: bool = False,
    ) -> None:
        self._provider = provider
        self._persisted = persisted
        self._precomputed = precomputed if precomputed is not None else PrecomputedStore()
        self._invoker = invoker or ResilientInvoker()
        self._threshold = threshold
        self._event_bus = event_bus
        self._coalesce = coalesce_requests
        self._in_flight: dict[tuple[str, bool], asyncio.Future[Resolution]] = {}
        self._tiers: list[CacheTier] = [
            PrecomputedTier(self._precomputed),
            PersistedTier(self._persisted),
        ]

    @classmethod
    def from_config(
        cls,
        provider: FactProvider,
        config: AppConfig,
        persisted: PersistedAnalysisCache,
        precomputed: PrecomputedStore | None = None,
        event_bus: EventBus | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> TieredCacheResolver:
        """Build a resolver whose retry budget and threshold come from *config*."""
        return cls(
            provider,
            persisted,
            precomputed=precomputed,
            invoker=ResilientInvoker(config.retry, sleep=sleep),
            threshold=config.discrepancy.threshold,
            event_bus=event_bus,
            coalesce_requests=config.cache.coalesce_requests,
        )

    # -- Properties ----------------------------------------------------------

    @property
    def tiers(self) -> Sequence[CacheTier]:
        return tuple(self._tiers)

    @property
    def persisted(self) -> PersistedAnalysisCache:
        return self._persisted

    @property
    def precomputed(self) -> PrecomputedStore:
        return self._precomputed

    # -- Lookup --------------------------------------------------------------

    def lookup(self, key: CacheKey) -> Resolution | None:
        """Walk the tiers in order; return the first hit or ``None``."""
        for tier in self._tiers:
            result = tier.lookup(key)
            if result is not None:
                logger.debug("TieredCacheResolver: %s hit for %s", tier.source.value, key)
                return Resolution(result=result, source=tier.source)
        return None

    def is_cached(self, company: Company, year: int) -> bool:
        return self.lookup(CacheKey(company.symbol, year)) is not None

    # -- Resolution ----------------------------------------------------------

    async def resolve(
        self,
        company: Company,
        year: int,
        force_refresh: bool = False,
    ) -> Resolution:
        """Return the analysis for ``(company, year)``.

        Parameters
        ----------
        company:
            The company to analyse.
        year:
            Anchor year.
        force_refresh:
            Bypass both cache tiers and regenerate.

        Returns
        -------
        Resolution
            The analysis and the tier (or generation path) that supplied it.

        Raises
        ------
        RateLimitError
            Retries were exhausted on rate-limit failures.
        MalformedResponseError
            The provider returned a payload that failed validation.
        ServiceUnavailableError
            Any other generation failure.
        """
        key = CacheKey(company.symbol, year)

        if not force_refresh:
            hit = self.lookup(key)
            if hit is not None:
                self._publish_resolved(key, hit.source)
                return hit

        if not self._coalesce:
            return await self._generate(company, key, force_refresh)

        flight_key = (key.composite, force_refresh)
        pending = self._in_flight.get(flight_key)
        if pending is not None:
            logger.debug("TieredCacheResolver: joining in-flight generation for %s", key)
            return await asyncio.shield(pending)

        task = asyncio.ensure_future(self._generate(company, key, force_refresh))
        self._in_flight[flight_key] = task
        task.add_done_callback(lambda _: self._in_flight.pop(flight_key, None))
        return await asyncio.shield(task)

    async def _generate(
        self,
        company: Company,
        key: CacheKey,
        force_refresh: bool,
    ) -> Resolution:
        prior = self._persisted.get(key) if force_refresh else None

        logger.info("TieredCacheResolver: generating %s (force_refresh=%s)", key, force_refresh)
        result = await self._call_provider(company, key, deep_dive=False)
        source = ResolutionSource.GENERATED
        discrepancy: DiscrepancyReport | None = None

        if prior is not None:
            discrepancy = detect_discrepancy(prior, result, self._threshold)
            if discrepancy.significant:
                logger.info(
                    "TieredCacheResolver: discrepancy for %s (%s), escalating to deep dive",
                    key,
                    discrepancy.message,
                )
                if self._event_bus is not None:
                    self._event_bus.publish(
                        DeepDiveTriggered(
                            source_id=key.composite,
                            symbol=key.symbol,
                            year=key.year,
                            message=discrepancy.message,
                        )
                    )
                result = await self._call_provider(
                    company, key, deep_dive=True, note=discrepancy.message
                )
                source = ResolutionSource.DEEP_DIVE

        self._persisted.put(result)
        self._publish_resolved(key, source)
        return Resolution(result=result, source=source, discrepancy=discrepancy)

    async def _call_provider(
        self,
        company: Company,
        key: CacheKey,
        deep_dive: bool,
        note: str | None = None,
    ) -> AnalysisResult:
        try:
            return await self._invoker.invoke(
                lambda: self._provider.generate(
                    company, key.year, deep_dive=deep_dive, discrepancy_note=note
                )
            )
        except GenerationError:
            raise
        except Exception as exc:
            if is_rate_limit_error(exc):
                raise RateLimitError(
                    str(exc), symbol=key.symbol, year=key.year
                ) from exc
            raise ServiceUnavailableError(
                f"Analysis generation failed for {key}: {exc}",
                symbol=key.symbol,
                year=key.year,
            ) from exc

    def _publish_resolved(self, key: CacheKey, source: ResolutionSource) -> None:
        if self._event_bus is not None:
            self._event_bus.publish(
                AnalysisResolved(
                    source_id=key.composite,
                    symbol=key.symbol,
                    year=key.year,
                    source=source,
                )
            )

    def __repr__(self) -> str:
        return (
            f"TieredCacheResolver(tiers={[t.source.value for t in self._tiers]}, "
            f"threshold={self._threshold}, coalesce={self._coalesce})"
        )
