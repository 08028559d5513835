"""Tests for the tiered cache resolver."""

from __future__ import annotations

import asyncio

import pytest

from dupont_terminal.domain.enums import ResolutionSource
from dupont_terminal.domain.events import AnalysisResolved, DeepDiveTriggered
from dupont_terminal.domain.exceptions import (
    MalformedResponseError,
    MaxRetriesExceededError,
    RateLimitError,
    ServiceUnavailableError,
)
from dupont_terminal.domain.values import AnalysisResult, CacheKey, Company
from dupont_terminal.infrastructure.cache_store import PersistedAnalysisCache, PrecomputedStore
from dupont_terminal.infrastructure.config import AppConfig, CacheConfig
from dupont_terminal.infrastructure.event_bus import EventBus, EventStore
from dupont_terminal.services.fact_provider import FactProvider, LLMFactProvider
from dupont_terminal.services.resolver import (
    PersistedTier,
    PrecomputedTier,
    TieredCacheResolver,
)
from dupont_terminal.services.retry import ResilientInvoker
from dupont_terminal.testing import (
    MockStructuredChatModel,
    ScriptedFactProvider,
    sample_analysis,
    sample_payload,
)
from tests.helpers.fakes import RecordingSleep


class _YieldingProvider(FactProvider):
    """Suspends once per call so concurrent callers interleave."""

    def __init__(self) -> None:
        self.calls = 0

    async def generate(self, company, anchor_year, deep_dive=False, discrepancy_note=None):
        self.calls += 1
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        return sample_analysis(company, anchor_year)


def _resolver(
    provider: FactProvider,
    persisted: PersistedAnalysisCache,
    invoker: ResilientInvoker,
    precomputed: PrecomputedStore | None = None,
    event_bus: EventBus | None = None,
    coalesce: bool = False,
) -> TieredCacheResolver:
    return TieredCacheResolver(
        provider,
        persisted,
        precomputed=precomputed,
        invoker=invoker,
        event_bus=event_bus,
        coalesce_requests=coalesce,
    )


class TestTiers:

    def test_tier_order(self, provider, persisted, invoker) -> None:
        resolver = _resolver(provider, persisted, invoker)
        assert [type(t) for t in resolver.tiers] == [PrecomputedTier, PersistedTier]

    def test_lookup_prefers_precomputed(self, shell, provider, persisted, invoker) -> None:
        precomputed_result = sample_analysis(shell, 2024, net_profit=1.0)
        persisted.put(sample_analysis(shell, 2024, net_profit=2.0))
        resolver = _resolver(
            provider,
            persisted,
            invoker,
            precomputed=PrecomputedStore({"SHEL_2024": precomputed_result}),
        )
        hit = resolver.lookup(CacheKey("SHEL", 2024))
        assert hit is not None
        assert hit.source is ResolutionSource.PRECOMPUTED
        assert hit.result is precomputed_result


class TestCacheHits:

    @pytest.mark.asyncio
    async def test_precomputed_hit_skips_generation(
        self, shell, provider, persisted, invoker, kv_store
    ) -> None:
        cached = sample_analysis(shell, 2024)
        resolver = _resolver(
            provider, persisted, invoker, precomputed=PrecomputedStore({"SHEL_2024": cached})
        )
        resolution = await resolver.resolve(shell, 2024)
        assert resolution.source is ResolutionSource.PRECOMPUTED
        assert resolution.from_cache
        assert provider.call_count == 0
        assert kv_store.keys() == []

    @pytest.mark.asyncio
    async def test_persisted_hit_skips_generation(self, shell, provider, persisted, invoker) -> None:
        persisted.put(sample_analysis(shell, 2024))
        resolution = await _resolver(provider, persisted, invoker).resolve(shell, 2024)
        assert resolution.source is ResolutionSource.PERSISTED
        assert provider.call_count == 0

    @pytest.mark.asyncio
    async def test_other_year_is_a_miss(self, shell, provider, persisted, invoker) -> None:
        persisted.put(sample_analysis(shell, 2023))
        resolution = await _resolver(provider, persisted, invoker).resolve(shell, 2024)
        assert resolution.source is ResolutionSource.GENERATED
        assert provider.calls == [("SHEL", 2024, False, None)]


class TestGeneration:

    @pytest.mark.asyncio
    async def test_miss_generates_and_persists(
        self, shell, provider, persisted, invoker, kv_store
    ) -> None:
        resolver = _resolver(provider, persisted, invoker)
        first = await resolver.resolve(shell, 2024)
        assert first.source is ResolutionSource.GENERATED
        assert kv_store.keys() == ["dupont_cache_SHEL_2024"]

        second = await resolver.resolve(shell, 2024)
        assert second.source is ResolutionSource.PERSISTED
        assert second.result.anchor.roe == pytest.approx(first.result.anchor.roe)
        assert provider.call_count == 1

    @pytest.mark.asyncio
    async def test_rate_limit_then_success(self, shell, persisted, invoker, recording_sleep) -> None:
        provider = ScriptedFactProvider([RateLimitError("429"), sample_analysis(shell, 2024)])
        resolution = await _resolver(provider, persisted, invoker).resolve(shell, 2024)
        assert resolution.source is ResolutionSource.GENERATED
        assert recording_sleep.delays == [3.0]
        assert CacheKey("SHEL", 2024) in persisted

    @pytest.mark.asyncio
    async def test_rate_limit_exhaustion(
        self, shell, persisted, invoker, recording_sleep, kv_store
    ) -> None:
        provider = ScriptedFactProvider([RuntimeError("RESOURCE_EXHAUSTED")] * 4)
        with pytest.raises(RateLimitError) as info:
            await _resolver(provider, persisted, invoker).resolve(shell, 2024)
        assert isinstance(info.value, MaxRetriesExceededError)
        assert provider.call_count == 4
        assert recording_sleep.delays == [3.0, 6.0, 12.0]
        assert kv_store.keys() == []

    @pytest.mark.asyncio
    async def test_malformed_is_fatal(self, shell, persisted, invoker, recording_sleep, kv_store) -> None:
        provider = ScriptedFactProvider([MalformedResponseError("missing timeSeries")])
        with pytest.raises(MalformedResponseError):
            await _resolver(provider, persisted, invoker).resolve(shell, 2024)
        assert provider.call_count == 1
        assert recording_sleep.delays == []
        assert kv_store.keys() == []

    @pytest.mark.asyncio
    async def test_malformed_payload_mentioning_429_is_not_retried(
        self, shell, persisted, invoker, recording_sleep, kv_store
    ) -> None:
        payload = sample_payload(2024).model_dump(by_alias=True)
        payload["timeSeries"][0]["revenue"] = "284,429 million"
        model = MockStructuredChatModel(structured_responses=[payload])
        resolver = _resolver(LLMFactProvider(model), persisted, invoker)

        with pytest.raises(MalformedResponseError) as info:
            await resolver.resolve(shell, 2024)
        assert not isinstance(info.value, RateLimitError)
        assert "429" in str(info.value)
        assert model.call_count == 1
        assert recording_sleep.delays == []
        assert kv_store.keys() == []

    @pytest.mark.asyncio
    async def test_unclassified_error_becomes_unavailable(self, shell, persisted, invoker, kv_store) -> None:
        provider = ScriptedFactProvider([ConnectionError("connection reset")])
        with pytest.raises(ServiceUnavailableError) as info:
            await _resolver(provider, persisted, invoker).resolve(shell, 2024)
        assert info.value.symbol == "SHEL"
        assert isinstance(info.value.__cause__, ConnectionError)
        assert kv_store.keys() == []

    @pytest.mark.asyncio
    async def test_publishes_resolved_event(
        self, shell, provider, persisted, invoker, event_bus, event_store
    ) -> None:
        resolver = _resolver(provider, persisted, invoker, event_bus=event_bus)
        await resolver.resolve(shell, 2024)
        await resolver.resolve(shell, 2024)
        events = event_store.query(AnalysisResolved)
        assert [e.source for e in events] == [
            ResolutionSource.GENERATED,
            ResolutionSource.PERSISTED,
        ]


class TestForceRefresh:

    @pytest.mark.asyncio
    async def test_bypasses_precomputed(self, shell, provider, persisted, invoker) -> None:
        precomputed = PrecomputedStore({"SHEL_2024": sample_analysis(shell, 2024)})
        resolver = _resolver(provider, persisted, invoker, precomputed=precomputed)
        resolution = await resolver.resolve(shell, 2024, force_refresh=True)
        assert resolution.source is ResolutionSource.GENERATED
        assert provider.call_count == 1
        # no persisted prior, so no comparison
        assert resolution.discrepancy is None

    @pytest.mark.asyncio
    async def test_small_shift_keeps_first_result(self, shell, persisted, invoker) -> None:
        persisted.put(sample_analysis(shell, 2024))
        provider = ScriptedFactProvider([sample_analysis(shell, 2024)])
        resolution = await _resolver(provider, persisted, invoker).resolve(
            shell, 2024, force_refresh=True
        )
        assert provider.call_count == 1
        assert resolution.source is ResolutionSource.GENERATED
        assert resolution.discrepancy is not None
        assert not resolution.discrepancy.significant

    @pytest.mark.asyncio
    async def test_large_shift_escalates_to_deep_dive(
        self, shell, persisted, invoker, event_bus, event_store
    ) -> None:
        persisted.put(sample_analysis(shell, 2024, net_profit=16_000.0))
        shifted = sample_analysis(shell, 2024, net_profit=20_000.0)
        verified = sample_analysis(shell, 2024, net_profit=19_000.0)
        provider = ScriptedFactProvider([shifted, verified])

        resolution = await _resolver(
            provider, persisted, invoker, event_bus=event_bus
        ).resolve(shell, 2024, force_refresh=True)

        assert provider.call_count == 2
        first, second = provider.calls
        assert first == ("SHEL", 2024, False, None)
        assert second[2] is True
        assert second[3] is not None and second[3].startswith("ROE shifted by")
        assert resolution.source is ResolutionSource.DEEP_DIVE
        assert resolution.result is verified
        stored = persisted.get(CacheKey("SHEL", 2024))
        assert stored is not None
        assert stored.anchor.net_profit == pytest.approx(19_000.0)
        assert len(event_store.query(DeepDiveTriggered)) == 1

    @pytest.mark.asyncio
    async def test_deep_dive_failure_leaves_prior_entry(self, shell, persisted, invoker) -> None:
        prior = sample_analysis(shell, 2024, net_profit=16_000.0)
        persisted.put(prior)
        provider = ScriptedFactProvider(
            [sample_analysis(shell, 2024, net_profit=30_000.0), MalformedResponseError("bad")]
        )
        with pytest.raises(MalformedResponseError):
            await _resolver(provider, persisted, invoker).resolve(shell, 2024, force_refresh=True)
        stored = persisted.get(CacheKey("SHEL", 2024))
        assert stored is not None
        assert stored.anchor.net_profit == pytest.approx(16_000.0)


class TestConcurrency:

    @pytest.mark.asyncio
    async def test_without_coalescing_each_caller_generates(self, shell, persisted, invoker) -> None:
        provider = _YieldingProvider()
        resolver = _resolver(provider, persisted, invoker)
        results = await asyncio.gather(resolver.resolve(shell, 2024), resolver.resolve(shell, 2024))
        assert provider.calls == 2
        assert all(r.source is ResolutionSource.GENERATED for r in results)
        assert CacheKey("SHEL", 2024) in persisted

    @pytest.mark.asyncio
    async def test_coalescing_shares_one_generation(self, shell, persisted, invoker) -> None:
        provider = _YieldingProvider()
        resolver = _resolver(provider, persisted, invoker, coalesce=True)
        first, second = await asyncio.gather(
            resolver.resolve(shell, 2024), resolver.resolve(shell, 2024)
        )
        assert provider.calls == 1
        assert first.result is second.result

    @pytest.mark.asyncio
    async def test_coalescing_is_per_key(self, shell, barclays, persisted, invoker) -> None:
        provider = _YieldingProvider()
        resolver = _resolver(provider, persisted, invoker, coalesce=True)
        await asyncio.gather(resolver.resolve(shell, 2024), resolver.resolve(barclays, 2024))
        assert provider.calls == 2


class TestFromConfig:

    @pytest.mark.asyncio
    async def test_config_drives_retry_and_coalescing(self, shell, persisted) -> None:
        sleep = RecordingSleep()
        config = AppConfig(cache=CacheConfig(coalesce_requests=True))
        provider = ScriptedFactProvider([RateLimitError(), sample_analysis(shell, 2024)])
        resolver = TieredCacheResolver.from_config(provider, config, persisted, sleep=sleep)
        await resolver.resolve(shell, 2024)
        assert sleep.delays == [config.retry.initial_delay]
        assert "coalesce=True" in repr(resolver)
