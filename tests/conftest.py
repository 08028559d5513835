"""Shared fixtures for the DuPont terminal test suite."""

from __future__ import annotations

import pytest

from dupont_terminal.domain.reference import find_company
from dupont_terminal.domain.values import Company
from dupont_terminal.infrastructure.cache_store import (
    InMemoryKeyValueStore,
    PersistedAnalysisCache,
    PrecomputedStore,
)
from dupont_terminal.infrastructure.config import RetryConfig
from dupont_terminal.infrastructure.event_bus import EventBus, EventStore
from dupont_terminal.services.retry import ResilientInvoker
from dupont_terminal.testing import ScriptedFactProvider
from tests.helpers.fakes import RecordingSleep

# ---------------------------------------------------------------------------
# Value fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def shell() -> Company:
    company = find_company("SHEL")
    assert company is not None
    return company


@pytest.fixture
def barclays() -> Company:
    company = find_company("BARC")
    assert company is not None
    return company


# ---------------------------------------------------------------------------
# Infrastructure fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def persisted(kv_store: InMemoryKeyValueStore) -> PersistedAnalysisCache:
    return PersistedAnalysisCache(kv_store)


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def event_store(event_bus: EventBus) -> EventStore:
    """An EventStore subscribed to every event on ``event_bus``."""
    store = EventStore()
    event_bus.subscribe_all(store.append)
    return store


# ---------------------------------------------------------------------------
# Service fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def invoker(recording_sleep: RecordingSleep) -> ResilientInvoker:
    """Default retry budget with simulated time."""
    return ResilientInvoker(RetryConfig(), sleep=recording_sleep)


@pytest.fixture
def provider() -> ScriptedFactProvider:
    return ScriptedFactProvider()


@pytest.fixture
def empty_precomputed() -> PrecomputedStore:
    return PrecomputedStore()
