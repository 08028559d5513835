"""Infrastructure layer for the DuPont terminal.

Re-exports the public API surface for convenience::

    from dupont_terminal.infrastructure import (
        EventBus, EventStore,
        AppConfig, RetryConfig, CacheConfig, BatchConfig, load_app_config,
        FileKeyValueStore, PersistedAnalysisCache, PrecomputedStore,
        analysis_to_json, analysis_from_json,
    )
"""

from dupont_terminal.infrastructure.cache_store import (
    FileKeyValueStore,
    InMemoryKeyValueStore,
    KeyValueStore,
    PersistedAnalysisCache,
    PrecomputedStore,
)
from dupont_terminal.infrastructure.config import (
    AppConfig,
    BatchConfig,
    CacheConfig,
    DiscrepancyConfig,
    ProviderConfig,
    RetryConfig,
    load_app_config,
    load_config_from_json,
)
from dupont_terminal.infrastructure.event_bus import EventBus, EventStore
from dupont_terminal.infrastructure.llm import create_chat_model
from dupont_terminal.infrastructure.serialization import (
    analysis_from_dict,
    analysis_from_json,
    analysis_to_dict,
    analysis_to_json,
    bulk_from_json,
    bulk_to_json,
)

__all__ = [
    # Storage
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "FileKeyValueStore",
    "PersistedAnalysisCache",
    "PrecomputedStore",
    # Config
    "AppConfig",
    "BatchConfig",
    "CacheConfig",
    "DiscrepancyConfig",
    "ProviderConfig",
    "RetryConfig",
    "load_app_config",
    "load_config_from_json",
    # Events
    "EventBus",
    "EventStore",
    # LLM
    "create_chat_model",
    # Serialization
    "analysis_from_dict",
    "analysis_from_json",
    "analysis_to_dict",
    "analysis_to_json",
    "bulk_from_json",
    "bulk_to_json",
]
