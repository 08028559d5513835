"""Configuration dataclasses for the DuPont terminal.

Each config is a plain frozen ``dataclass`` with a ``validate()`` method that
raises ``ValueError`` on invalid values, plus ``to_dict`` / ``from_dict``.
Durations are in seconds.

A JSON config file holds one object per section::

    {
        "retry": {"max_retries": 5},
        "batch": {"inter_request_delay": 12.0},
        "provider": {"provider": "anthropic", "model": "claude-sonnet-4-5"}
    }
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any


class _SectionMixin:
    """Shared ``to_dict`` / ``from_dict`` for config sections."""

    def validate(self) -> None:  # pragma: no cover - overridden
        pass

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)  # type: ignore[call-overload]

    @classmethod
    def from_dict(cls, data: dict[str, Any]):
        valid_keys = {f.name for f in fields(cls)}  # type: ignore[arg-type]
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        cfg = cls(**filtered)
        cfg.validate()
        return cfg


# ===================================================================== #
#  Retry / backoff                                                       #
# ===================================================================== #

@dataclass(frozen=True)
class RetryConfig(_SectionMixin):
    """Backoff policy for rate-limited generation calls.

    Attributes
    ----------
    max_retries:
        Retries after the first attempt; total attempts are
        ``max_retries + 1``.
    initial_delay:
        Delay before the first retry.  Retry *n* (0-based) waits
        ``initial_delay * backoff_factor ** n``.
    backoff_factor:
        Growth factor of the delay schedule.
    """

    max_retries: int = 3
    initial_delay: float = 3.0
    backoff_factor: float = 2.0

    def validate(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.initial_delay < 0.0:
            raise ValueError(
                f"initial_delay must be >= 0, got {self.initial_delay}"
            )
        if self.backoff_factor < 1.0:
            raise ValueError(
                f"backoff_factor must be >= 1, got {self.backoff_factor}"
            )


# ===================================================================== #
#  Discrepancy detection                                                 #
# ===================================================================== #

@dataclass(frozen=True)
class DiscrepancyConfig(_SectionMixin):
    """Relative shift above which a refresh triggers a deep-dive pass."""

    threshold: float = 0.01

    def validate(self) -> None:
        if self.threshold < 0.0:
            raise ValueError(f"threshold must be >= 0, got {self.threshold}")


# ===================================================================== #
#  Cache tiers                                                           #
# ===================================================================== #

@dataclass(frozen=True)
class CacheConfig(_SectionMixin):
    """Where the cache tiers live.

    Attributes
    ----------
    namespace:
        Prefix of every persisted cache key.
    cache_dir:
        Directory of the file-backed persisted tier.
    precomputed_path:
        Bulk artifact loaded into the precomputed tier at startup.  A missing
        file simply leaves that tier empty.
    coalesce_requests:
        If ``True``, concurrent resolutions of the same key share a single
        in-flight generation instead of racing (last write wins).
    """

    namespace: str = "dupont_cache_"
    cache_dir: str = ".dupont_cache"
    precomputed_path: str = "precomputedData.json"
    coalesce_requests: bool = False

    def validate(self) -> None:
        if not self.namespace:
            raise ValueError("namespace must not be empty")
        if not self.cache_dir:
            raise ValueError("cache_dir must not be empty")


# ===================================================================== #
#  Batch pacing                                                          #
# ===================================================================== #

@dataclass(frozen=True)
class BatchConfig(_SectionMixin):
    """Pacing of the pre-cache batch.

    Attributes
    ----------
    inter_request_delay:
        Pause after each generated company, longer than typical rate-limit
        windows.
    rate_limit_cooldown:
        Pause after a company fails on rate limits, before moving on.
    """

    inter_request_delay: float = 8.0
    rate_limit_cooldown: float = 20.0

    def validate(self) -> None:
        if self.inter_request_delay < 0.0:
            raise ValueError(
                f"inter_request_delay must be >= 0, got {self.inter_request_delay}"
            )
        if self.rate_limit_cooldown < 0.0:
            raise ValueError(
                f"rate_limit_cooldown must be >= 0, got {self.rate_limit_cooldown}"
            )


# ===================================================================== #
#  Fact provider                                                         #
# ===================================================================== #

_VALID_PROVIDERS = frozenset({"google", "anthropic", "openai"})


@dataclass(frozen=True)
class ProviderConfig(_SectionMixin):
    """Which LangChain chat model backs the fact provider.

    Attributes
    ----------
    provider:
        One of ``"google"``, ``"anthropic"``, ``"openai"``.
    model:
        Model identifier passed to the chat model class.
    temperature:
        Sampling temperature.
    api_key_env:
        Optional name of an environment variable holding the API key.  Empty
        means the provider SDK's own default variable is used.
    extra:
        Additional keyword arguments for the chat model constructor.
    """

    provider: str = "google"
    model: str = "gemini-2.5-pro"
    temperature: float = 0.2
    api_key_env: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.extra is None:
            object.__setattr__(self, "extra", {})

    def validate(self) -> None:
        if self.provider not in _VALID_PROVIDERS:
            raise ValueError(
                f"provider must be one of {sorted(_VALID_PROVIDERS)}, "
                f"got '{self.provider}'"
            )
        if not self.model:
            raise ValueError("model must not be empty")
        if not (0.0 <= self.temperature <= 2.0):
            raise ValueError(
                f"temperature must be in [0, 2], got {self.temperature}"
            )


# ===================================================================== #
#  Unified config loader                                                 #
# ===================================================================== #

_CONFIG_MAP: dict[str, type] = {
    "retry": RetryConfig,
    "discrepancy": DiscrepancyConfig,
    "cache": CacheConfig,
    "batch": BatchConfig,
    "provider": ProviderConfig,
}


@dataclass(frozen=True)
class AppConfig:
    """All config sections, each defaulted when absent."""

    retry: RetryConfig = field(default_factory=RetryConfig)
    discrepancy: DiscrepancyConfig = field(default_factory=DiscrepancyConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    provider: ProviderConfig = field(default_factory=ProviderConfig)

    def to_dict(self) -> dict[str, Any]:
        return {name: getattr(self, name).to_dict() for name in _CONFIG_MAP}


def load_config_from_json(json_str: str) -> dict[str, Any]:
    """Parse a JSON string into a dict of typed config objects.

    Top-level keys are section names (``retry``, ``discrepancy``, ``cache``,
    ``batch``, ``provider``).  Unknown sections are preserved as raw values.
    """
    raw = json.loads(json_str)
    if not isinstance(raw, dict):
        raise ValueError("Top-level JSON must be an object")
    result: dict[str, Any] = {}
    for section, data in raw.items():
        cls = _CONFIG_MAP.get(section)
        if cls is not None and isinstance(data, dict):
            result[section] = cls.from_dict(data)
        else:
            result[section] = data
    return result


def load_app_config(path: str | Path | None = None) -> AppConfig:
    """Build an :class:`AppConfig` from a JSON file, or defaults if *path*
    is ``None``."""
    if path is None:
        return AppConfig()
    sections = load_config_from_json(Path(path).read_text(encoding="utf-8"))
    known = {k: v for k, v in sections.items() if k in _CONFIG_MAP}
    return AppConfig(**known)
