"""Storage for the two cache tiers.

* **Persisted tier**: a durable string key/value store
  (:class:`KeyValueStore`) wrapped by :class:`PersistedAnalysisCache`, which
  owns the key format ``"{namespace}{symbol}_{year}"`` and the JSON encoding
  of each :class:`AnalysisResult`.
* **Precomputed tier**: :class:`PrecomputedStore`, loaded once from a bulk
  artifact at session start and read-only afterwards.

Neither tier locks.  Writes replace whole entries under one key, so
concurrent writers for the same key simply resolve to the last write.
"""

from __future__ import annotations

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from pathlib import Path
from urllib.parse import quote, unquote

from dupont_terminal.domain.values import AnalysisResult, CacheKey
from dupont_terminal.infrastructure.serialization import (
    analysis_from_json,
    analysis_to_json,
    bulk_from_json,
)

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "dupont_cache_"


# =========================================================================== #
#  Key/value contract                                                          #
# =========================================================================== #

class KeyValueStore(ABC):
    """Minimal durable string store.  A missing key is not an error."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the value stored under *key*, or ``None``."""
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""
        ...

    @abstractmethod
    def keys(self) -> list[str]:
        ...

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None


class InMemoryKeyValueStore(KeyValueStore):
    """Dict-backed store; lives as long as the process."""

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def keys(self) -> list[str]:
        return list(self._data)

    def __len__(self) -> int:
        return len(self._data)


class FileKeyValueStore(KeyValueStore):
    """One file per key inside *directory*.

    Keys are percent-encoded into file names.  Writes go to a temporary file
    first and are moved into place atomically, so a reader never observes a
    half-written entry.
    """

    _SUFFIX = ".json"

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / (quote(key, safe="") + self._SUFFIX)

    def get(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(value)
            os.replace(tmp_name, self._path(key))
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def keys(self) -> list[str]:
        return sorted(
            unquote(p.name[: -len(self._SUFFIX)])
            for p in self.directory.glob("*" + self._SUFFIX)
        )

    def __repr__(self) -> str:
        return f"FileKeyValueStore({str(self.directory)!r})"


# =========================================================================== #
#  Persisted tier                                                              #
# =========================================================================== #

class PersistedAnalysisCache:
    """Typed view of a :class:`KeyValueStore` holding serialized analyses.

    Parameters
    ----------
    store:
        Backing key/value store.
    namespace:
        Prefix of every key written by this cache.
    """

    def __init__(self, store: KeyValueStore, namespace: str = DEFAULT_NAMESPACE) -> None:
        self._store = store
        self.namespace = namespace

    def storage_key(self, key: CacheKey) -> str:
        return f"{self.namespace}{key.symbol}_{key.year}"

    def get(self, key: CacheKey) -> AnalysisResult | None:
        """Return the cached analysis, or ``None`` if absent or unreadable."""
        raw = self._store.get(self.storage_key(key))
        if raw is None:
            return None
        try:
            return analysis_from_json(raw)
        except ValueError as exc:
            logger.warning(
                "PersistedAnalysisCache: ignoring unreadable entry %s: %s", key, exc
            )
            return None

    def put(self, result: AnalysisResult) -> None:
        """Store *result* under its own key, replacing any previous entry."""
        self._store.set(self.storage_key(result.cache_key), analysis_to_json(result))

    def __contains__(self, key: CacheKey) -> bool:
        return self.get(key) is not None


# =========================================================================== #
#  Precomputed tier                                                            #
# =========================================================================== #

class PrecomputedStore:
    """Read-only in-memory set of analyses keyed by ``"{symbol}_{year}"``.

    Build it once per session with :meth:`load` (or directly from a mapping
    in tests); nothing writes to it afterwards.
    """

    def __init__(self, entries: Mapping[str, AnalysisResult] | None = None) -> None:
        self._entries: dict[str, AnalysisResult] = dict(entries or {})

    @classmethod
    def load(cls, path: str | Path | None) -> PrecomputedStore:
        """Load a bulk artifact.

        A missing, unreadable or malformed file yields an empty store: the
        precomputed tier is then simply disabled for the session.
        """
        if path is None:
            return cls()
        artifact = Path(path)
        try:
            text = artifact.read_text(encoding="utf-8")
            entries = bulk_from_json(text)
        except FileNotFoundError:
            logger.info("PrecomputedStore: no bulk artifact at %s", artifact)
            return cls()
        except (OSError, ValueError) as exc:
            logger.warning("PrecomputedStore: failed to load %s: %s", artifact, exc)
            return cls()
        logger.info("PrecomputedStore: loaded %d entries from %s", len(entries), artifact)
        return cls(entries)

    def get(self, key: CacheKey) -> AnalysisResult | None:
        return self._entries.get(key.composite)

    def __contains__(self, key: CacheKey) -> bool:
        return key.composite in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)
