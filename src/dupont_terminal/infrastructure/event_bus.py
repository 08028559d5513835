"""Event bus infrastructure for the DuPont terminal.

A synchronous pub-sub bus that carries retrieval and batch events from the
services to whoever is watching (the console progress bar, the CLI, tests),
plus an in-memory event store for inspection.  Handler errors are caught and
logged so a broken subscriber never interrupts a batch run.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from collections.abc import Callable, Sequence

from dupont_terminal.domain.events import DomainEvent

logger = logging.getLogger(__name__)

Handler = Callable[[DomainEvent], None]


class EventBus:
    """Thread-safe synchronous pub-sub for domain events.

    Global handlers run first, then handlers registered for the exact event
    type, each group in registration order.

    Usage::

        bus = EventBus()
        bus.subscribe(PreCacheProgressed, progress_bar.update)
        bus.publish(PreCacheProgressed(completed=3, total=98, symbol="BP"))
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handlers: dict[type[DomainEvent], list[Handler]] = defaultdict(list)
        self._global_handlers: list[Handler] = []

    def subscribe(self, event_type: type[DomainEvent], handler: Handler) -> None:
        """Register *handler* for a specific *event_type*."""
        with self._lock:
            self._handlers[event_type].append(handler)

    def subscribe_all(self, handler: Handler) -> None:
        """Register *handler* to receive every published event."""
        with self._lock:
            self._global_handlers.append(handler)

    def unsubscribe(self, event_type: type[DomainEvent], handler: Handler) -> bool:
        """Remove *handler* from *event_type*. Returns ``True`` if found."""
        with self._lock:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)
                return True
            return False

    def publish(self, event: DomainEvent) -> None:
        """Deliver *event* to global handlers, then typed handlers."""
        with self._lock:
            handlers = list(self._global_handlers)
            handlers.extend(self._handlers.get(type(event), []))

        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "EventBus: handler %r failed for %s", handler, type(event).__name__
                )

    def handler_count(self, event_type: type[DomainEvent] | None = None) -> int:
        """Number of handlers for *event_type*, or all handlers if ``None``."""
        with self._lock:
            if event_type is not None:
                return len(self._handlers.get(event_type, []))
            return sum(len(hs) for hs in self._handlers.values()) + len(
                self._global_handlers
            )


class EventStore:
    """In-memory append-only record of published events.

    Wire it to a bus with ``bus.subscribe_all(store.append)``.

    Parameters
    ----------
    max_size:
        Maximum number of events kept (oldest evicted first).  ``0`` means
        unlimited.
    """

    def __init__(self, max_size: int = 0) -> None:
        self._events: list[DomainEvent] = []
        self._max_size = max_size
        self._lock = threading.Lock()

    def append(self, event: DomainEvent) -> None:
        with self._lock:
            self._events.append(event)
            if self._max_size > 0 and len(self._events) > self._max_size:
                del self._events[: len(self._events) - self._max_size]

    def query(
        self,
        event_type: type[DomainEvent] | None = None,
        limit: int = 0,
    ) -> Sequence[DomainEvent]:
        """Return stored events, optionally filtered by type and truncated
        to the *limit* most recent."""
        with self._lock:
            result = list(self._events)
        if event_type is not None:
            result = [e for e in result if isinstance(e, event_type)]
        if limit > 0:
            result = result[-limit:]
        return result

    @property
    def latest(self) -> DomainEvent | None:
        with self._lock:
            return self._events[-1] if self._events else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
