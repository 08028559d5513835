"""Bounded retry with exponential backoff for fallible async operations.

Rate-limited calls are retried after ``initial_delay * 2 ** attempt``
seconds; anything else propagates at once.  The combinator is generic: it
takes a classifier deciding what is retryable and a backoff policy deciding
the delay schedule, so it can wrap any zero-argument coroutine factory, not
just the fact provider call.

Usage::

    result = await with_retry(lambda: provider.generate(company, 2024))

    invoker = ResilientInvoker(RetryConfig(max_retries=5))
    result = await invoker.invoke(lambda: provider.generate(company, 2024))
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from dupont_terminal.domain.exceptions import MaxRetriesExceededError, is_rate_limit_error
from dupont_terminal.infrastructure.config import RetryConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
Classifier = Callable[[BaseException], bool]
Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class ExponentialBackoff:
    """Delay schedule ``initial_delay * factor ** attempt`` (attempt is 0-based)."""

    initial_delay: float = 3.0
    factor: float = 2.0

    def delay(self, attempt: int) -> float:
        return self.initial_delay * (self.factor ** attempt)


async def with_retry(
    operation: Operation[T],
    max_retries: int = 3,
    initial_delay: float = 3.0,
    *,
    is_retryable: Classifier = is_rate_limit_error,
    backoff: ExponentialBackoff | None = None,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Await ``operation()``, retrying retryable failures with backoff.

    Parameters
    ----------
    operation:
        Zero-argument callable returning a fresh awaitable on every call.
    max_retries:
        Retries after the first attempt (``max_retries + 1`` attempts total).
    initial_delay:
        Delay in seconds before the first retry.  Ignored if *backoff* is
        given.
    is_retryable:
        Classifier for failures worth retrying.  Defaults to rate-limit
        detection.
    backoff:
        Delay schedule.  Defaults to doubling from *initial_delay*.
    sleep:
        Awaitable sleep, injectable for simulated time.

    Raises
    ------
    MaxRetriesExceededError
        When every attempt failed with a retryable error.
    Exception
        Any non-retryable failure, unchanged and unretried.
    """
    policy = backoff or ExponentialBackoff(initial_delay=initial_delay)
    attempt = 0

    while True:
        try:
            return await operation()
        except Exception as exc:
            if not is_retryable(exc):
                raise
            if attempt >= max_retries:
                raise MaxRetriesExceededError(
                    f"Max retries exceeded after {attempt + 1} attempts: {exc}",
                    attempts=attempt + 1,
                    details={"last_error": str(exc)},
                ) from exc

            delay = policy.delay(attempt)
            logger.warning(
                "with_retry: rate limited (attempt %d/%d), retrying in %.1fs: %s",
                attempt + 1,
                max_retries + 1,
                delay,
                exc,
            )
            await sleep(delay)
            attempt += 1


class ResilientInvoker:
    """:func:`with_retry` bound to a :class:`RetryConfig`.

    Parameters
    ----------
    config:
        Retry budget and delay schedule.
    sleep:
        Awaitable sleep, injectable for simulated time.
    is_retryable:
        Classifier for failures worth retrying.
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        sleep: Sleep = asyncio.sleep,
        is_retryable: Classifier = is_rate_limit_error,
    ) -> None:
        self.config = config or RetryConfig()
        self.config.validate()
        self._sleep = sleep
        self._is_retryable = is_retryable
        self._backoff = ExponentialBackoff(
            initial_delay=self.config.initial_delay,
            factor=self.config.backoff_factor,
        )

    async def invoke(self, operation: Operation[T]) -> T:
        return await with_retry(
            operation,
            max_retries=self.config.max_retries,
            is_retryable=self._is_retryable,
            backoff=self._backoff,
            sleep=self._sleep,
        )

    def __repr__(self) -> str:
        return (
            f"ResilientInvoker(max_retries={self.config.max_retries}, "
            f"initial_delay={self.config.initial_delay})"
        )
