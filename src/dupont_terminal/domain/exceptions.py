"""Domain exceptions for the DuPont terminal.

All domain-specific exceptions inherit from ``DuPontTerminalError`` so
callers can catch the full family with a single ``except`` clause when needed.

Generation failures are split three ways because callers react to them
differently: a rate-limit failure should steer the user towards their own
API credentials, while malformed payloads and generic outages only warrant a
"try again" message.
"""

from __future__ import annotations

from typing import Any

from .enums import FailureKind

_RATE_LIMIT_MARKERS = ("429", "RESOURCE_EXHAUSTED", "Quota")


class DuPontTerminalError(Exception):
    """Base exception for all DuPont terminal domain errors."""

    def __init__(self, message: str = "", details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = details or {}


class GenerationError(DuPontTerminalError):
    """Raised when the fact provider cannot produce an analysis."""

    def __init__(
        self,
        message: str = "Analysis generation failed",
        symbol: str = "",
        year: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.symbol = symbol
        self.year = year


class RateLimitError(GenerationError):
    """Raised when the provider signals quota or throughput exhaustion."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        status_code: int = 429,
        symbol: str = "",
        year: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, symbol=symbol, year=year, details=details)
        self.status_code = status_code


class MaxRetriesExceededError(RateLimitError):
    """Raised once backoff retries are exhausted on rate-limit failures.

    Still a :class:`RateLimitError`: callers treat it as the terminal
    rate-limit outcome.
    """

    def __init__(
        self,
        message: str = "Max retries exceeded",
        attempts: int = 0,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.attempts = attempts


class MalformedResponseError(GenerationError):
    """Raised when a provider payload fails structural validation.

    Fatal: the request is not retried.
    """


class ServiceUnavailableError(GenerationError):
    """Raised for network or otherwise unclassified generation failures."""


class NothingToExportError(DuPontTerminalError):
    """Raised when an export finds no cached analysis for the requested year."""

    def __init__(
        self,
        message: str = "Nothing to export",
        year: int | None = None,
        considered: int = 0,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.year = year
        self.considered = considered


# --------------------------------------------------------------------------- #
#  Classification                                                              #
# --------------------------------------------------------------------------- #

def _status_code_of(exc: BaseException) -> Any:
    for attr in ("status_code", "code", "status"):
        value = getattr(exc, attr, None)
        if value is not None:
            return value
    return None


def is_rate_limit_error(exc: BaseException) -> bool:
    """Return ``True`` if *exc* carries a recognizable rate-limit signal.

    Matches our own :class:`RateLimitError`, any exception whose
    ``status_code`` / ``code`` / ``status`` attribute equals 429, and any
    message mentioning ``429``, ``RESOURCE_EXHAUSTED`` or ``Quota``.  Other
    :class:`GenerationError` subclasses are already classified and never
    match, whatever their message says.
    """
    if isinstance(exc, RateLimitError):
        return True
    if isinstance(exc, GenerationError):
        return False
    status = _status_code_of(exc)
    if status == 429 or status == "429":
        return True
    message = str(exc)
    return any(marker in message for marker in _RATE_LIMIT_MARKERS)


def classify_failure(exc: BaseException) -> FailureKind:
    """Map an arbitrary exception onto the caller-facing failure taxonomy."""
    if is_rate_limit_error(exc):
        return FailureKind.RATE_LIMIT
    if isinstance(exc, MalformedResponseError):
        return FailureKind.MALFORMED
    return FailureKind.UNAVAILABLE


_USER_MESSAGES = {
    FailureKind.RATE_LIMIT: (
        "API limit reached. Using a personal API key is recommended for "
        "high-volume analysis."
    ),
    FailureKind.MALFORMED: (
        "Performance analysis is currently unavailable. Please try again."
    ),
    FailureKind.UNAVAILABLE: (
        "Performance analysis is currently unavailable. Please check your "
        "connection and try again."
    ),
}


def user_message(kind: FailureKind) -> str:
    """Return the user-facing text for a failure class (no technical detail)."""
    return _USER_MESSAGES[kind]
