"""Exception hierarchy for flightcache.

Producer failures are never wrapped: whatever the producer raises is stored
and re-raised as-is. A waiter that cancels sees ``asyncio.CancelledError``.
"""

from __future__ import annotations


class FlightCacheError(Exception):
    """Base exception for all flightcache errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(FlightCacheError):
    """Configuration validation or resolution failed."""


class CacheClosedError(FlightCacheError):
    """The cache was discarded before or while the caller waited on it."""


class ProducerCancelledError(FlightCacheError):
    """The producer was cancelled by something other than the cache itself.

    Nothing is cached for that epoch; the next call starts a new one.
    """

    def __init__(
        self, message: str, *, hint: str | None = None, epoch: int | None = None
    ) -> None:
        super().__init__(message, hint=hint)
        self.epoch = epoch


class InternalError(FlightCacheError):
    """A flightcache internal error (bug) or invariant violation."""
