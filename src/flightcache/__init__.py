"""flightcache: single-flight asynchronous value cache.

Public API:
    - SingleFlightCache: compute a value once, share it with every caller
    - CacheConfig: fill-on-cancel and strictness policy
    - CacheStats: activity snapshot returned by ``SingleFlightCache.stats()``
"""

from __future__ import annotations

import logging

from flightcache.cache import SingleFlightCache
from flightcache.config import CacheConfig
from flightcache.errors import (
    CacheClosedError,
    ConfigurationError,
    FlightCacheError,
    InternalError,
    ProducerCancelledError,
)
from flightcache.state import Failure, Success
from flightcache.stats import CacheStats

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("flightcache")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("flightcache").addHandler(logging.NullHandler())

__all__ = [
    "CacheClosedError",
    "CacheConfig",
    "CacheStats",
    "ConfigurationError",
    "Failure",
    "FlightCacheError",
    "InternalError",
    "ProducerCancelledError",
    "SingleFlightCache",
    "Success",
]
