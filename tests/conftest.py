"""Pytest configuration and fixtures.

Provides environment isolation, logging configuration and shared cache
fixtures. Isolation fixtures are autouse unless noted.
"""

from __future__ import annotations

from contextlib import suppress
import logging
import os

import pytest

from flightcache import CacheConfig

# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "flightcache.config.load_dotenv",
            lambda *_args, **_kwargs: False,
            raising=False,
        )


@pytest.fixture(autouse=True)
def isolate_cache_env(request, monkeypatch):
    """Clear FLIGHTCACHE_* env vars to prevent test pollution.

    Opt-out: @pytest.mark.allow_env_pollution
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return
    for key in list(os.environ.keys()):
        if key.startswith("FLIGHTCACHE_"):
            monkeypatch.delenv(key, raising=False)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def verbose_cache_logging():
    """Keep cache transition logs available to caplog."""
    logging.getLogger("flightcache").setLevel(logging.DEBUG)


# =============================================================================
# Shared Fixtures
# =============================================================================


@pytest.fixture
def strict_config() -> CacheConfig:
    """Config that fails loudly on any slot double resolution."""
    return CacheConfig(fill_on_cancel=True, strict=True)
