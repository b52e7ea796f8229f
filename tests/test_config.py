"""Config boundary tests: defaults, validation, and environment resolution."""

from __future__ import annotations

import pytest

from flightcache import CacheConfig, SingleFlightCache
from flightcache.errors import ConfigurationError

pytestmark = pytest.mark.unit


def test_defaults_fill_on_cancel_and_follow_debug_mode() -> None:
    config = CacheConfig()

    assert config.fill_on_cancel is True
    assert config.strict is __debug__


def test_config_is_frozen() -> None:
    config = CacheConfig()
    with pytest.raises(AttributeError):
        config.fill_on_cancel = False  # type: ignore[misc]


@pytest.mark.parametrize("field", ["fill_on_cancel", "strict"])
def test_non_bool_values_are_rejected(field: str) -> None:
    with pytest.raises(ConfigurationError) as exc:
        CacheConfig(**{field: "yes"})  # type: ignore[arg-type]

    assert field in str(exc.value)
    assert exc.value.hint


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("1", True), ("true", True), ("ON", True), ("0", False), ("no", False), ("off", False)],
)
def test_from_env_parses_booleans(
    monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool
) -> None:
    monkeypatch.setenv("FLIGHTCACHE_FILL_ON_CANCEL", raw)
    monkeypatch.setenv("FLIGHTCACHE_STRICT", raw)

    config = CacheConfig.from_env()

    assert config.fill_on_cancel is expected
    assert config.strict is expected


def test_from_env_rejects_garbage(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FLIGHTCACHE_FILL_ON_CANCEL", "maybe")

    with pytest.raises(ConfigurationError) as exc:
        CacheConfig.from_env()

    assert "FLIGHTCACHE_FILL_ON_CANCEL" in str(exc.value)


def test_from_env_ignores_blank_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FLIGHTCACHE_STRICT", "  ")

    assert CacheConfig.from_env().strict is __debug__


def test_explicit_overrides_win_over_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FLIGHTCACHE_FILL_ON_CANCEL", "0")

    assert CacheConfig.from_env(fill_on_cancel=True).fill_on_cancel is True
    assert CacheConfig.from_env(fill_on_cancel=None).fill_on_cancel is False


def test_from_env_rejects_unknown_overrides() -> None:
    with pytest.raises(ConfigurationError):
        CacheConfig.from_env(ttl=True)


def test_cache_reads_env_when_no_config_given(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FLIGHTCACHE_FILL_ON_CANCEL", "false")

    cache = SingleFlightCache(lambda: 1)

    assert cache.fill_on_cancel is False


def test_constructor_flag_overrides_config() -> None:
    cache = SingleFlightCache(
        lambda: 1, fill_on_cancel=False, config=CacheConfig(strict=True)
    )

    assert cache.fill_on_cancel is False
    assert cache.config.strict is True


def test_non_callable_producer_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        SingleFlightCache(42)  # type: ignore[arg-type]
