from __future__ import annotations

import pytest

from flightcache.errors import (
    CacheClosedError,
    ConfigurationError,
    FlightCacheError,
    InternalError,
    ProducerCancelledError,
)

pytestmark = pytest.mark.unit


def test_error_carries_hint() -> None:
    err = CacheClosedError("closed", hint="make a new one")

    assert str(err) == "closed"
    assert err.hint == "make a new one"


def test_hint_defaults_to_none() -> None:
    assert ConfigurationError("bad").hint is None


def test_producer_cancelled_error_records_epoch() -> None:
    err = ProducerCancelledError("gone", epoch=3)

    assert err.epoch == 3
    assert err.hint is None
    assert ProducerCancelledError("gone").epoch is None


@pytest.mark.parametrize(
    "cls",
    [CacheClosedError, ConfigurationError, InternalError, ProducerCancelledError],
)
def test_subclass_hierarchy(cls: type[FlightCacheError]) -> None:
    """Every library error is catchable as FlightCacheError."""
    assert isinstance(cls("x"), FlightCacheError)
