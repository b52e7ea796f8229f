"""Cache states and producer outcomes.

``CacheState`` is a closed union: a cache is always exactly one of
``Empty``, ``Pending`` or ``Filled``. Outcomes follow the Success/Failure
shape so a stored failure can be replayed to every caller verbatim.
"""

from __future__ import annotations

import dataclasses
import typing

if typing.TYPE_CHECKING:
    import asyncio
    from types import TracebackType

    from flightcache._slot import ResolutionSlot

T = typing.TypeVar("T")

WaiterID = int


@dataclasses.dataclass(frozen=True, slots=True)
class Success(typing.Generic[T]):
    """The producer returned a value."""

    value: T


@dataclasses.dataclass(frozen=True, slots=True)
class Failure:
    """The producer raised.

    ``traceback`` is the producer's own traceback, captured at fill time so
    every replay raises with the same frames instead of accumulating them.
    """

    error: BaseException
    traceback: TracebackType | None = None

    def reraisable(self) -> BaseException:
        return self.error.with_traceback(self.traceback)


Outcome = Success[typing.Any] | Failure


@dataclasses.dataclass(frozen=True, slots=True)
class Empty:
    """No production has started, or the last epoch was reset."""

    @property
    def name(self) -> str:
        return "empty"


@dataclasses.dataclass(slots=True, eq=False)
class Pending:
    """A producer task is in flight for ``epoch``.

    ``producer`` is attached right after the state is published. ``waiters``
    is owned by the cache and only mutated on its event loop.
    """

    epoch: int
    producer: asyncio.Task[typing.Any] | None = None
    waiters: dict[WaiterID, ResolutionSlot] = dataclasses.field(default_factory=dict)

    @property
    def name(self) -> str:
        return "pending"


@dataclasses.dataclass(frozen=True, slots=True)
class Filled:
    """Production for ``epoch`` finished; ``outcome`` is permanent until reset."""

    epoch: int
    outcome: Outcome

    @property
    def name(self) -> str:
        return "filled"

    def unwrap(self) -> typing.Any:
        """Return the stored value or raise the stored error."""
        if isinstance(self.outcome, Failure):
            raise self.outcome.reraisable()
        return self.outcome.value


CacheState = Empty | Pending | Filled

EMPTY: typing.Final[Empty] = Empty()
