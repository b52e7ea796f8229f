"""Counters kept by a cache and the immutable snapshot handed to callers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict

StateName = Literal["empty", "pending", "filled"]


class CacheStats(BaseModel):
    """Point-in-time view of a cache's activity.

    ``producer_calls`` counts epochs started; ``hits`` counts calls answered
    from a filled cache without suspending.
    """

    model_config = ConfigDict(frozen=True)

    state: StateName
    epoch: int = 0
    waiters: int = 0
    producer_calls: int = 0
    hits: int = 0
    waits: int = 0
    cancellations: int = 0
    fills: int = 0
    failures: int = 0
    resets: int = 0
    closed: bool = False


@dataclass
class _Counters:
    producer_calls: int = 0
    hits: int = 0
    waits: int = 0
    cancellations: int = 0
    fills: int = 0
    failures: int = 0
    resets: int = 0

    def snapshot(
        self, *, state: StateName, epoch: int, waiters: int, closed: bool
    ) -> CacheStats:
        return CacheStats(
            state=state,
            epoch=epoch,
            waiters=waiters,
            producer_calls=self.producer_calls,
            hits=self.hits,
            waits=self.waits,
            cancellations=self.cancellations,
            fills=self.fills,
            failures=self.failures,
            resets=self.resets,
            closed=closed,
        )
