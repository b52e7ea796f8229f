"""Test helpers (small, reusable doubles).

Keep this file tiny and purpose-built: producers here count invocations and
block on an explicit gate so tests control when production finishes.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any


@dataclass
class GatedProducer:
    """Async producer that waits for ``release()`` before returning or raising."""

    value: Any = "value"
    error: BaseException | None = None
    calls: int = 0
    started: asyncio.Event = field(default_factory=asyncio.Event)
    gate: asyncio.Event = field(default_factory=asyncio.Event)

    async def __call__(self) -> Any:
        self.calls += 1
        self.started.set()
        await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.value

    def release(self) -> None:
        self.gate.set()


async def ticks(n: int) -> None:
    """Yield to the event loop *n* times."""
    for _ in range(n):
        await asyncio.sleep(0)


async def spawn_waiters(cache: Any, n: int) -> list[asyncio.Task[Any]]:
    """Start *n* get_value() calls and let every one of them register."""
    tasks = [asyncio.create_task(cache.get_value()) for _ in range(n)]
    await ticks(1)
    return tasks


def pending_producer(cache: Any) -> asyncio.Task[Any]:
    """Return the producer task of a pending cache."""
    producer = cache._state.producer
    assert producer is not None
    return producer
