"""Single-flight asynchronous value cache.

One instance holds one logical value. The first caller starts the producer;
every concurrent caller waits on the same computation, and the outcome is
kept for all later callers.

All state transitions happen on the event loop that runs the producer, in
synchronous sections with no ``await`` between reading the state and acting
on it. That is what makes "check then register" atomic with respect to other
callers and to the producer's completion callback.
"""

from __future__ import annotations

import asyncio
import dataclasses
import inspect
import itertools
import logging
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from flightcache._slot import ResolutionSlot, consume_future_exception
from flightcache.config import CacheConfig
from flightcache.errors import (
    CacheClosedError,
    ConfigurationError,
    InternalError,
    ProducerCancelledError,
)
from flightcache.state import EMPTY, Failure, Filled, Pending, Success
from flightcache.stats import CacheStats, _Counters

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from flightcache.state import CacheState, WaiterID
    from flightcache.stats import StateName

logger = logging.getLogger(__name__)

V = TypeVar("V")


class SingleFlightCache(Generic[V]):
    """Compute a value once and share it with every concurrent caller.

    Args:
        producer: Zero-argument callable returning the value or an awaitable
            of it. Called at most once per epoch.
        fill_on_cancel: When every waiter has cancelled, keep the producer
            running and cache its outcome (``True``), or cancel it and go
            back to empty (``False``). Overrides ``config.fill_on_cancel``.
        config: Policy knobs; defaults to ``CacheConfig.from_env()``.
        name: Label used in logs and ``repr``.

    Example:
        cache = SingleFlightCache(fetch_settings)
        settings = await cache.get_value()
    """

    def __init__(
        self,
        producer: Callable[[], Awaitable[V] | V],
        *,
        fill_on_cancel: bool | None = None,
        config: CacheConfig | None = None,
        name: str | None = None,
    ) -> None:
        if not callable(producer):
            raise ConfigurationError(
                f"producer must be callable, got {type(producer).__name__}",
                hint="Pass a zero-argument function or async function.",
            )
        cfg = config if config is not None else CacheConfig.from_env()
        if fill_on_cancel is not None:
            cfg = dataclasses.replace(cfg, fill_on_cancel=fill_on_cancel)

        self.name = name or getattr(producer, "__qualname__", None) or repr(producer)
        self._producer = producer
        self._config = cfg
        self._state: CacheState = EMPTY
        self._epoch = 0
        self._waiter_ids = itertools.count(1)
        self._closed = False
        # Abandoned producers still unwinding; the next epoch waits for them.
        self._draining: set[asyncio.Task[Any]] = set()
        self._counters = _Counters()

    @classmethod
    def from_blocking(
        cls,
        func: Callable[[], V],
        *,
        fill_on_cancel: bool | None = None,
        config: CacheConfig | None = None,
        name: str | None = None,
    ) -> SingleFlightCache[V]:
        """Wrap a blocking function so production runs in a worker thread.

        Cancelling production abandons the result, but the thread itself runs
        to completion and the producer task only finishes once it has. With
        ``fill_on_cancel=False`` the next epoch therefore waits for the old
        thread before calling *func* again, so a slow blocking producer
        delays restarts.
        """

        async def _in_thread() -> V:
            work = asyncio.ensure_future(asyncio.to_thread(func))
            work.add_done_callback(consume_future_exception)
            try:
                return await asyncio.shield(work)
            except asyncio.CancelledError:
                await asyncio.wait({work})
                raise

        return cls(
            _in_thread,
            fill_on_cancel=fill_on_cancel,
            config=config,
            name=name or getattr(func, "__qualname__", None),
        )

    def __repr__(self) -> str:
        return (
            f"SingleFlightCache(name={self.name!r}, state={self.state!r}, "
            f"epoch={self._epoch}, fill_on_cancel={self._config.fill_on_cancel})"
        )

    async def __aenter__(self) -> SingleFlightCache[V]:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # --- Introspection -----------------------------------------------------

    @property
    def config(self) -> CacheConfig:
        return self._config

    @property
    def fill_on_cancel(self) -> bool:
        return self._config.fill_on_cancel

    @property
    def state(self) -> StateName:
        return self._state.name  # type: ignore[return-value]

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def is_filled(self) -> bool:
        return isinstance(self._state, Filled)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def waiter_count(self) -> int:
        state = self._state
        return len(state.waiters) if isinstance(state, Pending) else 0

    def peek(self, default: Any = None) -> V | Any:
        """Return the cached value without waiting, or *default*.

        A stored failure is not raised here; *default* is returned instead.
        """
        state = self._state
        if isinstance(state, Filled) and isinstance(state.outcome, Success):
            return state.outcome.value
        return default

    def stats(self) -> CacheStats:
        return self._counters.snapshot(
            state=self.state,
            epoch=self._epoch,
            waiters=self.waiter_count,
            closed=self._closed,
        )

    # --- Public operations -------------------------------------------------

    async def get_value(self, *, timeout: float | None = None) -> V:
        """Return the cached value, producing it first if needed.

        A filled cache answers without suspending, re-raising the stored error
        if production failed. Otherwise the caller waits on the current epoch
        (starting one if the cache is empty).

        Cancelling the calling task withdraws only this caller. ``timeout``
        does the same after that many seconds and raises ``TimeoutError``.
        """
        self._ensure_open()
        state = self._state
        if isinstance(state, Filled):
            self._counters.hits += 1
            return state.unwrap()

        if timeout is None:
            return await self._join()
        async with asyncio.timeout(timeout):
            return await self._join()

    def reset(self) -> bool:
        """Forget a filled outcome so the next call starts a new epoch.

        Returns ``False`` when there is nothing to forget: the cache is empty,
        or production is in flight (that epoch is left to finish).
        """
        self._ensure_open()
        state = self._state
        if not isinstance(state, Filled):
            return False
        self._state = EMPTY
        self._counters.resets += 1
        logger.debug("Cache %s reset after epoch %d", self.name, state.epoch)
        return True

    async def aclose(self) -> None:
        """Discard the cache.

        Waiters still blocked receive ``CacheClosedError``, the producer is
        cancelled, and every later call raises ``CacheClosedError``. Returns
        once no producer of this cache is running any more.
        """
        if self._closed:
            return
        self._closed = True
        state = self._state
        self._state = EMPTY
        if not isinstance(state, Pending):
            if self._draining:
                await asyncio.wait(set(self._draining))
            return

        error = CacheClosedError(
            f"Cache {self.name!r} was closed while waiting",
            hint="Do not close a cache that still has callers waiting on it.",
        )
        slots = list(state.waiters.values())
        state.waiters.clear()
        for slot in slots:
            slot.reject(error)

        unwinding = set(self._draining)
        producer = state.producer
        if producer is not None and not producer.done():
            producer.cancel()
            unwinding.add(producer)
        if unwinding:
            await asyncio.wait(unwinding)
        logger.debug(
            "Cache %s closed during epoch %d (%d waiters rejected)",
            self.name,
            state.epoch,
            len(slots),
        )

    # --- Waiter registry ---------------------------------------------------

    async def _join(self) -> V:
        state = self._state
        if isinstance(state, Filled):
            self._counters.hits += 1
            return state.unwrap()

        waiter_id, slot = self._register()
        try:
            return await slot.wait()
        except asyncio.CancelledError:
            self._cancel_waiter(waiter_id)
            raise

    def _register(self) -> tuple[WaiterID, ResolutionSlot]:
        self._ensure_open()
        loop = asyncio.get_running_loop()
        state = self._state
        if isinstance(state, Filled):
            raise InternalError(
                "Tried to register a waiter on a filled cache",
                hint="Filled caches must be answered on the fast path.",
            )
        if isinstance(state, Pending):
            producer = state.producer
            if producer is not None and producer.get_loop() is not loop:
                raise InternalError(
                    f"Cache {self.name!r} is producing on another event loop",
                    hint="Use asyncio.run_coroutine_threadsafe() to call it from other threads.",
                )
        else:
            state = self._start_epoch(loop)

        waiter_id = next(self._waiter_ids)
        slot = ResolutionSlot(waiter_id, loop, strict=bool(self._config.strict))
        state.waiters[waiter_id] = slot
        self._counters.waits += 1
        return waiter_id, slot

    def _cancel_waiter(self, waiter_id: WaiterID) -> bool:
        """Withdraw one waiter from the current epoch.

        This is the hook run when a waiting task is cancelled. Unknown ids are
        a no-op: the waiter may already have been settled by a fill.
        """
        state = self._state
        if not isinstance(state, Pending):
            return False
        slot = state.waiters.pop(waiter_id, None)
        if slot is None:
            return False

        self._counters.cancellations += 1
        slot.cancel(f"waiter {waiter_id} cancelled")
        if state.waiters:
            return True

        if self._config.fill_on_cancel:
            logger.debug(
                "Cache %s: all waiters of epoch %d cancelled; producer keeps running",
                self.name,
                state.epoch,
            )
        else:
            self._abandon_epoch(state)
        return True

    # --- Producer lifecycle ------------------------------------------------

    def _start_epoch(self, loop: asyncio.AbstractEventLoop) -> Pending:
        self._epoch += 1
        # Publish Pending before the task exists: an eager task factory may
        # run the producer, and anything it calls, inside create_task().
        pending = Pending(epoch=self._epoch)
        self._state = pending
        self._counters.producer_calls += 1
        logger.debug("Cache %s: starting epoch %d", self.name, pending.epoch)

        producer = loop.create_task(
            self._produce(frozenset(self._draining)),
            name=f"flightcache:{self.name}:{pending.epoch}",
        )
        pending.producer = producer
        producer.add_done_callback(self._on_producer_done)
        return pending

    async def _produce(self, draining: frozenset[asyncio.Task[Any]]) -> V:
        if draining:
            logger.debug(
                "Cache %s: waiting for %d abandoned producer(s) to finish",
                self.name,
                len(draining),
            )
            await asyncio.wait(draining)
        value = self._producer()
        if inspect.isawaitable(value):
            return await value
        return value

    def _abandon_epoch(self, state: Pending) -> None:
        self._state = EMPTY
        logger.debug(
            "Cache %s: all waiters of epoch %d cancelled; cancelling producer",
            self.name,
            state.epoch,
        )
        producer = state.producer
        if producer is not None and not producer.done():
            self._draining.add(producer)
            producer.add_done_callback(self._draining.discard)
            producer.cancel()

    def _on_producer_done(self, task: asyncio.Task[Any]) -> None:
        state = self._state
        if not isinstance(state, Pending) or state.producer is not task:
            # Stale epoch (abandoned or closed); its outcome is discarded.
            if not task.cancelled():
                _ = task.exception()
            return

        if task.cancelled():
            self._state = EMPTY
            error = ProducerCancelledError(
                f"Producer for cache {self.name!r} was cancelled",
                hint="The next call starts a new production epoch.",
                epoch=state.epoch,
            )
            slots = list(state.waiters.values())
            state.waiters.clear()
            for slot in slots:
                slot.reject(error)
            logger.debug(
                "Cache %s: producer of epoch %d cancelled externally", self.name, state.epoch
            )
            return

        exc = task.exception()
        outcome = (
            Failure(exc, exc.__traceback__)
            if exc is not None
            else Success(task.result())
        )
        self._state = Filled(epoch=state.epoch, outcome=outcome)
        if exc is not None:
            self._counters.failures += 1
        else:
            self._counters.fills += 1

        for slot in state.waiters.values():
            slot.settle(outcome)
        delivered = len(state.waiters)
        state.waiters.clear()
        logger.debug(
            "Cache %s: epoch %d filled (%s), delivered to %d waiters",
            self.name,
            state.epoch,
            "failure" if exc is not None else "success",
            delivered,
        )

    def _ensure_open(self) -> None:
        if self._closed:
            raise CacheClosedError(
                f"Cache {self.name!r} is closed",
                hint="Create a new SingleFlightCache instead of reusing a closed one.",
            )
