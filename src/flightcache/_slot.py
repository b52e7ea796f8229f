"""Write-once resolution slot for a single waiter.

Each registered waiter blocks on its own slot. Whoever removes the slot from
the cache's waiters map owns it and settles it; settling twice is an
invariant violation.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from flightcache.errors import InternalError
from flightcache.state import Failure

if TYPE_CHECKING:
    from flightcache.state import Outcome

logger = logging.getLogger(__name__)


def consume_future_exception(fut: asyncio.Future[Any]) -> None:
    """Avoid 'Future exception was never retrieved' for coordination futures."""
    try:
        _ = fut.exception()
    except asyncio.CancelledError:
        return


class ResolutionSlot:
    """One-shot channel between the cache and one suspended caller."""

    __slots__ = ("_future", "_strict", "waiter_id")

    def __init__(
        self,
        waiter_id: int,
        loop: asyncio.AbstractEventLoop,
        *,
        strict: bool,
    ) -> None:
        self.waiter_id = waiter_id
        self._strict = strict
        self._future: asyncio.Future[Any] = loop.create_future()
        self._future.add_done_callback(consume_future_exception)

    def __repr__(self) -> str:
        return f"ResolutionSlot(waiter_id={self.waiter_id}, done={self.done()})"

    def done(self) -> bool:
        return self._future.done()

    def cancelled(self) -> bool:
        return self._future.cancelled()

    def resolve(self, value: Any) -> bool:
        if not self._claim("resolve"):
            return False
        self._future.set_result(value)
        return True

    def reject(self, error: BaseException) -> bool:
        if not self._claim("reject"):
            return False
        self._future.set_exception(error)
        return True

    def cancel(self, msg: str | None = None) -> bool:
        if not self._claim("cancel"):
            return False
        self._future.cancel(msg)
        return True

    def settle(self, outcome: Outcome) -> bool:
        """Resolve or reject according to a producer outcome."""
        if isinstance(outcome, Failure):
            return self.reject(outcome.reraisable())
        return self.resolve(outcome.value)

    async def wait(self) -> Any:
        """Wait for the slot to settle.

        The underlying future is shielded: cancelling the waiting task never
        settles the slot, the cache does that after withdrawing the waiter.
        """
        return await asyncio.shield(self._future)

    def _claim(self, action: str) -> bool:
        if not self._future.done():
            return True
        if self._strict:
            raise InternalError(
                f"Waiter {self.waiter_id} settled twice (second {action})",
                hint="A waiter must be removed from the waiters map before it is settled.",
            )
        logger.warning(
            "Ignoring second %s of waiter %d; slot already settled",
            action,
            self.waiter_id,
        )
        return False
