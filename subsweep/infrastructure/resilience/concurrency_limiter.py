"""Implementation of a concurrency limiter.

Bounds how many async tasks run at the same time. Tasks submitted while
the limiter is full wait in FIFO order; a finishing task hands its slot
directly to the oldest waiter.
"""

import asyncio
import logging
from collections import deque
from typing import Any, Awaitable, Callable, Deque, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConcurrencyLimiter:
    """FIFO task queue running at most `concurrency` tasks in parallel."""

    def __init__(self, concurrency: int):
        """Initializes the limiter.

        Args:
            concurrency: Maximum number of tasks in flight. Fixed for the
                lifetime of the limiter.
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        self.concurrency = concurrency
        self._active = 0
        self._waiters: Deque[asyncio.Future] = deque()
        logger.debug(f"ConcurrencyLimiter initialized: {concurrency} concurrent tasks")

    @property
    def active(self) -> int:
        """Number of tasks currently running."""
        return self._active

    @property
    def pending(self) -> int:
        """Number of tasks waiting for a slot."""
        return sum(1 for waiter in self._waiters if not waiter.done())

    async def submit(self, task: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Runs `task(*args, **kwargs)` once a slot is free and returns its result.

        Exceptions raised by the task propagate to this caller only; the slot
        is released either way.
        """
        await self._acquire()
        try:
            return await task(*args, **kwargs)
        finally:
            self._release()

    async def _acquire(self) -> None:
        if self._active < self.concurrency and not self.pending:
            self._active += 1
            return

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        logger.debug(f"Limiter full ({self._active}/{self.concurrency}), queued task #{len(self._waiters)}")
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # The slot was handed over just before cancellation; pass it on
                self._release()
            raise

    def _release(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                # Hand the slot over; the active count stays the same
                waiter.set_result(None)
                return
        self._active -= 1
