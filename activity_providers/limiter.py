"""
Bounded concurrency limiter for async tasks.

At most `limit` tasks run at once; waiting tasks are admitted in FIFO
order as running ones finish, whether they succeeded or raised.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConcurrencyLimiter:
    """
    Caps simultaneous in-flight coroutines.

    Usage:
        limiter = ConcurrencyLimiter(2)
        results = await asyncio.gather(*(limiter.run(lambda c=c: fetch(c)) for c in chains))
    """

    def __init__(self, limit: int) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        self._limit = limit
        # asyncio.Semaphore (3.12+) admits waiters in arrival order, newcomers included
        self._semaphore = asyncio.Semaphore(limit)
        self._active = 0
        self._peak = 0

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def active(self) -> int:
        """Tasks currently holding a slot."""
        return self._active

    @property
    def peak(self) -> int:
        """Highest number of tasks that ever ran at once."""
        return self._peak

    async def run(self, task: Callable[[], Awaitable[T]]) -> T:
        """Run `task()` once a slot is free and release the slot afterwards."""
        async with self._semaphore:
            self._active += 1
            self._peak = max(self._peak, self._active)
            try:
                return await task()
            finally:
                self._active -= 1

    async def __call__(self, task: Callable[[], Awaitable[T]]) -> T:
        return await self.run(task)
