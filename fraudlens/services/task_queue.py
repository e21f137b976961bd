"""
Bounded work queue for scans.

At most ``limit`` tasks run at once; the rest wait in a FIFO queue and are
started strictly in arrival order as slots free up.
"""

import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, Deque, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TaskQueue:
    """
    Admission gate with an explicit waiter queue.

    A slot is handed directly from a finishing task to the oldest waiter, so
    late arrivals can never overtake queued ones.
    """

    def __init__(self, limit: int):
        if limit < 1:
            raise ValueError("limit must be >= 1")
        self.limit = limit
        self._active = 0
        self._waiters: Deque[asyncio.Future] = deque()
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def active_count(self) -> int:
        return self._active

    @property
    def pending_count(self) -> int:
        return len(self._waiters)

    async def _acquire(self):
        if self._active < self.limit and not self._waiters:
            self._active += 1
            self._idle.clear()
            return

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        self._idle.clear()
        logger.debug(f"Task queued (active={self._active}, pending={len(self._waiters)})")
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter in self._waiters:
                self._waiters.remove(waiter)
            elif waiter.done() and not waiter.cancelled():
                # Slot was already handed over; pass it on.
                self._release()
            raise

    def _release(self):
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                # Slot transfers to the waiter; active count is unchanged.
                waiter.set_result(None)
                return
        self._active -= 1
        if self._active == 0:
            self._idle.set()

    async def submit(self, factory: Callable[[], Awaitable[T]]) -> T:
        """Run ``factory()`` once a slot is available and return its result."""
        await self._acquire()
        try:
            return await factory()
        finally:
            self._release()

    async def on_idle(self):
        """Wait until no task is running or queued."""
        await self._idle.wait()

    def stats(self) -> dict:
        return {
            "limit": self.limit,
            "active": self._active,
            "pending": len(self._waiters),
        }
