from __future__ import annotations
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Set
import asyncio
import itertools


class Gate:
    """
    Counting admission gate. At most `capacity` holders at a time; further
    `acquire()` calls wait until a token is released.
    """

    def __init__(self, capacity: int = 10):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._sem = asyncio.Semaphore(capacity)
        self._ids = itertools.count(1)
        self._held: Set[int] = set()

    @property
    def in_flight(self) -> int:
        return len(self._held)

    async def acquire(self) -> int:
        await self._sem.acquire()
        token = next(self._ids)
        self._held.add(token)
        return token

    def release(self, token: int) -> None:
        if token not in self._held:
            raise ValueError(f"token {token!r} is not held")
        self._held.remove(token)
        self._sem.release()

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[int]:
        token = await self.acquire()
        try:
            yield token
        finally:
            self.release(token)

    async def run(self, fn: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Any:
        async with self.slot():
            return await fn(*args, **kwargs)
