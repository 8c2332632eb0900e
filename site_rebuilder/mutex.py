# site_rebuilder/mutex.py
"""
Per-key asynchronous mutex.

Calls sharing a key run strictly one after another in arrival order; different
keys never block each other. Each key maps to the tail future of its waiter
chain, and the entry disappears once the last holder releases.
"""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, TypeVar

from site_rebuilder.logger import logger

__all__ = ("KeyedMutex", "with_lock", "site_lock")

T = TypeVar("T")


class KeyedMutex:
    """FIFO mutual exclusion keyed by string, for use inside one event loop."""

    def __init__(self) -> None:
        self._tails: Dict[str, asyncio.Future[None]] = {}

    def locked(self, key: str) -> bool:
        return key in self._tails

    def __len__(self) -> int:
        return len(self._tails)

    async def with_lock(self, key: str, fn: Callable[[], Awaitable[T]]) -> T:
        """Run ``await fn()`` once every earlier holder of *key* has released."""
        loop = asyncio.get_running_loop()
        previous = self._tails.get(key)
        released: asyncio.Future[None] = loop.create_future()
        self._tails[key] = released

        try:
            if previous is not None and not previous.done():
                logger.debug("Waiting for lock %r", key)
                await asyncio.shield(previous)
            return await fn()
        finally:
            self._release(key, previous, released)

    def _release(
        self,
        key: str,
        previous: asyncio.Future[None] | None,
        released: asyncio.Future[None],
    ) -> None:
        # a cancelled waiter must not let its successor overtake the current holder
        if previous is not None and not previous.done():
            previous.add_done_callback(lambda _: self._finish(key, released))
        else:
            self._finish(key, released)

    def _finish(self, key: str, released: asyncio.Future[None]) -> None:
        if not released.done():
            released.set_result(None)
        if self._tails.get(key) is released:
            del self._tails[key]


site_lock = KeyedMutex()


async def with_lock(key: str, fn: Callable[[], Awaitable[T]]) -> T:
    """Module-level shortcut over the process-wide :data:`site_lock`."""
    return await site_lock.with_lock(key, fn)
