"""
Per-key asyncio locks.

A command that mutates a keyed resource (a budget's remaining amount, an
invitation's redemption) holds the lock for that key from its first read to
its commit, so writers for the same key inside one process run one at a time.
Cross-process safety comes from the guarded UPDATE statements in the services.
"""

import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Hashable

from procurement.core.logging import logger


class KeyedLocks:
    """Registry of asyncio locks, one per key, created on first use."""

    def __init__(self, name: str):
        self.name = name
        self._locks: Dict[Hashable, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._waiters: Dict[Hashable, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks[key]
        self._waiters[key] += 1
        try:
            if lock.locked():
                logger.debug(f"Waiting for {self.name} lock on {key}")
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            # Drop idle locks
            if self._waiters[key] == 0:
                self._waiters.pop(key, None)
                self._locks.pop(key, None)


budget_locks = KeyedLocks("budget")
invitation_locks = KeyedLocks("invitation")
