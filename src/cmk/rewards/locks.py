"""Per-account critical sections for read-check-write mutations.

Within one process, every mutation of an account runs while holding that
account's lock. Several keys are always taken in sorted order, so two callers
locking overlapping key sets cannot deadlock. Across processes the store's
SELECT ... FOR UPDATE provides the same guarantee at the row level.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager

# Held while the population size is read and a new account is inserted
REGISTRATION_KEY = "__registration__"


class AccountLocks:
    """asyncio locks keyed by account id, kept only while someone holds or awaits them."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def is_locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def _acquire(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    @asynccontextmanager
    async def hold(self, *keys: str) -> AsyncIterator[None]:
        """Acquire the locks for ``keys`` (deduplicated, sorted) for the block."""
        async with AsyncExitStack() as stack:
            for key in sorted(set(keys)):
                await stack.enter_async_context(self._acquire(key))
            yield
