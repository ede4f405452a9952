"""
Per-entity locks.

Each Listing and each Lease is independently lockable: operations on
different entities never wait on each other, operations on the same entity
run one at a time. The lock only serializes writers inside this process;
the repositories still version-check every write, which is what protects
against writers in other processes.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class EntityLocks:
    """Registry handing out one asyncio.Lock per (kind, id)."""

    def __init__(self) -> None:
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._users: dict[tuple[str, str], int] = {}

    @asynccontextmanager
    async def hold(self, kind: str, entity_id: str) -> AsyncIterator[None]:
        """Hold the lock for one entity for the duration of the block."""
        key = (kind, entity_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                # Nobody waiting; drop it so the registry stays bounded
                del self._users[key]
                del self._locks[key]

    def is_locked(self, kind: str, entity_id: str) -> bool:
        lock = self._locks.get((kind, entity_id))
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
