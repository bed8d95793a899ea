"""Per-salon-day serialization of booking writes.

The conflict check and the write that follows it must not interleave with another
request for the same salon day, otherwise both can pass the check and double-book.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, Dict, List, Tuple

LockKey = Tuple[str, date]


class SlotLockRegistry:
    """Hands out one :class:`asyncio.Lock` per (salon, day).

    Locks are created on demand and dropped once nobody holds or waits on them.
    This serializes requests within one process; multiple workers need the
    database to arbitrate as well.
    """

    def __init__(self) -> None:
        self._locks: Dict[LockKey, asyncio.Lock] = {}
        self._users: Dict[LockKey, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, salon_id: str, *days: date) -> AsyncIterator[None]:
        """Hold the locks for ``salon_id`` on every day in ``days``.

        Keys are acquired in sorted order so two requests touching the same pair of
        days (a reschedule across days) cannot deadlock.
        """
        keys = sorted({(salon_id, day) for day in days})
        for key in keys:
            self._locks.setdefault(key, asyncio.Lock())
            self._users[key] = self._users.get(key, 0) + 1

        acquired: List[asyncio.Lock] = []
        try:
            for key in keys:
                lock = self._locks[key]
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for key in keys:
                self._users[key] -= 1
                if self._users[key] == 0:
                    del self._users[key]
                    del self._locks[key]
