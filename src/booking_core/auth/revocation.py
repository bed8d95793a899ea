"""Revoked-token bookkeeping (logout)."""

from __future__ import annotations

import asyncio
import time
from typing import Dict, Optional, Protocol


class TokenRevocationStore(Protocol):
    async def revoke(self, jti: str, expires_at: Optional[int] = None) -> None: ...

    async def is_revoked(self, jti: str) -> bool: ...


class InMemoryTokenRevocationStore:
    """Process-local revocation list.

    Entries are dropped once the token they refer to would have expired anyway.
    """

    def __init__(self) -> None:
        self._revoked: Dict[str, Optional[int]] = {}
        self._lock = asyncio.Lock()

    async def revoke(self, jti: str, expires_at: Optional[int] = None) -> None:
        async with self._lock:
            self._revoked[jti] = expires_at
            self._purge(int(time.time()))

    async def is_revoked(self, jti: str) -> bool:
        async with self._lock:
            if jti not in self._revoked:
                return False
            expires_at = self._revoked[jti]
            if expires_at is not None and expires_at < int(time.time()):
                del self._revoked[jti]
                return False
            return True

    def _purge(self, now: int) -> None:
        expired = [jti for jti, exp in self._revoked.items() if exp is not None and exp < now]
        for jti in expired:
            del self._revoked[jti]

    def __len__(self) -> int:
        return len(self._revoked)
