from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class SessionLocks:
    """Per-session asyncio locks.

    Transitions on the same session id queue up behind each other; different
    sessions never share a lock. Locks are created on demand and dropped when
    nobody holds or waits on them. Everything here runs on one event loop, so
    the bookkeeping needs no lock of its own.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, session_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        self._users[session_id] = self._users.get(session_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._users[session_id] - 1
            if remaining:
                self._users[session_id] = remaining
            else:
                del self._users[session_id]
                del self._locks[session_id]

    def is_busy(self, session_id: str) -> bool:
        """True while a transition holds or waits on this session."""

        return session_id in self._users
