"""Per-session mutual exclusion for the chat orchestrator.

Two messages sent concurrently to the same session would otherwise both
read the history before either writes its turns, so neither prompt sees the
other exchange and the persisted order depends on scheduling.  The
:class:`SessionLockRegistry` hands out one ``asyncio.Lock`` per session id
so a process can serialise turns per session while still running
different sessions in parallel.

The registry is in-memory only.  It does not coordinate multiple worker
processes; that would need an optimistic write against the store.  A lock
taken through :meth:`SessionLockRegistry.hold` is dropped as soon as its
last holder or waiter leaves, so idle sessions cost nothing.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator

import structlog

from ragchat.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


class SessionLockRegistry:
    """Lazily created ``asyncio.Lock`` objects keyed by session id."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def get(self, session_id: str) -> asyncio.Lock:
        """Return the lock for *session_id*, creating it on first use."""
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    @contextlib.asynccontextmanager
    async def hold(self, session_id: str) -> AsyncIterator[None]:
        """Acquire the session's lock for the duration of the ``async with`` block."""
        lock = self.get(session_id)
        self._users[session_id] = self._users.get(session_id, 0) + 1
        try:
            if lock.locked():
                _logger.debug("session_lock_wait", session_id=session_id)
            async with lock:
                yield
        finally:
            remaining = self._users[session_id] - 1
            if remaining:
                self._users[session_id] = remaining
            else:
                del self._users[session_id]
                if self._locks.get(session_id) is lock:
                    del self._locks[session_id]

    def discard(self, session_id: str) -> None:
        """Forget the lock for a deleted session (no-op when it is in use or absent)."""
        lock = self._locks.get(session_id)
        if lock is not None and not lock.locked() and session_id not in self._users:
            del self._locks[session_id]

    def __len__(self) -> int:
        return len(self._locks)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._locks
