"""
Per-user bounded message history.

Each sender gets a ring buffer of their most recent texts, used to give the
classifier a pattern to judge rather than a single message. Buffers live only
in process memory and are lost on restart.

Concurrency: every user key has its own ``asyncio.Lock``. Callers that read
and then write a user's history (fetch prior messages, append the current
one) must run the whole exchange inside ``async with user_lock(user_id)``;
different users never contend. A user with a holder or a waiter on that lock
keeps both the lock and the history through pruning.
"""

from __future__ import annotations

import asyncio
from collections import deque
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import AsyncContextManager, AsyncIterator, Deque, Dict, List, Protocol

from supportguard.datatypes.moderation_datatypes import UserMessageRecord
from supportguard.util.logger import get_logger

logger = get_logger("history_store")

DEFAULT_CAPACITY = 20
DEFAULT_RECENT_LIMIT = 10


class HistorySource(Protocol):
    """What the moderation engine needs from a history backend."""

    def user_lock(self, user_id: int) -> AsyncContextManager[None]: ...

    def recent(self, user_id: int, limit: int = DEFAULT_RECENT_LIMIT) -> List[str]: ...

    def record(self, user_id: int, content: str, now: datetime | None = None) -> None: ...


class HistoryStore:
    """In-memory ring buffers of recent message texts, keyed by user id.

    Args:
        capacity: Maximum records kept per user; the oldest are evicted first.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._buffers: Dict[int, Deque[UserMessageRecord]] = {}
        self._locks: Dict[int, asyncio.Lock] = {}
        # holders plus waiters per user
        self._active: Dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._buffers)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._buffers

    @asynccontextmanager
    async def user_lock(self, user_id: int) -> AsyncIterator[None]:
        """Hold ``user_id``'s lock for the duration of the ``async with`` block.

        The user counts as active from entry, including while waiting for the
        lock, until release. Active users are never pruned and keep their lock
        through ``forget``.
        """
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        self._active[user_id] = self._active.get(user_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._active[user_id] - 1
            if remaining:
                self._active[user_id] = remaining
            else:
                del self._active[user_id]
                # forgotten while active
                if user_id not in self._buffers:
                    self._locks.pop(user_id, None)

    def record(self, user_id: int, content: str, now: datetime | None = None) -> None:
        """Append ``content`` to the user's buffer, evicting the oldest beyond capacity."""
        buffer = self._buffers.get(user_id)
        if buffer is None:
            buffer = self._buffers[user_id] = deque(maxlen=self.capacity)
        buffer.append(UserMessageRecord(content=content, timestamp=now or datetime.now(timezone.utc)))

    def recent(self, user_id: int, limit: int = DEFAULT_RECENT_LIMIT) -> List[str]:
        """Return up to ``limit`` most recent contents for ``user_id``, oldest first.

        Unknown users and non-positive limits yield an empty list.
        """
        buffer = self._buffers.get(user_id)
        if not buffer or limit <= 0:
            return []
        return [record.content for record in list(buffer)[-limit:]]

    def records(self, user_id: int) -> List[UserMessageRecord]:
        """Return a copy of every stored record for ``user_id``, oldest first."""
        return list(self._buffers.get(user_id, ()))

    def is_active(self, user_id: int) -> bool:
        """True while some caller holds or waits for ``user_id``'s lock."""
        return user_id in self._active

    def forget(self, user_id: int) -> None:
        """Drop a user's history, and their lock unless the user is active."""
        self._buffers.pop(user_id, None)
        if user_id not in self._active:
            self._locks.pop(user_id, None)

    def prune_idle(self, max_idle: timedelta, now: datetime | None = None) -> int:
        """Drop users whose newest record is older than ``max_idle``.

        Active users are skipped, including those only waiting for their lock.

        Returns:
            Number of users removed.
        """
        cutoff = (now or datetime.now(timezone.utc)) - max_idle
        stale = [
            user_id
            for user_id, buffer in self._buffers.items()
            if (not buffer or buffer[-1].timestamp < cutoff) and user_id not in self._active
        ]
        for user_id in stale:
            self.forget(user_id)

        if stale:
            logger.info("[HISTORY] Pruned %d idle user(s), %d remain", len(stale), len(self._buffers))
        return len(stale)
