"""Per-message write serialization.

Reads fan out freely; writes touching the same message (draft, send,
archive) take that message's lock so they never interleave.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from contextlib import asynccontextmanager
from typing import AsyncIterator


class MessageLocks:
    def __init__(self):
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._users: Counter[tuple[str, str]] = Counter()

    @asynccontextmanager
    async def for_message(self, account_id: str, message_id: str) -> AsyncIterator[None]:
        """Hold the message's lock. It is forgotten once nobody holds or awaits it."""
        key = (account_id, message_id)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)
