import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class ConversationLocks:
    """One asyncio.Lock per (user_id, bot_id) conversation.

    Turns of the same conversation run one after another, so each turn sees
    the previous turn's messages. Different conversations never wait on each
    other. A lock is dropped once nobody holds or waits for it.
    """

    def __init__(self) -> None:
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._users: dict[tuple[str, str], int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, user_id: str, bot_id: str) -> AsyncIterator[None]:
        key = (user_id, bot_id)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]
