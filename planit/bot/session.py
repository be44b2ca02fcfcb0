"""
Per-conversation locks.

The update loop, scheduled jobs and the HTTP endpoints all read-modify-write
the same chat records. Each of them holds the conversation's lock for the
duration of one unit of work.
"""

import asyncio
import logging
import weakref

logger = logging.getLogger(__name__)


class SessionManager:
    """
    Per-chat asyncio locks.

    Locks are held weakly: one lives only while some caller references it,
    so chats that went quiet (or were deleted by /stop) leave nothing behind.
    """

    def __init__(self) -> None:
        self._locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def get_lock(self, chat_id: int) -> asyncio.Lock:
        lock = self._locks.get(chat_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[chat_id] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)
