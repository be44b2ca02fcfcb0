"""
Pending-reply registry.

Remembers, per conversation, that the next update is expected to be the
free-text answer to a prompt. Entries are one-shot: reviewing a conversation
always consumes its entry, whether or not the update matched it.
"""

import logging
import threading
from dataclasses import dataclass

from .commands import ResponseTo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingReply:
    update_id: int
    key: ResponseTo


class PendingReplyRegistry:
    """Thread-safe map of chat id → expected reply."""

    def __init__(self) -> None:
        self._entries: dict[int, PendingReply] = {}
        self._lock = threading.Lock()

    def register(self, chat_id: int, update_id: int, key: ResponseTo) -> None:
        """Expect update `update_id` to answer `key`. Overwrites any previous entry."""
        with self._lock:
            self._entries[chat_id] = PendingReply(update_id=update_id, key=key)
        logger.debug("Chat %d waits for update %d (%s)", chat_id, update_id, key)

    def lookup_and_clear(self, chat_id: int) -> PendingReply | None:
        with self._lock:
            return self._entries.pop(chat_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
