"""
ChatStore: CRUD for conversation records.

A chat is created by /start, becomes registered once the Google OAuth
callback stores its token, and is active once a calendar is selected.
"""

import logging
import sqlite3

from ..exceptions import DuplicateKeyError, NotFoundError, StorageError
from ..models import Chat
from .database import DatabaseManager

logger = logging.getLogger(__name__)

_COLUMNS = (
    "chat_id, registered, token, calendar_id, channel_id, channel_resource_id, "
    "channel_expiration, next_event_id, next_update_at, created_at, updated_at"
)


def _row_to_chat(row) -> Chat:
    data = dict(row)
    data["registered"] = bool(data["registered"])
    return Chat(**data)


class ChatStore:
    """Persistent store for chats."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def get(self, chat_id: int) -> Chat:
        """Return the chat or raise NotFoundError."""
        try:
            async with self._db.get_connection() as conn:
                cursor = await conn.execute(
                    f"SELECT {_COLUMNS} FROM chats WHERE chat_id = ?", (chat_id,),
                )
                row = await cursor.fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"failed to get chat {chat_id}: {e}") from e
        if row is None:
            raise NotFoundError(f"chat {chat_id} not found")
        return _row_to_chat(row)

    async def create(self, chat_id: int) -> Chat:
        """Insert an unregistered chat. Raises DuplicateKeyError if it exists."""
        try:
            async with self._db.get_connection() as conn:
                await conn.execute(
                    "INSERT INTO chats (chat_id, registered) VALUES (?, 0)", (chat_id,),
                )
                await conn.commit()
        except sqlite3.IntegrityError as e:
            raise DuplicateKeyError(f"chat {chat_id} already exists") from e
        except sqlite3.Error as e:
            raise StorageError(f"failed to create chat {chat_id}: {e}") from e
        logger.info("Created chat %d", chat_id)
        return await self.get(chat_id)

    async def update(self, chat: Chat) -> None:
        """Save every field of `chat`."""
        try:
            async with self._db.get_connection() as conn:
                cursor = await conn.execute(
                    """
                    UPDATE chats SET
                        registered = ?,
                        token = ?,
                        calendar_id = ?,
                        channel_id = ?,
                        channel_resource_id = ?,
                        channel_expiration = ?,
                        next_event_id = ?,
                        next_update_at = ?,
                        updated_at = datetime('now')
                    WHERE chat_id = ?
                    """,
                    (
                        int(chat.registered),
                        chat.token,
                        chat.calendar_id,
                        chat.channel_id,
                        chat.channel_resource_id,
                        chat.channel_expiration,
                        chat.next_event_id,
                        chat.next_update_at,
                        chat.chat_id,
                    ),
                )
                await conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"failed to update chat {chat.chat_id}: {e}") from e
        if cursor.rowcount == 0:
            raise NotFoundError(f"chat {chat.chat_id} not found")

    async def delete(self, chat_id: int) -> None:
        try:
            async with self._db.get_connection() as conn:
                await conn.execute("DELETE FROM chats WHERE chat_id = ?", (chat_id,))
                await conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"failed to delete chat {chat_id}: {e}") from e
        logger.info("Deleted chat %d", chat_id)

    async def list_active(self) -> list[Chat]:
        """Registered chats with a calendar selected."""
        try:
            async with self._db.get_connection() as conn:
                cursor = await conn.execute(
                    f"SELECT {_COLUMNS} FROM chats "
                    "WHERE registered = 1 AND calendar_id IS NOT NULL ORDER BY chat_id",
                )
                rows = await cursor.fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"failed to list active chats: {e}") from e
        return [_row_to_chat(r) for r in rows]
