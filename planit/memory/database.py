"""
SQLite database manager for planit.

Initialises the chats schema. Uses WAL mode for concurrent read safety with a
single shared aiosqlite connection.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

import aiosqlite

from ..config import settings

logger = logging.getLogger(__name__)


_DDL = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=NORMAL;

CREATE TABLE IF NOT EXISTS chats (
    chat_id             INTEGER PRIMARY KEY,
    registered          INTEGER NOT NULL DEFAULT 0,
    token               TEXT,
    calendar_id         TEXT,
    channel_id          TEXT,
    channel_resource_id TEXT,
    channel_expiration  INTEGER,
    next_event_id       TEXT,
    next_update_at      INTEGER,
    created_at          TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at          TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_chats_active ON chats(registered, calendar_id);
"""


class DatabaseManager:
    """Manages the SQLite connection and schema for planit."""

    def __init__(self, db_path: str | None = None) -> None:
        self.db_path = db_path or settings.db_path
        self._conn: aiosqlite.Connection | None = None

    async def init(self) -> None:
        """Open connection, run DDL."""
        os.makedirs(os.path.dirname(self.db_path) or ".", exist_ok=True)

        self._conn = await aiosqlite.connect(self.db_path)
        self._conn.row_factory = aiosqlite.Row

        await self._conn.executescript(_DDL)
        await self._conn.commit()
        logger.info("Database initialised: %s", self.db_path)

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    @asynccontextmanager
    async def get_connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield the shared connection. Callers must not close it."""
        if self._conn is None:
            raise RuntimeError("DatabaseManager not initialised; call init() first")
        yield self._conn
