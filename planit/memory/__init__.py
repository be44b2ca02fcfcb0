"""Persistence: SQLite connection management and the chat store."""

from .chats import ChatStore
from .database import DatabaseManager

__all__ = ["ChatStore", "DatabaseManager"]
