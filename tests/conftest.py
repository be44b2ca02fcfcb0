"""Shared fixtures for planit tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

import planit.config as config_module
from planit.memory.chats import ChatStore
from planit.memory.database import DatabaseManager


@pytest.fixture(autouse=True)
def isolate_env(monkeypatch, tmp_path):
    """Prevent tests from reading real .env or touching real data."""
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "test_token")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test_key")
    monkeypatch.setenv("TELEGRAM_ALLOWED_USERS_RAW", "")
    monkeypatch.setenv("WEBHOOK_URL", "https://bot.example.com/webhook")
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.setattr(config_module, "_settings", None)


@pytest_asyncio.fixture
async def db(tmp_path):
    """Fresh database per test (temp file)."""
    manager = DatabaseManager(db_path=str(tmp_path / "test.db"))
    await manager.init()
    yield manager
    await manager.close()


@pytest_asyncio.fixture
async def chat_store(db):
    return ChatStore(db)


@pytest.fixture
def calendar():
    """CalendarClient stand-in with async API methods and a real-looking formatter."""
    client = MagicMock()
    client.timezone = "UTC"
    client.list_calendars = AsyncMock(return_value=[])
    client.list_events = AsyncMock(return_value=[])
    client.get_event = AsyncMock()
    client.create_event = AsyncMock()
    client.create_watch_channel = AsyncMock()
    client.delete_watch_channel = AsyncMock()
    client.format_event = MagicMock(side_effect=lambda event, now=None: f"<{event.get('summary')}>")
    return client
