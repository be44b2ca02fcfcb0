"""
Next-event tracking.

Each active chat remembers the next timed event starting within the hour
(next_event_id) and when the notification job should look at it again
(next_update_at). refresh() recomputes both from the calendar and saves them.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from .constants import (
    TRACKING_DEFAULT_INTERVAL_HOURS,
    TRACKING_LOOKAHEAD_HOURS,
    TRACKING_MAX_EVENTS,
)
from .models import Chat
from .utils.dates import parse_datetime, utc_now

if TYPE_CHECKING:
    from .google.calendar import CalendarClient
    from .memory.chats import ChatStore

logger = logging.getLogger(__name__)


class EventTracker:
    def __init__(self, chat_store: "ChatStore", calendar: "CalendarClient") -> None:
        self._chats = chat_store
        self._calendar = calendar

    async def refresh(self, chat: Chat, now: datetime | None = None) -> Chat:
        """
        Point `chat` at its next event and persist it.

        Events are listed from now to TRACKING_LOOKAHEAD_HOURS ahead. The
        earliest timed event that starts after now and before the default
        re-check time wins; without one the chat is re-checked after
        TRACKING_DEFAULT_INTERVAL_HOURS. All-day events are never tracked.
        Raises CalendarError or StorageError.
        """
        if chat.calendar_id is None or chat.token is None:
            raise ValueError(f"chat {chat.chat_id} has no calendar selected")

        now = now or utc_now()
        events = await self._calendar.list_events(
            chat.calendar_id,
            now,
            now + timedelta(hours=TRACKING_LOOKAHEAD_HOURS),
            TRACKING_MAX_EVENTS,
            chat.token,
        )

        next_at = now + timedelta(hours=TRACKING_DEFAULT_INTERVAL_HOURS)
        next_event_id = None
        for event in events:
            raw = (event.get("start") or {}).get("dateTime")
            if not raw:
                continue
            try:
                start = parse_datetime(raw, self._calendar.timezone)
            except ValueError:
                logger.warning("Skipping event %s with bad start %r", event.get("id"), raw)
                continue
            if now < start < next_at:
                next_at = start
                next_event_id = event.get("id")

        chat.next_event_id = next_event_id
        chat.next_update_at = int(next_at.timestamp())
        await self._chats.update(chat)
        logger.debug(
            "Chat %d tracking %s, next check at %d",
            chat.chat_id, next_event_id, chat.next_update_at,
        )
        return chat
