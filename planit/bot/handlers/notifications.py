"""
Scheduled handlers: upcoming-event notifications and the morning agenda.

These run from the scheduler adapter with a context that has no chat and no
update, so every message is built for its own chat and queued with
add_raw_message. One chat failing never stops the others.
"""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from ...constants import (
    AGENDA_HEADER,
    CHANNEL_RENEW_FAILED_MESSAGE,
    EVENTS_MAX_RESULTS,
    NO_AGENDA_MESSAGE,
    TASK_NOTIFICATION_PREFIX,
    TRACKING_DEFAULT_INTERVAL_HOURS,
)
from ...exceptions import CalendarError, NotFoundError, StorageError
from ...utils.dates import utc_now
from ..context import ConversationContext
from ..sink import create_message
from .base import EVENT_OPTIONS

if TYPE_CHECKING:
    from ...agenda import EventTracker
    from ...google.calendar import CalendarClient
    from ...memory.chats import ChatStore
    from ...models import Chat
    from ..session import SessionManager

logger = logging.getLogger(__name__)


def make_scheduled_handlers(
    *,
    chat_store: "ChatStore",
    calendar: "CalendarClient",
    tracker: "EventTracker",
    session_manager: "SessionManager",
):
    """
    Factory that returns the scheduled handlers.

    Returns a dict of job_name -> handler_function.
    """

    async def _renew_channel(ctx: ConversationContext, chat: "Chat") -> None:
        try:
            channel = await calendar.create_watch_channel(
                chat.calendar_id, chat.chat_id, chat.token,
            )
        except CalendarError as e:
            logger.error("Failed to renew channel for chat %d: %s", chat.chat_id, e)
            ctx.add_raw_message(create_message(chat.chat_id, CHANNEL_RENEW_FAILED_MESSAGE))
            return

        if chat.channel_id:
            try:
                await calendar.delete_watch_channel(
                    chat.channel_id, chat.channel_resource_id or "", chat.token,
                )
            except CalendarError as e:
                # Expired channels are usually gone already
                logger.warning("Failed to stop old channel for chat %d: %s", chat.chat_id, e)

        chat.channel_id = channel.id
        chat.channel_resource_id = channel.resource_id
        chat.channel_expiration = channel.expiration
        try:
            await chat_store.update(chat)
        except StorageError as e:
            logger.error("Failed to save renewed channel for chat %d: %s", chat.chat_id, e)
            ctx.add_raw_message(create_message(chat.chat_id, CHANNEL_RENEW_FAILED_MESSAGE))
            return
        logger.info("Renewed watch channel for chat %d", chat.chat_id)

    async def _notify_chat(ctx: ConversationContext, chat_id: int, now: datetime) -> None:
        try:
            chat = await chat_store.get(chat_id)
        except NotFoundError:
            return
        if not chat.is_active:
            return
        now_s = int(now.timestamp())
        if chat.next_update_at is not None and chat.next_update_at > now_s:
            return

        if chat.next_event_id is not None:
            try:
                event = await calendar.get_event(chat.calendar_id, chat.next_event_id, chat.token)
            except CalendarError as e:
                logger.warning(
                    "Failed to get event %s for chat %d: %s", chat.next_event_id, chat_id, e,
                )
                event = None
            # Mark the event announced before queueing the reminder
            chat.next_event_id = None
            chat.next_update_at = int(
                (now + timedelta(hours=TRACKING_DEFAULT_INTERVAL_HOURS)).timestamp()
            )
            await chat_store.update(chat)

            if event is not None and event.get("status") != "cancelled":
                ctx.add_raw_message(create_message(
                    chat_id,
                    TASK_NOTIFICATION_PREFIX + calendar.format_event(event, now),
                    EVENT_OPTIONS,
                ))

        await tracker.refresh(chat, now)

        if chat.channel_expiration is not None and chat.channel_expiration < now_s * 1000:
            await _renew_channel(ctx, chat)

    async def notifications(ctx: ConversationContext) -> None:
        """Notify every active chat whose tracked event is due."""
        try:
            chats = await chat_store.list_active()
        except StorageError as e:
            logger.error("Failed to list active chats: %s", e)
            return

        now = utc_now()
        now_s = int(now.timestamp())
        due = [c.chat_id for c in chats if c.next_update_at is None or c.next_update_at <= now_s]
        if due:
            logger.debug("Notification run: %d of %d chat(s) due", len(due), len(chats))
        for chat_id in due:
            try:
                # Re-read under the lock; a command may have changed the chat meanwhile
                async with session_manager.get_lock(chat_id):
                    await _notify_chat(ctx, chat_id, now)
            except Exception:
                logger.exception("Notification failed for chat %d", chat_id)

    async def morning_agenda(ctx: ConversationContext) -> None:
        """Send each active chat today's events."""
        try:
            chats = await chat_store.list_active()
        except StorageError as e:
            logger.error("Failed to list active chats: %s", e)
            return

        tz = ZoneInfo(calendar.timezone)
        today = datetime.now(tz).date()
        start = datetime.combine(today, time.min, tzinfo=tz)
        end = start + timedelta(days=1)

        for chat in chats:
            try:
                items = await calendar.list_events(
                    chat.calendar_id, start, end, EVENTS_MAX_RESULTS, chat.token,
                )
            except CalendarError as e:
                logger.error("Failed to get agenda for chat %d: %s", chat.chat_id, e)
                continue

            if not items:
                ctx.add_raw_message(create_message(chat.chat_id, NO_AGENDA_MESSAGE))
                continue
            ctx.add_raw_message(create_message(chat.chat_id, AGENDA_HEADER))
            for event in items:
                ctx.add_raw_message(create_message(
                    chat.chat_id, calendar.format_event(event), EVENT_OPTIONS,
                ))
        logger.info("Morning agenda sent to %d chat(s)", len(chats))

    return {
        "notifications": notifications,
        "morning_agenda": morning_agenda,
    }
