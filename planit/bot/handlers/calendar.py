"""
Google Calendar handlers.

Contains handlers for choosing the watched calendar, listing events and
creating events from free text (/new, then the reply to it).
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from ...constants import (
    ASK_TASK_MESSAGE,
    CALENDAR_SET_MESSAGE,
    EMPTY_TASK_MESSAGE,
    ERROR_MESSAGE,
    EVENT_CREATED_PREFIX,
    EVENTS_HEADER,
    EVENTS_LOOKAHEAD_WEEKS,
    EVENTS_LOOKBACK_WEEKS,
    EVENTS_MAX_RESULTS,
    NEW_EVENT_DURATION_MINUTES,
    NO_EVENTS_MESSAGE,
    SELECT_CALENDAR_HINT,
    SELECT_CALENDAR_MESSAGE,
    UNSUBSCRIBED_CALENDAR_MESSAGE,
)
from ...exceptions import (
    CalendarError,
    ServiceUnavailableError,
    StorageError,
    TaskParseError,
)
from ...utils.dates import utc_now
from ..context import ConversationContext
from .base import EVENT_OPTIONS, PLAIN_NO_PREVIEW, get_chat

if TYPE_CHECKING:
    from ...agenda import EventTracker
    from ...ai.task_parser import TaskParser
    from ...google.calendar import CalendarClient
    from ...memory.chats import ChatStore
    from ...models import Chat

logger = logging.getLogger(__name__)


def make_calendar_handlers(
    *,
    chat_store: "ChatStore",
    calendar: "CalendarClient",
    tracker: "EventTracker",
    task_parser: "TaskParser",
):
    """
    Factory that returns Google Calendar handlers.

    Returns a dict of handler_name -> handler_function.
    """

    async def _stop_channel(chat: "Chat") -> None:
        if not chat.channel_id or not chat.token:
            return
        await calendar.delete_watch_channel(
            chat.channel_id, chat.channel_resource_id or "", chat.token,
        )

    async def _refresh_tracking(chat: "Chat") -> None:
        try:
            await tracker.refresh(chat)
        except (CalendarError, StorageError) as e:
            # The notification job retries once next_update_at has passed
            logger.warning("Failed to refresh tracking for chat %d: %s", chat.chat_id, e)

    async def watch(ctx: ConversationContext) -> None:
        """/watch lists calendars; /watch <name> <id> subscribes to one."""
        chat = await get_chat(ctx, chat_store)
        if chat is None:
            return

        args = ctx.args.split()
        if not args:
            try:
                calendars = await calendar.list_calendars(chat.token)
            except CalendarError as e:
                logger.error("Failed to list calendars for chat %d: %s", chat.chat_id, e)
                ctx.abort_with_message(ERROR_MESSAGE)
                return
            ctx.add_message(SELECT_CALENDAR_MESSAGE)
            for cal in calendars:
                ctx.add_message_with_options(
                    f"/watch {cal.get('summary', '')} {cal['id']}", PLAIN_NO_PREVIEW,
                )
            ctx.add_message(SELECT_CALENDAR_HINT)
            return

        # Calendar names may contain spaces; ids never do
        calendar_id = args[-1]

        # Create the new channel before stopping the old one
        try:
            channel = await calendar.create_watch_channel(calendar_id, chat.chat_id, chat.token)
        except CalendarError as e:
            logger.error("Failed to create watch channel for chat %d: %s", chat.chat_id, e)
            ctx.abort_with_message(ERROR_MESSAGE)
            return

        try:
            await _stop_channel(chat)
        except CalendarError as e:
            logger.warning("Failed to stop old channel for chat %d: %s", chat.chat_id, e)
        chat.clear_subscription()

        chat.calendar_id = calendar_id
        chat.channel_id = channel.id
        chat.channel_resource_id = channel.resource_id
        chat.channel_expiration = channel.expiration
        try:
            await chat_store.update(chat)
        except StorageError as e:
            logger.error("Failed to save calendar for chat %d: %s", chat.chat_id, e)
            ctx.abort_with_message(ERROR_MESSAGE)
            return

        await _refresh_tracking(chat)
        logger.info("Chat %d now watches %s", chat.chat_id, calendar_id)
        ctx.add_message(CALENDAR_SET_MESSAGE)

    async def stop_watch(ctx: ConversationContext) -> None:
        """/stopwatch: stop the channel and forget the calendar."""
        chat = await get_chat(ctx, chat_store)
        if chat is None:
            return
        try:
            await _stop_channel(chat)
        except CalendarError as e:
            logger.error("Failed to stop channel for chat %d: %s", chat.chat_id, e)
            ctx.abort_with_message(ERROR_MESSAGE)
            return

        chat.clear_subscription()
        try:
            await chat_store.update(chat)
        except StorageError as e:
            logger.error("Failed to update chat %d: %s", chat.chat_id, e)
            ctx.abort_with_message(ERROR_MESSAGE)
            return
        ctx.add_message(UNSUBSCRIBED_CALENDAR_MESSAGE)

    async def events(ctx: ConversationContext) -> None:
        """/events: from two weeks back to a week ahead."""
        chat = await get_chat(ctx, chat_store)
        if chat is None:
            return
        now = utc_now()
        try:
            items = await calendar.list_events(
                chat.calendar_id,
                now - timedelta(weeks=EVENTS_LOOKBACK_WEEKS),
                now + timedelta(weeks=EVENTS_LOOKAHEAD_WEEKS),
                EVENTS_MAX_RESULTS,
                chat.token,
            )
        except CalendarError as e:
            logger.error("Failed to list events for chat %d: %s", chat.chat_id, e)
            ctx.abort_with_message(ERROR_MESSAGE)
            return

        if not items:
            ctx.abort_with_message(NO_EVENTS_MESSAGE)
            return
        ctx.add_message(EVENTS_HEADER)
        for event in items:
            ctx.add_message_with_options(calendar.format_event(event, now), EVENT_OPTIONS)

    async def new_event(ctx: ConversationContext) -> None:
        ctx.add_message(ASK_TASK_MESSAGE)
        ctx.register_wait_for_input()

    async def new_event_response(ctx: ConversationContext) -> None:
        """Reply to /new: free text → a 30-minute event."""
        chat = await get_chat(ctx, chat_store)
        if chat is None:
            return

        text = ctx.text.strip()
        if not text:
            ctx.abort_with_message(EMPTY_TASK_MESSAGE)
            return

        today = datetime.now(ZoneInfo(calendar.timezone))
        try:
            task = await task_parser.parse(text, today)
        except TaskParseError as e:
            logger.info("Could not parse task for chat %d: %s", chat.chat_id, e)
            ctx.abort_with_message(EMPTY_TASK_MESSAGE)
            return
        except ServiceUnavailableError as e:
            logger.error("Task parser unavailable for chat %d: %s", chat.chat_id, e)
            ctx.abort_with_message(ERROR_MESSAGE)
            return

        start = task_parser.start_of(task)
        end = start + timedelta(minutes=NEW_EVENT_DURATION_MINUTES)
        try:
            created = await calendar.create_event(
                chat.calendar_id, task.title, start, end, chat.token, description=task.notes,
            )
        except CalendarError as e:
            logger.error("Failed to create event for chat %d: %s", chat.chat_id, e)
            ctx.abort_with_message(ERROR_MESSAGE)
            return

        ctx.add_message_with_options(
            EVENT_CREATED_PREFIX + calendar.format_event(created), EVENT_OPTIONS,
        )
        await _refresh_tracking(chat)

    return {
        "watch": watch,
        "stop_watch": stop_watch,
        "events": events,
        "new_event": new_event,
        "new_event_response": new_event_response,
    }
