"""
Core command handlers: /start, /stop and /help.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ...constants import (
    ALREADY_REGISTERED_MESSAGE,
    AUTHORIZE_MESSAGE,
    ERROR_MESSAGE,
    GREETING_MESSAGE,
    HELP_MESSAGE,
    UNSUBSCRIBED_BOT_MESSAGE,
)
from ...exceptions import CalendarError, DuplicateKeyError, NotFoundError, StorageError
from ..context import ConversationContext
from .base import PLAIN_NO_PREVIEW, get_chat

if TYPE_CHECKING:
    from ...google.auth import OAuthClient
    from ...google.calendar import CalendarClient
    from ...memory.chats import ChatStore

logger = logging.getLogger(__name__)


def make_core_handlers(
    *,
    chat_store: "ChatStore",
    oauth: "OAuthClient",
    calendar: "CalendarClient",
):
    """
    Factory that returns core command handlers.

    Returns a dict of handler_name -> handler_function.
    """

    def _send_auth_link(ctx: ConversationContext) -> None:
        url = oauth.auth_url(state=str(ctx.chat_id))
        ctx.add_message_with_options(AUTHORIZE_MESSAGE.format(url=url), PLAIN_NO_PREVIEW)

    async def start(ctx: ConversationContext) -> None:
        """/start: create the chat and send the Google authorisation link."""
        try:
            chat = await chat_store.create(ctx.chat_id)
        except DuplicateKeyError:
            try:
                chat = await chat_store.get(ctx.chat_id)
            except (NotFoundError, StorageError) as e:
                logger.error("Failed to load chat %d after duplicate: %s", ctx.chat_id, e)
                ctx.abort_with_message(ERROR_MESSAGE)
                return
            if chat.registered:
                ctx.abort_with_message(ALREADY_REGISTERED_MESSAGE)
                return
            # Started earlier but never finished the OAuth flow
            _send_auth_link(ctx)
            return
        except StorageError as e:
            logger.error("Failed to create chat %d: %s", ctx.chat_id, e)
            ctx.abort_with_message(ERROR_MESSAGE)
            return

        if chat.registered:
            ctx.abort_with_message(ALREADY_REGISTERED_MESSAGE)
            return
        ctx.add_message(GREETING_MESSAGE)
        _send_auth_link(ctx)

    async def stop(ctx: ConversationContext) -> None:
        """/stop: stop the watch channel and forget the chat."""
        chat = await get_chat(ctx, chat_store)
        if chat is None:
            return

        if chat.channel_id and chat.token:
            try:
                await calendar.delete_watch_channel(
                    chat.channel_id, chat.channel_resource_id or "", chat.token,
                )
            except CalendarError as e:
                logger.warning("Failed to stop channel for chat %d: %s", chat.chat_id, e)

        try:
            await chat_store.delete(ctx.chat_id)
        except StorageError as e:
            logger.error("Failed to delete chat %d: %s", ctx.chat_id, e)
            ctx.abort_with_message(ERROR_MESSAGE)
            return
        ctx.add_message(UNSUBSCRIBED_BOT_MESSAGE)

    async def help(ctx: ConversationContext) -> None:
        ctx.add_message(HELP_MESSAGE)

    return {
        "start": start,
        "stop": stop,
        "help": help,
    }
