"""
Shared helpers and gates for the command handlers.

Gates sit at the head of a chain and abort the context when the chat is not
in the state the command needs.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ...constants import (
    ERROR_MESSAGE,
    NOT_REGISTERED_MESSAGE,
    NOT_SUBSCRIBED_MESSAGE,
    PARSE_MODE_MARKDOWN_V2,
)
from ...exceptions import NotFoundError, StorageError
from ...models import Chat
from ..context import ConversationContext
from ..sink import MessageOptions

if TYPE_CHECKING:
    from ...memory.chats import ChatStore

logger = logging.getLogger(__name__)

# Event lines carry inline links; previews would render one card per event.
EVENT_OPTIONS = MessageOptions(parse_mode=PARSE_MODE_MARKDOWN_V2, disable_web_page_preview=True)
PLAIN_NO_PREVIEW = MessageOptions(disable_web_page_preview=True)


async def get_chat(ctx: ConversationContext, chat_store: "ChatStore") -> Chat | None:
    """
    Load the context's chat. On failure the context is aborted with a
    user-facing message and None is returned.
    """
    try:
        return await chat_store.get(ctx.chat_id)
    except NotFoundError:
        ctx.abort_with_message(NOT_REGISTERED_MESSAGE)
    except StorageError as e:
        logger.error("Failed to get chat %s: %s", ctx.chat_id, e)
        ctx.abort_with_message(ERROR_MESSAGE)
    return None


def make_gates(*, chat_store: "ChatStore"):
    """
    Factory that returns the gate handlers.

    Returns a dict of gate_name -> handler_function.
    """

    async def is_exists(ctx: ConversationContext) -> None:
        await get_chat(ctx, chat_store)

    async def is_registered(ctx: ConversationContext) -> None:
        chat = await get_chat(ctx, chat_store)
        if chat is not None and not chat.registered:
            ctx.abort_with_message(NOT_REGISTERED_MESSAGE)

    async def is_subscribed(ctx: ConversationContext) -> None:
        chat = await get_chat(ctx, chat_store)
        if chat is None:
            return
        if not chat.registered:
            ctx.abort_with_message(NOT_REGISTERED_MESSAGE)
        elif chat.calendar_id is None:
            ctx.abort_with_message(NOT_SUBSCRIBED_MESSAGE)

    return {
        "is_exists": is_exists,
        "is_registered": is_registered,
        "is_subscribed": is_subscribed,
    }
