"""
Outbound message construction and delivery.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, TYPE_CHECKING

from telegram import LinkPreviewOptions

if TYPE_CHECKING:
    from telegram import Bot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MessageOptions:
    parse_mode: str | None = None
    disable_web_page_preview: bool = False


@dataclass(frozen=True)
class OutboundMessage:
    chat_id: int
    text: str
    parse_mode: str | None = None
    disable_web_page_preview: bool = False


def create_message(
    chat_id: int, text: str, options: MessageOptions | None = None
) -> OutboundMessage:
    if options is None:
        return OutboundMessage(chat_id=chat_id, text=text)
    return OutboundMessage(
        chat_id=chat_id,
        text=text,
        parse_mode=options.parse_mode,
        disable_web_page_preview=options.disable_web_page_preview,
    )


class MessageSink:
    """Delivers queued messages through the Telegram Bot API, in order."""

    def __init__(self, bot: "Bot") -> None:
        self._bot = bot

    async def send(self, message: OutboundMessage) -> bool:
        """Send one message. Failures are logged, never raised."""
        kwargs = {}
        if message.parse_mode:
            kwargs["parse_mode"] = message.parse_mode
        if message.disable_web_page_preview:
            kwargs["link_preview_options"] = LinkPreviewOptions(is_disabled=True)
        try:
            await self._bot.send_message(chat_id=message.chat_id, text=message.text, **kwargs)
            return True
        except Exception as e:
            logger.error("Failed to send message to chat %d: %s", message.chat_id, e)
            return False

    async def send_messages(self, messages: Iterable[OutboundMessage]) -> int:
        """Send messages one by one; returns how many were delivered."""
        sent = 0
        for message in messages:
            if await self.send(message):
                sent += 1
        return sent
