"""
Inbound update model.

The router and handlers work on IncomingUpdate rather than on the raw
python-telegram-bot Update, so the dispatch engine can be driven from tests
or from any other transport.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from telegram import Update


def split_command(text: str | None) -> tuple[str | None, str]:
    """
    Split "/cmd@botname some args" into ("cmd", "some args").
    Returns (None, "") when the text is not a command.
    """
    if not text or not text.startswith("/"):
        return None, ""
    head, _, rest = text.partition(" ")
    token = head[1:].split("@", 1)[0].lower()
    if not token:
        return None, ""
    return token, rest.strip()


@dataclass(frozen=True)
class IncomingUpdate:
    update_id: int
    chat_id: int
    text: str = ""
    command: str | None = None
    args: str = ""
    sender: str | None = None
    sender_id: int | None = None

    @classmethod
    def from_text(
        cls,
        update_id: int,
        chat_id: int,
        text: str,
        sender: str | None = None,
        sender_id: int | None = None,
    ) -> "IncomingUpdate":
        command, args = split_command(text)
        return cls(
            update_id=update_id,
            chat_id=chat_id,
            text=text,
            command=command,
            args=args,
            sender=sender,
            sender_id=sender_id,
        )

    @classmethod
    def from_telegram(cls, update: "Update") -> "IncomingUpdate | None":
        """Build from a PTB Update. Returns None for updates without a message."""
        message = update.message
        if message is None:
            return None
        user = message.from_user
        return cls.from_text(
            update_id=update.update_id,
            chat_id=message.chat.id,
            text=message.text or "",
            sender=user.username if user else None,
            sender_id=user.id if user else None,
        )
