"""
Per-invocation conversation context.

A fresh ConversationContext is built for every handler-chain run. Handlers
queue outbound messages on it and may abort the chain; the update loop or the
scheduler adapter delivers the queue once the chain is done.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .commands import CommandKey, ResponseTo
from .sink import MessageOptions, OutboundMessage, create_message

if TYPE_CHECKING:
    from .router import CommandRouter
    from .updates import IncomingUpdate


class ConversationContext:
    def __init__(
        self,
        chat_id: int | None = None,
        command: CommandKey | None = None,
        update: "IncomingUpdate | None" = None,
        router: "CommandRouter | None" = None,
    ) -> None:
        self.chat_id = chat_id
        self.command = command
        self.update = update
        self._router = router
        self._messages: list[OutboundMessage] = []
        self._aborted = False

    @property
    def text(self) -> str:
        return self.update.text if self.update is not None else ""

    @property
    def args(self) -> str:
        return self.update.args if self.update is not None else ""

    @property
    def messages(self) -> list[OutboundMessage]:
        return list(self._messages)

    def add_message(self, text: str) -> None:
        self._messages.append(create_message(self.chat_id, text))

    def add_message_with_options(self, text: str, options: MessageOptions) -> None:
        self._messages.append(create_message(self.chat_id, text, options))

    def add_raw_message(self, message: OutboundMessage) -> None:
        """Queue a message built elsewhere, e.g. one addressed to another chat."""
        self._messages.append(message)

    def abort(self) -> None:
        self._aborted = True

    def abort_with_message(self, text: str) -> None:
        self.add_message(text)
        self.abort()

    def is_aborted(self) -> bool:
        return self._aborted

    def register_wait_for_input(self) -> None:
        """Treat the next update of this conversation as the reply to the current command."""
        if self._router is None or self.update is None or self.command is None:
            raise RuntimeError("register_wait_for_input needs an update-driven context")
        self._router.pending.register(
            self.chat_id,
            self.update.update_id + 1,
            ResponseTo(self.command.token),
        )

    def __repr__(self) -> str:
        return (
            f"ConversationContext(chat_id={self.chat_id!r}, command={self.command!r}, "
            f"messages={len(self._messages)}, aborted={self._aborted})"
        )
