"""
Command router.

Owns the handler chains and the pending-reply registry. A chain is an ordered
list of async handlers; gates (e.g. "is this chat registered") are listed
before the business handler and stop the chain by aborting the context.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable

from ..constants import UNKNOWN_COMMAND_MESSAGE
from .commands import Command, CommandKey, Handler, ResponseTo
from .context import ConversationContext
from .pending import PendingReplyRegistry

logger = logging.getLogger(__name__)


async def fallback_handler(ctx: ConversationContext) -> None:
    ctx.abort_with_message(UNKNOWN_COMMAND_MESSAGE)


class CommandRouter:
    def __init__(self, pending: PendingReplyRegistry | None = None) -> None:
        self.pending = pending or PendingReplyRegistry()
        self._chains: dict[CommandKey, list[Handler]] = {}
        self._lock = threading.Lock()

    def register_command(
        self, token: str, handlers: Iterable[Handler], response: bool = False
    ) -> CommandKey:
        """
        Append handlers to the chain for `token`, or for the reply to `token`
        when `response` is True. Registering the same key twice extends its chain.
        """
        key: CommandKey = ResponseTo(token) if response else Command(token)
        with self._lock:
            self._chains.setdefault(key, []).extend(handlers)
            size = len(self._chains[key])
        logger.debug("Registered %s (%d handler(s))", key, size)
        return key

    def chain(self, key: CommandKey) -> list[Handler]:
        with self._lock:
            return list(self._chains.get(key, []))

    def resolve_key(self, chat_id: int, update_id: int, command: str | None) -> CommandKey | None:
        """
        Decide which chain an update addresses. A pending reply wins only when
        it expects exactly this update and the update is not itself a command.
        The pending entry is consumed either way.
        """
        pending = self.pending.lookup_and_clear(chat_id)
        if pending is not None and pending.update_id == update_id and not command:
            return pending.key
        if command:
            return Command(command)
        return None

    def resolve(
        self, chat_id: int, update_id: int, command: str | None
    ) -> tuple[CommandKey | None, list[Handler]]:
        key = self.resolve_key(chat_id, update_id, command)
        handlers = self.chain(key) if key is not None else []
        if not handlers:
            handlers = [fallback_handler]
        logger.debug(
            "Resolved chat %d update %d to %s (%d handler(s))",
            chat_id, update_id, key, len(handlers),
        )
        return key, handlers

    async def run(self, ctx: ConversationContext, handlers: Iterable[Handler]) -> None:
        """Run handlers in order, stopping after the first one that aborts."""
        for handler in handlers:
            await handler(ctx)
            if ctx.is_aborted():
                break
