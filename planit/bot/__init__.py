"""
Command-dispatch engine: router, conversation context, pending replies,
scheduler adapter and the Telegram update loop.
"""

from .commands import Command, CommandKey, Handler, ResponseTo
from .context import ConversationContext
from .pending import PendingReply, PendingReplyRegistry
from .router import CommandRouter, fallback_handler
from .sink import MessageOptions, MessageSink, OutboundMessage, create_message
from .updates import IncomingUpdate

__all__ = [
    "Command",
    "CommandKey",
    "CommandRouter",
    "ConversationContext",
    "Handler",
    "IncomingUpdate",
    "MessageOptions",
    "MessageSink",
    "OutboundMessage",
    "PendingReply",
    "PendingReplyRegistry",
    "ResponseTo",
    "create_message",
    "fallback_handler",
]
