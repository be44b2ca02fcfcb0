"""
Handler-chain keys.

A chain is registered either for a command (`/new`) or for the free-text reply
that a command asked for. Keeping the two as distinct types means a reply
chain can never collide with a command that happens to share its name.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from .context import ConversationContext


@dataclass(frozen=True)
class Command:
    token: str

    def __str__(self) -> str:
        return f"/{self.token}"


@dataclass(frozen=True)
class ResponseTo:
    token: str

    def __str__(self) -> str:
        return f"reply to /{self.token}"


CommandKey = Union[Command, ResponseTo]

Handler = Callable[["ConversationContext"], Awaitable[None]]
