"""
Command and scheduled handlers.

Every handler is an `async def handler(ctx: ConversationContext)` closed over
its dependencies by a make_* factory. Chains are assembled in
register_commands(): gates first, then the business handler.

Modules:
  - base: chat lookup and the is_exists / is_registered / is_subscribed gates
  - core: /start, /stop, /help
  - calendar: /watch, /stopwatch, /events, /new and the reply to /new
  - notifications: scheduled notifications and morning agenda
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import EVENT_OPTIONS, get_chat, make_gates
from .calendar import make_calendar_handlers
from .core import make_core_handlers
from .notifications import make_scheduled_handlers

if TYPE_CHECKING:
    from ..router import CommandRouter
    from ..scheduler import SchedulerAdapter
    from ..session import SessionManager
    from ...agenda import EventTracker
    from ...ai.task_parser import TaskParser
    from ...google.auth import OAuthClient
    from ...google.calendar import CalendarClient
    from ...memory.chats import ChatStore


def make_handlers(
    *,
    chat_store: "ChatStore",
    oauth: "OAuthClient",
    calendar: "CalendarClient",
    tracker: "EventTracker",
    task_parser: "TaskParser",
    session_manager: "SessionManager",
):
    """
    Factory that returns every handler bound to shared dependencies.

    This function composes handlers from all submodules into a single dict.
    """
    handlers = {}
    handlers.update(make_gates(chat_store=chat_store))
    handlers.update(make_core_handlers(
        chat_store=chat_store,
        oauth=oauth,
        calendar=calendar,
    ))
    handlers.update(make_calendar_handlers(
        chat_store=chat_store,
        calendar=calendar,
        tracker=tracker,
        task_parser=task_parser,
    ))
    handlers.update(make_scheduled_handlers(
        chat_store=chat_store,
        calendar=calendar,
        tracker=tracker,
        session_manager=session_manager,
    ))
    return handlers


def register_commands(router: "CommandRouter", handlers: dict) -> None:
    """Install the command chains on the router."""
    h = handlers
    router.register_command("start", [h["start"]])
    router.register_command("stop", [h["is_exists"], h["stop"]])
    router.register_command("watch", [h["is_registered"], h["watch"]])
    router.register_command("stopwatch", [h["is_subscribed"], h["stop_watch"]])
    router.register_command("events", [h["is_subscribed"], h["events"]])
    router.register_command("new", [h["is_subscribed"], h["new_event"]])
    router.register_command(
        "new", [h["is_subscribed"], h["new_event_response"]], response=True,
    )
    router.register_command("help", [h["help"]])


def register_scheduled(
    scheduler: "SchedulerAdapter",
    handlers: dict,
    *,
    notifications_cron: str,
    morning_agenda_cron: str,
) -> None:
    scheduler.register_scheduled_handler(
        notifications_cron, handlers["notifications"], job_id="notifications",
    )
    scheduler.register_scheduled_handler(
        morning_agenda_cron, handlers["morning_agenda"], job_id="morning_agenda",
    )


__all__ = [
    "EVENT_OPTIONS",
    "get_chat",
    "make_calendar_handlers",
    "make_core_handlers",
    "make_gates",
    "make_handlers",
    "make_scheduled_handlers",
    "register_commands",
    "register_scheduled",
]
