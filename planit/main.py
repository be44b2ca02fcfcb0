"""
planit entry point.
Initialises all components and starts the Telegram bot.
"""

import asyncio
import logging
import os
import signal

from .agenda import EventTracker
from .ai.task_parser import TaskParser
from .bot.handlers import make_handlers, register_commands, register_scheduled
from .bot.router import CommandRouter
from .bot.scheduler import SchedulerAdapter
from .bot.session import SessionManager
from .bot.telegram_bot import TelegramBot
from .config import settings
from .google.auth import OAuthClient
from .google.calendar import CalendarClient
from .logging_config import setup_logging
from .memory.chats import ChatStore
from .memory.database import DatabaseManager
from .web.server import create_app, run_web_server, set_ready

logger = logging.getLogger(__name__)


def main() -> None:
    # Ensure data directories exist
    os.makedirs(settings.data_dir, exist_ok=True)
    os.makedirs(settings.logs_dir, exist_ok=True)

    setup_logging(settings.log_level, settings.logs_dir, settings.json_logs)
    logger.info("Starting planit (data_dir=%s)", settings.data_dir)

    if not settings.webhook_url:
        logger.warning("WEBHOOK_URL is not set; /watch cannot create calendar channels")

    db = DatabaseManager()
    chat_store = ChatStore(db)
    oauth = OAuthClient.from_secrets_file(
        settings.google_client_secrets_file, settings.google_redirect_uri,
    )
    calendar = CalendarClient(
        oauth, webhook_url=settings.webhook_url, timezone=settings.scheduler_timezone,
    )
    tracker = EventTracker(chat_store, calendar)
    task_parser = TaskParser(
        api_key=settings.anthropic_api_key,
        model=settings.task_parser_model,
        max_tokens=settings.task_parser_max_tokens,
        timezone=settings.scheduler_timezone,
    )
    session_manager = SessionManager()

    router = CommandRouter()
    bot = TelegramBot(
        router,
        allowed_users=settings.telegram_allowed_users,
        session_manager=session_manager,
    )
    scheduler = SchedulerAdapter(bot.sink, timezone=settings.scheduler_timezone)

    handlers = make_handlers(
        chat_store=chat_store,
        oauth=oauth,
        calendar=calendar,
        tracker=tracker,
        task_parser=task_parser,
        session_manager=session_manager,
    )
    register_commands(router, handlers)
    register_scheduled(
        scheduler,
        handlers,
        notifications_cron=settings.notifications_cron,
        morning_agenda_cron=settings.morning_agenda_cron,
    )

    web_app = create_app(
        chat_store=chat_store,
        oauth=oauth,
        tracker=tracker,
        sink=bot.sink,
        session_manager=session_manager,
    )
    _web_task: list[asyncio.Task] = []

    def _handle_sigterm(signum, frame):
        logger.info("SIGTERM received, shutting down")
        bot.stop()

    signal.signal(signal.SIGTERM, _handle_sigterm)

    async def _on_post_init(app):
        # Serve HTTP first so probes see /ready 503 while starting
        _web_task.append(asyncio.create_task(
            run_web_server(web_app, settings.http_host, settings.http_port)
        ))

        await db.init()
        logger.info("Database initialised")

        scheduler.start()
        set_ready(web_app)

    async def _on_post_shutdown(app):
        scheduler.stop()
        for task in _web_task:
            task.cancel()
        await asyncio.gather(*_web_task, return_exceptions=True)
        await db.close()
        logger.info("planit stopped")

    bot.application.post_init = _on_post_init
    bot.application.post_shutdown = _on_post_shutdown

    logger.info("planit ready")
    bot.run()


if __name__ == "__main__":
    main()
