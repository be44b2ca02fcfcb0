"""
Telegram update loop.

Every inbound update goes through the same steps: ignore updates without a
message, check the allow-list, resolve the handler chain (consuming any
pending reply), run the chain under the conversation lock, flush the queued
messages. A failing handler is logged and never stops the loop.
"""

import logging

import telegram.error
from telegram import Update
from telegram.ext import Application, ContextTypes, TypeHandler

from ..config import settings
from ..constants import REJECTED_MESSAGE
from .context import ConversationContext
from .router import CommandRouter
from .session import SessionManager
from .sink import MessageSink, create_message
from .updates import IncomingUpdate

logger = logging.getLogger(__name__)


async def _error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Catch-all error handler registered with PTB Application.

    Transient errors (network, timeout, forbidden) are logged at WARNING,
    anything else at ERROR with the traceback.
    """
    err = context.error
    if isinstance(err, (telegram.error.NetworkError, telegram.error.TimedOut,
                        telegram.error.Forbidden)):
        logger.warning("Telegram transient error: %s", err)
        return
    update_type = type(update).__name__ if update else "unknown"
    logger.error(
        "Unhandled Telegram exception (update_type=%s): %s",
        update_type, err, exc_info=err,
    )


def _build_application() -> Application:
    timeout = settings.telegram_timeout
    return (
        Application.builder()
        .token(settings.telegram_bot_token)
        .concurrent_updates(False)
        .connect_timeout(timeout)
        .read_timeout(timeout)
        .write_timeout(timeout)
        .pool_timeout(timeout)
        .get_updates_connect_timeout(timeout)
        .get_updates_read_timeout(timeout + settings.updates_timeout)
        .get_updates_write_timeout(timeout)
        .get_updates_pool_timeout(timeout)
        .build()
    )


class TelegramBot:
    def __init__(
        self,
        router: CommandRouter,
        allowed_users: list[str] | None = None,
        session_manager: SessionManager | None = None,
        application: Application | None = None,
    ) -> None:
        self.router = router
        self.sessions = session_manager or SessionManager()
        self.application = application or _build_application()
        self.sink = MessageSink(self.application.bot)
        self._allowed_users = set(allowed_users or [])
        self.application.add_handler(TypeHandler(Update, self._on_update))
        self.application.add_error_handler(_error_handler)

    def is_allowed(self, update: IncomingUpdate) -> bool:
        """Empty allow-list admits everyone; otherwise match username or user id."""
        if not self._allowed_users:
            return True
        if update.sender and update.sender in self._allowed_users:
            return True
        return update.sender_id is not None and str(update.sender_id) in self._allowed_users

    async def process_update(self, update: IncomingUpdate) -> ConversationContext | None:
        """
        Dispatch one update and flush its messages.
        Returns the context the chain ran against, or None if the sender was rejected.
        """
        logger.debug(
            "Received update %d (chat=%d, sender=%s, command=%s)",
            update.update_id, update.chat_id, update.sender, update.command,
        )

        if not self.is_allowed(update):
            logger.info("Rejected update %d from %s", update.update_id, update.sender)
            await self.sink.send_messages([create_message(update.chat_id, REJECTED_MESSAGE)])
            return None

        key, handlers = self.router.resolve(update.chat_id, update.update_id, update.command)
        ctx = ConversationContext(
            chat_id=update.chat_id,
            command=key,
            update=update,
            router=self.router,
        )
        try:
            async with self.sessions.get_lock(update.chat_id):
                await self.router.run(ctx, handlers)
        except Exception:
            logger.exception("Handler chain %s failed for chat %d", key, update.chat_id)
        finally:
            await self.sink.send_messages(ctx.messages)
        return ctx

    async def _on_update(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        incoming = IncomingUpdate.from_telegram(update)
        if incoming is None:
            return
        await self.process_update(incoming)

    def run(self) -> None:
        """Start long polling (blocking)."""
        logger.info("Starting bot with polling")
        self.application.run_polling(
            timeout=settings.updates_timeout,
            allowed_updates=[Update.MESSAGE],
        )

    def stop(self) -> None:
        self.application.stop_running()
