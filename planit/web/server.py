"""
HTTP endpoints, served by aiohttp in the bot's event loop.

  POST /webhook/{chat_id} → Google Calendar push notification for one chat
  POST /webhook           → same, chat id taken from X-Goog-Channel-Token
  GET  /login             → OAuth redirect target (?state=<chat_id>&code=...)
  GET  /health            → 200 {"status": "ok", "uptime_s": N}
  GET  /ready             → 200 {"status": "ready"} or 503 {"status": "starting"}

Webhook and login requests always answer 200 {"message": "success"}; what
happens afterwards is only logged. Google would otherwise keep retrying
notifications for chats that no longer exist.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

from aiohttp import web

from ..constants import AUTHENTICATED_MESSAGE
from ..exceptions import CalendarError, NotFoundError, StorageError
from ..bot.sink import create_message

if TYPE_CHECKING:
    from ..agenda import EventTracker
    from ..bot.session import SessionManager
    from ..bot.sink import MessageSink
    from ..google.auth import OAuthClient
    from ..memory.chats import ChatStore

logger = logging.getLogger(__name__)

_START_TIME = time.monotonic()

CHAT_STORE = web.AppKey("chat_store", object)
OAUTH = web.AppKey("oauth", object)
TRACKER = web.AppKey("tracker", object)
SINK = web.AppKey("sink", object)
SESSIONS = web.AppKey("sessions", object)
READY = web.AppKey("ready", dict)

_SUCCESS = {"message": "success"}


def set_ready(app: web.Application) -> None:
    """Call this once the database and scheduler are initialised."""
    app[READY]["ready"] = True
    logger.info("HTTP server: marked ready")


def _parse_chat_id(raw: str | None) -> int | None:
    try:
        return int(raw) if raw else None
    except ValueError:
        return None


async def _refresh_chat(app: web.Application, chat_id: int) -> None:
    async with app[SESSIONS].get_lock(chat_id):
        try:
            chat = await app[CHAT_STORE].get(chat_id)
        except NotFoundError:
            logger.warning("Calendar webhook for unknown chat %d", chat_id)
            return
        if chat.calendar_id is None or chat.token is None:
            logger.warning("Calendar webhook for chat %d without a calendar", chat_id)
            return
        await app[TRACKER].refresh(chat)
    logger.debug("Tracking refreshed for chat %d after calendar change", chat_id)


async def _handle_calendar_webhook(request: web.Request) -> web.Response:
    raw = request.match_info.get("chat_id") or request.headers.get("X-Goog-Channel-Token")
    state = request.headers.get("X-Goog-Resource-State", "")
    logger.info(
        "Calendar webhook (chat=%s, channel=%s, state=%s)",
        raw, request.headers.get("X-Goog-Channel-ID"), state,
    )

    chat_id = _parse_chat_id(raw)
    if chat_id is None:
        logger.error("Calendar webhook with bad chat id %r", raw)
        return web.json_response(_SUCCESS)
    if state == "sync":
        # First message after a channel is created; nothing changed yet
        return web.json_response(_SUCCESS)

    try:
        await _refresh_chat(request.app, chat_id)
    except (CalendarError, StorageError) as e:
        logger.error("Failed to refresh tracking for chat %d: %s", chat_id, e)
    return web.json_response(_SUCCESS)


async def _handle_login(request: web.Request) -> web.Response:
    raw = request.query.get("state")
    logger.info("Login callback (chat=%s)", raw)

    chat_id = _parse_chat_id(raw)
    if chat_id is None:
        logger.error("Login callback with bad state %r", raw)
        return web.json_response(_SUCCESS)
    if "error" in request.query:
        logger.warning("Login for chat %d refused: %s", chat_id, request.query["error"])
        return web.json_response(_SUCCESS)
    code = request.query.get("code")
    if not code:
        logger.error("Login callback for chat %d without a code", chat_id)
        return web.json_response(_SUCCESS)

    app = request.app
    try:
        async with app[SESSIONS].get_lock(chat_id):
            chat = await app[CHAT_STORE].get(chat_id)
            chat.token = await app[OAUTH].exchange_code(code)
            chat.registered = True
            await app[CHAT_STORE].update(chat)
    except NotFoundError:
        logger.error("Login callback for unknown chat %d", chat_id)
        return web.json_response(_SUCCESS)
    except StorageError as e:
        logger.error("Failed to save token for chat %d: %s", chat_id, e)
        return web.json_response(_SUCCESS)
    except Exception as e:
        # oauthlib raises its own error types for bad or reused codes
        logger.error("Failed to exchange code for chat %d: %s", chat_id, e)
        return web.json_response(_SUCCESS)

    logger.info("Chat %d registered", chat_id)
    await app[SINK].send(create_message(chat_id, AUTHENTICATED_MESSAGE))
    return web.json_response(_SUCCESS)


async def _handle_health(request: web.Request) -> web.Response:
    uptime = int(time.monotonic() - _START_TIME)
    return web.json_response({"status": "ok", "uptime_s": uptime})


async def _handle_ready(request: web.Request) -> web.Response:
    if request.app[READY]["ready"]:
        return web.json_response({"status": "ready"})
    return web.json_response({"status": "starting"}, status=503)


def create_app(
    *,
    chat_store: "ChatStore",
    oauth: "OAuthClient",
    tracker: "EventTracker",
    sink: "MessageSink",
    session_manager: "SessionManager",
) -> web.Application:
    app = web.Application()
    app[CHAT_STORE] = chat_store
    app[OAUTH] = oauth
    app[TRACKER] = tracker
    app[SINK] = sink
    app[SESSIONS] = session_manager
    app[READY] = {"ready": False}

    app.router.add_post("/webhook/{chat_id}", _handle_calendar_webhook)
    app.router.add_post("/webhook", _handle_calendar_webhook)
    app.router.add_get("/login", _handle_login)
    app.router.add_get("/health", _handle_health)
    app.router.add_get("/ready", _handle_ready)
    return app


async def run_web_server(app: web.Application, host: str = "0.0.0.0", port: int = 8080) -> None:
    """
    Serve `app` on host:port.
    Runs until cancelled. Call with asyncio.create_task().
    """
    runner = web.AppRunner(app, access_log=None)  # suppress per-request noise
    await runner.setup()
    site = web.TCPSite(runner, host, port)

    try:
        await site.start()
        logger.info("HTTP server listening on http://%s:%d", host, port)
        # Run forever (until this coroutine is cancelled)
        while True:
            await asyncio.sleep(3600)
    except asyncio.CancelledError:
        logger.info("HTTP server shutting down")
    finally:
        await runner.cleanup()
