"""HTTP side of the bot: OAuth callback, calendar push notifications, probes."""

from .server import create_app, run_web_server, set_ready

__all__ = ["create_app", "run_web_server", "set_ready"]
