"""
Google Calendar integration package.

Calls run in worker threads; read-only calls retry transient failures with
exponential backoff. See base.py for implementation details.
"""

from .auth import OAuthClient
from .base import call_google, with_retry
from .calendar import CalendarClient

__all__ = [
    "CalendarClient",
    "OAuthClient",
    "call_google",
    "with_retry",
]
