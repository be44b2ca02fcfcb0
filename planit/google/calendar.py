"""
Google Calendar API client.
Thin async wrapper around the synchronous google-api-python-client, acting on
behalf of one chat's OAuth token per call.
"""

import logging
import uuid
from datetime import datetime

from ..models import WatchChannel
from ..utils.dates import humanize, parse_event_start
from ..utils.telegram_formatting import escape_markdown_v2, markdown_link
from .auth import OAuthClient
from .base import call_google

logger = logging.getLogger(__name__)


class CalendarClient:
    """Wraps Google Calendar v3 API calls."""

    def __init__(self, oauth: OAuthClient, webhook_url: str = "", timezone: str = "UTC") -> None:
        self._oauth = oauth
        self._webhook_url = webhook_url.rstrip("/")
        self._timezone = timezone

    @property
    def timezone(self) -> str:
        return self._timezone

    def _service(self, token: str):
        from googleapiclient.discovery import build  # type: ignore[import]
        return build(
            "calendar", "v3",
            credentials=self._oauth.credentials(token),
            cache_discovery=False,
        )

    async def list_calendars(self, token: str) -> list[dict]:
        """All calendars on the user's calendar list (every page)."""
        def _sync():
            service = self._service(token)
            items: list[dict] = []
            page_token = None
            while True:
                result = service.calendarList().list(pageToken=page_token).execute()
                items.extend(result.get("items", []))
                page_token = result.get("nextPageToken")
                if not page_token:
                    return items
        return await call_google("list calendars", _sync, retry=True)

    async def list_events(
        self,
        calendar_id: str,
        start: datetime,
        end: datetime,
        max_results: int,
        token: str,
    ) -> list[dict]:
        """Single (expanded) events between start and end, ordered by start time."""
        def _sync():
            service = self._service(token)
            items: list[dict] = []
            page_token = None
            while True:
                result = service.events().list(
                    calendarId=calendar_id,
                    timeMin=start.isoformat(),
                    timeMax=end.isoformat(),
                    maxResults=max_results,
                    showDeleted=False,
                    singleEvents=True,
                    orderBy="startTime",
                    pageToken=page_token,
                ).execute()
                items.extend(result.get("items", []))
                page_token = result.get("nextPageToken")
                if not page_token:
                    return items
        return await call_google("list events", _sync, retry=True)

    async def get_event(self, calendar_id: str, event_id: str, token: str) -> dict:
        def _sync():
            return self._service(token).events().get(
                calendarId=calendar_id, eventId=event_id,
            ).execute()
        return await call_google("get event", _sync, retry=True)

    async def create_event(
        self,
        calendar_id: str,
        title: str,
        start: datetime,
        end: datetime,
        token: str,
        description: str = "",
    ) -> dict:
        """Insert an event; returns the created event (with its htmlLink)."""
        body = {
            "summary": title,
            "description": description,
            "start": {"dateTime": start.isoformat(), "timeZone": self._timezone},
            "end": {"dateTime": end.isoformat(), "timeZone": self._timezone},
        }

        def _sync():
            return self._service(token).events().insert(
                calendarId=calendar_id, body=body,
            ).execute()
        return await call_google("create event", _sync)

    async def create_watch_channel(self, calendar_id: str, chat_id: int, token: str) -> WatchChannel:
        """
        Ask Google to POST to <webhook_url>/<chat_id> whenever the calendar's events
        change. The chat id is also sent back as the channel token header.
        """
        body = {
            "id": str(uuid.uuid4()),
            "type": "web_hook",
            "address": f"{self._webhook_url}/{chat_id}",
            "token": str(chat_id),
        }

        def _sync():
            return self._service(token).events().watch(
                calendarId=calendar_id, body=body,
            ).execute()
        response = await call_google("create watch channel", _sync)
        expiration = response.get("expiration")
        return WatchChannel(
            id=response.get("id", body["id"]),
            resource_id=response.get("resourceId", ""),
            expiration=int(expiration) if expiration else None,
        )

    async def delete_watch_channel(self, channel_id: str, resource_id: str, token: str) -> None:
        def _sync():
            self._service(token).channels().stop(
                body={"id": channel_id, "resourceId": resource_id},
            ).execute()
        await call_google("delete watch channel", _sync)

    def format_event(self, event: dict, now: datetime | None = None) -> str:
        """MarkdownV2 line: linked title, then when it starts relative to now."""
        title = event.get("summary") or "(no title)"
        start = parse_event_start(event, self._timezone)
        when = humanize(start, now) if start is not None else "unknown time"
        return f"{markdown_link(title, event.get('htmlLink', ''))} \\- {escape_markdown_v2(when)}"
