"""Tests for planit/google/: calendar client, OAuth helper and retry wrapper."""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

from planit.exceptions import CalendarError
from planit.google.auth import OAuthClient, load_client_config
from planit.google.base import _is_transient_error, call_google, with_retry
from planit.google.calendar import CalendarClient

CLIENT_CONFIG = {
    "web": {
        "client_id": "client-id.apps.googleusercontent.com",
        "client_secret": "secret",
        "auth_uri": "https://accounts.google.com/o/oauth2/auth",
        "token_uri": "https://oauth2.googleapis.com/token",
        "redirect_uris": ["https://bot.example.com/login"],
    }
}

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_client(service=None):
    client = CalendarClient(
        OAuthClient(CLIENT_CONFIG), webhook_url="https://bot.example.com/webhook/",
    )
    if service is not None:
        client._service = MagicMock(return_value=service)
    return client


# --------------------------------------------------------------------------- #
# Formatting                                                                   #
# --------------------------------------------------------------------------- #

def test_format_event_links_title_and_humanizes_start():
    event = {
        "summary": "Dentist (check-up)",
        "htmlLink": "https://calendar.google.com/event?eid=abc",
        "start": {"dateTime": "2026-03-01T14:00:00Z"},
    }
    line = make_client().format_event(event, now=NOW)
    assert line == (
        "[Dentist \\(check\\-up\\)](https://calendar.google.com/event?eid=abc) \\- in 2 hours"
    )


def test_format_event_past_all_day_event():
    event = {"summary": "Holiday", "htmlLink": "https://x", "start": {"date": "2026-02-26"}}
    line = make_client().format_event(event, now=NOW)
    assert line.endswith("\\- 3 days ago")


def test_format_event_without_link_or_start():
    line = make_client().format_event({"summary": "a.b"}, now=NOW)
    assert line == "a\\.b \\- unknown time"


# --------------------------------------------------------------------------- #
# API calls (service mocked)                                                   #
# --------------------------------------------------------------------------- #

@pytest.mark.asyncio
async def test_list_events_follows_pages():
    service = MagicMock()
    service.events.return_value.list.return_value.execute.side_effect = [
        {"items": [{"id": "1"}], "nextPageToken": "p2"},
        {"items": [{"id": "2"}]},
    ]
    client = make_client(service)

    events = await client.list_events("primary", NOW, NOW + timedelta(days=1), 10, "{}")

    assert [e["id"] for e in events] == ["1", "2"]
    last_call = service.events.return_value.list.call_args.kwargs
    assert last_call["pageToken"] == "p2"
    assert last_call["singleEvents"] is True
    assert last_call["orderBy"] == "startTime"


@pytest.mark.asyncio
async def test_list_calendars_follows_pages():
    service = MagicMock()
    service.calendarList.return_value.list.return_value.execute.side_effect = [
        {"items": [{"id": "a"}], "nextPageToken": "n"},
        {"items": [{"id": "b"}]},
    ]
    calendars = await make_client(service).list_calendars("{}")
    assert [c["id"] for c in calendars] == ["a", "b"]


@pytest.mark.asyncio
async def test_create_watch_channel_addresses_chat():
    service = MagicMock()
    service.events.return_value.watch.return_value.execute.return_value = {
        "id": "chan-1", "resourceId": "res-1", "expiration": "1772400000000",
    }
    client = make_client(service)

    channel = await client.create_watch_channel("primary", 42, "{}")

    body = service.events.return_value.watch.call_args.kwargs["body"]
    assert body["type"] == "web_hook"
    assert body["address"] == "https://bot.example.com/webhook/42"
    assert body["token"] == "42"
    assert channel.id == "chan-1"
    assert channel.resource_id == "res-1"
    assert channel.expiration == 1772400000000


@pytest.mark.asyncio
async def test_delete_watch_channel_stops_by_id_and_resource():
    service = MagicMock()
    await make_client(service).delete_watch_channel("chan-1", "res-1", "{}")
    service.channels.return_value.stop.assert_called_once_with(
        body={"id": "chan-1", "resourceId": "res-1"},
    )


@pytest.mark.asyncio
async def test_create_event_sends_times_and_notes():
    service = MagicMock()
    service.events.return_value.insert.return_value.execute.return_value = {"id": "new"}
    client = make_client(service)

    created = await client.create_event(
        "primary", "Dentist", NOW, NOW + timedelta(minutes=30), "{}", description="teeth",
    )

    body = service.events.return_value.insert.call_args.kwargs["body"]
    assert created == {"id": "new"}
    assert body["summary"] == "Dentist"
    assert body["description"] == "teeth"
    assert body["start"]["dateTime"] == NOW.isoformat()


@pytest.mark.asyncio
async def test_api_failure_becomes_calendar_error():
    service = MagicMock()
    service.events.return_value.insert.return_value.execute.side_effect = RuntimeError("denied")
    with pytest.raises(CalendarError, match="create event"):
        await make_client(service).create_event("primary", "x", NOW, NOW, "{}")


# --------------------------------------------------------------------------- #
# Retry wrapper                                                                #
# --------------------------------------------------------------------------- #

def test_transient_error_detection():
    assert _is_transient_error(RuntimeError("Rate limit exceeded"))
    assert not _is_transient_error(RuntimeError("invalid argument"))


@pytest.mark.asyncio
async def test_with_retry_retries_transient_errors():
    attempts = []

    async def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise RuntimeError("connection reset by peer")
        return "ok"

    with patch("planit.google.base._get_retry_delay", return_value=0):
        assert await with_retry(flaky) == "ok"
    assert len(attempts) == 3


@pytest.mark.asyncio
async def test_with_retry_does_not_retry_permanent_errors():
    attempts = []

    async def broken():
        attempts.append(1)
        raise RuntimeError("not found")

    with pytest.raises(RuntimeError):
        await with_retry(broken)
    assert len(attempts) == 1


@pytest.mark.asyncio
async def test_call_google_carries_status_code():
    error = RuntimeError("quota")
    error.status_code = 403

    def _sync():
        raise error

    with pytest.raises(CalendarError) as exc:
        await call_google("list events", _sync)
    assert exc.value.status_code == 403


# --------------------------------------------------------------------------- #
# OAuth                                                                        #
# --------------------------------------------------------------------------- #

def test_auth_url_carries_state_and_offline_access():
    url = OAuthClient(CLIENT_CONFIG).auth_url(state="42")
    assert url.startswith("https://accounts.google.com/o/oauth2/auth")
    assert "state=42" in url
    assert "access_type=offline" in url
    assert "redirect_uri=https%3A%2F%2Fbot.example.com%2Flogin" in url


def test_explicit_redirect_uri_wins():
    url = OAuthClient(CLIENT_CONFIG, "https://other.example.com/login").auth_url(state="1")
    assert "other.example.com" in url


def test_load_client_config(tmp_path):
    path = tmp_path / "credentials.json"
    path.write_text(json.dumps(CLIENT_CONFIG))
    assert load_client_config(str(path)) == CLIENT_CONFIG


def test_load_client_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_client_config(str(tmp_path / "missing.json"))
