"""
Google OAuth for per-chat calendar access.

The client secrets come from a "Web application" OAuth client downloaded from
Google Cloud Console (credentials.json). /start sends the user to auth_url()
with the chat id as `state`; Google redirects back to /login, where the code
is exchanged for an authorized-user token that is stored on the chat.
"""

import asyncio
import json
import logging
from pathlib import Path

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar"]


def load_client_config(secrets_file: str) -> dict:
    path = Path(secrets_file)
    if not path.exists():
        raise FileNotFoundError(
            f"Google client secrets not found: {secrets_file}\n"
            "Download an OAuth client (Web application) JSON from Google Cloud Console."
        )
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _default_redirect_uri(client_config: dict) -> str:
    section = client_config.get("web") or client_config.get("installed") or {}
    uris = section.get("redirect_uris") or []
    return uris[0] if uris else ""


class OAuthClient:
    def __init__(self, client_config: dict, redirect_uri: str = "") -> None:
        self._client_config = client_config
        self._redirect_uri = redirect_uri or _default_redirect_uri(client_config)
        if not self._redirect_uri:
            logger.warning("No OAuth redirect URI configured; login links will not work")

    @classmethod
    def from_secrets_file(cls, secrets_file: str, redirect_uri: str = "") -> "OAuthClient":
        return cls(load_client_config(secrets_file), redirect_uri)

    def _flow(self) -> Flow:
        # No PKCE: the code is exchanged by a different Flow instance than the one
        # that built the URL.
        return Flow.from_client_config(
            self._client_config,
            scopes=SCOPES,
            redirect_uri=self._redirect_uri,
            autogenerate_code_verifier=False,
        )

    def auth_url(self, state: str) -> str:
        url, _ = self._flow().authorization_url(
            access_type="offline",
            prompt="consent",
            state=state,
        )
        return url

    async def exchange_code(self, code: str) -> str:
        """Exchange an authorization code for a token; returns the authorized-user JSON."""
        def _sync() -> str:
            flow = self._flow()
            flow.fetch_token(code=code)
            return flow.credentials.to_json()
        return await asyncio.to_thread(_sync)

    @staticmethod
    def credentials(token: str) -> Credentials:
        """Rebuild credentials from a stored token, refreshing them if expired."""
        creds = Credentials.from_authorized_user_info(json.loads(token), SCOPES)
        if creds.expired and creds.refresh_token:
            creds.refresh(Request())
            logger.debug("OAuth token refreshed")
        return creds
