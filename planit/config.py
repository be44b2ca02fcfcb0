"""
Central configuration for planit.
Uses Pydantic BaseSettings for type-safe configuration from environment variables.
"""

import os
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env relative to this file (planit/config.py → project root)
_ENV_FILE = Path(__file__).parent.parent / ".env"


def _load_env_file() -> None:
    """
    Load .env into os.environ, but only for keys that are currently unset
    or set to empty strings. Explicit non-empty shell values still win.
    """
    if not _ENV_FILE.exists():
        return
    from dotenv import dotenv_values
    for key, value in dotenv_values(_ENV_FILE).items():
        if value and not os.environ.get(key):
            os.environ[key] = value


# Run at import time so Settings() sees the correct values
_load_env_file()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Telegram
    telegram_bot_token: str
    # Stored as a raw comma-string of usernames or user ids; exposed as a list
    telegram_allowed_users_raw: str = ""
    updates_timeout: int = 60
    telegram_timeout: float = 30.0

    # Anthropic (free-text → task parsing)
    anthropic_api_key: str
    task_parser_model: str = "claude-haiku-4-5-20251001"
    task_parser_max_tokens: int = 256

    # Google Calendar
    google_client_secrets_file: str = "credentials.json"
    google_redirect_uri: str = ""
    webhook_url: str = ""

    # Environment
    data_dir: str = "./data"
    log_level: str = "INFO"
    json_logs: bool = False

    # Scheduler (6 fields = leading seconds)
    notifications_cron: str = "*/5 * * * * *"
    morning_agenda_cron: str = "0 45 8 * * *"
    scheduler_timezone: str = "UTC"

    # HTTP server (login callback + calendar push notifications)
    http_host: str = "0.0.0.0"
    http_port: int = 8080

    @field_validator("webhook_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def telegram_allowed_users(self) -> list[str]:
        """Parse comma-separated usernames / user ids from the raw env string."""
        raw = self.telegram_allowed_users_raw
        if not raw:
            return []
        return [x.strip().lstrip("@") for x in raw.split(",") if x.strip()]

    @property
    def db_path(self) -> str:
        return os.path.join(self.data_dir, "planit.db")

    @property
    def logs_dir(self) -> str:
        return os.path.join(self.data_dir, "logs")


def get_settings() -> "Settings":
    """Return the application settings singleton."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


_settings: Settings | None = None


class _SettingsProxy:
    """Lazy proxy so `from planit.config import settings` works without eager init."""
    def __getattr__(self, name):
        return getattr(get_settings(), name)


settings = _SettingsProxy()  # type: ignore[assignment]
