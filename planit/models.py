"""
Pydantic v2 data models for planit.
"""

from typing import Optional

from pydantic import BaseModel


class Chat(BaseModel):
    """One conversation's persisted state."""

    chat_id: int
    registered: bool = False

    # Google OAuth authorized-user JSON (google.oauth2.credentials.Credentials.to_json())
    token: Optional[str] = None
    calendar_id: Optional[str] = None

    # Push-notification watch channel
    channel_id: Optional[str] = None
    channel_resource_id: Optional[str] = None
    channel_expiration: Optional[int] = None  # epoch milliseconds

    # Next-event tracking
    next_event_id: Optional[str] = None
    next_update_at: Optional[int] = None  # epoch seconds

    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.registered and self.calendar_id is not None

    def clear_subscription(self) -> None:
        """Forget the selected calendar, its watch channel and tracking state."""
        self.calendar_id = None
        self.next_event_id = None
        self.next_update_at = None
        self.channel_id = None
        self.channel_resource_id = None
        self.channel_expiration = None


class Task(BaseModel):
    """A task extracted from free text by the task parser."""

    title: str
    notes: str = ""
    date: str


class WatchChannel(BaseModel):
    id: str
    resource_id: str
    expiration: Optional[int] = None  # epoch milliseconds
