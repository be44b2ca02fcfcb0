"""Custom exception hierarchy for planit."""


class PlanItError(Exception):
    """Base exception for planit."""
    pass


class ServiceUnavailableError(PlanItError):
    """Raised when an external service (e.g. Anthropic, Google) is down."""
    pass


class StorageError(PlanItError):
    """Raised when there's an issue with the SQLite chat store."""
    pass


class NotFoundError(StorageError):
    """Raised when a chat record does not exist."""
    pass


class DuplicateKeyError(StorageError):
    """Raised when creating a chat record that already exists."""
    pass


class CalendarError(PlanItError):
    """Raised when a Google Calendar call fails."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TaskParseError(PlanItError):
    """Raised when free text cannot be turned into a task."""
    pass
