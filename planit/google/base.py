"""
Shared plumbing for the Google Calendar client.

google-api-python-client is synchronous, so every call runs in a worker
thread. Read-only calls are retried on rate limits and 5xx responses; writes
(event insert, channel watch/stop) are attempted once, since repeating them
could create duplicates. Whatever escapes is re-raised as CalendarError.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, TypeVar

from ..exceptions import CalendarError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})
_RETRYABLE_TEXT = (
    "rate limit", "quota", "timeout", "timed out",
    "connection reset", "connection refused", "temporarily unavailable",
)

RETRY_ATTEMPTS = 3
RETRY_BASE_DELAY = 1.0
RETRY_MAX_DELAY = 30.0


def _status_code(error: Exception) -> int | None:
    from googleapiclient.errors import HttpError
    if isinstance(error, HttpError):
        return error.resp.status
    return getattr(error, "status_code", None)


def _is_transient_error(error: Exception) -> bool:
    status = _status_code(error)
    if status is not None:
        return status in RETRYABLE_STATUS
    text = str(error).lower()
    return any(marker in text for marker in _RETRYABLE_TEXT)


def _get_retry_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Exponential backoff capped at max_delay, plus up to 10% jitter."""
    delay = min(base_delay * 2 ** attempt, max_delay)
    return delay + random.uniform(0, delay / 10)


async def with_retry(
    coro_factory: Callable[[], Awaitable[T]],
    attempts: int = RETRY_ATTEMPTS,
    base_delay: float = RETRY_BASE_DELAY,
    max_delay: float = RETRY_MAX_DELAY,
) -> T:
    """
    Await coro_factory() until it succeeds, up to `attempts` times.

    coro_factory must build a new awaitable per call. Permanent errors are
    raised at once; a transient one is raised after the last attempt.
    """
    attempt = 0
    while True:
        try:
            return await coro_factory()
        except Exception as e:
            attempt += 1
            if not _is_transient_error(e):
                raise
            if attempt >= attempts:
                logger.error("Giving up after %d attempt(s): %s", attempt, e)
                raise
            delay = _get_retry_delay(attempt - 1, base_delay, max_delay)
            logger.warning(
                "Google call failed (attempt %d/%d), retrying in %.1fs: %s",
                attempt, attempts, delay, e,
            )
            await asyncio.sleep(delay)


async def call_google(
    operation: str,
    sync_fn: Callable[[], T],
    retry: bool = False,
) -> T:
    """Run sync_fn in a thread; failures become CalendarError("<operation>: ...")."""
    async def _once() -> T:
        return await asyncio.to_thread(sync_fn)

    try:
        if retry:
            return await with_retry(_once)
        return await _once()
    except CalendarError:
        raise
    except Exception as e:
        raise CalendarError(f"{operation}: {e}", status_code=_status_code(e)) from e
