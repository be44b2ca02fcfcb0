"""
Scheduler adapter: runs handler chains on cron triggers.

Uses APScheduler AsyncIOScheduler so jobs run inside the bot's asyncio event
loop, interleaved with update processing.

A scheduled handler gets a context with no chat and no update. It queues
messages with add_raw_message (each addressed to its own chat); everything it
queued is delivered after it returns, whether or not it aborted.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .commands import Handler
from .context import ConversationContext
from .sink import MessageSink

logger = logging.getLogger(__name__)


def parse_cron(cron_str: str, timezone: str = "UTC") -> CronTrigger:
    """
    Parse a cron string into an APScheduler CronTrigger.
    Accepts 5 fields, or 6 fields where the first one is seconds.
    """
    parts = cron_str.split()
    if len(parts) == 5:
        second = "0"
        minute, hour, day, month, day_of_week = parts
    elif len(parts) == 6:
        second, minute, hour, day, month, day_of_week = parts
    else:
        raise ValueError(f"Invalid cron string (expected 5 or 6 fields): {cron_str!r}")
    try:
        return CronTrigger(
            second=second,
            minute=minute,
            hour=hour,
            day=day,
            month=month,
            day_of_week=day_of_week,
            timezone=timezone,
        )
    except (ValueError, TypeError) as e:
        raise ValueError(f"Invalid cron string {cron_str!r}: {e}") from e


class SchedulerAdapter:
    def __init__(
        self,
        sink: MessageSink,
        timezone: str = "UTC",
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self._sink = sink
        self._timezone = timezone
        self._scheduler = scheduler or AsyncIOScheduler(timezone=timezone)

    def register_scheduled_handler(
        self, cron: str, handler: Handler, job_id: str | None = None
    ) -> None:
        """Run `handler` on every `cron` tick. Raises ValueError for a bad cron string."""
        trigger = parse_cron(cron, self._timezone)
        job_id = job_id or getattr(handler, "__name__", None) or repr(handler)
        self._scheduler.add_job(
            self.run_handler,
            trigger=trigger,
            args=[handler],
            id=job_id,
            replace_existing=True,
            misfire_grace_time=60,
            coalesce=True,
        )
        logger.info("Scheduled %s (cron: %s)", job_id, cron)

    async def run_handler(self, handler: Handler) -> ConversationContext:
        ctx = ConversationContext()
        try:
            await handler(ctx)
        except Exception:
            logger.exception("Scheduled handler %r failed", handler)
        finally:
            await self._sink.send_messages(ctx.messages)
        return ctx

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def start(self) -> None:
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("Scheduler started (tz: %s)", self._timezone)

    def stop(self) -> None:
        """Gracefully shut down the scheduler."""
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
