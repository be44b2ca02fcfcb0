"""Tests for planit/bot/scheduler.py"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from apscheduler.triggers.cron import CronTrigger

from planit.bot.scheduler import SchedulerAdapter, parse_cron
from planit.bot.sink import create_message


def make_sink():
    sink = MagicMock()
    sink.send_messages = AsyncMock(return_value=0)
    return sink


def test_parse_cron_six_fields_has_seconds():
    trigger = parse_cron("*/5 * * * * *")
    assert isinstance(trigger, CronTrigger)
    fields = {f.name: str(f) for f in trigger.fields}
    assert fields["second"] == "*/5"


def test_parse_cron_five_fields_runs_on_the_minute():
    trigger = parse_cron("45 8 * * *")
    fields = {f.name: str(f) for f in trigger.fields}
    assert fields["second"] == "0"
    assert fields["minute"] == "45"
    assert fields["hour"] == "8"


@pytest.mark.parametrize("cron", ["", "* * *", "* * * * * * *", "61 * * * *"])
def test_parse_cron_rejects_bad_strings(cron):
    with pytest.raises(ValueError):
        parse_cron(cron)


def test_register_adds_job_with_handler():
    scheduler = MagicMock()
    adapter = SchedulerAdapter(make_sink(), scheduler=scheduler)

    async def notifications(ctx):
        pass

    adapter.register_scheduled_handler("*/5 * * * * *", notifications)

    scheduler.add_job.assert_called_once()
    kwargs = scheduler.add_job.call_args.kwargs
    assert kwargs["id"] == "notifications"
    assert kwargs["args"] == [notifications]
    assert kwargs["replace_existing"] is True
    assert scheduler.add_job.call_args.args[0] == adapter.run_handler


def test_register_rejects_bad_cron_without_adding_job():
    scheduler = MagicMock()
    adapter = SchedulerAdapter(make_sink(), scheduler=scheduler)

    async def job(ctx):
        pass

    with pytest.raises(ValueError):
        adapter.register_scheduled_handler("bogus", job)
    scheduler.add_job.assert_not_called()


@pytest.mark.asyncio
async def test_run_handler_flushes_raw_messages():
    sink = make_sink()
    adapter = SchedulerAdapter(sink, scheduler=MagicMock())

    async def job(ctx):
        ctx.add_raw_message(create_message(1, "a"))
        ctx.add_raw_message(create_message(2, "b"))

    ctx = await adapter.run_handler(job)

    sink.send_messages.assert_awaited_once()
    sent = sink.send_messages.await_args.args[0]
    assert [(m.chat_id, m.text) for m in sent] == [(1, "a"), (2, "b")]
    assert ctx.chat_id is None


@pytest.mark.asyncio
async def test_run_handler_with_no_messages_sends_nothing():
    sink = make_sink()
    adapter = SchedulerAdapter(sink, scheduler=MagicMock())

    async def job(ctx):
        pass

    await adapter.run_handler(job)
    sink.send_messages.assert_awaited_once_with([])


@pytest.mark.asyncio
async def test_run_handler_flushes_after_abort():
    sink = make_sink()
    adapter = SchedulerAdapter(sink, scheduler=MagicMock())

    async def job(ctx):
        ctx.add_raw_message(create_message(1, "before abort"))
        ctx.abort()

    ctx = await adapter.run_handler(job)
    assert ctx.is_aborted()
    assert len(sink.send_messages.await_args.args[0]) == 1


@pytest.mark.asyncio
async def test_run_handler_logs_exception_and_still_flushes():
    sink = make_sink()
    adapter = SchedulerAdapter(sink, scheduler=MagicMock())

    async def job(ctx):
        ctx.add_raw_message(create_message(1, "queued"))
        raise RuntimeError("boom")

    await adapter.run_handler(job)
    assert [m.text for m in sink.send_messages.await_args.args[0]] == ["queued"]


def test_start_and_stop_delegate_to_scheduler():
    scheduler = MagicMock()
    scheduler.running = False
    adapter = SchedulerAdapter(make_sink(), scheduler=scheduler)

    adapter.start()
    scheduler.start.assert_called_once()

    scheduler.running = True
    adapter.stop()
    scheduler.shutdown.assert_called_once_with(wait=False)
