"""Tests for planit/bot/router.py"""

import pytest

from planit.bot.commands import Command, ResponseTo
from planit.bot.context import ConversationContext
from planit.bot.router import CommandRouter, fallback_handler
from planit.constants import UNKNOWN_COMMAND_MESSAGE


def recorder(calls: list, name: str, abort: bool = False, text: str | None = None):
    async def handler(ctx):
        calls.append(name)
        if text is not None:
            ctx.add_message(text)
        if abort:
            ctx.abort()
    handler.__name__ = name
    return handler


def test_register_returns_tagged_keys():
    router = CommandRouter()
    assert router.register_command("new", []) == Command("new")
    assert router.register_command("new", [], response=True) == ResponseTo("new")


def test_command_and_reply_chains_do_not_collide():
    router = CommandRouter()
    calls = []
    router.register_command("new", [recorder(calls, "cmd")])
    router.register_command("new", [recorder(calls, "reply")], response=True)
    assert len(router.chain(Command("new"))) == 1
    assert len(router.chain(ResponseTo("new"))) == 1
    assert router.chain(Command("new")) != router.chain(ResponseTo("new"))


def test_registering_twice_extends_chain():
    router = CommandRouter()
    calls = []
    router.register_command("events", [recorder(calls, "a")])
    router.register_command("events", [recorder(calls, "b")])
    assert len(router.chain(Command("events"))) == 2


def test_unknown_command_resolves_to_fallback():
    router = CommandRouter()
    key, handlers = router.resolve(42, 1, "nope")
    assert key == Command("nope")
    assert handlers == [fallback_handler]


def test_plain_text_without_pending_resolves_to_fallback():
    router = CommandRouter()
    key, handlers = router.resolve(42, 1, None)
    assert key is None
    assert handlers == [fallback_handler]


def test_pending_reply_matches_exact_next_update():
    router = CommandRouter()
    router.register_command("new", [], response=True)
    router.pending.register(42, 11, ResponseTo("new"))
    assert router.resolve_key(42, 11, None) == ResponseTo("new")


def test_pending_reply_consumed_once():
    router = CommandRouter()
    router.pending.register(42, 11, ResponseTo("new"))
    router.resolve_key(42, 11, None)
    assert router.resolve_key(42, 11, None) is None


def test_pending_reply_consumed_even_when_update_id_differs():
    router = CommandRouter()
    router.pending.register(42, 11, ResponseTo("new"))
    assert router.resolve_key(42, 12, None) is None
    assert router.pending.lookup_and_clear(42) is None


def test_explicit_command_beats_pending_reply():
    router = CommandRouter()
    router.pending.register(42, 11, ResponseTo("new"))
    assert router.resolve_key(42, 11, "events") == Command("events")
    # and the pending entry is gone
    assert router.resolve_key(42, 12, None) is None


def test_pending_reply_is_per_chat():
    router = CommandRouter()
    router.pending.register(42, 11, ResponseTo("new"))
    assert router.resolve_key(7, 11, None) is None
    assert router.resolve_key(42, 11, None) == ResponseTo("new")


@pytest.mark.asyncio
async def test_fallback_handler_aborts_with_message():
    ctx = ConversationContext(chat_id=42)
    await fallback_handler(ctx)
    assert ctx.is_aborted()
    assert [m.text for m in ctx.messages] == [UNKNOWN_COMMAND_MESSAGE]


@pytest.mark.asyncio
async def test_run_stops_after_abort():
    router = CommandRouter()
    calls = []
    handlers = [
        recorder(calls, "gate", abort=True, text="denied"),
        recorder(calls, "business", text="done"),
    ]
    ctx = ConversationContext(chat_id=42)
    await router.run(ctx, handlers)

    assert calls == ["gate"]
    assert [m.text for m in ctx.messages] == ["denied"]


@pytest.mark.asyncio
async def test_run_executes_all_handlers_in_order():
    router = CommandRouter()
    calls = []
    handlers = [recorder(calls, n, text=n) for n in ("a", "b", "c")]
    ctx = ConversationContext(chat_id=42)
    await router.run(ctx, handlers)

    assert calls == ["a", "b", "c"]
    assert [m.text for m in ctx.messages] == ["a", "b", "c"]
