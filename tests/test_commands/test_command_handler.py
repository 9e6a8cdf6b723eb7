"""Tests for chat command parsing and handling."""

from __future__ import annotations

import asyncio

import pytest

from referendum_alert.commands.handler import (
    HELP_TEXT,
    UNWATCH_USAGE,
    WATCH_USAGE,
    CommandHandler,
    clean_id,
    parse_ref_id,
    parse_watch_args,
)
from referendum_alert.config.settings import Network

NOW = 1_700_000_000


def _update(text: str, chat_id: int | str = 42, *, channel: bool = False) -> dict:
    key = "channel_post" if channel else "message"
    return {"update_id": 1, key: {"chat": {"id": chat_id}, "text": text}}


@pytest.fixture
def sender(fake_sender_cls):
    return fake_sender_cls()


@pytest.fixture
def handler(subscriptions, watermarks, sender) -> CommandHandler:
    return CommandHandler(subscriptions, watermarks, sender, clock=lambda: float(NOW))


def _last_reply(sender) -> str:
    return sender.sent[-1][1]


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestParsing:
    def test_clean_id(self) -> None:
        assert clean_id("#1759") == "1759"
        assert clean_id(" -12x") == "-12"
        assert clean_id(None) == ""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("1759", 1759), ("0", None), ("-5", None), ("", None), ("abc", None)],
    )
    def test_parse_ref_id(self, value: str, expected: int | None) -> None:
        assert parse_ref_id(value) == expected

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("1759", (1759, Network.POLKADOT)),
            ("321 ksm", (321, Network.KUSAMA)),
            ("321 Kusama", (321, Network.KUSAMA)),
            ("1759 dot", (1759, Network.POLKADOT)),
            ("dot:1759", (1759, Network.POLKADOT)),
            ("KSM : 321", (321, Network.KUSAMA)),
            ("polkadot:5", (5, Network.POLKADOT)),
        ],
    )
    def test_parse_watch_args(self, raw: str, expected: tuple[int, Network]) -> None:
        assert parse_watch_args(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", "abc", "#12", "0", "12 eth", "dot:0", "eth:12"])
    def test_parse_watch_args_rejects(self, raw: str) -> None:
        assert parse_watch_args(raw) is None


# ---------------------------------------------------------------------------
# Core-state mutations
# ---------------------------------------------------------------------------


class TestSubscribe:
    async def test_subscribe_sets_watermark_to_now(self, handler, subscriptions, watermarks) -> None:
        assert await handler.subscribe("42", 1759, Network.POLKADOT) == NOW
        assert await subscriptions.list_subscriptions_for_chat("42") == [(1759, Network.POLKADOT)]
        assert await watermarks.get_watermark(1759, Network.POLKADOT) == NOW

    async def test_subscribe_never_lowers_watermark(self, handler, watermarks) -> None:
        await watermarks.set_watermark(1759, Network.POLKADOT, NOW + 500)
        assert await handler.subscribe("42", 1759, Network.POLKADOT) == NOW + 500
        assert await watermarks.get_watermark(1759, Network.POLKADOT) == NOW + 500

    async def test_subscribe_is_idempotent(self, handler, subscriptions) -> None:
        await handler.subscribe("42", 1759, Network.POLKADOT)
        await handler.subscribe("42", 1759, Network.POLKADOT)
        assert await subscriptions.count() == 1

    async def test_concurrent_duplicate_watch(
        self, handler, sender, subscriptions, watermarks
    ) -> None:
        await asyncio.gather(*(handler.handle_update(_update("/watch 1759")) for _ in range(3)))

        assert [text for _, text in sender.sent] == ["✅ Watching #1759 (dot)"] * 3
        assert await subscriptions.count() == 1
        assert await watermarks.get_watermark(1759, Network.POLKADOT) == NOW


# ---------------------------------------------------------------------------
# Update dispatch
# ---------------------------------------------------------------------------


class TestHandleUpdate:
    @pytest.mark.parametrize("command", ["/start", "/help", "/commands", "/HELP@ReferendumBot"])
    async def test_help(self, handler, sender, command: str) -> None:
        assert await handler.handle_update(_update(command)) is True
        assert sender.sent == [("42", HELP_TEXT)]

    async def test_id(self, handler, sender) -> None:
        await handler.handle_update(_update("/id", chat_id=-100123))
        assert sender.sent == [("-100123", "This chat id: <code>-100123</code>")]

    async def test_watch_default_network(self, handler, sender, subscriptions) -> None:
        await handler.handle_update(_update("/watch 1759"))
        assert _last_reply(sender) == "✅ Watching #1759 (dot)"
        assert await subscriptions.list_subscriptions_for_chat("42") == [(1759, Network.POLKADOT)]

    @pytest.mark.parametrize(
        ("text", "ref_id", "network"),
        [
            ("/watch 321 ksm", 321, Network.KUSAMA),
            ("/watch ksm:321", 321, Network.KUSAMA),
            ("/watchdot #1759", 1759, Network.POLKADOT),
            ("/watchksm 321", 321, Network.KUSAMA),
        ],
    )
    async def test_watch_variants(
        self, handler, sender, subscriptions, text, ref_id, network
    ) -> None:
        await handler.handle_update(_update(text))
        assert _last_reply(sender) == f"✅ Watching #{ref_id} ({network})"
        assert await subscriptions.list_subscriptions_for_chat("42") == [(ref_id, network)]

    @pytest.mark.parametrize("text", ["/watch", "/watch abc", "/watch 12 eth", "/watchksm"])
    async def test_watch_usage(self, handler, sender, subscriptions, text) -> None:
        await handler.handle_update(_update(text))
        assert _last_reply(sender) == WATCH_USAGE
        assert await subscriptions.count() == 0

    async def test_watch_hides_earlier_votes(self, handler, watermarks) -> None:
        await handler.handle_update(_update("/watch 1759"))
        assert await watermarks.get_watermark(1759, Network.POLKADOT) == NOW

    async def test_unwatch_one_network(self, handler, sender, subscriptions) -> None:
        await handler.subscribe("42", 1759, Network.POLKADOT)
        await handler.subscribe("42", 1759, Network.KUSAMA)

        await handler.handle_update(_update("/unwatch 1759 ksm"))

        assert _last_reply(sender) == "🗑️ Unwatched #1759 (ksm)"
        assert await subscriptions.list_subscriptions_for_chat("42") == [(1759, Network.POLKADOT)]

    async def test_unwatch_both_networks(self, handler, sender, subscriptions) -> None:
        await handler.subscribe("42", 1759, Network.POLKADOT)
        await handler.subscribe("42", 1759, Network.KUSAMA)

        await handler.handle_update(_update("/unwatch #1759"))

        assert _last_reply(sender) == "🗑️ Unwatched #1759 (dot &amp; ksm)"
        assert await subscriptions.count() == 0

    async def test_unwatch_usage(self, handler, sender) -> None:
        await handler.handle_update(_update("/unwatch"))
        assert _last_reply(sender) == UNWATCH_USAGE

    async def test_list(self, handler, sender) -> None:
        await handler.subscribe("42", 321, Network.KUSAMA)
        await handler.subscribe("42", 1759, Network.POLKADOT)
        await handler.subscribe("42", 12, Network.POLKADOT)

        await handler.handle_update(_update("/list"))

        assert _last_reply(sender) == "👀 Watching: #12 (dot), #1759 (dot), #321 (ksm)"

    async def test_list_empty(self, handler, sender) -> None:
        await handler.handle_update(_update("/list"))
        assert _last_reply(sender).startswith("You aren’t watching any referenda yet.")

    async def test_clear(self, handler, sender, subscriptions) -> None:
        await handler.subscribe("42", 1, Network.POLKADOT)
        await handler.subscribe("42", 2, Network.KUSAMA)
        await handler.subscribe("99", 1, Network.POLKADOT)

        await handler.handle_update(_update("/clear"))

        assert _last_reply(sender) == "🧹 Cleared all subscriptions for this chat (dot &amp; ksm)."
        assert await subscriptions.list_subscriptions_for_chat("42") == []
        assert await subscriptions.count() == 1

    async def test_unknown_command_is_escaped(self, handler, sender) -> None:
        await handler.handle_update(_update("/<b>oops"))
        reply = _last_reply(sender)
        assert reply.startswith("🤖 Unknown command: <code>/&lt;b&gt;oops</code>")
        assert reply.endswith(HELP_TEXT)

    async def test_channel_post(self, handler, sender) -> None:
        assert await handler.handle_update(_update("/id", chat_id=-5, channel=True)) is True
        assert sender.sent[0][0] == "-5"

    async def test_plain_text_gets_no_reply(self, handler, sender) -> None:
        assert await handler.handle_update(_update("hello there")) is True
        assert sender.sent == []

    @pytest.mark.parametrize(
        "update",
        [
            {},
            {"message": "not a dict"},
            {"message": {"chat": {"id": 1}}},
            {"message": {"text": "/help"}},
            {"edited_message": {"chat": {"id": 1}, "text": "/help"}},
        ],
    )
    async def test_ignored_updates(self, handler, sender, update) -> None:
        assert await handler.handle_update(update) is False
        assert sender.sent == []

    async def test_store_failure_is_reported_to_chat(
        self, subscriptions, watermarks, sender
    ) -> None:
        class _BrokenSubscriptions:
            async def list_subscriptions_for_chat(self, chat_id: str):
                raise RuntimeError("database is locked")

        handler = CommandHandler(_BrokenSubscriptions(), watermarks, sender)  # type: ignore[arg-type]
        assert await handler.handle_update(_update("/list")) is True
        assert _last_reply(sender) == "⚠️ Error: database is locked"
