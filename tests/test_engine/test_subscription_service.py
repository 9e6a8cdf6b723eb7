"""Tests for SubscriptionService."""

from __future__ import annotations

import asyncio

from referendum_alert.config.settings import Network


class TestSubscriptionService:
    async def test_add_is_idempotent(self, subscriptions) -> None:
        assert await subscriptions.add_subscription("42", 1759, Network.POLKADOT) is True
        assert await subscriptions.add_subscription("42", 1759, Network.POLKADOT) is False
        assert await subscriptions.count() == 1

    async def test_same_ref_on_both_networks_is_two_subscriptions(self, subscriptions) -> None:
        await subscriptions.add_subscription("42", 5, Network.POLKADOT)
        await subscriptions.add_subscription("42", 5, Network.KUSAMA)
        assert await subscriptions.list_subscriptions_for_chat("42") == [
            (5, Network.POLKADOT),
            (5, Network.KUSAMA),
        ]

    async def test_remove_one_network(self, subscriptions) -> None:
        await subscriptions.add_subscription("42", 5, Network.POLKADOT)
        await subscriptions.add_subscription("42", 5, Network.KUSAMA)

        assert await subscriptions.remove_subscription("42", 5, Network.KUSAMA) == 1
        assert await subscriptions.list_subscriptions_for_chat("42") == [(5, Network.POLKADOT)]

    async def test_remove_both_networks(self, subscriptions) -> None:
        await subscriptions.add_subscription("42", 5, Network.POLKADOT)
        await subscriptions.add_subscription("42", 5, Network.KUSAMA)
        await subscriptions.add_subscription("42", 6, Network.KUSAMA)

        assert await subscriptions.remove_subscription("42", 5) == 2
        assert await subscriptions.list_subscriptions_for_chat("42") == [(6, Network.KUSAMA)]

    async def test_remove_missing_is_zero(self, subscriptions) -> None:
        assert await subscriptions.remove_subscription("42", 5) == 0

    async def test_clear_only_touches_one_chat(self, subscriptions) -> None:
        await subscriptions.add_subscription("42", 1, Network.POLKADOT)
        await subscriptions.add_subscription("42", 2, Network.KUSAMA)
        await subscriptions.add_subscription("7", 1, Network.POLKADOT)

        assert await subscriptions.clear_all_for_chat("42") == 2
        assert await subscriptions.list_subscriptions_for_chat("42") == []
        assert await subscriptions.list_subscriptions_for_chat("7") == [(1, Network.POLKADOT)]

    async def test_targets_group_chats(self, subscriptions) -> None:
        await subscriptions.add_subscription("A", 1759, Network.POLKADOT)
        await subscriptions.add_subscription("B", 1759, Network.POLKADOT)
        await subscriptions.add_subscription("A", 1759, Network.KUSAMA)

        targets = await subscriptions.list_subscription_targets()
        by_key = {(t.ref_id, t.network): t.subscriber_chats for t in targets}

        assert by_key == {
            (1759, Network.POLKADOT): frozenset({"A", "B"}),
            (1759, Network.KUSAMA): frozenset({"A"}),
        }

    async def test_targets_empty(self, subscriptions) -> None:
        assert await subscriptions.list_subscription_targets() == []

    async def test_list_all_ordering(self, subscriptions) -> None:
        await subscriptions.add_subscription("B", 2, Network.POLKADOT)
        await subscriptions.add_subscription("A", 9, Network.KUSAMA)
        await subscriptions.add_subscription("A", 3, Network.POLKADOT)

        rows = await subscriptions.list_all()

        assert [(s.chat_id, s.ref_id, s.network) for s in rows] == [
            ("A", 3, "dot"),
            ("A", 9, "ksm"),
            ("B", 2, "dot"),
        ]

    async def test_count_targets(self, subscriptions) -> None:
        assert await subscriptions.count_targets() == 0
        await subscriptions.add_subscription("A", 1759, Network.POLKADOT)
        await subscriptions.add_subscription("B", 1759, Network.POLKADOT)
        await subscriptions.add_subscription("A", 1759, Network.KUSAMA)
        assert await subscriptions.count() == 3
        assert await subscriptions.count_targets() == 2


class TestConcurrentAdds:
    async def test_duplicate_adds_insert_once(self, subscriptions) -> None:
        results = await asyncio.gather(
            *(subscriptions.add_subscription("A", 7, Network.POLKADOT) for _ in range(5))
        )
        assert sorted(results) == [False, False, False, False, True]
        assert await subscriptions.count() == 1

    async def test_distinct_adds_all_land(self, subscriptions) -> None:
        chats = [str(n) for n in range(6)]
        results = await asyncio.gather(
            *(subscriptions.add_subscription(chat, 7, Network.KUSAMA) for chat in chats)
        )
        assert results == [True] * 6
        targets = await subscriptions.list_subscription_targets()
        assert [t.subscriber_chats for t in targets] == [frozenset(chats)]
