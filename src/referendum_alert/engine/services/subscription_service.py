"""Subscription service — chat ↔ (referendum, network) bookkeeping.

Backs both the command handler (add / remove / clear / list for a chat)
and the notifier (distinct targets with their subscriber chats).  Both
read the same ``subscriptions`` table.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select

from referendum_alert.config.settings import Network
from referendum_alert.engine.models.subscription import Subscription

if TYPE_CHECKING:
    from referendum_alert.datastore.client import Datastore


@dataclass(frozen=True)
class SubscriptionTarget:
    """A distinct (referendum, network) pair with at least one subscriber."""

    ref_id: int
    network: Network
    subscriber_chats: frozenset[str]


class SubscriptionService:
    """Data access layer for chat subscriptions."""

    def __init__(self, datastore: Datastore) -> None:
        self._ds = datastore

    async def add_subscription(self, chat_id: str, ref_id: int, network: Network) -> bool:
        """Subscribe a chat. Returns False if the triple already existed.

        ``INSERT ... ON CONFLICT DO NOTHING``, so concurrent duplicates are
        harmless.
        """
        stmt = (
            self._ds.insert(Subscription)
            .values(chat_id=chat_id, ref_id=ref_id, network=network.value)
            .on_conflict_do_nothing(
                index_elements=[Subscription.chat_id, Subscription.ref_id, Subscription.network]
            )
            .returning(Subscription.chat_id)
        )
        async with self._ds.session() as session:
            inserted = (await session.execute(stmt)).first()
            await session.commit()
        return inserted is not None

    async def remove_subscription(
        self,
        chat_id: str,
        ref_id: int,
        network: Network | None = None,
    ) -> int:
        """Unsubscribe a chat from one network, or from both when *network* is None.

        Returns:
            Number of subscriptions removed.
        """
        stmt = delete(Subscription).where(
            Subscription.chat_id == chat_id,
            Subscription.ref_id == ref_id,
        )
        if network is not None:
            stmt = stmt.where(Subscription.network == network.value)
        async with self._ds.session() as session:
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount  # type: ignore[union-attr]

    async def clear_all_for_chat(self, chat_id: str) -> int:
        """Remove every subscription held by a chat. Returns the count removed."""
        async with self._ds.session() as session:
            result = await session.execute(
                delete(Subscription).where(Subscription.chat_id == chat_id)
            )
            await session.commit()
            return result.rowcount  # type: ignore[union-attr]

    async def list_subscriptions_for_chat(self, chat_id: str) -> list[tuple[int, Network]]:
        """Return ``(ref_id, network)`` pairs watched by a chat, ordered by network then id."""
        async with self._ds.session() as session:
            stmt = (
                select(Subscription.ref_id, Subscription.network)
                .where(Subscription.chat_id == chat_id)
                .order_by(Subscription.network, Subscription.ref_id)
            )
            result = await session.execute(stmt)
            return [(ref_id, Network(network)) for ref_id, network in result.all()]

    async def list_subscription_targets(self) -> list[SubscriptionTarget]:
        """Group all subscriptions by (referendum, network).

        Returns one entry per distinct pair; ``subscriber_chats`` has no
        meaningful order.
        """
        async with self._ds.session() as session:
            result = await session.execute(
                select(Subscription.ref_id, Subscription.network, Subscription.chat_id)
            )
            rows = result.all()

        grouped: dict[tuple[int, str], set[str]] = {}
        for ref_id, network, chat_id in rows:
            grouped.setdefault((ref_id, network), set()).add(chat_id)

        return [
            SubscriptionTarget(
                ref_id=ref_id,
                network=Network(network),
                subscriber_chats=frozenset(chats),
            )
            for (ref_id, network), chats in grouped.items()
        ]

    async def list_all(self) -> list[Subscription]:
        """List every subscription ordered by chat, network and id (admin listing)."""
        async with self._ds.session() as session:
            stmt = select(Subscription).order_by(
                Subscription.chat_id, Subscription.network, Subscription.ref_id
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def count(self) -> int:
        """Total number of subscriptions."""
        async with self._ds.session() as session:
            result = await session.execute(select(func.count()).select_from(Subscription))
            return result.scalar() or 0

    async def count_targets(self) -> int:
        """Number of distinct (referendum, network) pairs with a subscriber."""
        pairs = select(Subscription.ref_id, Subscription.network).distinct().subquery()
        async with self._ds.session() as session:
            return await session.scalar(select(func.count()).select_from(pairs)) or 0
