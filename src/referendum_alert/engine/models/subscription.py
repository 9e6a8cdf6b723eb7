"""Subscription model — a chat watching one referendum on one network."""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from referendum_alert.config.settings import Network
from referendum_alert.engine.models.base import Base, TimestampMixin


class Subscription(Base, TimestampMixin):
    """A (chat, referendum, network) subscription.

    The triple is the identity key: a chat may watch the same referendum id
    independently on each network.
    """

    __tablename__ = "subscriptions"
    __table_args__ = (
        CheckConstraint("network IN ('dot', 'ksm')", name="ck_subscriptions_network"),
        Index("ix_subscriptions_target", "ref_id", "network"),
    )

    chat_id: Mapped[str] = mapped_column(String(64), primary_key=True, comment="Chat identity")
    ref_id: Mapped[int] = mapped_column(Integer, primary_key=True, comment="Referendum index")
    network: Mapped[str] = mapped_column(String(8), primary_key=True, comment="dot or ksm")

    @property
    def network_enum(self) -> Network:
        return Network(self.network)

    def __repr__(self) -> str:
        return f"<Subscription chat={self.chat_id} ref={self.ref_id} network={self.network}>"
