"""Watermark model — delivery high-water mark per (referendum, network)."""

from __future__ import annotations

from sqlalchemy import BigInteger, CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from referendum_alert.engine.models.base import Base, TimestampMixin


class Watermark(Base, TimestampMixin):
    """Seen-through timestamp for one referendum on one network.

    Every vote with a timestamp at or below ``since_sec`` has already been
    delivered to the subscribers of this pair.
    """

    __tablename__ = "watermarks"
    __table_args__ = (
        CheckConstraint("network IN ('dot', 'ksm')", name="ck_watermarks_network"),
    )

    ref_id: Mapped[int] = mapped_column(Integer, primary_key=True, comment="Referendum index")
    network: Mapped[str] = mapped_column(String(8), primary_key=True, comment="dot or ksm")
    since_sec: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0, comment="Unix seconds, exclusive lower bound"
    )

    def __repr__(self) -> str:
        return f"<Watermark ref={self.ref_id} network={self.network} since={self.since_sec}>"
