"""Identity models — display-name cache and operator overrides."""

from __future__ import annotations

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from referendum_alert.engine.models.base import Base


class IdentityCacheEntry(Base):
    """Cached on-chain display name for an address.

    ``display`` is NULL when the lookup found no identity; that negative
    result is cached too.
    """

    __tablename__ = "identities"

    address: Mapped[str] = mapped_column(String(128), primary_key=True)
    display: Mapped[str | None] = mapped_column(String(256), nullable=True, default=None)
    refreshed_at: Mapped[int] = mapped_column(BigInteger, nullable=False, comment="Unix seconds")

    def __repr__(self) -> str:
        return f"<IdentityCacheEntry address={self.address[:12]}... display={self.display!r}>"


class IdentityOverride(Base):
    """Operator-supplied display name that wins over the lookup cache."""

    __tablename__ = "identity_overrides"

    address: Mapped[str] = mapped_column(String(128), primary_key=True)
    display: Mapped[str] = mapped_column(String(256), nullable=False)
