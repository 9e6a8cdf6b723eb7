"""Identity service — display names for voter addresses.

Resolution order:
1. Operator override (``identity_overrides``)
2. Cached lookup younger than the TTL, including cached "no identity" results
3. Live lookup through the configured identity source, then cached

Names are cosmetic only; nothing here affects what gets delivered.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Protocol

from sqlalchemy import delete, func, select

from referendum_alert.engine.models.identity import IdentityCacheEntry, IdentityOverride

if TYPE_CHECKING:
    from collections.abc import Callable

    from referendum_alert.datastore.client import Datastore

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 7 * 24 * 60 * 60


class IdentityLookup(Protocol):
    """External source of on-chain display names."""

    async def get_account_display(self, address: str) -> str | None: ...


class IdentityService:
    """Resolve and cache on-chain display names."""

    def __init__(
        self,
        datastore: Datastore,
        lookup: IdentityLookup | None = None,
        *,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ds = datastore
        self._lookup = lookup
        self._ttl = ttl_seconds
        self._clock = clock

    @property
    def lookup_enabled(self) -> bool:
        return self._lookup is not None

    async def resolve_display(self, address: str) -> str | None:
        """Return the best known display name for *address*, or None."""
        if not address:
            return None

        override = await self.get_override(address)
        if override:
            return override

        now = int(self._clock())
        async with self._ds.session() as session:
            cached = await session.get(IdentityCacheEntry, address)
        if cached is not None and now - cached.refreshed_at < self._ttl:
            return cached.display or None

        if self._lookup is None:
            return None

        fresh = await self._lookup.get_account_display(address)
        await self._store(address, fresh, now)
        logger.debug("Identity refreshed for %s: %r", address, fresh)
        return fresh

    async def get_override(self, address: str) -> str | None:
        async with self._ds.session() as session:
            row = await session.get(IdentityOverride, address)
            return row.display if row is not None else None

    async def set_override(self, address: str, display: str) -> None:
        """Pin a display name for an address, replacing any previous override."""
        stmt = self._ds.insert(IdentityOverride).values(address=address, display=display)
        stmt = stmt.on_conflict_do_update(
            index_elements=[IdentityOverride.address],
            set_={"display": stmt.excluded.display},
        )
        async with self._ds.session() as session:
            await session.execute(stmt)
            await session.commit()

    async def delete_cached(self, address: str) -> bool:
        """Purge the cache entry for one address. Returns True if a row was removed."""
        async with self._ds.session() as session:
            result = await session.execute(
                delete(IdentityCacheEntry).where(IdentityCacheEntry.address == address)
            )
            await session.commit()
            return result.rowcount > 0  # type: ignore[union-attr]

    async def count_cached(self) -> int:
        """Number of cached lookups, negative results included."""
        async with self._ds.session() as session:
            return await session.scalar(select(func.count()).select_from(IdentityCacheEntry)) or 0

    async def _store(self, address: str, display: str | None, now: int) -> None:
        stmt = self._ds.insert(IdentityCacheEntry).values(
            address=address, display=display, refreshed_at=now
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[IdentityCacheEntry.address],
            set_={"display": stmt.excluded.display, "refreshed_at": stmt.excluded.refreshed_at},
        )
        async with self._ds.session() as session:
            await session.execute(stmt)
            await session.commit()
