"""Watermark service — per (referendum, network) seen-through timestamps."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import case, func, select

from referendum_alert.engine.models.watermark import Watermark

if TYPE_CHECKING:
    from referendum_alert.config.settings import Network
    from referendum_alert.datastore.client import Datastore


class WatermarkService:
    """Data access layer for delivery watermarks.

    A missing row reads as 0 (the epoch), so a pair nobody has touched yet
    replays whatever the providers return.  Both writers are single-statement
    upserts: concurrent writers on the same pair resolve in the database
    (last write wins for ``set_watermark``, the larger value wins for
    ``raise_watermark``).
    """

    def __init__(self, datastore: Datastore) -> None:
        self._ds = datastore

    async def get_watermark(self, ref_id: int, network: Network) -> int:
        """Return the stored watermark in seconds, or 0 if absent."""
        async with self._ds.session() as session:
            row = await session.get(Watermark, (ref_id, network.value))
            return int(row.since_sec) if row is not None else 0

    async def set_watermark(self, ref_id: int, network: Network, ts: int) -> None:
        """Upsert the watermark, overwriting unconditionally.

        Callers are responsible for never passing a value below the current one.
        """
        stmt = self._ds.insert(Watermark).values(ref_id=ref_id, network=network.value, since_sec=ts)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Watermark.ref_id, Watermark.network],
            set_={"since_sec": stmt.excluded.since_sec, "updated_at": func.now()},
        )
        async with self._ds.session() as session:
            await session.execute(stmt)
            await session.commit()

    async def raise_watermark(self, ref_id: int, network: Network, ts: int) -> int:
        """Upsert the watermark only if *ts* is above the stored value.

        Returns:
            The watermark value after the call.
        """
        stmt = self._ds.insert(Watermark).values(ref_id=ref_id, network=network.value, since_sec=ts)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Watermark.ref_id, Watermark.network],
            set_={
                "since_sec": case(
                    (stmt.excluded.since_sec > Watermark.since_sec, stmt.excluded.since_sec),
                    else_=Watermark.since_sec,
                ),
                "updated_at": func.now(),
            },
        )
        async with self._ds.session() as session:
            await session.execute(stmt)
            current = await session.scalar(
                select(Watermark.since_sec).where(
                    Watermark.ref_id == ref_id,
                    Watermark.network == network.value,
                )
            )
            await session.commit()
        return int(current)

    async def count(self) -> int:
        """Number of stored watermarks."""
        async with self._ds.session() as session:
            return await session.scalar(select(func.count()).select_from(Watermark)) or 0
