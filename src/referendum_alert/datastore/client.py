"""Datastore client — async SQLAlchemy engine, sessions and dialect-aware upserts.

Subscriptions, watermarks and identity rows are all written with
``INSERT ... ON CONFLICT`` so concurrent writers on the same key never
collide on the primary key.  SQLite and PostgreSQL share that syntax but
SQLAlchemy exposes it through per-dialect ``insert`` constructs;
:meth:`Datastore.insert` picks the right one.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from referendum_alert.datastore.engines import create_engine

if TYPE_CHECKING:
    from referendum_alert.config.settings import DatabaseConfig

_ERR_NOT_OPEN = "Datastore is not open. Call open() first."


class Datastore:
    """Async datastore wrapping a SQLAlchemy engine and session factory.

    Usage::

        ds = Datastore(db_config)
        await ds.open()
        async with ds.session() as session:
            ...
        await ds.close()
    """

    def __init__(self, config: DatabaseConfig) -> None:
        self._config = config
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        """Return the underlying async engine.

        Raises:
            RuntimeError: If the datastore is not open.
        """
        if self._engine is None:
            raise RuntimeError(_ERR_NOT_OPEN)
        return self._engine

    @property
    def dialect(self) -> str:
        """Dialect name of the open engine (``sqlite`` or ``postgresql``)."""
        return self.engine.dialect.name

    async def open(self) -> None:  # noqa: ASYNC910
        """Create the engine and session factory; schema setup is separate."""
        self._engine = create_engine(self._config)
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def close(self) -> None:
        """Dispose the engine and release all connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    def session(self) -> AsyncSession:
        """Create a new async session. Use as an async context manager.

        Raises:
            RuntimeError: If the datastore is not open.
        """
        if self._session_factory is None:
            raise RuntimeError(_ERR_NOT_OPEN)
        return self._session_factory()

    def insert(self, model: Any) -> Any:
        """Return a dialect-specific ``INSERT`` for *model*.

        The result supports ``on_conflict_do_nothing`` and
        ``on_conflict_do_update`` on both SQLite and PostgreSQL.

        Raises:
            ValueError: For any other dialect.
        """
        dialect = self.dialect
        if dialect == "postgresql":
            return postgresql.insert(model)
        if dialect == "sqlite":
            return sqlite.insert(model)
        msg = f"Upserts are not supported on dialect {dialect!r}"
        raise ValueError(msg)

    @property
    def is_open(self) -> bool:
        """Check if the datastore is open."""
        return self._engine is not None
