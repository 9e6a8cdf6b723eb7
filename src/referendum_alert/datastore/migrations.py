"""Startup schema initialization.

``run_auto_migrate`` is executed once per process from engine
initialization; every statement is "create if absent" so running it
against an existing database is a no-op.  Production deployments can use
the Alembic scripts instead.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from referendum_alert.engine.models.base import Base

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)


async def run_auto_migrate(engine: AsyncEngine) -> None:
    """Create all tables defined by ORM models that do not exist yet.

    Args:
        engine: The async SQLAlchemy engine to migrate.
    """
    # Import all models to register them with Base.metadata
    import referendum_alert.engine.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Schema ready (%d tables)", len(Base.metadata.tables))

