"""FastAPI dependency injection helpers.

Provides ``Depends()``-compatible callables for engine access and
shared-secret checks in route handlers.

Usage in a route::

    @router.post("/run")
    async def run(
        engine: Annotated[AlertEngine, Depends(get_engine)],
        _: Annotated[None, Depends(require_admin_key)],
    ) -> ...:
        ...
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header, Query, Request

from referendum_alert.api.middleware.auth import (
    ADMIN_KEY_HEADER,
    TELEGRAM_SECRET_HEADER,
    check_admin_key,
    check_webhook_secret,
)
from referendum_alert.engine.client import AlertEngine  # noqa: TC001
from referendum_alert.errors.definitions import ErrEngineNotReady

# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def get_engine(request: Request) -> AlertEngine:
    """Retrieve the engine from ``app.state``.

    The engine is stored on ``app.state.engine`` during lifespan startup.

    Raises:
        ErrEngineNotReady: If the engine is not initialized.
    """
    engine: AlertEngine | None = getattr(request.app.state, "engine", None)
    if engine is None or not engine.is_initialized:
        raise ErrEngineNotReady
    return engine


# ---------------------------------------------------------------------------
# Shared secrets
# ---------------------------------------------------------------------------


def require_admin_key(
    engine: Annotated[AlertEngine, Depends(get_engine)],
    x_admin_key: Annotated[str, Header(alias=ADMIN_KEY_HEADER)] = "",
    key: Annotated[str, Query()] = "",
) -> None:
    """Dependency that requires the admin key in the header or ``?key=``."""
    check_admin_key(x_admin_key or key, engine.config.effective_admin_key)


def require_webhook_secret(
    engine: Annotated[AlertEngine, Depends(get_engine)],
    secret: Annotated[str, Header(alias=TELEGRAM_SECRET_HEADER)] = "",
) -> None:
    """Dependency that requires Telegram's webhook secret header."""
    check_webhook_secret(secret, engine.config.telegram.webhook_secret)
