"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Annotated

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest
from starlette.responses import Response

from referendum_alert import __version__
from referendum_alert.api.admin import router as admin_router
from referendum_alert.api.dependencies import get_engine
from referendum_alert.api.webhook import router as webhook_router
from referendum_alert.config.settings import AppConfig
from referendum_alert.engine.client import AlertEngine
from referendum_alert.errors.alert_errors import AlertError
from referendum_alert.metrics.collector import EngineMetrics
from referendum_alert.metrics.middleware import PrometheusMiddleware

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle hooks.

    Initialises the engine (datastore, cache, clients, cron jobs) on startup
    and gracefully shuts down on exit.
    """
    config: AppConfig = app.state.config
    engine = AlertEngine(config, metrics=app.state.metrics)

    try:
        await engine.initialize()
        app.state.engine = engine
        logger.info("Referendum alert engine initialized")
        yield
    finally:
        await engine.close()
        logger.info("Referendum alert engine shut down")


def create_app(*, config: AppConfig | None = None) -> FastAPI:
    """Build and return the FastAPI application.

    Args:
        config: Optional AppConfig. If *None*, a default config is created
            from environment variables.
    """
    if config is None:
        config = AppConfig()

    app = FastAPI(
        title="referendum-alert",
        version=__version__,
        description="OpenGov referendum vote notifications for Telegram",
        lifespan=_lifespan,
        debug=config.debug,
    )

    app.state.config = config
    app.state.metrics = EngineMetrics()

    # -- Error handlers --
    @app.exception_handler(AlertError)
    async def _alert_error_handler(request: Request, exc: AlertError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"code": exc.code, "message": exc.message},
        )

    @app.exception_handler(Exception)
    async def _internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"code": "internal-error", "message": str(exc) or type(exc).__name__},
        )

    # -- Base routes --
    @app.get("/health", tags=["base"])
    async def health(request: Request) -> dict[str, object]:
        engine: AlertEngine | None = getattr(request.app.state, "engine", None)
        components = await engine.health_check() if engine is not None else {}
        return {"status": "ok", "version": __version__, "components": components}

    @app.get("/metrics", tags=["base"], include_in_schema=False)
    async def metrics_endpoint(
        engine: Annotated[AlertEngine, Depends(get_engine)],
    ) -> Response:
        """Prometheus metrics endpoint."""
        if not config.metrics.enabled or engine.metrics is None:
            return Response(status_code=404)
        return Response(
            content=generate_latest(engine.metrics.registry),
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )

    # -- Prometheus request metrics middleware --
    if config.metrics.enabled:
        app.add_middleware(PrometheusMiddleware, registry=app.state.metrics.registry)

    app.include_router(webhook_router)
    app.include_router(admin_router)

    return app
