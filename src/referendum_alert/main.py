"""Application entry points for the referendum alert relay.

- ``main()`` — serve the HTTP API (webhook, admin routes) with the cron jobs
- ``run_once()`` — run a single notification pass for an external scheduler
"""

from __future__ import annotations

import asyncio
import logging
import os

import uvicorn

from referendum_alert.config.settings import AppConfig
from referendum_alert.engine.client import AlertEngine
from referendum_alert.notifier.engine import PassReport

logger = logging.getLogger(__name__)


def main() -> None:
    """Start the referendum alert server."""
    config = AppConfig()
    reload = os.getenv("REFALERT_RELOAD", "false").lower() in ("1", "true", "yes")
    uvicorn.run(
        "referendum_alert.api.app:create_app",
        factory=True,
        host=config.server.host,
        port=config.server.port,
        reload=reload,
        log_level="debug" if config.debug else "info",
    )


async def run_pass_once(config: AppConfig) -> PassReport:
    """Initialize the engine without cron jobs, run one pass and shut down."""
    engine = AlertEngine(config)
    try:
        await engine.initialize(start_tasks=False)
        return await engine.notifier.run_notification_pass()
    finally:
        await engine.close()


def run_once() -> int:
    """Run one notification pass and exit.

    Returns a non-zero exit status when any target failed.
    """
    config = AppConfig()
    logging.basicConfig(
        level=logging.DEBUG if config.debug else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    report = asyncio.run(run_pass_once(config))
    logger.info("Pass report: %s", report.to_dict())
    return 1 if report.targets_failed else 0


if __name__ == "__main__":
    main()
