"""Background task definitions — cron job handlers.

- ``notify_new_votes`` (``notifier.poll_interval``) — run one notification pass
- ``calculate_metrics`` (15 s) — count rows for Prometheus gauges
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from referendum_alert.engine.client import AlertEngine
    from referendum_alert.metrics.collector import EngineMetrics

logger = logging.getLogger(__name__)

CALCULATE_METRICS_PERIOD = 15


async def task_notify_new_votes(engine: AlertEngine) -> None:
    """Run one notification pass and log its outcome."""
    report = await engine.notifier.run_notification_pass()
    if report.skipped:
        logger.debug("notify_new_votes: pass skipped, previous pass still running")
    elif report.targets_failed or report.messages_failed:
        logger.warning(
            "notify_new_votes: %d failed targets, %d failed sends",
            report.targets_failed,
            report.messages_failed,
        )


async def task_calculate_metrics(engine: AlertEngine, metrics: EngineMetrics) -> None:
    """Count subscriptions, targets, watermarks and cached identities."""
    try:
        subscriptions = await engine.subscription_service.count()
        targets = await engine.subscription_service.count_targets()
        watermarks = await engine.watermark_service.count()
        identities = await engine.identity_service.count_cached()

        metrics.set_subscription_count(subscriptions)
        metrics.set_target_count(targets)
        metrics.set_watermark_count(watermarks)
        metrics.set_identity_count(identities)
    except Exception:
        logger.exception("calculate_metrics failed")
