"""Task manager — background cron scheduling.

Runs the periodic jobs of the relay on asyncio tasks:
- notification pass (poll providers, deliver new votes)
- metrics calculation (subscription counts for Prometheus gauges)

Cross-instance exclusion for the notification pass is handled by the
notifier itself through a cache lock, not by the scheduler.
"""

from __future__ import annotations

from referendum_alert.taskmanager.manager import CronJob, TaskManager

__all__ = ["CronJob", "TaskManager"]
