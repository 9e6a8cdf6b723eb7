"""Task manager lifecycle — start, stop, schedule.

The ``TaskManager`` owns a set of ``CronJob`` definitions and runs each on
its own asyncio task.  A job waits ``period`` seconds between runs; with
``run_immediately`` it also runs once right after start.  A failing run is
logged and the loop carries on.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from referendum_alert.metrics.collector import EngineMetrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CronJob:
    """A recurring background job."""

    handler: Callable[[], Awaitable[None]]
    period: float  # seconds
    name: str = ""
    run_immediately: bool = False


class TaskManager:
    """Manages asyncio-based cron jobs.

    Usage::

        tm = TaskManager(metrics=engine_metrics)
        tm.register("notify_new_votes", CronJob(handler=..., period=60))
        await tm.start()
        ...
        await tm.stop()
    """

    def __init__(self, *, metrics: EngineMetrics | None = None) -> None:
        self._jobs: dict[str, CronJob] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._running = False
        self._metrics = metrics

    @property
    def is_running(self) -> bool:
        """Whether the task manager is currently running."""
        return self._running

    @property
    def jobs(self) -> dict[str, CronJob]:
        """Registered jobs (name → CronJob)."""
        return dict(self._jobs)

    def register(self, name: str, job: CronJob) -> None:
        """Register a cron job.  Can be called before or after start().

        If the manager is already running the job is started immediately.
        """
        resolved = CronJob(
            handler=job.handler,
            period=job.period,
            name=name,
            run_immediately=job.run_immediately,
        )
        self._jobs[name] = resolved
        if self._running:
            self._tasks[name] = asyncio.create_task(self._run_loop(resolved))

    async def start(self) -> None:
        """Start all registered cron jobs."""
        if self._running:
            return
        self._running = True
        for name, job in self._jobs.items():
            self._tasks[name] = asyncio.create_task(self._run_loop(job))
        logger.info("TaskManager started with %d jobs", len(self._jobs))

    async def stop(self) -> None:
        """Cancel all running jobs and wait for cleanup."""
        if not self._running:
            return
        self._running = False
        for task in self._tasks.values():
            task.cancel()
        results = await asyncio.gather(*self._tasks.values(), return_exceptions=True)
        for r in results:
            if isinstance(r, Exception) and not isinstance(r, asyncio.CancelledError):
                logger.error("Task error during shutdown: %s", r)
        self._tasks.clear()
        logger.info("TaskManager stopped")

    async def run_job(self, name: str) -> None:
        """Run one registered job now, outside its schedule.

        Raises:
            KeyError: If no job is registered under *name*.
        """
        await self._execute(self._jobs[name])

    async def _run_loop(self, job: CronJob) -> None:
        """Repeatedly execute *job* every *job.period* seconds."""
        first = True
        while self._running:
            try:
                if not (first and job.run_immediately):
                    await asyncio.sleep(job.period)
                first = False
                if not self._running:
                    break
                await self._execute(job)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Cron job %r failed", job.name or "unnamed")

    async def _execute(self, job: CronJob) -> None:
        if self._metrics:
            with self._metrics.track_cron(job.name or "unnamed"):
                await job.handler()
        else:
            await job.handler()
