"""AlertEngine — central engine client owning all services."""

from __future__ import annotations

import logging
from functools import partial
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from referendum_alert.cache.client import CacheClient
    from referendum_alert.commands.handler import CommandHandler
    from referendum_alert.config.settings import AppConfig
    from referendum_alert.datastore.client import Datastore
    from referendum_alert.engine.services.identity_service import IdentityService
    from referendum_alert.engine.services.subscription_service import SubscriptionService
    from referendum_alert.engine.services.watermark_service import WatermarkService
    from referendum_alert.metrics.collector import EngineMetrics
    from referendum_alert.notifier.engine import NotificationEngine
    from referendum_alert.sources.aggregator import VoteSourceAggregator
    from referendum_alert.sources.models import VoteProvider
    from referendum_alert.sources.polkassembly.client import PolkassemblyClient
    from referendum_alert.sources.subscan.client import SubscanClient
    from referendum_alert.taskmanager.manager import TaskManager
    from referendum_alert.telegram.client import TelegramClient

logger = logging.getLogger(__name__)

_ERR_NOT_INITIALIZED = "Engine not initialized. Call initialize() first."


class AlertEngine:
    """Central engine that owns all services and infrastructure.

    Provides lifecycle management and a service registry: datastore, cache,
    vote providers, Telegram transport, identity resolution, the
    notification engine, the command handler and the cron scheduler.
    """

    def __init__(self, config: AppConfig, *, metrics: EngineMetrics | None = None) -> None:
        """Initialize engine with configuration.

        Args:
            config: Application configuration with datastore, cache, provider settings.
            metrics: Metrics to record into; a private set is created when omitted.
        """
        self._config = config
        self._initialized = False

        # Infrastructure components
        self._datastore: Datastore | None = None
        self._cache: CacheClient | None = None
        self._subscan: SubscanClient | None = None
        self._polkassembly: PolkassemblyClient | None = None
        self._telegram: TelegramClient | None = None

        # Services
        self._subscriptions: SubscriptionService | None = None
        self._watermarks: WatermarkService | None = None
        self._identity: IdentityService | None = None
        self._sources: VoteSourceAggregator | None = None
        self._notifier: NotificationEngine | None = None
        self._commands: CommandHandler | None = None
        self._task_manager: TaskManager | None = None
        self._metrics: EngineMetrics | None = metrics

    async def initialize(self, *, start_tasks: bool = True) -> None:
        """Open the datastore, create the schema, connect clients and start cron jobs.

        Args:
            start_tasks: Start the background scheduler (when enabled in config).

        Raises:
            RuntimeError: If already initialized.
        """
        if self._initialized:
            msg = "Engine already initialized"
            raise RuntimeError(msg)

        try:
            await self._start(start_tasks=start_tasks)
        except Exception:
            await self._teardown()
            raise

        self._initialized = True
        logger.info(
            "Engine initialized (providers: %s)", ", ".join(self._config.sources.provider_order)
        )

    async def _start(self, *, start_tasks: bool) -> None:
        from referendum_alert.cache.client import CacheClient
        from referendum_alert.datastore.client import Datastore
        from referendum_alert.datastore.migrations import run_auto_migrate
        from referendum_alert.metrics.collector import EngineMetrics

        self._datastore = Datastore(self._config.db)
        await self._datastore.open()
        await run_auto_migrate(self._datastore.engine)

        self._cache = CacheClient(self._config.cache)
        await self._cache.connect()

        if self._metrics is None:
            self._metrics = EngineMetrics()

        # External clients
        from referendum_alert.sources.polkassembly.client import PolkassemblyClient
        from referendum_alert.sources.subscan.client import SubscanClient
        from referendum_alert.telegram.client import TelegramClient

        self._subscan = SubscanClient(
            self._config.sources,
            identity_hosts=self._config.identity.hosts,
        )
        await self._subscan.connect()
        self._polkassembly = PolkassemblyClient(self._config.sources)
        await self._polkassembly.connect()
        self._telegram = TelegramClient(self._config.telegram)
        await self._telegram.connect()
        if not self._telegram.has_token:
            logger.warning("No Telegram token configured; deliveries will fail")
        if not self._subscan.has_api_key:
            logger.warning("No Subscan API key configured; using Polkassembly only")

        # Services
        from referendum_alert.commands.handler import CommandHandler
        from referendum_alert.engine.services.identity_service import IdentityService
        from referendum_alert.engine.services.subscription_service import SubscriptionService
        from referendum_alert.engine.services.watermark_service import WatermarkService
        from referendum_alert.notifier.engine import NotificationEngine
        from referendum_alert.sources.aggregator import VoteSourceAggregator

        self._subscriptions = SubscriptionService(self._datastore)
        self._watermarks = WatermarkService(self._datastore)
        lookup = (
            self._subscan
            if self._config.identity.enabled and self._subscan.has_api_key
            else None
        )
        self._identity = IdentityService(
            self._datastore,
            lookup,
            ttl_seconds=self._config.identity.ttl_seconds,
        )
        self._sources = VoteSourceAggregator(
            self._ranked_providers(),
            timeout=self._config.sources.request_timeout + 5,
            metrics=self._metrics,
        )
        notifier_cfg = self._config.notifier
        self._notifier = NotificationEngine(
            self._subscriptions,
            self._watermarks,
            self._sources,
            self._telegram,
            identity=self._identity,
            cache=self._cache,
            metrics=self._metrics,
            max_concurrent_targets=notifier_cfg.max_concurrent_targets,
            pass_deadline=notifier_cfg.pass_deadline,
            lock_ttl=notifier_cfg.lock_ttl,
        )
        self._commands = CommandHandler(self._subscriptions, self._watermarks, self._telegram)

        # Cron jobs
        from referendum_alert.taskmanager.manager import CronJob, TaskManager
        from referendum_alert.taskmanager.tasks import (
            CALCULATE_METRICS_PERIOD,
            task_calculate_metrics,
            task_notify_new_votes,
        )

        if start_tasks and self._config.task.enabled:
            self._task_manager = TaskManager(metrics=self._metrics)
            self._task_manager.register(
                "notify_new_votes",
                CronJob(
                    handler=partial(task_notify_new_votes, self),
                    period=notifier_cfg.poll_interval,
                ),
            )
            self._task_manager.register(
                "calculate_metrics",
                CronJob(
                    handler=partial(task_calculate_metrics, self, self._metrics),
                    period=CALCULATE_METRICS_PERIOD,
                    run_immediately=True,
                ),
            )
            await self._task_manager.start()

    def _ranked_providers(self) -> list[VoteProvider]:
        """Order the provider clients by ``sources.provider_order``.

        Raises:
            ValueError: On an unknown provider name.
        """
        available: dict[str, VoteProvider] = {}
        if self._subscan is not None:
            available[self._subscan.name] = self._subscan
        if self._polkassembly is not None:
            available[self._polkassembly.name] = self._polkassembly
        ranked: list[VoteProvider] = []
        for name in self._config.sources.provider_order:
            provider = available.get(name.strip().lower())
            if provider is None:
                msg = f"Unknown vote provider: {name}"
                raise ValueError(msg)
            ranked.append(provider)
        return ranked

    async def close(self) -> None:
        """Gracefully shut down all services and connections.

        Can be called multiple times (idempotent).
        """
        if not self._initialized:
            return
        await self._teardown()
        self._initialized = False

    async def _teardown(self) -> None:
        # Stop task manager first (depends on services)
        if self._task_manager is not None:
            await self._task_manager.stop()
            self._task_manager = None

        self._commands = None
        self._notifier = None
        self._sources = None
        self._identity = None
        self._subscriptions = None
        self._watermarks = None

        for client in (self._telegram, self._polkassembly, self._subscan):
            if client is not None:
                await client.close()
        self._telegram = None
        self._polkassembly = None
        self._subscan = None

        if self._cache is not None:
            await self._cache.close()
            self._cache = None

        if self._datastore is not None:
            await self._datastore.close()
            self._datastore = None

    @property
    def is_initialized(self) -> bool:
        """Check if the engine is initialized."""
        return self._initialized

    @property
    def config(self) -> AppConfig:
        """Get the application configuration."""
        return self._config

    @property
    def datastore(self) -> Datastore:
        """Get the datastore instance.

        Raises:
            RuntimeError: If engine not initialized.
        """
        if self._datastore is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._datastore

    @property
    def cache(self) -> CacheClient:
        if self._cache is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._cache

    @property
    def subscription_service(self) -> SubscriptionService:
        if self._subscriptions is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._subscriptions

    @property
    def watermark_service(self) -> WatermarkService:
        if self._watermarks is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._watermarks

    @property
    def identity_service(self) -> IdentityService:
        if self._identity is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._identity

    @property
    def sources(self) -> VoteSourceAggregator:
        if self._sources is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._sources

    @property
    def notifier(self) -> NotificationEngine:
        """Get the notification engine."""
        if self._notifier is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._notifier

    @property
    def commands(self) -> CommandHandler:
        if self._commands is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._commands

    @property
    def telegram(self) -> TelegramClient:
        """Get the Telegram Bot API client."""
        if self._telegram is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._telegram

    @property
    def metrics(self) -> EngineMetrics | None:
        """Get the engine metrics (None if not initialized)."""
        return self._metrics

    @property
    def task_manager(self) -> TaskManager | None:
        """Get the task manager (None if not enabled)."""
        return self._task_manager

    async def health_check(self) -> dict[str, str]:
        """Check health status of all engine components.

        Returns:
            Dictionary with component statuses ('ok', 'error', 'disabled', 'unknown').
        """
        status = {
            "engine": "ok" if self._initialized else "not_initialized",
            "datastore": "unknown",
            "cache": "unknown",
            "telegram": "unknown",
            "subscan": "unknown",
            "tasks": "unknown",
        }
        if not self._initialized:
            return status

        status["datastore"] = "ok" if self._datastore and self._datastore.is_open else "error"
        status["cache"] = "ok" if self._cache and self._cache.is_connected else "error"
        status["telegram"] = "ok" if self._telegram and self._telegram.has_token else "error"
        status["subscan"] = "ok" if self._subscan and self._subscan.has_api_key else "disabled"
        status["tasks"] = (
            "ok" if self._task_manager and self._task_manager.is_running else "disabled"
        )
        return status

    def diagnostics(self) -> dict[str, Any]:
        """Which credentials and components are configured (no secrets)."""
        return {
            "has_db": self._datastore is not None and self._datastore.is_open,
            "has_token": bool(self._config.telegram.token),
            "has_secret": bool(self._config.telegram.webhook_secret),
            "has_admin_key": bool(self._config.admin_key),
            "has_subscan_key": bool(self._config.sources.subscan_api_key),
            "providers": list(self._config.sources.provider_order),
            "identity_lookup": self._identity.lookup_enabled if self._identity else False,
            "pass_running": self._notifier.is_running if self._notifier else False,
        }
