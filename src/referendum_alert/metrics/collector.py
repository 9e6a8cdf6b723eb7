"""Metrics collector — Prometheus counters, gauges, histograms.

Exposed series:
- ``refalert_stats_total`` gauge-vec  (subscriptions, targets, watermarks, identities)
- ``refalert_pass_histogram`` — duration of notification passes
- ``refalert_pass_skipped_total`` — passes skipped because one was in flight
- ``refalert_votes_delivered_total`` — votes delivered, by network
- ``refalert_messages_total`` — Telegram sends, by outcome
- ``refalert_source_failures_total`` — provider failures, by provider
- ``refalert_targets_unavailable_total`` — targets where every provider failed
- ``refalert_cron_histogram`` / ``refalert_cron_last_execution_gauge``
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

if TYPE_CHECKING:
    from collections.abc import Iterator


_PREFIX = "refalert"

_STAT_LABELS = ("entity",)


class MetricsCollector:
    """Low-level Prometheus collector that owns the registry.

    Use :class:`EngineMetrics` for the high-level tracking interface.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._registry

    def gauge(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Gauge:
        """Register and return a Gauge."""
        return Gauge(name, doc, labels, registry=self._registry)

    def histogram(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Histogram:
        """Register and return a Histogram."""
        return Histogram(name, doc, labels, registry=self._registry)

    def counter(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Counter:
        """Register and return a Counter."""
        return Counter(name, doc, labels, registry=self._registry)


class EngineMetrics:
    """High-level relay metrics.

    All histograms track operation duration in seconds.
    """

    def __init__(self, collector: MetricsCollector | None = None) -> None:
        self._collector = collector or MetricsCollector()

        self._stats = self._collector.gauge(
            f"{_PREFIX}_stats_total",
            "Entity counts in the referendum alert relay",
            _STAT_LABELS,
        )

        # Notification pass
        self._pass = self._collector.histogram(
            f"{_PREFIX}_pass_histogram",
            "Duration of notification passes",
        )
        self._pass_skipped = self._collector.counter(
            f"{_PREFIX}_pass_skipped",
            "Passes skipped because another pass was in flight",
        )
        self._votes_delivered = self._collector.counter(
            f"{_PREFIX}_votes_delivered",
            "Votes delivered to subscribers",
            ("network",),
        )
        self._messages = self._collector.counter(
            f"{_PREFIX}_messages",
            "Telegram messages attempted, by outcome",
            ("outcome",),
        )

        # Vote providers
        self._source_failures = self._collector.counter(
            f"{_PREFIX}_source_failures",
            "Vote provider failures",
            ("provider",),
        )
        self._targets_unavailable = self._collector.counter(
            f"{_PREFIX}_targets_unavailable",
            "Targets for which every vote provider failed",
            ("network",),
        )

        # Cron metrics
        self._cron_histogram = self._collector.histogram(
            f"{_PREFIX}_cron_histogram",
            "Duration of cron job executions",
            ("job_name",),
        )
        self._cron_last = self._collector.gauge(
            f"{_PREFIX}_cron_last_execution_gauge",
            "Timestamp of last cron execution",
            ("job_name",),
        )

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._collector.registry

    # -- Stat setters --

    def set_subscription_count(self, count: int) -> None:
        """Set the current number of (chat, referendum, network) subscriptions."""
        self._stats.labels(entity="subscriptions").set(count)

    def set_target_count(self, count: int) -> None:
        """Set the current number of distinct (referendum, network) targets."""
        self._stats.labels(entity="targets").set(count)

    def set_watermark_count(self, count: int) -> None:
        self._stats.labels(entity="watermarks").set(count)

    def set_identity_count(self, count: int) -> None:
        self._stats.labels(entity="identities").set(count)

    # -- Event counters --

    def record_pass_skipped(self) -> None:
        self._pass_skipped.inc()

    def record_votes_delivered(self, network: str, count: int) -> None:
        if count:
            self._votes_delivered.labels(network=network).inc(count)

    def record_messages(self, *, sent: int, failed: int) -> None:
        """Count Telegram sends by outcome."""
        if sent:
            self._messages.labels(outcome="sent").inc(sent)
        if failed:
            self._messages.labels(outcome="failed").inc(failed)

    def record_source_failure(self, provider: str) -> None:
        self._source_failures.labels(provider=provider).inc()

    def record_target_unavailable(self, network: str) -> None:
        self._targets_unavailable.labels(network=network).inc()

    # -- Operation trackers (context managers) --

    @contextmanager
    def track_pass(self) -> Iterator[None]:
        """Track the duration of a notification pass."""
        start = time.monotonic()
        try:
            yield
        finally:
            self._pass.observe(time.monotonic() - start)

    @contextmanager
    def track_cron(self, job_name: str) -> Iterator[None]:
        """Track the duration of a cron job and record last execution time."""
        start = time.monotonic()
        try:
            yield
        finally:
            self._cron_histogram.labels(job_name=job_name).observe(time.monotonic() - start)
            self._cron_last.labels(job_name=job_name).set(time.time())
