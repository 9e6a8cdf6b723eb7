"""Notification engine — incremental, deduplicated vote delivery.

One pass walks every distinct (referendum, network) target:

1. read the target's watermark
2. fetch recent votes through the source aggregator
3. normalize timestamps to seconds, sort ascending, keep ``timestamp > watermark``
4. deliver each fresh vote, oldest first, to every subscribed chat
5. move the watermark to the newest delivered timestamp

A failure for one target is logged and isolated; a failed send to one chat
never blocks the other chats nor the watermark update.  Passes are
non-reentrant: a pass that starts while another is in flight is skipped.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import asdict, dataclass, replace
from typing import TYPE_CHECKING, Any, Protocol

from referendum_alert.notifier.formatter import format_vote
from referendum_alert.utils.amounts import to_major_units
from referendum_alert.utils.timestamps import (
    is_plausible_timestamp,
    isoformat_utc,
    normalize_timestamp,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from referendum_alert.cache.client import CacheClient
    from referendum_alert.config.settings import Network
    from referendum_alert.engine.services.identity_service import IdentityService
    from referendum_alert.engine.services.subscription_service import (
        SubscriptionService,
        SubscriptionTarget,
    )
    from referendum_alert.engine.services.watermark_service import WatermarkService
    from referendum_alert.metrics.collector import EngineMetrics
    from referendum_alert.sources.aggregator import VoteSourceAggregator
    from referendum_alert.sources.models import VoteEvent

logger = logging.getLogger(__name__)

PASS_LOCK_KEY = "referendum_alert:notification_pass"


class MessageSender(Protocol):
    """Outbound transport: send one text message to one chat."""

    async def send_message(self, chat_id: str, text: str) -> None: ...


@dataclass
class PassReport:
    """Summary of one notification pass."""

    skipped: bool = False
    targets: int = 0
    targets_processed: int = 0
    targets_failed: int = 0
    targets_deferred: int = 0
    targets_unavailable: int = 0
    votes_delivered: int = 0
    messages_sent: int = 0
    messages_failed: int = 0
    started_at: float = 0.0
    duration: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class _TargetOutcome:
    failed: bool = False
    unavailable: bool = False
    votes: int = 0
    sent: int = 0
    send_failures: int = 0


def select_fresh_votes(
    votes: Iterable[VoteEvent],
    watermark: int,
    *,
    now: float | None = None,
) -> list[VoteEvent]:
    """Normalize timestamps to seconds, sort ascending and keep votes newer than *watermark*.

    The watermark is an exclusive lower bound: a vote stamped exactly at the
    watermark was already delivered by the pass that set it.  The sort is
    stable, so votes sharing a timestamp keep provider order.  Votes stamped
    more than a day past *now* are dropped so they can never become the
    watermark.
    """
    normalized = [replace(vote, timestamp=normalize_timestamp(vote.timestamp)) for vote in votes]
    plausible = [vote for vote in normalized if is_plausible_timestamp(vote.timestamp, now=now)]
    if len(plausible) < len(normalized):
        logger.warning(
            "Dropped %d votes with implausible timestamps", len(normalized) - len(plausible)
        )
    plausible.sort(key=lambda vote: vote.timestamp)
    return [vote for vote in plausible if vote.timestamp > watermark]


class NotificationEngine:
    """Runs notification passes over all subscription targets."""

    def __init__(
        self,
        subscriptions: SubscriptionService,
        watermarks: WatermarkService,
        sources: VoteSourceAggregator,
        sender: MessageSender,
        *,
        identity: IdentityService | None = None,
        cache: CacheClient | None = None,
        metrics: EngineMetrics | None = None,
        max_concurrent_targets: int = 4,
        pass_deadline: float = 0.0,
        lock_ttl: int = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._subscriptions = subscriptions
        self._watermarks = watermarks
        self._sources = sources
        self._sender = sender
        self._identity = identity
        self._cache = cache
        self._metrics = metrics
        self._max_concurrent = max(1, max_concurrent_targets)
        self._pass_deadline = pass_deadline
        self._lock_ttl = lock_ttl
        self._clock = clock
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        """Whether a pass is currently in flight in this process."""
        return self._lock.locked()

    # ------------------------------------------------------------------
    # Pass
    # ------------------------------------------------------------------

    async def run_notification_pass(self) -> PassReport:
        """Deliver every vote newer than each target's watermark.

        Returns a report with ``skipped=True`` if another pass holds the
        local or the shared lock.
        """
        if self._lock.locked():
            return self._skipped("in progress in this process")

        async with self._lock:
            token = uuid.uuid4().hex
            if self._cache is not None and not await self._cache.acquire_lock(
                PASS_LOCK_KEY, token, self._lock_ttl
            ):
                return self._skipped("held by another process")
            try:
                if self._metrics:
                    with self._metrics.track_pass():
                        return await self._run_pass()
                return await self._run_pass()
            finally:
                if self._cache is not None:
                    await self._cache.release_lock(PASS_LOCK_KEY, token)

    def _skipped(self, reason: str) -> PassReport:
        logger.info("Notification pass skipped: %s", reason)
        if self._metrics:
            self._metrics.record_pass_skipped()
        return PassReport(skipped=True, started_at=time.time())

    async def _run_pass(self) -> PassReport:
        report = PassReport(started_at=time.time())
        start = self._clock()

        targets = await self._subscriptions.list_subscription_targets()
        report.targets = len(targets)
        if not targets:
            report.duration = self._clock() - start
            return report

        deadline = start + self._pass_deadline if self._pass_deadline > 0 else None
        semaphore = asyncio.Semaphore(self._max_concurrent)

        async def bounded(target: SubscriptionTarget) -> _TargetOutcome | None:
            async with semaphore:
                if deadline is not None and self._clock() >= deadline:
                    return None
                return await self._process_target(target)

        outcomes = await asyncio.gather(*(bounded(target) for target in targets))

        for outcome in outcomes:
            if outcome is None:
                report.targets_deferred += 1
                continue
            report.targets_processed += 1
            report.targets_failed += int(outcome.failed)
            report.targets_unavailable += int(outcome.unavailable)
            report.votes_delivered += outcome.votes
            report.messages_sent += outcome.sent
            report.messages_failed += outcome.send_failures

        report.duration = self._clock() - start
        if self._metrics:
            self._metrics.record_messages(sent=report.messages_sent, failed=report.messages_failed)
        if report.targets_deferred:
            logger.warning(
                "Pass deadline reached: %d of %d targets deferred",
                report.targets_deferred,
                report.targets,
            )
        logger.info(
            "Notification pass done: %d targets, %d votes, %d sent, %d failed sends, %d failed targets",
            report.targets,
            report.votes_delivered,
            report.messages_sent,
            report.messages_failed,
            report.targets_failed,
        )
        return report

    async def _process_target(self, target: SubscriptionTarget) -> _TargetOutcome:
        """Deliver fresh votes for one target; never raises (except on cancellation)."""
        outcome = _TargetOutcome()
        ref_id, network = target.ref_id, target.network
        try:
            last = await self._watermarks.get_watermark(ref_id, network)
            result = await self._sources.fetch(network, ref_id)
            if result.unavailable:
                outcome.unavailable = True
                if self._metrics:
                    self._metrics.record_target_unavailable(network)

            fresh = select_fresh_votes(result.votes, last)
            if not fresh:
                return outcome

            chats = sorted(target.subscriber_chats)
            for vote in fresh:
                display = await self._resolve_display(vote.voter)
                text = format_vote(ref_id, vote, display, network=network)
                sent, failed = await self._fan_out(chats, text)
                outcome.votes += 1
                outcome.sent += sent
                outcome.send_failures += failed

            newest = fresh[-1].timestamp
            await self._watermarks.set_watermark(ref_id, network, newest)
            if self._metrics:
                self._metrics.record_votes_delivered(network, outcome.votes)
            logger.info(
                "Delivered %d votes for %s #%d to %d chats; watermark %d -> %d",
                outcome.votes,
                network,
                ref_id,
                len(chats),
                last,
                newest,
            )
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Notification target %s #%d failed", network, ref_id)
            outcome.failed = True
        return outcome

    async def _fan_out(self, chats: Sequence[str], text: str) -> tuple[int, int]:
        """Send *text* to every chat concurrently. Returns (sent, failed)."""
        results = await asyncio.gather(
            *(self._sender.send_message(chat, text) for chat in chats),
            return_exceptions=True,
        )
        failed = 0
        for chat, result in zip(chats, results, strict=True):
            if isinstance(result, BaseException):
                failed += 1
                logger.warning("Delivery to chat %s failed: %s", chat, result)
        return len(chats) - failed, failed

    async def _resolve_display(self, address: str) -> str | None:
        if self._identity is None:
            return None
        try:
            return await self._identity.resolve_display(address)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("Identity lookup for %s failed: %s", address, exc)
            return None

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    async def peek(self, ref_id: int, network: Network, limit: int = 5) -> dict[str, Any]:
        """Show the watermark and the newest votes for a target without delivering anything."""
        since = await self._watermarks.get_watermark(ref_id, network)
        result = await self._sources.fetch(network, ref_id)
        ordered = select_fresh_votes(result.votes, -1)
        fresh = sum(1 for vote in ordered if vote.timestamp > since)
        latest = list(reversed(ordered))[: max(limit, 0)]
        return {
            "ref_id": ref_id,
            "network": network.value,
            "watermark_sec": since,
            "watermark_utc": isoformat_utc(since),
            "source": result.source,
            "failures": result.failures,
            "fresh": fresh,
            "latest": [
                {
                    "direction": vote.direction.value,
                    "address": vote.address,
                    "delegate": vote.delegate,
                    "amount": to_major_units(vote.amount),
                    "conviction": vote.conviction,
                    "timestamp": vote.timestamp,
                }
                for vote in latest
            ],
        }
