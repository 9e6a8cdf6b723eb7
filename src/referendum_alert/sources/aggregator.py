"""Vote source aggregator — ranked provider fallback.

Providers are tried in rank order.  The first one that returns a non-empty
vote list wins; one that raises or times out is logged and skipped.  If no
provider has anything, the result is empty — callers cannot distinguish
"no votes yet" from "all providers down" through the vote list alone, but
:attr:`SourceResult.unavailable` tells them.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from referendum_alert.sources.models import SourceResult

if TYPE_CHECKING:
    from collections.abc import Sequence

    from referendum_alert.config.settings import Network
    from referendum_alert.metrics.collector import EngineMetrics
    from referendum_alert.sources.models import VoteEvent, VoteProvider

logger = logging.getLogger(__name__)


class VoteSourceAggregator:
    """Fetch recent votes from the first provider that has any."""

    def __init__(
        self,
        providers: Sequence[VoteProvider],
        *,
        timeout: float | None = None,
        metrics: EngineMetrics | None = None,
    ) -> None:
        self._providers = list(providers)
        self._timeout = timeout
        self._metrics = metrics

    @property
    def providers(self) -> list[VoteProvider]:
        return list(self._providers)

    async def fetch(self, network: Network, ref_id: int) -> SourceResult:
        """Try each provider in order and report which one answered."""
        failures: list[str] = []
        for provider in self._providers:
            try:
                votes = await asyncio.wait_for(
                    provider.fetch_votes(network, ref_id), timeout=self._timeout
                )
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning(
                    "Vote provider %s failed for %s #%d: %s", provider.name, network, ref_id, exc
                )
                failures.append(provider.name)
                if self._metrics:
                    self._metrics.record_source_failure(provider.name)
                continue
            if votes:
                return SourceResult(
                    votes=list(votes),
                    source=provider.name,
                    failures=failures,
                    attempted=len(self._providers),
                )

        if failures and len(failures) == len(self._providers):
            logger.error("All vote providers failed for %s #%d", network, ref_id)
        return SourceResult(failures=failures, attempted=len(self._providers))

    async def fetch_recent_votes(self, network: Network, ref_id: int) -> list[VoteEvent]:
        """Return recent votes for one referendum; empty if nothing is available."""
        result = await self.fetch(network, ref_id)
        return result.votes
