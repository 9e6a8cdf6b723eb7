"""Polkassembly REST client — fallback source of referendum votes.

The votes-history endpoint is shared by both networks; the network is
selected by the ``x-network`` header.  Response rows vary between API
revisions, so every field is read from a list of candidate keys.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

import httpx

from referendum_alert.config.settings import Network
from referendum_alert.errors.source_errors import PolkassemblyError
from referendum_alert.sources.models import (
    VoteDirection,
    VoteEvent,
    first_present,
    first_string,
    lookup_path,
)
from referendum_alert.utils.amounts import minor_units
from referendum_alert.utils.timestamps import (
    coerce_timestamp,
    is_plausible_timestamp,
    normalize_timestamp,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from referendum_alert.config.settings import SourcesConfig

logger = logging.getLogger(__name__)

HOSTS: dict[Network, str] = {
    Network.POLKADOT: "https://polkadot.polkassembly.io",
    Network.KUSAMA: "https://kusama.polkassembly.io",
}

_NETWORK_HEADER: dict[Network, str] = {
    Network.POLKADOT: "polkadot",
    Network.KUSAMA: "kusama",
}


def normalize_vote(row: dict[str, Any], *, now: int) -> VoteEvent | None:
    """Turn one Polkassembly vote row into a VoteEvent.

    Rows without a direction or an address are dropped.  A missing or
    unparseable timestamp falls back to *now*; a row stamped more than a day
    past *now* is dropped.
    """
    direction = VoteDirection.classify(first_string(row, "decision", "vote"))
    address = first_string(row, "address", "voter", "account")
    if direction is None or not address:
        return None

    amount = first_present(row, "balance.value", "balance", "amount", "votedBalance", "vote_balance")
    if isinstance(amount, dict):
        amount = amount.get("value")
    conviction = first_present(row, "conviction", "lockPeriod", "voteConviction")
    timestamp = coerce_timestamp(
        first_present(row, "created_at", "timestamp", "block_time", "blockTimestamp")
    )
    if timestamp is not None and not is_plausible_timestamp(
        normalize_timestamp(timestamp), now=now
    ):
        logger.warning("Dropping Polkassembly vote by %s with timestamp %d", address, timestamp)
        return None

    return VoteEvent(
        direction=direction,
        address=address,
        delegate=first_string(row, "delegatedTo", "delegate", "delegated_to") or None,
        amount=str(minor_units(amount)),
        conviction=None if conviction is None else str(conviction),
        timestamp=timestamp if timestamp is not None else now,
    )


class PolkassemblyClient:
    """Async HTTP client for the Polkassembly votes API."""

    name = "polkassembly"

    def __init__(
        self,
        config: SourcesConfig,
        *,
        hosts: dict[Network, str] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._hosts = hosts or dict(HOSTS)
        self._clock = clock
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:  # noqa: ASYNC910
        """Create the underlying HTTP client."""
        self._client = httpx.AsyncClient(
            headers={"Content-Type": "application/json"},
            timeout=self._config.request_timeout,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def fetch_votes(self, network: Network, ref_id: int) -> list[VoteEvent]:
        """Fetch the vote history for a referendum.

        Raises:
            PolkassemblyError: On transport errors, non-2xx responses or malformed bodies.
        """
        client = self._ensure_connected()

        try:
            response = await client.post(
                f"{self._hosts[network]}/api/v1/votes/history",
                json={"postId": ref_id, "voteType": "referendum"},
                headers={"x-network": _NETWORK_HEADER[network]},
            )
        except httpx.HTTPError as exc:
            raise PolkassemblyError(f"Polkassembly {network} votes failed: {exc}") from exc

        if response.status_code != 200:
            message = (
                f"Polkassembly {network} votes failed "
                f"({response.status_code}): {response.text[:200]}"
            )
            raise PolkassemblyError(message, status_code=response.status_code)

        try:
            body = response.json()
        except ValueError as exc:
            raise PolkassemblyError(f"Polkassembly returned a non-JSON body: {exc}") from exc

        rows = self._rows(body)
        if rows is None:
            raise PolkassemblyError(f"Polkassembly {network} votes: unexpected body shape")

        now = int(self._clock())
        votes = [normalize_vote(row, now=now) for row in rows if isinstance(row, dict)]
        return [vote for vote in votes if vote is not None]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _rows(body: Any) -> list[Any] | None:
        if isinstance(body, list):
            return body
        for key in ("data", "votes"):
            value = lookup_path(body, key)
            if isinstance(value, list):
                return value
        if isinstance(body, dict):
            return []
        return None

    def _ensure_connected(self) -> httpx.AsyncClient:
        if self._client is None:
            msg = "Polkassembly client not connected. Call connect() first."
            raise PolkassemblyError(msg, status_code=500)
        return self._client
