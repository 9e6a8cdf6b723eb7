"""Subscan REST client — referendum votes and account identities.

Async HTTP client for the Subscan API:
- POST /api/scan/referenda/votes — recent votes for a referendum (newest first)
- POST /api/scan/account — account details, including on-chain identity

Requires an API key; without one the client reports no votes and no
identities instead of making requests.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from referendum_alert.config.settings import Network
from referendum_alert.errors.source_errors import SubscanError
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
    from collections.abc import Sequence

    from referendum_alert.config.settings import SourcesConfig

logger = logging.getLogger(__name__)

VOTE_HOSTS: dict[Network, str] = {
    Network.POLKADOT: "https://polkadot.api.subscan.io",
    Network.KUSAMA: "https://kusama.api.subscan.io",
}


def normalize_vote(row: dict[str, Any], *, now: float | None = None) -> VoteEvent | None:
    """Turn one Subscan vote row into a VoteEvent.

    Rows without a direction, an address or a timestamp are dropped: a vote
    with no timestamp cannot be placed against a watermark.  So are rows whose
    timestamp lies more than a day past *now* (default: the current time).
    """
    direction = VoteDirection.classify(row.get("status"))
    address = first_string(row, "account.address", "address")
    timestamp = coerce_timestamp(first_present(row, "voting_time", "block_timestamp", "time"))
    if direction is None or not address or timestamp is None:
        return None
    if not is_plausible_timestamp(normalize_timestamp(timestamp), now=now):
        logger.warning("Dropping Subscan vote by %s with timestamp %d", address, timestamp)
        return None

    conviction = first_present(row, "conviction")
    return VoteEvent(
        direction=direction,
        address=address,
        delegate=first_string(row, "delegate_account.address", "delegate_account", "delegate")
        or None,
        amount=str(minor_units(first_present(row, "amount", "votes"))),
        conviction=None if conviction is None else str(conviction),
        timestamp=timestamp,
    )


def extract_display(body: Any) -> str | None:
    """Pull the identity display name out of an account response."""
    data = lookup_path(body, "data") or {}
    for path in (
        "identity.display",
        "account.identity.display",
        "display",
        "account.display",
        "account_display",
    ):
        value = lookup_path(data, path)
        if isinstance(value, str) and value.strip():
            return value
    return None


class SubscanClient:
    """Async HTTP client for the Subscan API.

    Usage::

        subscan = SubscanClient(config.sources)
        await subscan.connect()
        try:
            votes = await subscan.fetch_votes(Network.POLKADOT, 1759)
        finally:
            await subscan.close()
    """

    name = "subscan"

    def __init__(
        self,
        config: SourcesConfig,
        *,
        identity_hosts: Sequence[str] = (),
        hosts: dict[Network, str] | None = None,
    ) -> None:
        """Initialize the Subscan client.

        Args:
            config: Provider settings (API key, page size, timeout).
            identity_hosts: Hosts queried in order for account identities.
            hosts: Per-network vote hosts; defaults to the public Subscan APIs.
        """
        self._config = config
        self._identity_hosts = list(identity_hosts)
        self._hosts = hosts or dict(VOTE_HOSTS)
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:  # noqa: ASYNC910
        """Create the underlying HTTP client."""
        self._client = httpx.AsyncClient(
            headers={
                "Content-Type": "application/json",
                "X-API-Key": self._config.subscan_api_key,
            },
            timeout=self._config.request_timeout,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_connected(self) -> bool:
        """Check if the HTTP client is active."""
        return self._client is not None

    @property
    def has_api_key(self) -> bool:
        return bool(self._config.subscan_api_key)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def fetch_votes(self, network: Network, ref_id: int) -> list[VoteEvent]:
        """Fetch the most recent votes for a referendum.

        Args:
            network: Network the referendum lives on.
            ref_id: Referendum index.

        Returns:
            Normalized votes; malformed rows are skipped.

        Raises:
            SubscanError: On transport errors, non-2xx responses or malformed bodies.
        """
        if not self.has_api_key:
            return []
        client = self._ensure_connected()

        try:
            response = await client.post(
                f"{self._hosts[network]}/api/scan/referenda/votes",
                json={
                    "referendum_index": ref_id,
                    "page": 0,
                    "row": self._config.subscan_rows,
                    "order": "desc",
                },
            )
        except httpx.HTTPError as exc:
            raise SubscanError(f"Subscan {network} votes failed: {exc}") from exc

        if response.status_code != 200:
            self._raise_for_status(response, f"{network} votes")

        body = self._json(response)
        code = body.get("code")
        if code not in (0, None):
            msg = f"Subscan {network} votes returned code {code}: {body.get('message', '')}"
            raise SubscanError(msg)

        rows = lookup_path(body, "data.list") or []
        if not isinstance(rows, list):
            raise SubscanError(f"Subscan {network} votes: unexpected list type")

        votes = [normalize_vote(row) for row in rows if isinstance(row, dict)]
        return [vote for vote in votes if vote is not None]

    async def get_account_display(self, address: str) -> str | None:
        """Look up an on-chain identity display name across the identity hosts.

        Per-host failures are skipped; returns None if no host knows a name.
        """
        if not self.has_api_key or not self._identity_hosts:
            return None
        client = self._ensure_connected()

        for host in self._identity_hosts:
            try:
                response = await client.post(f"{host}/api/scan/account", json={"address": address})
            except httpx.HTTPError as exc:
                logger.debug("Identity lookup on %s failed: %s", host, exc)
                continue
            if response.status_code != 200:
                continue
            try:
                name = extract_display(response.json())
            except ValueError:
                continue
            if name:
                return name
        return None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ensure_connected(self) -> httpx.AsyncClient:
        if self._client is None:
            msg = "Subscan client not connected. Call connect() first."
            raise SubscanError(msg, status_code=500)
        return self._client

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError as exc:
            raise SubscanError(f"Subscan returned a non-JSON body: {exc}") from exc
        if not isinstance(body, dict):
            raise SubscanError("Subscan returned an unexpected body shape")
        return body

    @staticmethod
    def _raise_for_status(response: httpx.Response, operation: str) -> None:
        """Raise a SubscanError from a non-2xx response."""
        message = f"Subscan {operation} failed ({response.status_code}): {response.text[:200]}"
        raise SubscanError(message, status_code=response.status_code)
