"""Vote source data models — VoteEvent, VoteDirection, provider protocol.

Provider payloads are untyped JSON documents.  Each provider module owns a
``normalize_vote`` function that turns one raw row into a :class:`VoteEvent`
or None; nothing untyped leaves the ``sources`` package.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from referendum_alert.config.settings import Network


class VoteDirection(enum.StrEnum):
    """Which way a vote was cast."""

    AYE = "aye"
    NAY = "nay"
    ABSTAIN = "abstain"

    @classmethod
    def classify(cls, value: Any) -> VoteDirection | None:
        """Classify a provider status string by case-insensitive substring.

        ``"Ayes"`` → AYE, ``"SplitAbstain"`` → ABSTAIN.  Returns None when no
        known direction appears.
        """
        text = str(value or "").lower()
        for direction in (cls.AYE, cls.NAY, cls.ABSTAIN):
            if direction.value in text:
                return direction
        return None


@dataclass(frozen=True)
class VoteEvent:
    """One normalized vote as seen by the notifier.

    Attributes:
        direction: aye / nay / abstain.
        address: Account the vote is recorded against.
        delegate: Account that actually decided, for delegated votes.
        amount: Balance in minor units, digits only.
        conviction: Raw provider conviction value, parsed at format time.
        timestamp: Epoch value as reported (seconds or milliseconds).
    """

    direction: VoteDirection
    address: str
    amount: str = "0"
    conviction: str | None = None
    timestamp: int = 0
    delegate: str | None = None

    @property
    def voter(self) -> str:
        """Address to display and resolve identities for."""
        return self.delegate or self.address


@dataclass(frozen=True)
class SourceResult:
    """Outcome of an aggregated fetch for one (network, referendum)."""

    votes: list[VoteEvent] = field(default_factory=list)
    source: str | None = None
    failures: list[str] = field(default_factory=list)
    attempted: int = 0

    @property
    def unavailable(self) -> bool:
        """True when every attempted provider failed outright."""
        return self.attempted > 0 and len(self.failures) == self.attempted


class VoteProvider(Protocol):
    """A ranked external vote data source."""

    name: str

    async def fetch_votes(self, network: Network, ref_id: int) -> list[VoteEvent]: ...


# ---------------------------------------------------------------------------
# Field extraction helpers
# ---------------------------------------------------------------------------


def lookup_path(row: Any, path: str) -> Any:
    """Follow a dotted path through nested dicts, returning None when absent."""
    current = row
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def first_string(row: dict[str, Any], *paths: str) -> str:
    """Return the first non-empty string found at *paths*, else ``""``."""
    for path in paths:
        value = lookup_path(row, path)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def first_present(row: dict[str, Any], *paths: str) -> Any:
    """Return the first value at *paths* that is neither None nor empty/zero."""
    for path in paths:
        value = lookup_path(row, path)
        if value not in (None, "", 0, "0"):
            return value
    return None
