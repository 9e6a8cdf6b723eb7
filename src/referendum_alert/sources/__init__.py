"""Vote sources — external providers of referendum vote data."""

from __future__ import annotations

from referendum_alert.sources.aggregator import VoteSourceAggregator
from referendum_alert.sources.models import SourceResult, VoteDirection, VoteEvent, VoteProvider

__all__ = [
    "SourceResult",
    "VoteDirection",
    "VoteEvent",
    "VoteProvider",
    "VoteSourceAggregator",
]
