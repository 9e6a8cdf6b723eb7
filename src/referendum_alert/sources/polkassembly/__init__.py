"""Polkassembly — fallback vote provider."""

from __future__ import annotations

from referendum_alert.sources.polkassembly.client import PolkassemblyClient, normalize_vote

__all__ = ["PolkassemblyClient", "normalize_vote"]
