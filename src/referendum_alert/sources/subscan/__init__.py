"""Subscan — primary vote provider and identity lookup."""

from __future__ import annotations

from referendum_alert.sources.subscan.client import SubscanClient, normalize_vote

__all__ = ["SubscanClient", "normalize_vote"]
