"""Cache — key/value storage and short-lived locks (memory or Redis)."""

from __future__ import annotations

from referendum_alert.cache.client import CacheClient

__all__ = ["CacheClient"]
