"""In-memory lock table for single-process deployments and tests."""

from __future__ import annotations

import time


class MemoryCache:
    """Token-owned locks with TTL, held in a dict."""

    def __init__(self) -> None:
        # {key: (token, expiry_timestamp)}
        self._locks: dict[str, tuple[str, float]] = {}

    async def connect(self) -> None:  # noqa: ASYNC910
        """Connect (no-op for in-memory)."""

    async def close(self) -> None:  # noqa: ASYNC910
        """Close and drop every lock."""
        self._locks.clear()

    async def acquire_lock(self, key: str, token: str, ttl: int) -> bool:  # noqa: ASYNC910
        """Set *key* to *token* only if it is absent or expired."""
        if self._holder(key) is not None:
            return False
        self._locks[key] = (token, time.time() + ttl)
        return True

    async def release_lock(self, key: str, token: str) -> bool:  # noqa: ASYNC910
        """Delete *key* only if it still holds *token*."""
        if self._holder(key) != token:
            return False
        del self._locks[key]
        return True

    def _holder(self, key: str) -> str | None:
        """Token holding *key*, or None; drops the entry if expired."""
        entry = self._locks.get(key)
        if entry is None:
            return None
        token, expiry = entry
        if time.time() > expiry:
            del self._locks[key]
            return None
        return token
