"""Cache client with Redis and in-memory backends.

The cache holds token-owned locks with a TTL.  The notification pass takes
one so that only one process runs a pass at a time; the in-memory backend
gives the same semantics inside a single process.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from referendum_alert.config.settings import CacheConfig


class CacheClient:
    """Cache abstraction that delegates to a Redis or in-memory backend."""

    def __init__(self, config: CacheConfig) -> None:
        """Initialize cache client with configuration.

        Args:
            config: Cache configuration with engine type and connection params.
        """
        self._config = config
        self._backend: CacheBackend | None = None
        self._connected = False

    async def connect(self) -> None:
        """Connect to the cache backend.

        Raises:
            ValueError: If cache engine type is invalid.
        """
        from referendum_alert.cache.memory import MemoryCache
        from referendum_alert.cache.redis import RedisCache

        engine = str(self._config.engine).lower()

        if engine == "redis":
            self._backend = RedisCache(self._config)
        elif engine == "memory":
            self._backend = MemoryCache()
        else:
            msg = f"Unsupported cache engine: {engine}"
            raise ValueError(msg)

        await self._backend.connect()
        self._connected = True

    async def close(self) -> None:
        """Close the cache connection (idempotent)."""
        if self._backend is not None:
            await self._backend.close()
            self._backend = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        """Check if the cache is connected."""
        return self._connected and self._backend is not None

    async def acquire_lock(self, key: str, token: str, ttl: int) -> bool:
        """Take the lock *key* for *token* if nobody holds it.

        The lock expires on its own after *ttl* seconds so a crashed holder
        cannot block others forever.

        Returns:
            True if the lock was acquired.
        """
        return await self._ensure_connected().acquire_lock(key, token, ttl)

    async def release_lock(self, key: str, token: str) -> bool:
        """Release *key* if it is still held by *token*.

        Returns:
            True if the lock was held by *token* and is now released.
        """
        return await self._ensure_connected().release_lock(key, token)

    def _ensure_connected(self) -> CacheBackend:
        """Return the backend, raising RuntimeError if not connected."""
        if not self._connected or self._backend is None:
            msg = "Cache not connected. Call connect() first."
            raise RuntimeError(msg)
        return self._backend


class CacheBackend(Protocol):
    """Protocol for cache backend implementations."""

    async def connect(self) -> None: ...
    async def close(self) -> None: ...
    async def acquire_lock(self, key: str, token: str, ttl: int) -> bool: ...
    async def release_lock(self, key: str, token: str) -> bool: ...
