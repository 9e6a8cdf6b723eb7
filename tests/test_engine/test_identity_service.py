"""Tests for IdentityService — overrides, caching and TTL."""

from __future__ import annotations

import asyncio

import pytest

from referendum_alert.engine.services.identity_service import IdentityService

ADDR = "16CwBowmC6fNyvBGwtZwoKFu8PDjTbd1pMovQRx2UyjhJArK"


class _CountingLookup:
    def __init__(self, name: str | None) -> None:
        self.name = name
        self.calls = 0

    async def get_account_display(self, address: str) -> str | None:
        self.calls += 1
        return self.name


class _Clock:
    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> _Clock:
    return _Clock(1_700_000_000)


class TestIdentityService:
    async def test_lookup_then_cache(self, datastore, clock) -> None:
        lookup = _CountingLookup("Alice")
        service = IdentityService(datastore, lookup, ttl_seconds=60, clock=clock)

        assert await service.resolve_display(ADDR) == "Alice"
        assert await service.resolve_display(ADDR) == "Alice"
        assert lookup.calls == 1

    async def test_refresh_after_ttl(self, datastore, clock) -> None:
        lookup = _CountingLookup("Alice")
        service = IdentityService(datastore, lookup, ttl_seconds=60, clock=clock)
        await service.resolve_display(ADDR)

        lookup.name = "Alice (new)"
        clock.now += 61

        assert await service.resolve_display(ADDR) == "Alice (new)"
        assert lookup.calls == 2

    async def test_negative_result_is_cached(self, datastore, clock) -> None:
        lookup = _CountingLookup(None)
        service = IdentityService(datastore, lookup, ttl_seconds=60, clock=clock)

        assert await service.resolve_display(ADDR) is None
        assert await service.resolve_display(ADDR) is None
        assert lookup.calls == 1

    async def test_override_wins(self, datastore, clock) -> None:
        lookup = _CountingLookup("Alice")
        service = IdentityService(datastore, lookup, clock=clock)

        await service.set_override(ADDR, "Treasury Bot")
        assert await service.resolve_display(ADDR) == "Treasury Bot"
        await service.set_override(ADDR, "Treasury Bot v2")
        assert await service.get_override(ADDR) == "Treasury Bot v2"
        assert lookup.calls == 0

    async def test_no_lookup_configured(self, datastore) -> None:
        service = IdentityService(datastore)
        assert service.lookup_enabled is False
        assert await service.resolve_display(ADDR) is None
        assert await service.delete_cached(ADDR) is False

    async def test_empty_address(self, datastore) -> None:
        lookup = _CountingLookup("Alice")
        service = IdentityService(datastore, lookup)
        assert await service.resolve_display("") is None
        assert lookup.calls == 0

    async def test_delete_cached_forces_refresh(self, datastore, clock) -> None:
        lookup = _CountingLookup("Alice")
        service = IdentityService(datastore, lookup, ttl_seconds=3600, clock=clock)
        await service.resolve_display(ADDR)

        assert await service.delete_cached(ADDR) is True
        await service.resolve_display(ADDR)
        assert lookup.calls == 2

    async def test_count_cached_includes_negative_results(self, datastore, clock) -> None:
        service = IdentityService(datastore, _CountingLookup(None), clock=clock)
        assert await service.count_cached() == 0
        await service.resolve_display(ADDR)
        await service.resolve_display("other-address")
        assert await service.count_cached() == 2

    async def test_concurrent_refreshes_do_not_collide(self, datastore, clock) -> None:
        lookup = _CountingLookup("Alice")
        service = IdentityService(datastore, lookup, clock=clock)

        names = await asyncio.gather(*(service.resolve_display(ADDR) for _ in range(4)))

        assert names == ["Alice"] * 4
        assert await service.count_cached() == 1
