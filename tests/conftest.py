"""Shared test fixtures for the referendum-alert test suite."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from referendum_alert.config.settings import (
    AppConfig,
    DatabaseConfig,
    DatabaseEngine,
    IdentityConfig,
    SourcesConfig,
    TaskConfig,
    TelegramConfig,
)
from referendum_alert.errors.source_errors import TelegramError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from referendum_alert.config.settings import Network
    from referendum_alert.sources.models import VoteEvent


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeSender:
    """Records sent messages; raises for chats listed in ``failing``."""

    def __init__(self, failing: set[str] | None = None) -> None:
        self.failing = failing or set()
        self.sent: list[tuple[str, str]] = []
        self.attempts: list[str] = []

    async def send_message(self, chat_id: str, text: str) -> None:
        self.attempts.append(chat_id)
        if chat_id in self.failing:
            raise TelegramError(f"chat {chat_id} blocked the bot", status_code=403)
        self.sent.append((chat_id, text))

    def texts_for(self, chat_id: str) -> list[str]:
        return [text for chat, text in self.sent if chat == chat_id]


class FakeProvider:
    """Vote provider returning canned votes or raising a canned error."""

    def __init__(
        self,
        name: str,
        votes: list[VoteEvent] | None = None,
        *,
        error: Exception | None = None,
    ) -> None:
        self.name = name
        self.votes = votes or []
        self.error = error
        self.calls: list[tuple[Network, int]] = []

    async def fetch_votes(self, network: Network, ref_id: int) -> list[VoteEvent]:
        self.calls.append((network, ref_id))
        if self.error is not None:
            raise self.error
        return list(self.votes)


@pytest.fixture
def fake_sender_cls() -> type[FakeSender]:
    return FakeSender


@pytest.fixture
def fake_provider_cls() -> type[FakeProvider]:
    return FakeProvider


# ---------------------------------------------------------------------------
# Configuration & persistence
# ---------------------------------------------------------------------------


@pytest.fixture
def db_dsn(tmp_path) -> str:
    """File-backed SQLite DSN so every session sees the same database."""
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
def app_config(db_dsn) -> AppConfig:
    """Provide a test AppConfig with safe defaults and no background jobs."""
    return AppConfig(
        debug=True,
        admin_key="admin-secret",
        db=DatabaseConfig(engine=DatabaseEngine.SQLITE, dsn=db_dsn),
        telegram=TelegramConfig(token="123:test-token", webhook_secret="hook-secret"),
        sources=SourcesConfig(subscan_api_key="test-subscan-key"),
        identity=IdentityConfig(enabled=False),
        task=TaskConfig(enabled=False),
    )


@pytest.fixture
async def datastore(app_config) -> AsyncIterator:
    """Open a datastore with the schema created."""
    from referendum_alert.datastore.client import Datastore
    from referendum_alert.datastore.migrations import run_auto_migrate

    ds = Datastore(app_config.db)
    await ds.open()
    await run_auto_migrate(ds.engine)
    yield ds
    await ds.close()


@pytest.fixture
def subscriptions(datastore):
    from referendum_alert.engine.services.subscription_service import SubscriptionService

    return SubscriptionService(datastore)


@pytest.fixture
def watermarks(datastore):
    from referendum_alert.engine.services.watermark_service import WatermarkService

    return WatermarkService(datastore)


@pytest.fixture
def make_vote() -> Callable[..., VoteEvent]:
    """Factory for VoteEvents with sensible defaults."""
    from referendum_alert.sources.models import VoteDirection, VoteEvent

    def _make(
        timestamp: int,
        *,
        direction: VoteDirection = VoteDirection.AYE,
        address: str = "16CwBowmC6fNyvBGwtZwoKFu8PDjTbd1pMovQRx2UyjhJArK",
        amount: str = "123400000000",
        conviction: str | None = "Locked1x",
        delegate: str | None = None,
    ) -> VoteEvent:
        return VoteEvent(
            direction=direction,
            address=address,
            amount=amount,
            conviction=conviction,
            timestamp=timestamp,
            delegate=delegate,
        )

    return _make


@pytest.fixture
def test_client(app_config):
    """Provide a FastAPI TestClient with the app wired to test config.

    Used as a context manager so the lifespan (engine startup) runs.
    """
    from fastapi.testclient import TestClient

    from referendum_alert.api.app import create_app

    app = create_app(config=app_config)
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client
