"""Fixtures for HTTP-level tests: the running engine with mocked outbound HTTP."""

from __future__ import annotations

import json

import httpx
import pytest


@pytest.fixture
def engine(test_client):
    return test_client.app.state.engine


@pytest.fixture
def tg_outbox(engine) -> list[tuple[str, dict]]:
    """Capture Telegram Bot API calls as ``(method, payload)`` pairs."""
    calls: list[tuple[str, dict]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.url.path.rsplit("/", 1)[-1], json.loads(request.content)))
        return httpx.Response(200, json={"ok": True, "result": True})

    engine.telegram._client = httpx.AsyncClient(
        base_url="https://api.telegram.org/bot123:test-token",
        transport=httpx.MockTransport(handler),
    )
    return calls


@pytest.fixture
def subscan_rows(engine) -> list[dict]:
    """Rows returned by the mocked Subscan votes endpoint; mutate to change them."""
    rows: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"code": 0, "data": {"list": rows}})

    subscan = next(p for p in engine.sources.providers if p.name == "subscan")
    subscan._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return rows
