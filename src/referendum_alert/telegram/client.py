"""Telegram Bot API client.

Async HTTP client for the two Bot API methods the relay uses:
- ``sendMessage`` — deliver an HTML-formatted message to one chat
- ``setMyCommands`` — register the command menu shown by Telegram clients
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from referendum_alert.errors.source_errors import TelegramError

if TYPE_CHECKING:
    from referendum_alert.config.settings import TelegramConfig

logger = logging.getLogger(__name__)

BOT_COMMANDS: list[dict[str, str]] = [
    {"command": "watch", "description": "Start watching: /watch <id> [dot|ksm]"},
    {"command": "watchdot", "description": "Watch on Polkadot: /watchdot <id>"},
    {"command": "watchksm", "description": "Watch on Kusama: /watchksm <id>"},
    {"command": "unwatch", "description": "Stop watching: /unwatch <id> [dot|ksm]"},
    {"command": "list", "description": "List watched referenda (with chain)"},
    {"command": "clear", "description": "Clear all subscriptions"},
    {"command": "id", "description": "Show this chat id"},
    {"command": "help", "description": "Show help"},
]


class TelegramClient:
    """Async HTTP client for the Telegram Bot API.

    Usage::

        tg = TelegramClient(config.telegram)
        await tg.connect()
        try:
            await tg.send_message("12345", "<b>hello</b>")
        finally:
            await tg.close()
    """

    def __init__(self, config: TelegramConfig) -> None:
        self._config = config
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:  # noqa: ASYNC910
        """Create the underlying HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=f"{self._config.api_url.rstrip('/')}/bot{self._config.token}",
            headers={"Content-Type": "application/json"},
            timeout=self._config.timeout,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    @property
    def has_token(self) -> bool:
        return bool(self._config.token)

    async def send_message(self, chat_id: str, text: str) -> None:
        """Send an HTML message to *chat_id* with link previews disabled.

        Raises:
            TelegramError: On transport errors or a non-2xx response.
        """
        await self._call(
            "sendMessage",
            {
                "chat_id": chat_id,
                "text": text,
                "parse_mode": "HTML",
                "disable_web_page_preview": True,
            },
        )

    async def set_my_commands(self) -> None:
        """Register :data:`BOT_COMMANDS` as the bot's default command menu."""
        await self._call("setMyCommands", {"commands": BOT_COMMANDS, "scope": {"type": "default"}})

    async def _call(self, method: str, payload: dict[str, Any]) -> None:
        client = self._ensure_connected()
        try:
            response = await client.post(f"/{method}", json=payload)
        except httpx.HTTPError as exc:
            raise TelegramError(f"Telegram {method} failed: {exc}") from exc

        if response.status_code >= 300:
            message = f"Telegram {method} failed ({response.status_code}): {response.text[:200]}"
            raise TelegramError(message, status_code=response.status_code)

    def _ensure_connected(self) -> httpx.AsyncClient:
        if self._client is None:
            msg = "Telegram client not connected. Call connect() first."
            raise TelegramError(msg, status_code=500)
        return self._client
