"""Telegram — Bot API delivery transport."""

from __future__ import annotations

from referendum_alert.telegram.client import BOT_COMMANDS, TelegramClient

__all__ = ["BOT_COMMANDS", "TelegramClient"]
