"""Commands — chat command handling for the Telegram webhook."""

from __future__ import annotations

from referendum_alert.commands.handler import HELP_TEXT, CommandHandler, parse_watch_args

__all__ = ["HELP_TEXT", "CommandHandler", "parse_watch_args"]
