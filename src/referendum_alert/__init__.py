"""Referendum Alert — OpenGov vote notifier for Telegram chats."""

__version__ = "0.1.0"
