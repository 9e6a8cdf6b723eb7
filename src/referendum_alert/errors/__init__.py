"""Error types shared across the service."""

from __future__ import annotations

from referendum_alert.errors.alert_errors import AlertError
from referendum_alert.errors.source_errors import (
    PolkassemblyError,
    SourceError,
    SubscanError,
    TelegramError,
)

__all__ = [
    "AlertError",
    "PolkassemblyError",
    "SourceError",
    "SubscanError",
    "TelegramError",
]
