"""Errors raised by external HTTP collaborators (vote providers, Telegram)."""

from __future__ import annotations

from referendum_alert.errors.alert_errors import AlertError


class SourceError(AlertError):
    """A vote data provider could not produce a usable response."""

    def __init__(self, provider: str, message: str, *, status_code: int = 502) -> None:
        super().__init__(message, status_code=status_code, code=f"{provider}-error")
        self.provider = provider


class SubscanError(SourceError):
    """Error from the Subscan API."""

    def __init__(self, message: str, *, status_code: int = 502) -> None:
        super().__init__("subscan", message, status_code=status_code)


class PolkassemblyError(SourceError):
    """Error from the Polkassembly API."""

    def __init__(self, message: str, *, status_code: int = 502) -> None:
        super().__init__("polkassembly", message, status_code=status_code)


class TelegramError(AlertError):
    """Error from the Telegram Bot API."""

    def __init__(self, message: str, *, status_code: int = 502) -> None:
        super().__init__(message, status_code=status_code, code="telegram-error")
