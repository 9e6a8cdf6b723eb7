"""Shared-secret authentication for the webhook and admin routes.

- Telegram calls ``/tg-webhook`` with the secret registered through
  ``setWebhook`` in the ``X-Telegram-Bot-Api-Secret-Token`` header.
- Operators call the admin routes with the admin key in the
  ``x-admin-key`` header or the ``key`` query parameter.

Secrets are compared in constant time.  An unset secret never matches.
"""

from __future__ import annotations

import hmac

from referendum_alert.errors.definitions import ErrAdminKeyInvalid, ErrUnauthorized

ADMIN_KEY_HEADER = "x-admin-key"
ADMIN_KEY_QUERY = "key"
TELEGRAM_SECRET_HEADER = "x-telegram-bot-api-secret-token"


def secrets_match(provided: str | None, expected: str) -> bool:
    """Constant-time comparison; False when either side is empty."""
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def check_admin_key(provided: str | None, expected: str) -> None:
    """Raise ``ErrAdminKeyInvalid`` (403) unless *provided* is the admin key."""
    if not secrets_match(provided, expected):
        raise ErrAdminKeyInvalid


def check_webhook_secret(provided: str | None, expected: str) -> None:
    """Raise ``ErrUnauthorized`` (401) unless *provided* is the webhook secret."""
    if not secrets_match(provided, expected):
        raise ErrUnauthorized
