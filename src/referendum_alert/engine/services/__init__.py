"""Persistence services consumed by the notifier and command handler."""

from __future__ import annotations

from referendum_alert.engine.services.identity_service import IdentityService
from referendum_alert.engine.services.subscription_service import (
    SubscriptionService,
    SubscriptionTarget,
)
from referendum_alert.engine.services.watermark_service import WatermarkService

__all__ = [
    "IdentityService",
    "SubscriptionService",
    "SubscriptionTarget",
    "WatermarkService",
]
