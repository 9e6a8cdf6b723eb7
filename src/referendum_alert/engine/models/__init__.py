"""Engine data models (SQLAlchemy ORM).

Import :data:`ALL_MODELS` for migration and table creation.
"""

from referendum_alert.engine.models.base import Base, TimestampMixin
from referendum_alert.engine.models.identity import IdentityCacheEntry, IdentityOverride
from referendum_alert.engine.models.subscription import Subscription
from referendum_alert.engine.models.watermark import Watermark

ALL_MODELS: list[type[Base]] = [
    Subscription,
    Watermark,
    IdentityCacheEntry,
    IdentityOverride,
]

__all__ = [
    "ALL_MODELS",
    "Base",
    "IdentityCacheEntry",
    "IdentityOverride",
    "Subscription",
    "TimestampMixin",
    "Watermark",
]
