"""Timestamp coercion, epoch-unit normalization and display."""

from __future__ import annotations

import re
import time
from datetime import UTC, datetime
from typing import Any

# Epoch values above this are taken to be milliseconds.  2×10^10 seconds is
# in the year 2603, while 2×10^10 milliseconds is August 1970, so realistic
# values of either unit never straddle it.
MILLISECOND_THRESHOLD = 20_000_000_000

# Vote timestamps further than this past the current time are rejected.
MAX_FUTURE_SKEW = 24 * 60 * 60

_NUMERIC = re.compile(r"^\d+(?:\.\d+)?$")


def normalize_timestamp(raw: int) -> int:
    """Return *raw* in epoch seconds, converting from milliseconds when needed."""
    return raw // 1000 if raw > MILLISECOND_THRESHOLD else raw


def is_plausible_timestamp(ts: int, *, now: float | None = None) -> bool:
    """True if *ts* (epoch seconds) is positive and at most a day ahead of *now*.

    Microsecond values and far-future garbage fail this check even after
    :func:`normalize_timestamp`.
    """
    if now is None:
        now = time.time()
    return 0 < ts <= now + MAX_FUTURE_SKEW


def coerce_timestamp(value: Any) -> int | None:
    """Read a provider timestamp field as an integer epoch value.

    Accepts ints, floats, numeric strings and ISO 8601 strings (naive ones
    are taken as UTC).  The unit is left untouched; pass the result through
    :func:`normalize_timestamp`.  Returns None for missing, zero or
    unparseable values.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        ts = int(value)
        return ts if ts > 0 else None

    text = str(value).strip()
    if not text:
        return None
    if _NUMERIC.match(text):
        ts = int(float(text))
        return ts if ts > 0 else None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    ts = int(parsed.timestamp())
    return ts if ts > 0 else None


def format_utc(ts: int) -> str:
    """``1700000000`` → ``"2023-11-14 22:13:20 UTC"``."""
    return datetime.fromtimestamp(ts, tz=UTC).strftime("%Y-%m-%d %H:%M:%S UTC")


def isoformat_utc(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=UTC).isoformat()
