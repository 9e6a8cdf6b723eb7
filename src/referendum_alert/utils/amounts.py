"""Token amounts and conviction multipliers in exact arithmetic.

Raw amounts arrive as integer strings in minor units (plancks) and can
exceed 53-bit precision, so everything here stays in ``int`` and
``fractions.Fraction`` until the final decimal string is produced.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from fractions import Fraction
from typing import Any

DECIMALS = 10
_UNIT = 10**DECIMALS

_NON_DIGITS = re.compile(r"\D")
_MULTIPLIER_RE = re.compile(r"(\d+(?:\.\d+)?)\s*x")
_NO_LOCK_TOKENS = frozenset({"", "0", "0.1", "0.1x", "none"})
MAX_CONVICTION = 6


@dataclass(frozen=True)
class Conviction:
    """Lock multiplier applied to a vote's balance."""

    multiplier: Fraction
    label: str


NO_LOCK = Conviction(Fraction(1, 10), "0.1x")
_FALLBACK = Conviction(Fraction(1), "1x")


def minor_units(raw: Any) -> int:
    """Coerce a provider amount into an integer count of minor units.

    Integers pass through; anything else is reduced to its digits, so a
    missing or garbage value reads as 0.
    """
    if isinstance(raw, bool) or raw is None:
        return 0
    if isinstance(raw, int):
        return max(raw, 0)
    if isinstance(raw, float) and raw.is_integer():
        return max(int(raw), 0)
    digits = _NON_DIGITS.sub("", str(raw))
    return int(digits) if digits else 0


def format_fraction(value: Fraction, *, max_places: int = 18) -> str:
    """Render a fraction as a plain decimal string with no trailing zeros."""
    sign = "-" if value < 0 else ""
    value = abs(value)
    whole, remainder = divmod(value.numerator, value.denominator)
    digits: list[str] = []
    while remainder and len(digits) < max_places:
        digit, remainder = divmod(remainder * 10, value.denominator)
        digits.append(str(digit))
    fraction = "".join(digits).rstrip("0")
    return f"{sign}{whole}.{fraction}" if fraction else f"{sign}{whole}"


def to_major_units(raw: Any) -> str:
    """Convert a raw minor-unit amount into a major-unit decimal string.

    ``"123400000000"`` → ``"12.34"``
    """
    return format_fraction(Fraction(minor_units(raw), _UNIT))


def parse_conviction(raw: Any) -> Conviction:
    """Map a provider conviction value onto its multiplier.

    - absent, ``0``, ``none``, ``0.1x`` → ×0.1
    - ``Nx`` anywhere in the text (``Locked3x``) or a bare integer 1–6 → ×N
    - anything else → ×1
    """
    if raw is None or isinstance(raw, bool):
        return NO_LOCK
    text = str(raw).strip().lower()
    if text in _NO_LOCK_TOKENS:
        return NO_LOCK

    match = _MULTIPLIER_RE.search(text)
    token = match.group(1) if match else text
    if token in _NO_LOCK_TOKENS:
        return NO_LOCK
    if token.isdigit() and 1 <= int(token) <= MAX_CONVICTION:
        n = int(token)
        return Conviction(Fraction(n), f"{n}x")
    return _FALLBACK


def voting_power(raw_amount: Any, conviction: Conviction) -> Fraction:
    """Effective voting power in major units: amount × multiplier."""
    return Fraction(minor_units(raw_amount), _UNIT) * conviction.multiplier
