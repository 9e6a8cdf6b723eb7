"""Vote message rendering — Telegram HTML.

Everything here is a pure function of a vote and an optional display name;
identity resolution and delivery live in the engine.
"""

from __future__ import annotations

import html
from typing import TYPE_CHECKING

from referendum_alert.sources.models import VoteDirection
from referendum_alert.utils.amounts import format_fraction, parse_conviction, to_major_units, voting_power
from referendum_alert.utils.timestamps import format_utc, normalize_timestamp

if TYPE_CHECKING:
    from referendum_alert.config.settings import Network
    from referendum_alert.sources.models import VoteEvent

_DIRECTION_EMOJI: dict[VoteDirection, str] = {
    VoteDirection.AYE: "🟢",
    VoteDirection.NAY: "🔴",
    VoteDirection.ABSTAIN: "🟡",
}


def escape_html(value: object) -> str:
    """Escape ``& < > " '`` for Telegram's HTML parse mode."""
    return html.escape(str(value), quote=True)


def short_address(address: str) -> str:
    """``first6…last6`` for long addresses, ``"unknown"`` for empty ones."""
    if not address:
        return "unknown"
    if len(address) > 12:
        return f"{address[:6]}…{address[-6:]}"
    return address


def direction_emoji(direction: VoteDirection) -> str:
    return _DIRECTION_EMOJI.get(direction, "🟡")


def format_vote(
    ref_id: int,
    vote: VoteEvent,
    display_name: str | None = None,
    *,
    network: Network,
) -> str:
    """Render one vote as a Telegram HTML message.

    The voter is shown by *display_name* when one was resolved, otherwise by
    the shortened voter address.  Delegated votes also name the delegator.
    """
    conviction = parse_conviction(vote.conviction)
    symbol = network.token_symbol
    amount = to_major_units(vote.amount)
    power = format_fraction(voting_power(vote.amount, conviction))

    if display_name:
        who = f"👤 {escape_html(display_name)}"
    else:
        who = f"👤 <code>{escape_html(short_address(vote.voter))}</code>"

    lines = [
        f"{direction_emoji(vote.direction)} <b>{escape_html(vote.direction.value.upper())}</b>",
        who,
    ]
    if vote.delegate and vote.delegate != vote.address:
        lines.append(f"↪️ <i>Delegated by</i> <code>{escape_html(short_address(vote.address))}</code>")
    lines += [
        f"🏷️ <i>Ref:</i> #{ref_id} ({escape_html(network.display_name)})",
        f"💰 <i>Amount:</i> <b>{escape_html(amount)} {symbol}</b>",
        f"🔒 <i>Conviction:</i> {escape_html(conviction.label)}"
        f" · <i>Power:</i> <b>{escape_html(power)} {symbol}</b>",
    ]
    ts = normalize_timestamp(vote.timestamp)
    if ts > 0:
        lines.append(f"🕒 <i>{format_utc(ts)}</i>")
    return "\n".join(lines)
