"""Telegram command handling.

Parses chat commands from webhook updates and applies them to the
subscription store.  The only state changes a chat can make are:

- subscribe: add the subscription, then move the watermark up to "now" so
  the chat is not flooded with votes cast before it subscribed
- unsubscribe / clear: remove subscriptions
"""

from __future__ import annotations

import logging
import re
import time
from typing import TYPE_CHECKING, Any

from referendum_alert.config.settings import Network
from referendum_alert.notifier.formatter import escape_html

if TYPE_CHECKING:
    from collections.abc import Callable

    from referendum_alert.engine.services.subscription_service import SubscriptionService
    from referendum_alert.engine.services.watermark_service import WatermarkService
    from referendum_alert.notifier.engine import MessageSender

logger = logging.getLogger(__name__)

NETWORK_HINT = "<i>Chain:</i> <code>dot</code> = Polkadot, <code>ksm</code> = Kusama."
EXAMPLES = """Examples:
• <code>/watch 1759</code> (defaults to dot)
• <code>/watch 321 ksm</code>
• <code>/watch dot:1759</code> or <code>/watch ksm:321</code>
• <code>/watchdot 1759</code> or <code>/watchksm 321</code>"""

HELP_TEXT = f"""👋 <b>Referendum Alert — OpenGov vote notifier</b>

<b>Commands</b>
/watch <i>&lt;id&gt;</i> [dot|ksm] — start watching (default dot)
/watchdot <i>&lt;id&gt;</i> — start watching on Polkadot
/watchksm <i>&lt;id&gt;</i> — start watching on Kusama
/unwatch <i>&lt;id&gt;</i> [dot|ksm] — stop watching (no chain = both)
/list — list what you watch (with chain)
/clear — unsubscribe all (both chains)
/id — show this chat id
/help — show this message

{NETWORK_HINT}
{EXAMPLES}"""

WATCH_USAGE = f"Usage: <code>/watch &lt;id&gt; [dot|ksm]</code>\n{EXAMPLES}"
UNWATCH_USAGE = "Usage: <code>/unwatch &lt;id&gt; [dot|ksm]</code>"

_PREFIXED_ID = re.compile(r"^(dot|ksm|polkadot|kusama)\s*:\s*(\d+)$", re.IGNORECASE)
_NOT_ID_CHARS = re.compile(r"[^\d-]")
_BOT_SUFFIX = re.compile(r"@.+$")


def clean_id(value: Any) -> str:
    """Strip everything but digits and minus signs (``"#1759"`` → ``"1759"``)."""
    return _NOT_ID_CHARS.sub("", str(value if value is not None else ""))


def parse_ref_id(value: str) -> int | None:
    """Parse a positive referendum id, or None."""
    try:
        ref_id = int(value)
    except ValueError:
        return None
    return ref_id if ref_id > 0 else None


def parse_watch_args(raw: str) -> tuple[int, Network] | None:
    """Parse ``/watch`` arguments.

    Accepts ``<id>``, ``<id> <network>`` and ``<network>:<id>``; the network
    defaults to Polkadot.  Returns None for anything else.
    """
    text = raw.strip()
    if not text:
        return None

    prefixed = _PREFIXED_ID.match(text)
    if prefixed:
        network = Network.parse(prefixed.group(1))
        ref_id = parse_ref_id(prefixed.group(2))
        if network is None or ref_id is None:
            return None
        return ref_id, network

    parts = text.split()
    if not parts[0].isdigit():
        return None
    ref_id = parse_ref_id(parts[0])
    if ref_id is None:
        return None
    if len(parts) == 1:
        return ref_id, Network.POLKADOT
    network = Network.parse(parts[1])
    if network is None:
        return None
    return ref_id, network


class CommandHandler:
    """Handle chat commands arriving through the Telegram webhook."""

    def __init__(
        self,
        subscriptions: SubscriptionService,
        watermarks: WatermarkService,
        sender: MessageSender,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._subscriptions = subscriptions
        self._watermarks = watermarks
        self._sender = sender
        self._clock = clock

    # ------------------------------------------------------------------
    # Core-state mutations
    # ------------------------------------------------------------------

    async def subscribe(self, chat_id: str, ref_id: int, network: Network) -> int:
        """Subscribe a chat and move the target's watermark up to now.

        The watermark only ever moves forward here, so subscribing never
        re-hides votes a running pass is about to deliver to other chats.

        Returns:
            The target's watermark after the call.
        """
        await self._subscriptions.add_subscription(chat_id, ref_id, network)
        return await self._watermarks.raise_watermark(ref_id, network, int(self._clock()))

    async def unsubscribe(self, chat_id: str, ref_id: int, network: Network | None = None) -> int:
        return await self._subscriptions.remove_subscription(chat_id, ref_id, network)

    async def clear(self, chat_id: str) -> int:
        return await self._subscriptions.clear_all_for_chat(chat_id)

    # ------------------------------------------------------------------
    # Update dispatch
    # ------------------------------------------------------------------

    async def handle_update(self, update: dict[str, Any]) -> bool:
        """Process one webhook update.

        Returns:
            True if the update carried a text message from a chat.
        """
        message = update.get("message") or update.get("channel_post")
        if not isinstance(message, dict):
            return False
        chat = message.get("chat")
        chat_id = str(chat.get("id", "")) if isinstance(chat, dict) else ""
        text = str(message.get("text") or "").strip()
        if not chat_id or not text:
            return False

        raw_command, _, arg_raw = text.partition(" ")
        raw_command = raw_command.split("\n", 1)[0]
        command = _BOT_SUFFIX.sub("", raw_command).lower()
        args = arg_raw.strip()

        try:
            await self._dispatch(chat_id, command, raw_command, args)
        except Exception as exc:
            logger.exception("Command %s from chat %s failed", command, chat_id)
            await self._reply(chat_id, f"⚠️ Error: {escape_html(exc)}")
        return True

    async def _dispatch(self, chat_id: str, command: str, raw_command: str, args: str) -> None:
        if command in ("/start", "/help", "/commands"):
            await self._reply(chat_id, HELP_TEXT)
        elif command == "/id":
            await self._reply(chat_id, f"This chat id: <code>{escape_html(chat_id)}</code>")
        elif command in ("/watch", "/watchdot", "/watchksm"):
            await self._watch(chat_id, command, args)
        elif command == "/unwatch":
            await self._unwatch(chat_id, args)
        elif command == "/list":
            await self._list(chat_id)
        elif command == "/clear":
            await self.clear(chat_id)
            await self._reply(chat_id, "🧹 Cleared all subscriptions for this chat (dot &amp; ksm).")
        elif command.startswith("/"):
            await self._reply(
                chat_id,
                f"🤖 Unknown command: <code>{escape_html(raw_command)}</code>\n\n{HELP_TEXT}",
            )

    async def _watch(self, chat_id: str, command: str, args: str) -> None:
        parsed: tuple[int, Network] | None
        if command == "/watch":
            parsed = parse_watch_args(args)
        else:
            ref_id = parse_ref_id(clean_id(args))
            network = Network.POLKADOT if command == "/watchdot" else Network.KUSAMA
            parsed = (ref_id, network) if ref_id is not None else None

        if parsed is None:
            await self._reply(chat_id, WATCH_USAGE)
            return
        ref_id, network = parsed
        await self.subscribe(chat_id, ref_id, network)
        logger.info("Chat %s subscribed to %s #%d", chat_id, network, ref_id)
        await self._reply(chat_id, f"✅ Watching #{ref_id} ({network})")

    async def _unwatch(self, chat_id: str, args: str) -> None:
        parts = args.split()
        ref_id = parse_ref_id(clean_id(parts[0])) if parts else None
        if ref_id is None:
            await self._reply(chat_id, UNWATCH_USAGE)
            return
        network = Network.parse(parts[1]) if len(parts) > 1 else None
        await self.unsubscribe(chat_id, ref_id, network)
        scope = str(network) if network is not None else "dot &amp; ksm"
        await self._reply(chat_id, f"🗑️ Unwatched #{ref_id} ({scope})")

    async def _list(self, chat_id: str) -> None:
        watched = await self._subscriptions.list_subscriptions_for_chat(chat_id)
        if not watched:
            await self._reply(
                chat_id,
                "You aren’t watching any referenda yet. "
                "Use <code>/watch &lt;id&gt; [dot|ksm]</code>.",
            )
            return
        listing = ", ".join(f"#{ref_id} ({network})" for ref_id, network in watched)
        await self._reply(chat_id, f"👀 Watching: {listing}")

    async def _reply(self, chat_id: str, text: str) -> None:
        await self._sender.send_message(chat_id, text)
