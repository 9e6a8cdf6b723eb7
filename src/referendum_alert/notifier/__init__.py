"""Notifier — vote delivery passes and message rendering."""

from __future__ import annotations

from referendum_alert.notifier.engine import NotificationEngine, PassReport, select_fresh_votes
from referendum_alert.notifier.formatter import format_vote

__all__ = ["NotificationEngine", "PassReport", "format_vote", "select_fresh_votes"]
