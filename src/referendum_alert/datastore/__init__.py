"""Datastore — async SQLAlchemy engine, sessions and schema setup."""

from __future__ import annotations

from referendum_alert.datastore.client import Datastore

__all__ = ["Datastore"]
