"""API request/response Pydantic schemas.

These are the *API-layer* schemas: thin wrappers that define the HTTP
contract.  They do not inherit from SQLAlchemy models; the endpoint code
maps between ORM objects and these schemas.
"""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - Pydantic needs this at runtime

from pydantic import BaseModel


class SubscriptionResponse(BaseModel):
    """One (chat, referendum, network) subscription."""

    chat_id: str
    ref_id: int
    network: str
    created_at: datetime | None = None


class PassReportResponse(BaseModel):
    """Outcome of a notification pass triggered through the API."""

    skipped: bool
    targets: int
    targets_processed: int
    targets_failed: int
    targets_deferred: int
    targets_unavailable: int
    votes_delivered: int
    messages_sent: int
    messages_failed: int
    started_at: float
    duration: float


class IdentityOverrideRequest(BaseModel):
    """Pin a display name for an address."""

    address: str = ""
    display: str = ""


class StatusResponse(BaseModel):
    status: str
