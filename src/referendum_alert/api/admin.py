"""Operator endpoints.

All routes require the admin key (``x-admin-key`` header or ``?key=``):

- ``POST /run`` — run a notification pass now
- ``GET /admin/subscriptions`` — every subscription
- ``POST /admin/notify-dummy`` — send a sample vote message to one chat
- ``GET /admin/diag`` — which credentials and components are configured
- ``GET /admin/peek`` — watermark and newest votes for one target
- ``POST /admin/set-commands`` — register the bot command menu
- ``POST /admin/identity-override`` — pin a display name for an address
- ``DELETE /admin/identity-cache/{address}`` — drop a cached display name
"""

from __future__ import annotations

import time
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query

from referendum_alert.api.dependencies import get_engine, require_admin_key
from referendum_alert.api.schemas import (
    IdentityOverrideRequest,
    PassReportResponse,
    StatusResponse,
    SubscriptionResponse,
)
from referendum_alert.config.settings import Network
from referendum_alert.engine.client import AlertEngine  # noqa: TC001
from referendum_alert.errors.definitions import (
    ErrAddressRequired,
    ErrChatRequired,
    ErrInvalidNetwork,
    ErrInvalidReferendum,
)
from referendum_alert.notifier.formatter import format_vote
from referendum_alert.sources.models import VoteDirection, VoteEvent

router = APIRouter(tags=["admin"], dependencies=[Depends(require_admin_key)])

DUMMY_REF_ID = 1759
DUMMY_ADDRESS = "16CwBowmC6fNyvBGwtZwoKFu8PDjTbd1pMovQRx2UyjhJArK"
DUMMY_AMOUNT = "123400000000"
DUMMY_CONVICTION = "Locked1x"


def _network(value: str) -> Network:
    network = Network.parse(value)
    if network is None:
        raise ErrInvalidNetwork
    return network


def _ref_id(value: int | None) -> int:
    if value is None or value <= 0:
        raise ErrInvalidReferendum
    return value


@router.post("/run", response_model=PassReportResponse)
async def run_pass(
    engine: Annotated[AlertEngine, Depends(get_engine)],
) -> PassReportResponse:
    """Run one notification pass and return its report."""
    report = await engine.notifier.run_notification_pass()
    return PassReportResponse(**report.to_dict())


@router.get("/admin/subscriptions", response_model=list[SubscriptionResponse])
async def list_subscriptions(
    engine: Annotated[AlertEngine, Depends(get_engine)],
) -> list[SubscriptionResponse]:
    rows = await engine.subscription_service.list_all()
    return [
        SubscriptionResponse(
            chat_id=row.chat_id,
            ref_id=row.ref_id,
            network=row.network,
            created_at=row.created_at,
        )
        for row in rows
    ]


@router.post("/admin/notify-dummy", response_model=StatusResponse)
async def notify_dummy(
    engine: Annotated[AlertEngine, Depends(get_engine)],
    chat: Annotated[str, Query()] = "",
    ref: Annotated[int, Query()] = DUMMY_REF_ID,
    vote_type: Annotated[str, Query(alias="type")] = "aye",
    addr: Annotated[str, Query()] = DUMMY_ADDRESS,
    network: Annotated[str, Query()] = "dot",
) -> StatusResponse:
    """Format a sample vote and send it to *chat*, bypassing watermarks."""
    if not chat:
        raise ErrChatRequired
    ref_id, target_network = _ref_id(ref), _network(network)
    vote = VoteEvent(
        direction=VoteDirection.classify(vote_type) or VoteDirection.AYE,
        address=addr,
        amount=DUMMY_AMOUNT,
        conviction=DUMMY_CONVICTION,
        timestamp=int(time.time()),
    )
    display = await engine.identity_service.resolve_display(vote.voter)
    text = format_vote(ref_id, vote, display, network=target_network)
    await engine.telegram.send_message(chat, text)
    return StatusResponse(status="dummy sent")


@router.get("/admin/diag")
async def diag(engine: Annotated[AlertEngine, Depends(get_engine)]) -> dict[str, Any]:
    return engine.diagnostics()


@router.get("/admin/peek")
async def peek(
    engine: Annotated[AlertEngine, Depends(get_engine)],
    ref: Annotated[int | None, Query()] = None,
    network: Annotated[str, Query()] = "dot",
    limit: Annotated[int, Query(ge=1, le=50)] = 5,
) -> dict[str, Any]:
    """Show the watermark and newest votes for one target without delivering."""
    return await engine.notifier.peek(_ref_id(ref), _network(network), limit=limit)


@router.post("/admin/set-commands", response_model=StatusResponse)
async def set_commands(engine: Annotated[AlertEngine, Depends(get_engine)]) -> StatusResponse:
    await engine.telegram.set_my_commands()
    return StatusResponse(status="commands set")


@router.post("/admin/identity-override", response_model=StatusResponse)
async def set_identity_override(
    body: IdentityOverrideRequest,
    engine: Annotated[AlertEngine, Depends(get_engine)],
) -> StatusResponse:
    address, display = body.address.strip(), body.display.strip()
    if not address or not display:
        raise ErrAddressRequired
    await engine.identity_service.set_override(address, display)
    return StatusResponse(status="ok")


@router.delete("/admin/identity-cache/{address}")
async def delete_identity_cache(
    address: str,
    engine: Annotated[AlertEngine, Depends(get_engine)],
) -> dict[str, Any]:
    deleted = await engine.identity_service.delete_cached(address)
    return {"address": address, "deleted": deleted}
