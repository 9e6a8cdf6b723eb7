"""Telegram webhook endpoint."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from referendum_alert.api.dependencies import get_engine, require_webhook_secret
from referendum_alert.api.schemas import StatusResponse
from referendum_alert.engine.client import AlertEngine  # noqa: TC001

logger = logging.getLogger(__name__)

router = APIRouter(tags=["telegram"])


@router.post(
    "/tg-webhook",
    response_model=StatusResponse,
    dependencies=[Depends(require_webhook_secret)],
)
async def telegram_webhook(
    request: Request,
    engine: Annotated[AlertEngine, Depends(get_engine)],
) -> StatusResponse:
    """Receive one Telegram update and run any chat command it carries."""
    try:
        update = await request.json()
    except ValueError:
        logger.warning("Ignoring webhook update with a non-JSON body")
        return StatusResponse(status="ignored")
    if not isinstance(update, dict):
        return StatusResponse(status="ignored")

    handled = await engine.commands.handle_update(update)
    return StatusResponse(status="ok" if handled else "ignored")
