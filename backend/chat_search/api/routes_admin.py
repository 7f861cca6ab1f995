"""Administrative routes for Chat Search."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from chat_search.api.dependencies import Services, get_ledger, get_services
from chat_search.core.metrics import metrics_response
from chat_search.db.ledger import Ledger
from chat_search.models.dto import CursorEntry, IndexedMessageResponse, ResetCursorResponse, StatusResponse
from chat_search.utils.ids import parse_message_key

router = APIRouter()


@router.get("/status", response_model=StatusResponse, summary="Ingestion phase and ledger counts")
async def status(services: Services = Depends(get_services)) -> StatusResponse:
    return StatusResponse(
        phase=services.lifecycle.phase.value,
        indexed_messages=services.ledger.indexed_count(),
        channels_with_cursor=len(services.ledger.cursors()),
    )


@router.get("/cursors", response_model=list[CursorEntry], summary="List backfill cursors")
async def list_cursors(ledger: Ledger = Depends(get_ledger)) -> list[CursorEntry]:
    return [
        CursorEntry(channel_id=str(channel_id), message_id=str(message_id))
        for channel_id, message_id in sorted(ledger.cursors().items())
    ]


@router.delete(
    "/cursors/{channel_id}",
    response_model=ResetCursorResponse,
    summary="Forget a channel cursor so the next backfill replays it",
)
async def reset_cursor(channel_id: int, ledger: Ledger = Depends(get_ledger)) -> ResetCursorResponse:
    return ResetCursorResponse(channel_id=str(channel_id), reset=ledger.reset_cursor(channel_id))


@router.get(
    "/indexed/{message_key}",
    response_model=IndexedMessageResponse,
    summary="Look up a `channel:message` key in the ledger",
)
async def indexed_message(message_key: str, ledger: Ledger = Depends(get_ledger)) -> IndexedMessageResponse:
    try:
        channel_id, message_id = parse_message_key(message_key)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    guild_id = ledger.get_indexed_guild(channel_id, message_id)
    return IndexedMessageResponse(
        channel_id=str(channel_id),
        message_id=str(message_id),
        indexed=guild_id is not None,
        guild_id=str(guild_id) if guild_id is not None else None,
    )


@router.get("/metrics", summary="Prometheus metrics")
async def get_metrics():
    return metrics_response()


__all__ = ["router"]
