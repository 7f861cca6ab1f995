"""Search API routes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from chat_search.api.dependencies import Services, get_services
from chat_search.core.errors import ChatFetchError, EmbeddingServiceError, StoreQueryError
from chat_search.core.metrics import REQUEST_COUNT
from chat_search.models.dto import SearchHit
from chat_search.retrieval.search import SearchOptions, SearchResult
from chat_search.utils.ids import message_link

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/search", response_model=list[SearchHit], summary="Hybrid search over indexed messages")
async def search_messages(
    request: Request,
    dense: bool = Query(True, description="Use the dense (semantic) branch"),
    bm25: bool = Query(True, description="Use the sparse (lexical) branch"),
    filter: str | None = Query(None, description="Only match messages containing this text"),
    offset: int = Query(0, ge=0),
    services: Services = Depends(get_services),
) -> list[SearchHit]:
    options = SearchOptions(dense=dense, sparse=bm25, filter=filter, offset=offset)
    try:
        text = (await request.body()).decode("utf-8")
        results = await services.search.search(text, options)
    except ValueError as exc:
        REQUEST_COUNT.labels(endpoint="search", method="POST", status="400").inc()
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except (EmbeddingServiceError, StoreQueryError) as exc:
        logger.error("Search failed: %s", exc)
        REQUEST_COUNT.labels(endpoint="search", method="POST", status="502").inc()
        raise HTTPException(status_code=502, detail="Search backend unavailable") from exc
    hits = [await _to_hit(services, result) for result in results]
    REQUEST_COUNT.labels(endpoint="search", method="POST", status="200").inc()
    return hits


async def _to_hit(services: Services, result: SearchResult) -> SearchHit:
    content = result.text
    if services.platform is not None:
        try:
            message = await services.platform.fetch_message(result.channel_id, result.message_id)
            content = message.content
        except ChatFetchError as exc:
            logger.warning("Serving indexed text for message %s: %s", result.message_id, exc)
    guild_id = result.guild_id
    return SearchHit(
        score=result.score,
        channel_id=str(result.channel_id),
        message_id=str(result.message_id),
        guild_id=str(guild_id) if guild_id is not None else None,
        content=content,
        author=result.author,
        link=message_link(guild_id, result.channel_id, result.message_id) if guild_id is not None else None,
    )


__all__ = ["router"]
