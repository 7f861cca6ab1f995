"""Search orchestration."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

from chat_search.core.metrics import SEARCH_LATENCY
from chat_search.db.ledger import Ledger
from chat_search.ingest.embeddings import Embedder
from chat_search.retrieval.vector_store import QueryOptions, StoreHit, VectorStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SearchOptions:
    dense: bool = True
    sparse: bool = True
    filter: str | None = None
    offset: int = 0
    limit: int | None = None


@dataclass(slots=True)
class SearchResult:
    score: float
    channel_id: int
    message_id: int
    guild_id: int | None
    author: str
    text: str


class SearchService:
    """Embeds a query, runs the fused hybrid query and maps hits back to messages.

    Results keep exactly the order the store returned; nothing is re-scored
    here.
    """

    def __init__(
        self,
        embedder: Embedder,
        store: VectorStore,
        ledger: Ledger | None = None,
        limit: int = 10,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.ledger = ledger
        self.limit = limit

    async def search(self, text: str, options: SearchOptions | None = None) -> list[SearchResult]:
        options = options or SearchOptions()
        if not (options.dense or options.sparse):
            raise ValueError("At least one of dense or sparse retrieval must be enabled")
        if options.offset < 0:
            raise ValueError("offset must be >= 0")
        start_time = time.perf_counter()
        embeddings = await self.embedder.embed(text, dense=options.dense, bm25=options.sparse)
        hits = await self.store.query(
            embeddings,
            QueryOptions(
                use_dense=options.dense,
                use_sparse=options.sparse,
                text_filter=options.filter or None,
                offset=options.offset,
                limit=options.limit or self.limit,
            ),
        )
        results: list[SearchResult] = []
        for hit in hits:
            result = self._to_result(hit)
            if result is not None:
                results.append(result)
        SEARCH_LATENCY.observe(time.perf_counter() - start_time)
        return results

    def _to_result(self, hit: StoreHit) -> SearchResult | None:
        payload = hit.payload
        try:
            message = payload["message"]
            channel_id = int(payload["channel"]["id"])
            message_id = int(message["id"])
        except (KeyError, TypeError, ValueError):
            logger.warning("Dropping hit %s with malformed payload", hit.id)
            return None
        guild_id = _optional_int((payload.get("guild") or {}).get("id"))
        if guild_id is None and self.ledger is not None:
            guild_id = self.ledger.get_indexed_guild(channel_id, message_id)
        return SearchResult(
            score=hit.score,
            channel_id=channel_id,
            message_id=message_id,
            guild_id=guild_id,
            author=str((payload.get("author") or {}).get("username", "")),
            text=str(message.get("text", "")),
        )


def _optional_int(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


__all__ = ["SearchOptions", "SearchResult", "SearchService"]
