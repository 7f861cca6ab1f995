"""Idempotent single-message indexing."""

from __future__ import annotations

from chat_search.core.errors import EmbeddingServiceError, StoreWriteError
from chat_search.core.logging import get_logger
from chat_search.core.metrics import MESSAGES_PROCESSED
from chat_search.db.ledger import Ledger
from chat_search.ingest.embeddings import Embedder
from chat_search.ingest.types import IndexedDocument, IndexOutcome, MessageRef
from chat_search.retrieval.vector_store import VectorStore
from chat_search.utils.ids import point_id

logger = get_logger(__name__)


class Indexer:
    """Embed and upsert one message, recording it in the ledger afterwards.

    The ledger is written only once the upsert has returned, so a message is
    never marked indexed without being in the store. A crash in between just
    means the next pass re-embeds and overwrites the same point id.

    Messages with empty text are skipped without being marked. A later pass
    over the same message therefore looks at it again; that keeps edited
    messages eligible if they are ever re-delivered with content.
    """

    def __init__(self, ledger: Ledger, embedder: Embedder, store: VectorStore) -> None:
        self.ledger = ledger
        self.embedder = embedder
        self.store = store

    async def index_message(
        self,
        guild_id: int,
        channel_id: int,
        message_id: int,
        text: str,
        author: str,
        path: str = "backfill",
    ) -> IndexOutcome:
        outcome = await self._index(MessageRef(guild_id, channel_id, message_id), text, author)
        MESSAGES_PROCESSED.labels(outcome=outcome.value, path=path).inc()
        return outcome

    async def _index(self, ref: MessageRef, text: str, author: str) -> IndexOutcome:
        if self.ledger.has_indexed(ref.channel_id, ref.message_id):
            return IndexOutcome.SKIPPED
        if not text:
            return IndexOutcome.EMPTY
        try:
            embeddings = await self.embedder.embed(text)
            document = IndexedDocument.for_message(
                point_id(ref.channel_id, ref.message_id),
                ref,
                text,
                author,
                embeddings,
            )
            await self.store.upsert(document)
        except (EmbeddingServiceError, StoreWriteError) as exc:
            logger.error(
                "Failed to index message %s in channel %s: %s",
                ref.message_id,
                ref.channel_id,
                exc,
                extra={"ctx_channel_id": str(ref.channel_id), "ctx_message_id": str(ref.message_id)},
            )
            return IndexOutcome.FAILED
        self.ledger.mark_indexed(ref.channel_id, ref.message_id, ref.guild_id)
        return IndexOutcome.INDEXED


__all__ = ["Indexer"]
