"""Real-time message ingestion."""

from __future__ import annotations

from chat_search.core.logging import get_logger
from chat_search.db.ledger import Ledger
from chat_search.ingest.indexer import Indexer
from chat_search.ingest.lifecycle import IngestionLifecycle
from chat_search.ingest.types import IndexOutcome
from chat_search.platform.base import ChatMessage

logger = get_logger(__name__)


class LiveIngestionHandler:
    """Index messages as they are created.

    Indexing is always safe to run next to the crawler thanks to the ledger
    check. Cursor updates wait until the lifecycle reports ``LIVE``.
    """

    def __init__(self, indexer: Indexer, ledger: Ledger, lifecycle: IngestionLifecycle) -> None:
        self.indexer = indexer
        self.ledger = ledger
        self.lifecycle = lifecycle

    async def handle(self, message: ChatMessage) -> IndexOutcome | None:
        if message.guild_id is None:
            logger.warning("Ignoring message %s without a guild id", message.id)
            return None
        outcome = await self.indexer.index_message(
            message.guild_id,
            message.channel_id,
            message.id,
            message.content,
            message.author_username,
            path="live",
        )
        if outcome is not IndexOutcome.FAILED and self.lifecycle.live_owns_cursor(message.channel_id):
            current = self.ledger.get_cursor(message.channel_id)
            if current is None or message.id > current:
                self.ledger.advance_cursor(message.channel_id, message.id)
        return outcome


__all__ = ["LiveIngestionHandler"]
