"""Resumable backfill of channel history."""

from __future__ import annotations

from typing import Sequence

from chat_search.core.errors import ChatFetchError
from chat_search.core.logging import get_logger
from chat_search.core.metrics import BACKFILL_CHANNEL_FAILURES, BACKFILL_PAGES
from chat_search.db.ledger import Ledger
from chat_search.ingest.indexer import Indexer
from chat_search.ingest.lifecycle import IngestionLifecycle
from chat_search.ingest.types import BackfillStats
from chat_search.platform.base import BACKFILL_CHANNEL_KINDS, ChatChannel, ChatPlatform

logger = get_logger(__name__)

BEGINNING_OF_HISTORY = 0


class BackfillCrawler:
    """Replay every channel from its ledger cursor up to the present.

    Channels are walked one at a time and pages within a channel one at a
    time. Messages of a page are indexed in ascending id order and the cursor
    is committed once per page, after every message in it went through the
    indexer.
    """

    def __init__(
        self,
        platform: ChatPlatform,
        ledger: Ledger,
        indexer: Indexer,
        lifecycle: IngestionLifecycle,
    ) -> None:
        self.platform = platform
        self.ledger = ledger
        self.indexer = indexer
        self.lifecycle = lifecycle

    async def run(self, guild_ids: Sequence[int]) -> BackfillStats:
        stats = BackfillStats()
        for guild_id in guild_ids:
            logger.info("Backfilling guild %s", guild_id)
            try:
                channels = await self.platform.fetch_channels(guild_id)
            except ChatFetchError as exc:
                logger.warning("Could not list channels of guild %s: %s", guild_id, exc)
                continue
            for channel in channels:
                if channel.kind not in BACKFILL_CHANNEL_KINDS:
                    continue
                stats.merge(await self.backfill_channel(channel))
        self.lifecycle.mark_live()
        logger.info("Backfill finished", extra={"ctx_stats": stats.to_dict()})
        return stats

    async def backfill_channel(self, channel: ChatChannel) -> BackfillStats:
        stats = BackfillStats(channels=1)
        stored = self.ledger.get_cursor(channel.id)
        cursor = stored if stored is not None else BEGINNING_OF_HISTORY
        logger.info("Backfilling channel %s (%s) after %s", channel.name, channel.id, stored)
        try:
            while True:
                page = await self.platform.fetch_messages(channel.id, after=cursor)
                if not page:
                    break
                for message in sorted(page, key=lambda item: item.id):
                    if message.id <= cursor:
                        continue
                    outcome = await self.indexer.index_message(
                        channel.guild_id,
                        channel.id,
                        message.id,
                        message.content,
                        message.author_username,
                    )
                    stats.record(outcome)
                    cursor = message.id
                if stored is not None and cursor <= stored:
                    # Page held nothing newer than the cursor; the transport is
                    # not honouring ``after``.
                    break
                self.ledger.advance_cursor(channel.id, cursor)
                stored = cursor
                stats.pages += 1
                BACKFILL_PAGES.inc()
                logger.debug("Committed cursor %s for channel %s (%s messages)", cursor, channel.id, len(page))
        except ChatFetchError as exc:
            stats.failed_channels += 1
            self.lifecycle.mark_channel_incomplete(channel.id)
            BACKFILL_CHANNEL_FAILURES.inc()
            logger.warning(
                "Error backfilling channel %s (%s); cursor stays at %s: %s",
                channel.name,
                channel.id,
                stored,
                exc,
            )
        return stats


__all__ = ["BackfillCrawler", "BEGINNING_OF_HISTORY"]
