"""Wire the crawler and the live handler to platform events."""

from __future__ import annotations

import asyncio
from typing import Sequence

from chat_search.core.errors import LedgerIOError
from chat_search.core.logging import get_logger
from chat_search.ingest.crawler import BackfillCrawler
from chat_search.ingest.live import LiveIngestionHandler
from chat_search.ingest.types import BackfillStats
from chat_search.platform.base import ChatMessage, ChatPlatform

logger = get_logger(__name__)


class IngestionRuntime:
    """Start backfill on the first ``ready`` and feed new messages to the live handler.

    Backfill runs as its own task so gateway events keep flowing (and get
    indexed) while history is replayed. Ledger failures from either path are
    surfaced through :meth:`wait_fatal` so the process can stop.
    """

    def __init__(self, platform: ChatPlatform, crawler: BackfillCrawler, live: LiveIngestionHandler) -> None:
        self.platform = platform
        self.crawler = crawler
        self.live = live
        self.backfill_task: asyncio.Task[BackfillStats] | None = None
        self.fatal_error: BaseException | None = None
        self._fatal = asyncio.Event()

    def attach(self) -> None:
        self.platform.subscribe_ready(self.on_ready)
        self.platform.subscribe_message_create(self.on_message)

    async def on_ready(self, guild_ids: Sequence[int]) -> None:
        if self.backfill_task is not None:
            logger.info("Reconnected; backfill already started")
            return
        self.backfill_task = asyncio.create_task(self.crawler.run(list(guild_ids)), name="backfill")
        self.backfill_task.add_done_callback(self._on_backfill_done)

    async def on_message(self, message: ChatMessage) -> None:
        try:
            await self.live.handle(message)
        except LedgerIOError as exc:
            self._fail(exc)
            raise

    async def wait_fatal(self) -> None:
        """Block until a fatal ingestion error happens, then raise it."""
        await self._fatal.wait()
        assert self.fatal_error is not None
        raise self.fatal_error

    def _on_backfill_done(self, task: asyncio.Task[BackfillStats]) -> None:
        if task.cancelled():
            logger.warning("Backfill cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.critical("Backfill aborted", exc_info=exc)
            self._fail(exc)

    def _fail(self, exc: BaseException) -> None:
        if self.fatal_error is None:
            self.fatal_error = exc
        self._fatal.set()


__all__ = ["IngestionRuntime"]
