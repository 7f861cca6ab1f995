"""Two-phase ingestion lifecycle guarding cursor ownership."""

from __future__ import annotations

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class IngestionPhase(str, Enum):
    BACKFILLING = "backfilling"
    LIVE = "live"


class IngestionLifecycle:
    """Tracks whether backfill still owns the channel cursors.

    While ``BACKFILLING`` only the crawler advances cursors; live events are
    indexed but leave cursors alone, since their arrival order says nothing
    about what the crawler has replayed. The only transition is
    ``BACKFILLING -> LIVE``.

    Channels whose backfill aborted keep a gap behind their cursor, so they
    stay crawler-owned even after the transition and get resumed on the next
    run.
    """

    def __init__(self) -> None:
        self._phase = IngestionPhase.BACKFILLING
        self._incomplete_channels: set[int] = set()

    @property
    def phase(self) -> IngestionPhase:
        return self._phase

    @property
    def is_live(self) -> bool:
        return self._phase is IngestionPhase.LIVE

    def mark_live(self) -> None:
        if self._phase is IngestionPhase.LIVE:
            return
        logger.info("Backfill complete; live handler now owns cursors")
        self._phase = IngestionPhase.LIVE

    def mark_channel_incomplete(self, channel_id: int) -> None:
        self._incomplete_channels.add(channel_id)

    def live_owns_cursor(self, channel_id: int) -> bool:
        return self.is_live and channel_id not in self._incomplete_channels


__all__ = ["IngestionPhase", "IngestionLifecycle"]
